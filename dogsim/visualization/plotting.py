"""Plot utilities for persisted dog vitals."""

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from dogsim.agents.dog import MAX_HR, MAX_TEMP  # noqa: E402
from dogsim.data.vitals_store import VitalsStore  # noqa: E402


def plot_dog_vitals(db_path: str | Path, dog_id: int, output_path: str | Path) -> Path:
    """Render one dog's heart rate and temperature history from the vitals store."""
    store = VitalsStore(db_path)
    try:
        rows = store.fetch_history(dog_id)
    finally:
        store.close()
    if not rows:
        raise ValueError(f"No vitals recorded for dog {dog_id} in {db_path}")

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    start = float(rows[0]["recorded_at"])
    elapsed = [float(row["recorded_at"]) - start for row in rows]
    heart_rates = [int(row["heart_rate"]) for row in rows]
    temperatures = [float(row["temperature"]) for row in rows]

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(8, 6), sharex=True)
    ax1.plot(elapsed, heart_rates, label="heart_rate")
    ax1.axhline(MAX_HR, color="tab:red", linestyle="--", linewidth=0.8, label="max")
    ax1.set_ylabel("bpm")
    ax1.legend()

    ax2.plot(elapsed, temperatures, label="temperature", color="tab:orange")
    ax2.axhline(MAX_TEMP, color="tab:red", linestyle="--", linewidth=0.8, label="max")
    ax2.set_ylabel("C")
    ax2.set_xlabel("seconds")
    ax2.legend()

    fig.suptitle(f"dog {dog_id}")
    fig.tight_layout()
    fig.savefig(output)
    plt.close(fig)
    return output
