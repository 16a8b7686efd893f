"""Population vitals analytics decoupled from rendering."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from dogsim.core.render_state import DogState


_EMPTY_SUMMARY: dict[str, float] = {
    "population": 0.0,
    "mean_heart_rate": 0.0,
    "max_heart_rate": 0.0,
    "mean_temperature": 0.0,
    "max_temperature": 0.0,
    "mean_pairwise_distance": 0.0,
}


def summarize_vitals(states: Sequence[DogState]) -> dict[str, float]:
    """Build scalar population metrics from one set of dog snapshots."""
    if not states:
        return dict(_EMPTY_SUMMARY)

    heart_rates = np.array([s.heart_rate for s in states], dtype=float)
    temperatures = np.array([s.temperature for s in states], dtype=float)
    positions = np.array([(s.x, s.y) for s in states], dtype=float)

    return {
        "population": float(len(states)),
        "mean_heart_rate": float(heart_rates.mean()),
        "max_heart_rate": float(heart_rates.max()),
        "mean_temperature": float(temperatures.mean()),
        "max_temperature": float(temperatures.max()),
        "mean_pairwise_distance": mean_pairwise_distance(positions),
    }


def mean_pairwise_distance(positions: np.ndarray) -> float:
    """Return the mean distance over all unordered pairs of positions."""
    count = len(positions)
    if count < 2:
        return 0.0
    deltas = positions[:, None, :] - positions[None, :, :]
    distances = np.sqrt((deltas**2).sum(axis=-1))
    upper = np.triu_indices(count, k=1)
    return float(distances[upper].mean())
