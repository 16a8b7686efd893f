"""SQLite-backed persistence of per-tick dog vitals."""

from __future__ import annotations

import sqlite3
import threading
import time
from pathlib import Path

from dogsim.core.render_state import DogState


class VitalsStore:
    """Persist every ``DogState`` report with its arrival time.

    Reports arrive from event-bus worker threads, so the connection is shared
    across threads and guarded by its own lock.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self.connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.connection.row_factory = sqlite3.Row
        self._ensure_schema()

    def close(self) -> None:
        with self._lock:
            self.connection.close()

    def _ensure_schema(self) -> None:
        with self._lock:
            self.connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS dog_vitals (
                    dog_id INTEGER NOT NULL,
                    x REAL NOT NULL,
                    y REAL NOT NULL,
                    heart_rate INTEGER NOT NULL,
                    temperature REAL NOT NULL,
                    recorded_at REAL NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_dog_vitals_dog
                    ON dog_vitals (dog_id, recorded_at);
                """
            )
            self.connection.commit()

    def record(self, state: DogState, recorded_at: float | None = None) -> None:
        """Insert one report; usable directly as an event-bus subscriber."""
        timestamp = float(recorded_at if recorded_at is not None else time.time())
        with self._lock:
            self.connection.execute(
                """
                INSERT INTO dog_vitals (dog_id, x, y, heart_rate, temperature, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (state.dog_id, state.x, state.y, state.heart_rate, state.temperature, timestamp),
            )
            self.connection.commit()

    def fetch_history(self, dog_id: int) -> list[dict[str, float]]:
        """Return one dog's reports in arrival order."""
        with self._lock:
            rows = self.connection.execute(
                """
                SELECT dog_id, x, y, heart_rate, temperature, recorded_at
                FROM dog_vitals
                WHERE dog_id = ?
                ORDER BY recorded_at ASC, rowid ASC
                """,
                (int(dog_id),),
            ).fetchall()
        return [dict(row) for row in rows]

    def dog_ids(self) -> list[int]:
        with self._lock:
            rows = self.connection.execute("SELECT DISTINCT dog_id FROM dog_vitals ORDER BY dog_id").fetchall()
        return [int(row[0]) for row in rows]

    def count(self) -> int:
        with self._lock:
            return int(self.connection.execute("SELECT COUNT(*) FROM dog_vitals").fetchone()[0])
