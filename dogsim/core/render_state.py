"""Immutable dog and arena snapshots for telemetry and presentation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dogsim.core.analytics import summarize_vitals

if TYPE_CHECKING:
    from dogsim.environment.arena import Arena


@dataclass(frozen=True)
class DogState:
    """Vital signs and location of one dog at one tick boundary."""

    dog_id: int
    x: float
    y: float
    heart_rate: int
    temperature: float

    def to_text(self) -> str:
        """Return the plain-text report body ``"id x y hr temp"``."""
        return f"{self.dog_id} {self.x} {self.y} {self.heart_rate} {self.temperature}"

    def to_dict(self) -> dict[str, float | int]:
        return {
            "id": self.dog_id,
            "x": self.x,
            "y": self.y,
            "heart_rate": self.heart_rate,
            "temperature": self.temperature,
        }


@dataclass(frozen=True)
class ArenaState:
    """Consistent snapshot of the whole arena."""

    bounds: tuple[float, float]
    dogs: list[DogState]
    metrics: dict[str, float] = field(default_factory=dict)
    timestamp: float = 0.0


def capture_arena_state(arena: Arena) -> ArenaState:
    """Snapshot every live dog under the registry lock.

    The lock is held only while copying dog states out; metrics are computed
    after it is released.
    """
    with arena.lock:
        dogs = arena.snapshot()
    return ArenaState(
        bounds=arena.bounds,
        dogs=dogs,
        metrics=summarize_vitals(dogs),
        timestamp=float(time.time()),
    )
