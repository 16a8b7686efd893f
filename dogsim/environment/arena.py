"""Shared spatial registry for the dog simulation."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from dogsim.core.render_state import DogState

if TYPE_CHECKING:
    from dogsim.agents.dog import Dog


class Arena:
    """Bounded 2-D interaction space plus the live set of dogs.

    The arena is passive. ``dogs`` is maintained by the
    ``DogManager`` and ``lock`` is the one registry lock every caller must hold
    while reading or changing ``dogs``. No arena method acquires it.
    """

    def __init__(self, max_x: float, max_y: float) -> None:
        if max_x <= 0:
            raise ValueError("max_x must be greater than 0.")
        if max_y <= 0:
            raise ValueError("max_y must be greater than 0.")
        self._max_x = float(max_x)
        self._max_y = float(max_y)
        self.dogs: list[Dog] = []
        self.lock = threading.Lock()

    @property
    def max_x(self) -> float:
        return self._max_x

    @property
    def max_y(self) -> float:
        return self._max_y

    @property
    def bounds(self) -> tuple[float, float]:
        return (self._max_x, self._max_y)

    def snapshot(self) -> list[DogState]:
        """Return the state of every registered dog.

        Callers must hold ``lock``.
        """
        return [dog.state() for dog in self.dogs]
