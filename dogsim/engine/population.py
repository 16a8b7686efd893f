"""Population lifecycle: identifier pool, insertion, removal, driving loop."""

from __future__ import annotations

import bisect
import logging
import random
import threading

from dogsim.agents.dog import MAX_HR, NORMAL_HR, NORMAL_TEMP, TICK_INTERVAL, WALL_BUFFER, Dog
from dogsim.core.deterministic_rng import RandomStreams
from dogsim.core.render_state import ArenaState, capture_arena_state
from dogsim.environment.arena import Arena
from dogsim.telemetry.sinks import TelemetrySink


LOGGER = logging.getLogger(__name__)

MIN_SPEED = 20
MAX_SPEED = 250
INSERT_PROBABILITY = 0.0001
REMOVE_PROBABILITY = 0.0
MANAGER_INTERVAL = 0.002  # seconds between insertion/removal rolls


class DogManager:
    """Adds and removes dogs from an ``Arena`` while they run.

    Up to ``id_count`` dogs exist at once; the bound comes from the identifier
    pool alone. Every structural change to ``arena.dogs`` and to the pool
    happens under ``arena.lock``, so the free ids and the ids of registered
    dogs always partition ``range(id_count)`` for any observer holding the
    lock.
    """

    def __init__(
        self,
        arena: Arena,
        id_count: int,
        sink: TelemetrySink | None = None,
        streams: RandomStreams | None = None,
        rng: random.Random | None = None,
        tick_interval: float = TICK_INTERVAL,
        min_speed: float = MIN_SPEED,
        max_speed: float = MAX_SPEED,
        insert_probability: float = INSERT_PROBABILITY,
        remove_probability: float = REMOVE_PROBABILITY,
        interval: float = MANAGER_INTERVAL,
        autostart: bool = True,
    ) -> None:
        if arena is None:
            raise ValueError("arena must not be None.")
        if arena.max_x <= 2 * WALL_BUFFER or arena.max_y <= 2 * WALL_BUFFER:
            raise ValueError(f"arena extents must exceed twice the wall buffer ({2 * WALL_BUFFER}).")
        if id_count <= 0:
            raise ValueError("id_count must be > 0")
        if not 1 < min_speed < max_speed:
            raise ValueError("speeds must satisfy 1 < min_speed < max_speed")
        for name, value in (("insert_probability", insert_probability), ("remove_probability", remove_probability)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0.0, 1.0]")
        if insert_probability + remove_probability > 1.0:
            raise ValueError("insert_probability + remove_probability must be <= 1.0")
        if interval <= 0:
            raise ValueError("interval must be > 0")

        self.arena = arena
        self.id_count = int(id_count)
        self.sink = sink
        self.streams = streams or RandomStreams()
        self.rng = rng if rng is not None else self.streams.stream("manager")
        self.tick_interval = float(tick_interval)
        self.min_speed = float(min_speed)
        self.max_speed = float(max_speed)
        self.insert_probability = float(insert_probability)
        self.remove_probability = float(remove_probability)
        self.interval = float(interval)
        self.autostart = autostart

        self._free_ids: list[int] = list(range(self.id_count))
        self._serial = 0
        self._roll_rng = self.streams.fresh("manager-loop")
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def free_ids(self) -> tuple[int, ...]:
        with self.arena.lock:
            return tuple(self._free_ids)

    @property
    def population(self) -> int:
        with self.arena.lock:
            return len(self.arena.dogs)

    def live_ids(self) -> list[int]:
        with self.arena.lock:
            return sorted(dog.dog_id for dog in self.arena.dogs)

    def insert_dog(self) -> Dog | None:
        """Add a randomly initialised dog under the lowest free identifier.

        Returns the new dog, or ``None`` when every identifier is in use.
        The dog is started after the lock is released.
        """
        with self.arena.lock:
            if not self._free_ids:
                return None
            dog_id = self._free_ids[0]
            speed = self.rng.uniform(self.min_speed, self.max_speed)
            heart_rate = self.rng.randrange(NORMAL_HR, MAX_HR)
            self._serial += 1
            dog = Dog(
                arena=self.arena,
                heart_rate=heart_rate,
                temperature=NORMAL_TEMP,
                max_speed=speed,
                dog_id=dog_id,
                sink=self.sink,
                rng=self.streams.fresh(f"dog-{dog_id}-{self._serial}"),
                tick_interval=self.tick_interval,
            )
            del self._free_ids[0]
            self.arena.dogs.append(dog)

        if self.autostart:
            dog.start()
        LOGGER.info("Inserted dog %s (max_speed=%.0f, hr=%s)", dog_id, speed, heart_rate)
        return dog

    def remove_dog(self) -> Dog | None:
        """Remove and stop a uniformly random dog.

        Returns the removed dog, or ``None`` when the arena is empty. The pick,
        the removal, the id release and the stop signal happen in one critical
        section, so a dog can never be removed twice.
        """
        with self.arena.lock:
            if not self.arena.dogs:
                return None
            dog = self.arena.dogs.pop(self.rng.randrange(len(self.arena.dogs)))
            bisect.insort(self._free_ids, dog.dog_id)
            dog.kill()

        LOGGER.info("Removed dog %s", dog.dog_id)
        return dog

    def remove_all(self) -> list[Dog]:
        """Remove and stop every registered dog."""
        with self.arena.lock:
            removed = list(self.arena.dogs)
            self.arena.dogs.clear()
            for dog in removed:
                bisect.insort(self._free_ids, dog.dog_id)
                dog.kill()
        return removed

    def step(self) -> None:
        """Roll once and maybe remove or insert a dog.

        One draw decides both: below ``remove_probability`` removes, the next
        ``insert_probability`` slice inserts.
        """
        roll = self._roll_rng.random()
        if roll < self.remove_probability:
            self.remove_dog()
        elif roll < self.remove_probability + self.insert_probability:
            self.insert_dog()

    def start(self) -> None:
        """Run ``step`` every ``interval`` seconds in a background daemon thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="dog-manager", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> list[Dog]:
        """Stop the driving loop, then remove and stop every dog."""
        self._stop_event.set()
        self.join(timeout=timeout)
        removed = self.remove_all()
        for dog in removed:
            dog.join(timeout=timeout)
        LOGGER.info("Manager stopped; %d dogs shut down", len(removed))
        return removed

    def join(self, timeout: float | None = None) -> None:
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def snapshot(self) -> ArenaState:
        return capture_arena_state(self.arena)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.step()
            self._stop_event.wait(self.interval)
