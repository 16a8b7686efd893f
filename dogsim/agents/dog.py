"""Simulated dog that runs around an ``Arena`` on its own thread.

Each tick the dog updates, in order, its temperature, heart rate, heading,
position and velocity, then reports a ``DogState`` to its telemetry sink.
Temperature and heart rate therefore react to the previous tick's velocity.

Behavior states are carried by two flags:

- wandering: ``chasing`` and ``resting`` both false
- chasing: a visible dog roughly ahead was found on the last heading update
- resting: entered when heart rate or temperature exceeds its maximum, left
  after more than ``NEEDED_REST`` ticks of rest
"""

from __future__ import annotations

import logging
import math
import random
import threading
from typing import TYPE_CHECKING

from dogsim.core.render_state import DogState
from dogsim.telemetry.sinks import NullTelemetrySink, TelemetrySink

if TYPE_CHECKING:
    from dogsim.environment.arena import Arena


LOGGER = logging.getLogger(__name__)

TICK_INTERVAL = 1.0  # seconds between updates
MAX_HR = 200
NORMAL_HR = 20
MAX_TEMP = 45.0  # C
NORMAL_TEMP = 15.0
NEEDED_REST = 15  # ticks in a rest cycle
ACCEL = 10  # speed change per tick
VISUAL_RANGE = 200.0
WALL_BUFFER = 30.0  # closest a dog comes to a wall
CHASE_JITTER = 5.0
WANDER_TURN = 90.0
SIGHT_CONE = 90.0  # half-angle of the forward cone
CIRCLE = 360.0
HALF_CIRCLE = 180.0


def normalize_heading(degrees: float) -> float:
    """Fold a heading into ``[0, 360)``."""
    heading = math.fmod(degrees, CIRCLE)
    if heading < 0:
        heading += CIRCLE
    # fmod of a tiny negative value can round back up to exactly 360
    if heading >= CIRCLE:
        heading -= CIRCLE
    return heading


def angular_difference(a: float, b: float) -> float:
    """Signed smallest difference ``a - b`` in ``[-180, 180)`` degrees."""
    return normalize_heading(a - b + HALF_CIRCLE) - HALF_CIRCLE


def bearing(from_x: float, from_y: float, to_x: float, to_y: float) -> float:
    """Heading in degrees needed to travel in a straight line between points."""
    return normalize_heading(math.degrees(math.atan2(to_y - from_y, to_x - from_x)))


class Dog:
    """One independently scheduled dog.

    Physical and physiological fields belong to the dog's own thread; only
    ``position`` and the stop flag are read from other threads. ``position`` is
    replaced as a single tuple so concurrent readers never see a torn pair.
    """

    def __init__(
        self,
        arena: Arena,
        heart_rate: int,
        temperature: float,
        max_speed: float,
        dog_id: int,
        sink: TelemetrySink | None = None,
        rng: random.Random | None = None,
        tick_interval: float = TICK_INTERVAL,
        x: float | None = None,
        y: float | None = None,
        direction: float | None = None,
        velocity: float | None = None,
    ) -> None:
        if arena is None:
            raise ValueError("arena must not be None.")
        if dog_id < 0:
            raise ValueError("dog_id must be non-negative.")
        if max_speed <= 1:
            raise ValueError("max_speed must be greater than 1.")
        if not NORMAL_TEMP <= temperature <= MAX_TEMP:
            raise ValueError(f"temperature must be in [{NORMAL_TEMP}, {MAX_TEMP}].")
        if not NORMAL_HR <= heart_rate <= MAX_HR:
            raise ValueError(f"heart_rate must be in [{NORMAL_HR}, {MAX_HR}].")
        if arena.max_x <= 2 * WALL_BUFFER or arena.max_y <= 2 * WALL_BUFFER:
            raise ValueError(f"arena extents must exceed twice the wall buffer ({2 * WALL_BUFFER}).")
        if tick_interval <= 0:
            raise ValueError("tick_interval must be > 0")

        self.arena = arena
        self.dog_id = int(dog_id)
        self.max_speed = float(max_speed)
        self.sink: TelemetrySink = sink if sink is not None else NullTelemetrySink()
        self.rng = rng if rng is not None else random.Random()
        self.tick_interval = float(tick_interval)

        self.heart_rate = int(heart_rate)
        self.temperature = float(temperature)
        self.chasing = False
        self.resting = False
        self.time_rested = 0

        if x is None:
            x = self.rng.uniform(WALL_BUFFER, arena.max_x - WALL_BUFFER)
        if y is None:
            y = self.rng.uniform(WALL_BUFFER, arena.max_y - WALL_BUFFER)
        self._position = (float(x), float(y))
        # somewhere into the arena from the origin corner
        if direction is None:
            direction = self.rng.uniform(0.0, 90.0)
        self.direction = normalize_heading(float(direction))
        if velocity is None:
            velocity = self.rng.uniform(0.0, self.max_speed)
        self.velocity = min(max(float(velocity), 0.0), self.max_speed)

        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def position(self) -> tuple[float, float]:
        return self._position

    @property
    def x(self) -> float:
        return self._position[0]

    @property
    def y(self) -> float:
        return self._position[1]

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def state(self) -> DogState:
        x, y = self._position
        return DogState(
            dog_id=self.dog_id,
            x=x,
            y=y,
            heart_rate=self.heart_rate,
            temperature=self.temperature,
        )

    def start(self) -> None:
        """Start the tick loop in a background daemon thread."""
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self.run, name=f"dog-{self.dog_id}", daemon=True)
        self._thread.start()

    def kill(self) -> None:
        """Ask the dog to leave the simulation.

        The flag is one-way. The loop observes it within one tick interval.
        """
        self._stopped.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def run(self) -> None:
        LOGGER.debug("Dog %s running", self.dog_id)
        while not self._stopped.is_set():
            self.tick()
            # a kill() wakes the wait early; otherwise it simply times out
            self._stopped.wait(self.tick_interval)
        LOGGER.debug("Dog %s stopped", self.dog_id)

    def tick(self) -> DogState:
        """Run one full update cycle and report it."""
        self._update_temperature()
        self._update_heart_rate()
        self._update_direction()
        self._update_position()
        self._update_velocity()

        state = self.state()
        self._transmit(state)
        return state

    def _transmit(self, state: DogState) -> None:
        try:
            self.sink.emit(state)
        except Exception:
            LOGGER.debug("Telemetry for dog %s dropped", self.dog_id, exc_info=True)

    # Vitals are worked out in locals and stored once, already clamped, so a
    # concurrent snapshot never sees an out-of-range value.

    def _update_temperature(self) -> None:
        temperature = self.temperature
        if self.velocity > self.max_speed / 2:
            temperature += 1
        if self.velocity == 0:
            temperature -= 1
        if temperature > MAX_TEMP:
            self.chasing = False
            self.resting = True
        self.temperature = min(max(temperature, NORMAL_TEMP), MAX_TEMP)

    def _update_heart_rate(self) -> None:
        heart_rate = self.heart_rate
        if self.velocity > self.max_speed / 2:
            heart_rate += 1
        if self.resting:
            heart_rate -= 1
            self.time_rested += 1
            if self.time_rested > NEEDED_REST:
                self.resting = False
                self.time_rested = 0
        if heart_rate > MAX_HR:
            self.velocity = 0.0
            self.chasing = False
            self.resting = True
        self.heart_rate = min(max(heart_rate, NORMAL_HR), MAX_HR)

    def _update_direction(self) -> None:
        """Head for the nearest visible dog ahead, else wander.

        Only this phase touches other dogs. Their positions are copied out
        under the registry lock and the choice is made after releasing it.
        """
        with self.arena.lock:
            others = [dog.position for dog in self.arena.dogs if dog is not self]

        x, y = self._position
        target_heading: float | None = None
        nearest = VISUAL_RANGE
        for other_x, other_y in others:
            distance = math.hypot(other_x - x, other_y - y)
            if distance >= nearest:
                continue
            heading = bearing(x, y, other_x, other_y)
            if abs(angular_difference(self.direction, heading)) < SIGHT_CONE:
                nearest = distance
                target_heading = heading

        if target_heading is not None:
            self.direction = normalize_heading(
                target_heading + self.rng.uniform(-CHASE_JITTER, CHASE_JITTER)
            )
            # a resting dog still looks at its target but does not chase it
            self.chasing = not self.resting
        else:
            self.direction = normalize_heading(
                self.direction + self.rng.uniform(-WANDER_TURN, WANDER_TURN)
            )
            self.chasing = False

    def _update_position(self) -> None:
        radians = math.radians(self.direction)
        x = self.x + self.velocity * math.cos(radians)
        y = self.y + self.velocity * math.sin(radians)

        clamped_x = min(max(x, WALL_BUFFER), self.arena.max_x - WALL_BUFFER)
        clamped_y = min(max(y, WALL_BUFFER), self.arena.max_y - WALL_BUFFER)
        self._position = (clamped_x, clamped_y)

        # turn around at a wall
        if clamped_x != x or clamped_y != y:
            self.direction = normalize_heading(self.direction + HALF_CIRCLE)

    def _update_velocity(self) -> None:
        velocity = self.velocity
        if self.resting:
            velocity = 0.0
        elif self.chasing:
            velocity = min(velocity + self.rng.uniform(0.0, ACCEL), self.max_speed)
        # locomotion noise, applied in every state
        velocity += self.rng.uniform(-ACCEL / 2, ACCEL / 2)
        self.velocity = min(max(velocity, 0.0), self.max_speed)

    def __repr__(self) -> str:
        return (
            f"Dog(id={self.dog_id}, x={self.x:.1f}, y={self.y:.1f}, "
            f"hr={self.heart_rate}, temp={self.temperature:.1f})"
        )
