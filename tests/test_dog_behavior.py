"""Per-tick behavior and physics of a single dog."""

from __future__ import annotations

import math
import random

import pytest

from dogsim.agents.dog import (
    MAX_HR,
    MAX_TEMP,
    NEEDED_REST,
    NORMAL_HR,
    NORMAL_TEMP,
    WALL_BUFFER,
    Dog,
    angular_difference,
    bearing,
    normalize_heading,
)
from dogsim.core.render_state import DogState
from dogsim.environment.arena import Arena


class _MidpointRandom(random.Random):
    """Every uniform draw lands in the middle of its range: no jitter, no turns, no noise."""

    def uniform(self, a: float, b: float) -> float:
        return (a + b) / 2.0


def _dog(arena: Arena, /, **overrides) -> Dog:
    params = {
        "arena": arena,
        "heart_rate": 100,
        "temperature": NORMAL_TEMP,
        "max_speed": 50.0,
        "dog_id": 0,
        "rng": _MidpointRandom(),
        "x": 750.0,
        "y": 500.0,
        "direction": 0.0,
        "velocity": 10.0,
    }
    params.update(overrides)
    return Dog(**params)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"dog_id": -1}, "dog_id"),
        ({"max_speed": 1.0}, "max_speed"),
        ({"temperature": NORMAL_TEMP - 1}, "temperature"),
        ({"temperature": MAX_TEMP + 1}, "temperature"),
        ({"heart_rate": NORMAL_HR - 1}, "heart_rate"),
        ({"heart_rate": MAX_HR + 1}, "heart_rate"),
        ({"arena": None}, "arena"),
        ({"tick_interval": 0.0}, "tick_interval"),
    ],
)
def test_dog_construction_rejects_invalid_arguments(overrides, message) -> None:
    with pytest.raises(ValueError, match=message):
        _dog(Arena(1500, 1000), **overrides)


def test_dog_rejects_arena_smaller_than_wall_buffer() -> None:
    with pytest.raises(ValueError, match="wall buffer"):
        _dog(Arena(2 * WALL_BUFFER, 1000), x=None, y=None)


def test_random_initial_state_is_inside_buffered_bounds() -> None:
    arena = Arena(1500, 1000)
    for seed in range(50):
        dog = Dog(arena, heart_rate=NORMAL_HR, temperature=NORMAL_TEMP, max_speed=100, dog_id=seed, rng=random.Random(seed))
        assert WALL_BUFFER <= dog.x <= arena.max_x - WALL_BUFFER
        assert WALL_BUFFER <= dog.y <= arena.max_y - WALL_BUFFER
        assert 0.0 <= dog.direction < 90.0
        assert 0.0 <= dog.velocity <= dog.max_speed
        assert not dog.chasing and not dog.resting


def test_heart_rate_overload_forces_rest_and_clamps() -> None:
    dog = _dog(Arena(1500, 1000), heart_rate=190, velocity=50.0)

    for _ in range(10):
        dog.tick()
    assert dog.heart_rate == MAX_HR
    assert not dog.resting

    dog.tick()
    assert dog.heart_rate == MAX_HR
    assert dog.velocity == 0
    assert dog.resting
    assert not dog.chasing


def test_rest_lasts_more_than_needed_rest_ticks() -> None:
    dog = _dog(Arena(1500, 1000), heart_rate=MAX_HR, velocity=50.0)
    dog.tick()
    assert dog.resting

    for _ in range(NEEDED_REST):
        dog.tick()
        assert dog.resting
        assert dog.velocity == 0

    dog.tick()
    assert not dog.resting
    assert dog.time_rested == 0
    assert dog.heart_rate == MAX_HR - (NEEDED_REST + 1)


def test_overheating_forces_rest_and_temperature_is_clamped() -> None:
    dog = _dog(Arena(1500, 1000), temperature=MAX_TEMP, velocity=50.0)
    dog.chasing = True

    dog.tick()

    assert dog.temperature == MAX_TEMP
    assert dog.resting
    assert not dog.chasing
    assert dog.velocity == 0


def test_temperature_cools_when_stopped_but_not_below_normal() -> None:
    dog = _dog(Arena(1500, 1000), temperature=NORMAL_TEMP + 1, velocity=0.0)
    dog.tick()
    assert dog.temperature == NORMAL_TEMP
    dog.tick()
    assert dog.temperature == NORMAL_TEMP


def test_heart_rate_never_drops_below_normal_while_resting() -> None:
    dog = _dog(Arena(1500, 1000), heart_rate=NORMAL_HR, velocity=0.0)
    dog.resting = True
    dog.tick()
    assert dog.heart_rate == NORMAL_HR


def test_wall_hit_clamps_position_and_reverses_heading() -> None:
    arena = Arena(1500, 1000)
    dog = _dog(arena, x=1460.0, direction=0.0, velocity=50.0)

    dog.tick()

    assert dog.x == arena.max_x - WALL_BUFFER
    assert dog.y == pytest.approx(500.0)
    assert dog.direction == pytest.approx(180.0)


def test_corner_hit_clamps_both_axes() -> None:
    dog = _dog(Arena(1500, 1000), x=40.0, y=40.0, direction=225.0, velocity=50.0)

    dog.tick()

    assert dog.position == (WALL_BUFFER, WALL_BUFFER)
    assert dog.direction == pytest.approx(45.0)


def test_chases_nearest_dog_ahead() -> None:
    arena = Arena(1500, 1000)
    chaser = _dog(arena, x=500.0, y=500.0, direction=0.0, velocity=10.0)
    near = _dog(arena, dog_id=1, x=560.0, y=520.0)
    far = _dog(arena, dog_id=2, x=650.0, y=500.0)
    arena.dogs.extend([chaser, near, far])

    expected = bearing(500.0, 500.0, 560.0, 520.0)
    chaser.tick()

    assert chaser.chasing
    assert chaser.direction == pytest.approx(expected)
    assert chaser.velocity == pytest.approx(15.0)


def test_ignores_dogs_behind_or_out_of_sight() -> None:
    arena = Arena(1500, 1000)
    dog = _dog(arena, x=500.0, y=500.0, direction=0.0)
    behind = _dog(arena, dog_id=1, x=400.0, y=500.0)
    too_far = _dog(arena, dog_id=2, x=800.0, y=500.0)
    arena.dogs.extend([dog, behind, too_far])

    dog.tick()

    assert not dog.chasing
    assert dog.direction == pytest.approx(0.0)


def test_sight_cone_wraps_around_north() -> None:
    arena = Arena(1500, 1000)
    dog = _dog(arena, x=500.0, y=500.0, direction=350.0)
    target_x = 500.0 + 100.0 * math.cos(math.radians(10.0))
    target_y = 500.0 + 100.0 * math.sin(math.radians(10.0))
    arena.dogs.extend([dog, _dog(arena, dog_id=1, x=target_x, y=target_y)])

    dog.tick()

    assert dog.chasing
    assert dog.direction == pytest.approx(10.0)


def test_resting_dog_does_not_chase() -> None:
    arena = Arena(1500, 1000)
    dog = _dog(arena, x=500.0, y=500.0, velocity=0.0)
    dog.resting = True
    arena.dogs.extend([dog, _dog(arena, dog_id=1, x=550.0, y=500.0)])

    dog.tick()

    assert not dog.chasing
    assert dog.velocity == 0


def test_chasing_speed_is_capped_at_max_speed() -> None:
    arena = Arena(1500, 1000)
    dog = _dog(arena, x=500.0, y=500.0, velocity=24.0, max_speed=26.0)
    arena.dogs.extend([dog, _dog(arena, dog_id=1, x=600.0, y=500.0)])

    dog.tick()

    assert dog.chasing
    assert dog.velocity == 26.0


def test_tick_reports_state_to_sink() -> None:
    received: list[DogState] = []

    class _Sink:
        def emit(self, state: DogState) -> None:
            received.append(state)

    dog = _dog(Arena(1500, 1000), dog_id=7, sink=_Sink())
    state = dog.tick()

    assert received == [state]
    assert state == DogState(dog_id=7, x=dog.x, y=dog.y, heart_rate=dog.heart_rate, temperature=dog.temperature)


def test_state_reads_position_pair_in_one_load() -> None:
    class _CountingDog(Dog):
        position_reads = 0

        @property
        def _position(self) -> tuple[float, float]:
            self.position_reads += 1
            return self.__dict__["_pos"]

        @_position.setter
        def _position(self, value: tuple[float, float]) -> None:
            self.__dict__["_pos"] = value

    dog = _CountingDog(Arena(1500, 1000), heart_rate=100, temperature=NORMAL_TEMP, max_speed=50.0,
                       dog_id=1, rng=_MidpointRandom(), x=100.0, y=200.0)
    dog.position_reads = 0

    state = dog.state()

    assert (state.x, state.y) == (100.0, 200.0)
    assert dog.position_reads == 1


def test_failing_sink_does_not_affect_tick() -> None:
    class _BrokenSink:
        def emit(self, state: DogState) -> None:
            raise ConnectionError("listener unreachable")

    dog = _dog(Arena(1500, 1000), sink=_BrokenSink())
    for _ in range(3):
        state = dog.tick()
    assert state.dog_id == 0


def test_vitals_and_position_stay_in_bounds_over_random_ticks() -> None:
    arena = Arena(400, 300)
    rng = random.Random(99)
    dogs = [
        Dog(arena, heart_rate=rng.randrange(NORMAL_HR, MAX_HR), temperature=NORMAL_TEMP,
            max_speed=rng.randrange(20, 250), dog_id=i, rng=random.Random(i))
        for i in range(6)
    ]
    arena.dogs.extend(dogs)

    for _ in range(300):
        for dog in dogs:
            dog._update_temperature()
            dog._update_heart_rate()
            dog._update_direction()
            heading = dog.direction
            radians = math.radians(heading)
            raw_x = dog.x + dog.velocity * math.cos(radians)
            raw_y = dog.y + dog.velocity * math.sin(radians)
            dog._update_position()
            dog._update_velocity()

            if (raw_x, raw_y) != dog.position:
                assert dog.direction == pytest.approx(normalize_heading(heading + 180.0))
            assert WALL_BUFFER <= dog.x <= arena.max_x - WALL_BUFFER
            assert WALL_BUFFER <= dog.y <= arena.max_y - WALL_BUFFER
            assert NORMAL_HR <= dog.heart_rate <= MAX_HR
            assert NORMAL_TEMP <= dog.temperature <= MAX_TEMP
            assert 0.0 <= dog.velocity <= dog.max_speed
            assert 0.0 <= dog.direction < 360.0
            assert not (dog.resting and dog.chasing)


def test_angle_helpers_normalize() -> None:
    assert normalize_heading(-90.0) == pytest.approx(270.0)
    assert normalize_heading(720.0) == pytest.approx(0.0)
    assert angular_difference(350.0, 10.0) == pytest.approx(-20.0)
    assert angular_difference(10.0, 350.0) == pytest.approx(20.0)
    assert bearing(0.0, 0.0, 0.0, -1.0) == pytest.approx(270.0)
