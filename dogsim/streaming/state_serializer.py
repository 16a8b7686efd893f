"""Wire encoding of arena snapshots for the websocket feed."""

from __future__ import annotations

import json
from typing import Any, Mapping

from dogsim.core.render_state import ArenaState, DogState


MAX_FRAME_BYTES = 10 * 1024 * 1024
COORDINATE_DIGITS = 3


def dog_payload(dog: DogState) -> dict[str, Any]:
    payload = dog.to_dict()
    payload["x"] = round(dog.x, COORDINATE_DIGITS)
    payload["y"] = round(dog.y, COORDINATE_DIGITS)
    return payload


def arena_payload(state: ArenaState) -> dict[str, Any]:
    """Plain JSON-ready view of a full arena snapshot."""
    return {
        "bounds": list(state.bounds),
        "dogs": [dog_payload(dog) for dog in state.dogs],
        "metrics": dict(state.metrics),
        "timestamp": state.timestamp,
    }


def serialize_state(state: ArenaState | Mapping[str, Any]) -> bytes:
    """Encode a snapshot, or an already filtered view of one, as compact JSON.

    Keys are sorted so identical snapshots give identical frames. Frames over
    ``MAX_FRAME_BYTES`` raise ``ValueError``.
    """
    payload = arena_payload(state) if isinstance(state, ArenaState) else dict(state)
    data = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    if len(data) > MAX_FRAME_BYTES:
        raise ValueError(f"Frame of {len(data)} bytes exceeds {MAX_FRAME_BYTES}.")
    return data
