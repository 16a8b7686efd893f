"""Per-dog random streams derived from one optional run seed."""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass, field


@dataclass
class RandomStreams:
    """Hands out independent ``random.Random`` streams by name.

    With a ``seed`` every named stream is reproducible across processes. With
    no seed each stream is freshly seeded from system entropy, which is the
    normal mode for a live run.
    """

    seed: int | None = None
    _streams: dict[str, random.Random] = field(default_factory=dict, init=False, repr=False)

    def stream(self, name: str) -> random.Random:
        """Return the stream registered under ``name``, creating it on first use."""
        if name not in self._streams:
            self._streams[name] = random.Random(self.derive_seed(name))
        return self._streams[name]

    def fresh(self, name: str) -> random.Random:
        """Return a new stream for ``name`` without caching it."""
        return random.Random(self.derive_seed(name))

    def derive_seed(self, name: str) -> int | None:
        if self.seed is None:
            return None
        # stable cross-process derivation instead of built-in hash()
        digest = hashlib.sha256(f"{self.seed}:{name}".encode("utf-8")).digest()
        return int.from_bytes(digest[:8], byteorder="big", signed=False) & 0xFFFFFFFF
