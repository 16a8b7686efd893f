"""Thread-safe non-blocking pub/sub bus for telemetry fan-out."""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from threading import Lock, Semaphore
from typing import Any, Callable


LOGGER = logging.getLogger(__name__)

Callback = Callable[[Any], None]


class EventBus:
    """Minimal non-blocking event bus.

    Callbacks run in a worker pool so a dog tick never waits on a subscriber.
    When more than ``max_pending`` deliveries are queued, new ones are dropped
    and counted in ``dropped``.
    """

    def __init__(self, max_workers: int = 4, max_pending: int = 2048) -> None:
        self._subs: dict[str, list[Callback]] = defaultdict(list)
        self._lock = Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="event-bus")
        self._pending = Semaphore(max(1, int(max_pending)))
        self._closed = False
        self.dropped = 0

    def subscribe(self, topic: str, callback: Callback) -> None:
        with self._lock:
            self._subs[topic].append(callback)

    def publish(self, topic: str, payload: Any) -> None:
        with self._lock:
            if self._closed:
                return
            callbacks = list(self._subs.get(topic, []))
        for callback in callbacks:
            if not self._pending.acquire(blocking=False):
                with self._lock:
                    self.dropped += 1
                continue
            try:
                future = self._executor.submit(self._safe_invoke, callback, payload)
            except RuntimeError:
                # executor shut down between the closed check and submit
                self._pending.release()
                return
            future.add_done_callback(lambda _f: self._pending.release())

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    @staticmethod
    def _safe_invoke(callback: Callback, payload: Any) -> None:
        try:
            callback(payload)
        except Exception:
            LOGGER.debug("Subscriber %r failed", callback, exc_info=True)
