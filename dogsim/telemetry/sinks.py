"""Telemetry sinks that receive one ``DogState`` per dog tick.

A sink is fire-and-forget: ``Dog`` swallows anything a sink raises, but the
sinks here also contain their own transport failures so one bad report never
reaches the dog at all.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Protocol, runtime_checkable

import requests

from dogsim.core.event_bus import EventBus
from dogsim.core.render_state import DogState


LOGGER = logging.getLogger(__name__)

DOG_STATE_TOPIC = "dog_state"
DEFAULT_SERVER_URL = "http://localhost:8080/locationserver/locationupdate/"


@runtime_checkable
class TelemetrySink(Protocol):
    """Receiver of per-tick dog snapshots."""

    def emit(self, state: DogState) -> None:
        ...


class NullTelemetrySink:
    """Discard every report."""

    def emit(self, state: DogState) -> None:
        return None


class LogTelemetrySink:
    """Write each report to a logger as ``"id x y hr temp"``."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger("dogsim.telemetry")
        self.level = level

    def emit(self, state: DogState) -> None:
        self.logger.log(self.level, state.to_text())


class HttpTelemetrySink:
    """PUT each report to a RESTful location server.

    The request goes to ``<base_url><dog_id>`` with the plain-text report as
    body. A lost update is not critical, so request errors are logged at debug
    level and dropped. ``requests.Session`` is not thread-safe, so each
    emitting thread gets its own unless a shared ``session`` is passed in.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        timeout: float = 1.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be non-empty.")
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = float(timeout)
        self.session = session
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def url_for(self, dog_id: int) -> str:
        return f"{self.base_url}{dog_id}"

    def _session(self) -> requests.Session:
        if self.session is not None:
            return self.session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def emit(self, state: DogState) -> None:
        try:
            response = self._session().put(
                self.url_for(state.dog_id),
                data=state.to_text().encode("utf-8"),
                headers={"Content-Type": "text/plain"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.debug("Dropped telemetry for dog %s: %s", state.dog_id, exc)

    def close(self) -> None:
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        if self.session is not None:
            sessions.append(self.session)
        for session in sessions:
            session.close()


class BusTelemetrySink:
    """Publish reports on an ``EventBus`` so slow consumers never block a dog."""

    def __init__(self, bus: EventBus, topic: str = DOG_STATE_TOPIC) -> None:
        self.bus = bus
        self.topic = topic

    def emit(self, state: DogState) -> None:
        self.bus.publish(self.topic, state)


class FanOutTelemetrySink:
    """Forward each report to several sinks, isolating their failures."""

    def __init__(self, sinks: Iterable[TelemetrySink]) -> None:
        self.sinks = list(sinks)

    def emit(self, state: DogState) -> None:
        for sink in self.sinks:
            try:
                sink.emit(state)
            except Exception:
                LOGGER.debug("Telemetry sink %r failed", sink, exc_info=True)
