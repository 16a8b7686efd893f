"""Websocket feed of arena snapshots for presentation clients."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import websockets

from dogsim.core.render_state import ArenaState, capture_arena_state
from dogsim.environment.arena import Arena
from dogsim.streaming.state_serializer import serialize_state


LOGGER = logging.getLogger(__name__)

CLIENT_MODES = ("full_state", "positions_only", "metrics_only")


@dataclass
class _Client:
    websocket: Any
    mode: str = "full_state"
    queue: asyncio.Queue[bytes] = field(default_factory=lambda: asyncio.Queue(maxsize=1))


class ArenaStreamServer:
    """Broadcast arena frames to websocket clients with backpressure control.

    A client may send ``{"mode": ...}`` as its first message to pick one of
    ``CLIENT_MODES``. Each client holds at most one pending frame; a newer
    frame replaces a stale one.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 8765, max_fps: int = 10) -> None:
        self.host = host
        self.port = port
        self.max_fps = max(1, max_fps)
        self._min_interval = 1.0 / self.max_fps
        self._last_broadcast = 0.0
        self._clients: list[_Client] = []
        self._server: Any = None
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._ready = threading.Event()

    @property
    def bound_port(self) -> int | None:
        if self._server is None:
            return None
        sockets = list(getattr(self._server, "sockets", None) or [])
        if not sockets:
            return self.port
        return int(sockets[0].getsockname()[1])

    async def start(self) -> None:
        """Start websocket listener."""

        async def _handler(ws: Any) -> None:
            mode = "full_state"
            try:
                first_msg = await asyncio.wait_for(ws.recv(), timeout=1.0)
                payload = json.loads(first_msg)
                if isinstance(payload, dict) and payload.get("mode") in CLIENT_MODES:
                    mode = payload["mode"]
            except (asyncio.TimeoutError, ValueError, websockets.ConnectionClosed):
                mode = "full_state"

            client = _Client(websocket=ws, mode=mode)
            self._clients.append(client)
            sender = asyncio.create_task(self._sender_loop(client))
            try:
                await ws.wait_closed()
            finally:
                if client in self._clients:
                    self._clients.remove(client)
                sender.cancel()

        self._server = await websockets.serve(_handler, self.host, self.port)
        LOGGER.info("Arena stream listening on %s:%s", self.host, self.bound_port)

    async def stop(self) -> None:
        """Stop listener and disconnect clients."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def _sender_loop(self, client: _Client) -> None:
        while True:
            frame = await client.queue.get()
            try:
                await client.websocket.send(frame)
            except websockets.ConnectionClosed:
                return

    async def broadcast(self, state: ArenaState, force: bool = False) -> None:
        """Queue a frame for every client, dropping stale frames on backpressure."""
        now = time.monotonic()
        if not force and (now - self._last_broadcast) < self._min_interval:
            return
        self._last_broadcast = now

        for client in list(self._clients):
            frame = serialize_state(self._apply_filter(state, client.mode))
            if client.queue.full():
                try:
                    client.queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            client.queue.put_nowait(frame)

    def _apply_filter(self, state: ArenaState, mode: str) -> Any:
        if mode == "metrics_only":
            return {"metrics": state.metrics, "timestamp": state.timestamp}
        if mode == "positions_only":
            return {
                "bounds": state.bounds,
                "dogs": [{"id": dog.dog_id, "position": [dog.x, dog.y]} for dog in state.dogs],
                "timestamp": state.timestamp,
            }
        return state

    async def serve_arena(self, arena: Arena) -> None:
        """Serve snapshots of ``arena`` until ``stop_background`` is called."""
        await self.start()
        self._ready.set()
        try:
            while not self._stop.is_set():
                await self.broadcast(capture_arena_state(arena), force=True)
                await asyncio.sleep(self._min_interval)
        finally:
            await self.stop()

    def start_background(self, arena: Arena, timeout: float = 5.0) -> None:
        """Run ``serve_arena`` on its own event loop in a daemon thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._ready.clear()
        self._thread = threading.Thread(
            target=lambda: asyncio.run(self.serve_arena(arena)),
            name="arena-stream",
            daemon=True,
        )
        self._thread.start()
        if not self._ready.wait(timeout=timeout):
            raise RuntimeError(f"Arena stream did not start on {self.host}:{self.port}")

    def stop_background(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
