"""Assemble and run a dog simulation from configuration."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

from dogsim.configs.loader import ConfigLoader, SimulationConfig
from dogsim.core.deterministic_rng import RandomStreams
from dogsim.core.event_bus import EventBus
from dogsim.data.vitals_store import VitalsStore
from dogsim.engine.population import DogManager
from dogsim.environment.arena import Arena
from dogsim.streaming.websocket_server import ArenaStreamServer
from dogsim.telemetry.sinks import DOG_STATE_TOPIC, BusTelemetrySink, HttpTelemetrySink, LogTelemetrySink


LOGGER = logging.getLogger(__name__)


@dataclass
class SimulationRuntime:
    """Everything one run owns, wired together."""

    config: SimulationConfig
    arena: Arena
    manager: DogManager
    bus: EventBus
    store: VitalsStore | None = None
    http_sink: HttpTelemetrySink | None = None
    stream: ArenaStreamServer | None = None
    _closed: bool = field(default=False, init=False, repr=False)

    def start(self) -> None:
        if self.stream is not None:
            self.stream.start_background(self.arena)
        self.manager.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the manager loop and every dog, then the stream."""
        self.manager.stop(timeout=timeout)
        if self.stream is not None:
            self.stream.stop_background()

    def close(self) -> None:
        """Drain pending telemetry and release sinks."""
        if self._closed:
            return
        self._closed = True
        self.bus.close()
        if self.http_sink is not None:
            self.http_sink.close()
        if self.store is not None:
            self.store.close()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


def build_components(config: SimulationConfig) -> SimulationRuntime:
    """Build arena, manager and telemetry fan-out from configuration.

    Dogs publish on the event bus; logging, HTTP and SQLite consumers run on
    the bus worker pool so a slow sink never stretches a dog's tick.
    """
    bus = EventBus()
    if config.telemetry.log:
        bus.subscribe(DOG_STATE_TOPIC, LogTelemetrySink().emit)

    http_sink: HttpTelemetrySink | None = None
    if config.telemetry.url:
        http_sink = HttpTelemetrySink(config.telemetry.url, timeout=config.telemetry.timeout)
        bus.subscribe(DOG_STATE_TOPIC, http_sink.emit)

    store: VitalsStore | None = None
    if config.telemetry.db_path:
        store = VitalsStore(config.telemetry.db_path)
        bus.subscribe(DOG_STATE_TOPIC, store.record)

    arena = Arena(config.arena_width, config.arena_height)
    manager = DogManager(
        arena=arena,
        id_count=config.max_dogs,
        sink=BusTelemetrySink(bus),
        streams=RandomStreams(config.seed),
        tick_interval=config.tick_interval,
        min_speed=config.min_speed,
        max_speed=config.max_speed,
        insert_probability=config.insert_probability,
        remove_probability=config.remove_probability,
        interval=config.manager_interval,
    )

    stream: ArenaStreamServer | None = None
    if config.stream.port is not None:
        stream = ArenaStreamServer(config.stream.host, config.stream.port, config.stream.max_fps)

    return SimulationRuntime(
        config=config,
        arena=arena,
        manager=manager,
        bus=bus,
        store=store,
        http_sink=http_sink,
        stream=stream,
    )


def run(config: SimulationConfig, duration: float | None = None, stop_event: threading.Event | None = None) -> SimulationRuntime:
    """Run until ``duration`` elapses, ``stop_event`` is set or Ctrl-C."""
    runtime = build_components(config)
    stop_event = stop_event or threading.Event()
    runtime.start()
    LOGGER.info(
        "Simulation started: arena %sx%s, up to %d dogs",
        config.arena_width,
        config.arena_height,
        config.max_dogs,
    )
    try:
        stop_event.wait(timeout=duration)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
    finally:
        summary = runtime.manager.snapshot().metrics
        runtime.stop()
        runtime.close()
        LOGGER.info("Simulation finished: %s", summary)
    return runtime


def main(config_path: str | Path = "configs/default.yaml", duration: float | None = None) -> None:
    """Load config and run the simulation."""
    config = ConfigLoader.load(config_path)
    configure_logging(config.log_level)
    run(config, duration=duration)


if __name__ == "__main__":
    main()
