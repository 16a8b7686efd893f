"""Configuration loading and validation for simulation runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from dogsim.agents.dog import WALL_BUFFER


class ConfigValidationError(ValueError):
    """Raised when a run configuration fails validation."""


@dataclass(frozen=True)
class TelemetryConfig:
    """Where per-tick dog reports go."""

    url: str | None = None
    timeout: float = 1.0
    log: bool = True
    db_path: str | None = None


@dataclass(frozen=True)
class StreamConfig:
    """Websocket feed of arena snapshots; disabled while ``port`` is None."""

    host: str = "127.0.0.1"
    port: int | None = None
    max_fps: int = 10


@dataclass(frozen=True)
class SimulationConfig:
    """Validated process parameters, read once at startup."""

    arena_width: float = 1500
    arena_height: float = 1000
    max_dogs: int = 100
    min_speed: float = 20
    max_speed: float = 250
    insert_probability: float = 0.0001
    remove_probability: float = 0.0
    tick_interval: float = 1.0
    manager_interval: float = 0.002
    seed: int | None = None
    log_level: str = "INFO"
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dictionary view of the configuration."""
        return {
            "arena_width": self.arena_width,
            "arena_height": self.arena_height,
            "max_dogs": self.max_dogs,
            "min_speed": self.min_speed,
            "max_speed": self.max_speed,
            "insert_probability": self.insert_probability,
            "remove_probability": self.remove_probability,
            "tick_interval": self.tick_interval,
            "manager_interval": self.manager_interval,
            "seed": self.seed,
            "log_level": self.log_level,
            "telemetry": {
                "url": self.telemetry.url,
                "timeout": self.telemetry.timeout,
                "log": self.telemetry.log,
                "db_path": self.telemetry.db_path,
            },
            "stream": {
                "host": self.stream.host,
                "port": self.stream.port,
                "max_fps": self.stream.max_fps,
            },
        }


_SCALAR_KEYS: dict[str, type] = {
    "arena_width": float,
    "arena_height": float,
    "max_dogs": int,
    "min_speed": float,
    "max_speed": float,
    "insert_probability": float,
    "remove_probability": float,
    "tick_interval": float,
    "manager_interval": float,
}
_SECTION_KEYS = {"telemetry", "stream"}
_OTHER_KEYS = {"seed", "log_level"}


class ConfigLoader:
    """Load and validate run configuration files (YAML or JSON)."""

    @staticmethod
    def load(path: str | Path) -> SimulationConfig:
        """Load one run configuration from ``path``.

        Args:
            path: Path to a ``.yaml``, ``.yml`` or ``.json`` file.

        Returns:
            A validated ``SimulationConfig``.
        """
        payload = _read_config_payload(Path(path))
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ConfigValidationError("Top-level config must be a mapping.")
        return build_config(payload)


def _read_config_payload(path: Path) -> Any:
    if not path.exists():
        raise ConfigValidationError(f"Config file not found: {path}")

    suffix = path.suffix.lower()
    content = path.read_text(encoding="utf-8")
    try:
        if suffix == ".json":
            return json.loads(content)
        if suffix in {".yaml", ".yml"}:
            return yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigValidationError(f"Failed to parse config '{path}': {exc}") from exc
    raise ConfigValidationError(f"Unsupported config extension: {suffix}")


def _section(payload: Mapping[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    raw = payload.get(name) or {}
    if not isinstance(raw, Mapping):
        raise ConfigValidationError(f"Section '{name}' must be a mapping.")
    unknown = sorted(key for key in raw if key not in allowed)
    if unknown:
        raise ConfigValidationError(f"Section '{name}' has unknown field(s): {unknown}.")
    return dict(raw)


def _cast(name: str, caster: type, value: Any) -> Any:
    try:
        return caster(value)
    except (TypeError, ValueError) as exc:
        raise ConfigValidationError(f"Field '{name}' expected {caster.__name__}: {exc}") from exc


def build_config(payload: Mapping[str, Any]) -> SimulationConfig:
    """Validate a raw mapping and build ``SimulationConfig``."""
    unknown = sorted(key for key in payload if key not in _SCALAR_KEYS and key not in _SECTION_KEYS | _OTHER_KEYS)
    if unknown:
        raise ConfigValidationError(f"Unknown top-level field(s): {unknown}.")

    values: dict[str, Any] = {
        key: _cast(key, caster, payload[key]) for key, caster in _SCALAR_KEYS.items() if key in payload
    }
    if payload.get("seed") is not None:
        values["seed"] = _cast("seed", int, payload["seed"])
    if "log_level" in payload:
        values["log_level"] = str(payload["log_level"]).upper()

    telemetry_raw = _section(payload, "telemetry", {"url", "timeout", "log", "db_path"})
    stream_raw = _section(payload, "stream", {"host", "port", "max_fps"})
    telemetry = TelemetryConfig(
        url=_optional_str(telemetry_raw.get("url")),
        timeout=_cast("telemetry.timeout", float, telemetry_raw.get("timeout", 1.0)),
        log=bool(telemetry_raw.get("log", True)),
        db_path=_optional_str(telemetry_raw.get("db_path")),
    )
    port = stream_raw.get("port")
    stream = StreamConfig(
        host=str(stream_raw.get("host", "127.0.0.1")),
        port=_cast("stream.port", int, port) if port is not None else None,
        max_fps=_cast("stream.max_fps", int, stream_raw.get("max_fps", 10)),
    )

    config = SimulationConfig(telemetry=telemetry, stream=stream, **values)
    validate_config(config)
    return config


def validate_config(config: SimulationConfig) -> None:
    """Raise ``ConfigValidationError`` for out-of-range values."""
    if config.arena_width <= 2 * WALL_BUFFER or config.arena_height <= 2 * WALL_BUFFER:
        raise ConfigValidationError(f"arena_width and arena_height must be > {2 * WALL_BUFFER:g}")
    if config.max_dogs <= 0:
        raise ConfigValidationError("max_dogs must be > 0")
    if not 1 < config.min_speed < config.max_speed:
        raise ConfigValidationError("speeds must satisfy 1 < min_speed < max_speed")
    for name in ("insert_probability", "remove_probability"):
        if not 0.0 <= getattr(config, name) <= 1.0:
            raise ConfigValidationError(f"{name} must be in [0.0, 1.0]")
    if config.insert_probability + config.remove_probability > 1.0:
        raise ConfigValidationError("insert_probability + remove_probability must be <= 1.0")
    if config.tick_interval <= 0 or config.manager_interval <= 0:
        raise ConfigValidationError("tick_interval and manager_interval must be > 0")
    if config.telemetry.timeout <= 0:
        raise ConfigValidationError("telemetry.timeout must be > 0")
    if config.stream.max_fps <= 0:
        raise ConfigValidationError("stream.max_fps must be > 0")
    if config.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigValidationError(f"Unknown log_level: {config.log_level}")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
