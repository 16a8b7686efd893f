"""Tests for config loading and validation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dogsim.configs.loader import ConfigLoader, ConfigValidationError, SimulationConfig


def test_load_yaml_config(tmp_path) -> None:
    config_path = tmp_path / "run.yaml"
    config_path.write_text(
        """
arena_width: 800
arena_height: 600
max_dogs: 10
insert_probability: 0.5
remove_probability: 0.1
tick_interval: 0.25
seed: 4
log_level: debug
telemetry:
  url: http://localhost:8080/locationserver/locationupdate/
  log: false
  db_path: vitals.db
stream:
  port: 9000
""".strip()
        + "\n",
        encoding="utf-8",
    )

    config = ConfigLoader.load(config_path)

    assert config.arena_width == 800.0
    assert config.max_dogs == 10
    assert config.seed == 4
    assert config.log_level == "DEBUG"
    assert config.telemetry.url == "http://localhost:8080/locationserver/locationupdate/"
    assert config.telemetry.log is False
    assert config.telemetry.db_path == "vitals.db"
    assert config.stream.port == 9000
    assert config.stream.host == "127.0.0.1"
    assert config.manager_interval == SimulationConfig().manager_interval


def test_load_json_config_and_round_trip_dict(tmp_path) -> None:
    config_path = tmp_path / "run.json"
    config_path.write_text(json.dumps({"max_dogs": 3, "tick_interval": 0.1}), encoding="utf-8")

    config = ConfigLoader.load(config_path)

    assert config.max_dogs == 3
    assert config.to_dict()["tick_interval"] == 0.1
    assert config.to_dict()["telemetry"]["log"] is True


def test_empty_yaml_gives_defaults(tmp_path) -> None:
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("", encoding="utf-8")

    assert ConfigLoader.load(config_path) == SimulationConfig()


def test_shipped_default_config_loads() -> None:
    default = Path(__file__).resolve().parents[1] / "configs" / "default.yaml"
    config = ConfigLoader.load(default)
    assert config.arena_width == 1500
    assert config.arena_height == 1000
    assert config.max_dogs == 100


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"arena_width": 0}, "arena_width"),
        ({"arena_width": 50, "arena_height": 50, "insert_probability": 1.0}, "arena_width"),
        ({"arena_height": 60}, "arena_height"),
        ({"max_dogs": 0}, "max_dogs"),
        ({"min_speed": 300}, "min_speed"),
        ({"insert_probability": 2}, "insert_probability"),
        ({"insert_probability": 0.7, "remove_probability": 0.7}, "<= 1.0"),
        ({"tick_interval": -1}, "tick_interval"),
        ({"colour": "brown"}, "Unknown top-level"),
        ({"telemetry": {"host": "x"}}, "unknown field"),
        ({"max_dogs": "many"}, "max_dogs"),
        ({"log_level": "chatty"}, "log_level"),
    ],
)
def test_invalid_configs_are_rejected(tmp_path, payload, message) -> None:
    config_path = tmp_path / "bad.json"
    config_path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ConfigValidationError, match=message):
        ConfigLoader.load(config_path)


def test_missing_file_and_bad_extension(tmp_path) -> None:
    with pytest.raises(ConfigValidationError, match="not found"):
        ConfigLoader.load(tmp_path / "nope.yaml")

    toml_path = tmp_path / "run.toml"
    toml_path.write_text("max_dogs = 3\n", encoding="utf-8")
    with pytest.raises(ConfigValidationError, match="Unsupported"):
        ConfigLoader.load(toml_path)
