import logging
import math
from dataclasses import FrozenInstanceError, replace

import pytest

from sumie.sim.core.config import (
    ConfigError,
    FlockConfig,
    LoggingConfig,
    SceneConfig,
    load_config,
    setup_logging,
    validate_config,
)


def test_defaults_are_valid():
    config = SceneConfig()
    validate_config(config)
    assert config.flock.turn_speed == pytest.approx(math.pi)
    assert config.clouds.moving_cloud_count == 5
    assert len(config.obstacle.vertices) == 4


def test_from_yaml_overrides(tmp_path):
    path = tmp_path / "scene.yaml"
    path.write_text(
        """
seed: 7
clouds:
  wind_speed: 30.0
  moving_cloud_count: 2
flock:
  count: 4
  scale_range: [0.8, 1.2]
obstacle:
  vertices:
    - [0.1, 0.1]
    - [0.9, 0.1]
    - [0.5, 0.9]
logging:
  level: DEBUG
"""
    )

    config = SceneConfig.from_yaml(path)

    assert config.seed == 7
    assert config.clouds.wind_speed == 30.0
    assert config.clouds.moving_cloud_count == 2
    assert config.clouds.noise_scale == 60.0
    assert config.flock.count == 4
    assert config.flock.scale_range == (0.8, 1.2)
    assert config.flock.base_speed == 0.045
    assert config.obstacle.vertices == ((0.1, 0.1), (0.9, 0.1), (0.5, 0.9))
    assert config.logging.level == "DEBUG"


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert SceneConfig.from_yaml(path) == SceneConfig()


def test_empty_sections_fall_back_to_defaults(tmp_path):
    path = tmp_path / "sections.yaml"
    path.write_text("seed: 3\nclouds:\nflock:\nlogging:\n")

    config = SceneConfig.from_yaml(path)

    assert config.seed == 3
    assert config.clouds == SceneConfig().clouds
    assert config.flock == SceneConfig().flock


@pytest.mark.parametrize(
    "raw",
    [
        {"clouds": {"wind": 3.0}},
        {"flock": {"speed": 0.05}},
        {"colour": "ink"},
        {"clouds": [1, 2]},
        ["seed", 1],
    ],
)
def test_malformed_structure_is_rejected(raw):
    with pytest.raises(ConfigError):
        load_config(raw)


def test_config_is_immutable():
    config = SceneConfig()
    with pytest.raises(FrozenInstanceError):
        config.seed = 1
    with pytest.raises(FrozenInstanceError):
        config.flock.count = 3

    reseeded = replace(config, seed=1)
    assert reseeded.seed == 1
    assert config.seed == 42
    assert reseeded.flock is config.flock


def test_min_speed_above_max_is_rejected():
    with pytest.raises(ConfigError):
        load_config({"flock": {"min_speed": 0.08, "max_speed": 0.07}})


@pytest.mark.parametrize(
    "raw",
    [
        {"clouds": {"noise_scale": -1.0}},
        {"clouds": {"noise_octaves": 0}},
        {"clouds": {"sample_step_fraction": 0.0}},
        {"clouds": {"core_end": 0.5, "blend_end": 0.45}},
        {"flock": {"base_speed": 0.2}},
        {"flock": {"separation_distance": 0.0}},
        {"flock": {"direction_change_min": 30.0}},
        {"flock": {"blend_factor": 1.5}},
        {"flock": {"edge_margin": 0.5}},
        {"flock": {"count": -1}},
    ],
)
def test_out_of_range_values_are_rejected(raw):
    with pytest.raises(ConfigError):
        load_config(raw)


def test_config_error_is_value_error():
    with pytest.raises(ValueError):
        validate_config(SceneConfig(flock=FlockConfig(turn_inertia_min=0.9, turn_inertia_max=0.1)))


def test_setup_logging_uses_configured_level(monkeypatch):
    calls = []
    monkeypatch.delenv("SUMIE_LOG_LEVEL", raising=False)
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    setup_logging(LoggingConfig(level="warning", format="json"))

    assert calls[0]["level"] == logging.WARNING
    assert calls[0]["format"].startswith("{")


def test_setup_logging_env_override(monkeypatch):
    calls = []
    monkeypatch.setenv("SUMIE_LOG_LEVEL", "DEBUG")
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    setup_logging(LoggingConfig(level="ERROR"))

    assert calls[0]["level"] == logging.DEBUG
    assert "%(name)s" in calls[0]["format"]


@pytest.mark.config_change
def test_shipped_config_matches_defaults(repo_root):
    assert SceneConfig.from_yaml(repo_root / "config" / "scene.yaml") == SceneConfig()
