from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Tuple

import yaml

LOG_LEVEL_ENV = "SUMIE_LOG_LEVEL"


class ConfigError(ValueError):
    """Raised when a configuration value is out of range."""


@dataclass(frozen=True)
class CloudConfig:
    wind_speed: float = 15.0
    noise_scale: float = 60.0
    noise_time_scale: float = 0.04
    noise_octaves: int = 1
    sample_step_fraction: float = 0.012
    splat_radius_fraction: float = 0.022
    wrap_buffer: float = 200.0
    moving_cloud_count: int = 5
    anchor_cloud: bool = True
    core_end: float = 0.20
    blend_end: float = 0.45
    transition_end: float = 0.70
    washout_gain: float = 0.6
    alpha_boost: float = 2.5
    alpha_cutoff: float = 0.02


@dataclass(frozen=True)
class FlockConfig:
    count: int = 12
    base_speed: float = 0.045
    min_speed: float = 0.035
    max_speed: float = 0.07
    gravity_effect: float = 0.02
    turn_speed: float = math.pi
    separation_distance: float = 0.03
    alignment_distance: float = 0.06
    cohesion_distance: float = 0.15
    separation_weight: float = 4.0
    alignment_weight: float = 3.5
    cohesion_weight: float = 0.5
    direction_change_min: float = 10.0
    direction_change_max: float = 20.0
    random_turn_range: float = math.pi / 3
    blend_factor: float = 0.4
    force_threshold: float = 0.01
    edge_margin: float = 0.05
    turn_inertia_min: float = 0.2
    turn_inertia_max: float = 0.7
    escape_speed_factor: float = 1.2
    scale_range: tuple[float, float] = (1.0, 1.0)
    wingspan: float = 20.0


@dataclass(frozen=True)
class ObstacleConfig:
    vertices: Tuple[tuple[float, float], ...] = ((0.35, 0.25), (0.65, 0.25), (0.8, 1.01), (0.2, 1.01))


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "text"


@dataclass(frozen=True)
class SceneConfig:
    seed: int = 42
    noise_seed: int = 0
    config_version: str = "v1"
    clouds: CloudConfig = field(default_factory=CloudConfig)
    flock: FlockConfig = field(default_factory=FlockConfig)
    obstacle: ObstacleConfig = field(default_factory=ObstacleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SceneConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


def _section(raw: Mapping[str, Any], name: str, allowed: type) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{name} must be a mapping, got {type(value).__name__}")
    unknown = set(value) - {item.name for item in fields(allowed)}
    if unknown:
        raise ConfigError(f"unknown {name} keys: {', '.join(sorted(unknown))}")
    return dict(value)


def load_config(raw: Mapping[str, Any]) -> SceneConfig:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"configuration must be a mapping, got {type(raw).__name__}")

    def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        return default

    clouds = CloudConfig(**_section(raw, "clouds", CloudConfig))
    flock_raw = _section(raw, "flock", FlockConfig)
    flock_raw["scale_range"] = _pair(flock_raw.get("scale_range"), FlockConfig().scale_range)
    flock = FlockConfig(**flock_raw)
    obstacle_raw = _section(raw, "obstacle", ObstacleConfig)
    if "vertices" in obstacle_raw:
        obstacle = ObstacleConfig(vertices=tuple((float(x), float(y)) for x, y in obstacle_raw["vertices"]))
    else:
        obstacle = ObstacleConfig()
    logging_config = LoggingConfig(**_section(raw, "logging", LoggingConfig))
    sections = {"clouds", "flock", "obstacle", "logging"}
    scene_values = {k: v for k, v in raw.items() if k not in sections}
    unknown = set(scene_values) - {item.name for item in fields(SceneConfig)}
    if unknown:
        raise ConfigError(f"unknown top-level keys: {', '.join(sorted(unknown))}")
    config = SceneConfig(clouds=clouds, flock=flock, obstacle=obstacle, logging=logging_config, **scene_values)
    validate_config(config)
    return config


def validate_config(config: SceneConfig) -> None:
    clouds = config.clouds
    flock = config.flock
    if clouds.noise_scale <= 0.0:
        raise ConfigError(f"clouds.noise_scale must be positive, got {clouds.noise_scale}")
    if clouds.noise_octaves < 1:
        raise ConfigError(f"clouds.noise_octaves must be at least 1, got {clouds.noise_octaves}")
    if clouds.sample_step_fraction <= 0.0:
        raise ConfigError(f"clouds.sample_step_fraction must be positive, got {clouds.sample_step_fraction}")
    if clouds.moving_cloud_count < 0:
        raise ConfigError(f"clouds.moving_cloud_count must be >= 0, got {clouds.moving_cloud_count}")
    if not 0.0 < clouds.core_end < clouds.blend_end < clouds.transition_end < 1.0:
        raise ConfigError("cloud zone bounds must satisfy 0 < core_end < blend_end < transition_end < 1")
    if flock.count < 0:
        raise ConfigError(f"flock.count must be >= 0, got {flock.count}")
    if flock.min_speed > flock.max_speed:
        raise ConfigError(f"flock.min_speed ({flock.min_speed}) exceeds flock.max_speed ({flock.max_speed})")
    if not flock.min_speed <= flock.base_speed <= flock.max_speed:
        raise ConfigError("flock.base_speed must lie within [min_speed, max_speed]")
    for name in ("separation_distance", "alignment_distance", "cohesion_distance"):
        if getattr(flock, name) <= 0.0:
            raise ConfigError(f"flock.{name} must be positive")
    if flock.direction_change_min > flock.direction_change_max:
        raise ConfigError("flock.direction_change_min exceeds flock.direction_change_max")
    if flock.turn_inertia_min > flock.turn_inertia_max:
        raise ConfigError("flock.turn_inertia_min exceeds flock.turn_inertia_max")
    if not 0.0 <= flock.blend_factor <= 1.0:
        raise ConfigError(f"flock.blend_factor must be within [0, 1], got {flock.blend_factor}")
    if not 0.0 <= flock.edge_margin < 0.5:
        raise ConfigError(f"flock.edge_margin must be within [0, 0.5), got {flock.edge_margin}")


def setup_logging(config: LoggingConfig) -> None:
    """Configure root logging; SUMIE_LOG_LEVEL overrides the configured level."""
    level_name = os.environ.get(LOG_LEVEL_ENV, config.level)
    log_level = getattr(logging, level_name.upper(), logging.INFO)

    if config.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
