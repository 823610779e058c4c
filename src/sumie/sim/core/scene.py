from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Any, Dict, List

from pygame.math import Vector2, Vector3

from .agent import Bird, Cloud
from .config import SceneConfig, validate_config
from .noise import NoiseField
from .obstacle import Obstacle
from .rng import DeterministicRng, RandomSource, uniform
from ..systems import clouds as cloud_system
from ..systems import flight, metrics as metrics_system, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotObstacle

logger = logging.getLogger(__name__)


class Scene:
    """Owns the clouds, the flock and the obstacle and advances them one tick at a time."""

    def __init__(
        self,
        config: SceneConfig,
        width: float,
        height: float,
        rng: RandomSource | None = None,
        noise_field: NoiseField | None = None,
    ):
        validate_config(config)
        _check_dimensions(width, height)
        self._config = config
        self._width = float(width)
        self._height = float(height)
        self._rng: RandomSource = rng if rng is not None else DeterministicRng(config.seed)
        self._noise = (
            noise_field
            if noise_field is not None
            else NoiseField(config.noise_seed, octaves=config.clouds.noise_octaves)
        )
        self._obstacle = Obstacle(config.obstacle.vertices)
        self._clouds: List[Cloud] = []
        self._birds: List[Bird] = []
        self._tick = 0
        self._time = 0.0
        self._metrics: TickMetrics | None = None
        self._populate()

    @property
    def config(self) -> SceneConfig:
        return self._config

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def time(self) -> float:
        return self._time

    @property
    def clouds(self) -> List[Cloud]:
        return self._clouds

    @property
    def birds(self) -> List[Bird]:
        return self._birds

    @property
    def obstacle(self) -> Obstacle:
        return self._obstacle

    @property
    def noise_field(self) -> NoiseField:
        return self._noise

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def sample_step(self) -> float:
        return self._config.clouds.sample_step_fraction * self._width

    def reset(self) -> None:
        reset = getattr(self._rng, "reset", None)
        if callable(reset):
            reset()
        self._tick = 0
        self._time = 0.0
        self._metrics = None
        self._populate()
        logger.info("Scene reset (%d clouds, %d birds)", len(self._clouds), len(self._birds))

    def resize(self, width: float, height: float) -> bool:
        _check_dimensions(width, height)
        if float(width) == self._width and float(height) == self._height:
            return False
        logger.info("Resizing scene %gx%g -> %gx%g", self._width, self._height, width, height)
        self._width = float(width)
        self._height = float(height)
        self._populate()
        return True

    def step(self, delta_time: float, time: float | None = None) -> TickMetrics:
        start = perf_counter()
        dt = max(0.0, delta_time)
        self._time = self._time + dt if time is None else time
        clouds_config = self._config.clouds
        flock_config = self._config.flock

        for cloud in self._clouds:
            cloud_system.update_cloud(cloud, dt, clouds_config.wind_speed, self._width, clouds_config.wrap_buffer)

        # Forces for the whole flock come from the same start-of-tick state.
        view = steering.snapshot_flock(self._birds)
        for bird in self._birds:
            steering.apply_flocking(bird, view, flock_config)
        for bird in self._birds:
            flight.update_bird(bird, dt, flock_config, self._rng, self._obstacle)

        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self._tick, self._time, len(self._clouds), self._birds, duration_ms
        )
        logger.debug(
            "tick=%d dt=%.4f obstacle_avoiding=%d",
            self._tick,
            dt,
            self._metrics.obstacle_avoiding,
        )
        self._tick += 1
        return self._metrics

    def cloud_fields(self, time: float | None = None) -> List[List[tuple[Vector2, float]]]:
        sample_time = self._time if time is None else time
        step = self.sample_step
        return [
            cloud_system.opacity_field(cloud, self._noise, sample_time, step, self._config.clouds)
            for cloud in self._clouds
        ]

    def snapshot(self, tick: int, include_fields: bool = True) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(tick, self._time, len(self._clouds), self._birds, 0.0)
        fields = self.cloud_fields() if include_fields else [[] for _ in self._clouds]
        clouds_payload = [self._cloud_snapshot(cloud, field) for cloud, field in zip(self._clouds, fields)]
        birds_payload = [self._bird_snapshot(bird) for bird in self._birds]
        metadata = SnapshotMetadata(
            width=self._width,
            height=self._height,
            time=self._time,
            seed=self._config.seed,
            noise_seed=self._noise.seed,
            splat_radius=self._config.clouds.splat_radius_fraction * self._width,
            sample_step=self.sample_step,
            wingspan=self._config.flock.wingspan,
            config_version=self._config.config_version,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            clouds=clouds_payload,
            birds=birds_payload,
            obstacle=SnapshotObstacle(vertices=self._obstacle.export_vertices()),
            metadata=metadata,
        )

    def _populate(self) -> None:
        self._clouds = self._create_clouds()
        self._birds = self._create_flock()
        logger.debug("Populated %d clouds and %d birds", len(self._clouds), len(self._birds))

    def _create_clouds(self) -> List[Cloud]:
        config = self._config.clouds
        width = self._width
        height = self._height
        clouds: List[Cloud] = []
        if config.anchor_cloud:
            anchor_width = width * 1.5
            anchor_height = width * 0.25
            clouds.append(
                Cloud(
                    id=0,
                    position=Vector2(width * 0.5 - anchor_width / 2, height - anchor_height / 2),
                    velocity=Vector2(0.0, 0.0),
                    width=anchor_width,
                    height=anchor_height,
                    noise_seed=Vector3(0.0, 0.0, 0.0),
                    noise_scale=config.noise_scale,
                )
            )
        for index in range(config.moving_cloud_count):
            seed_multiplier = (index + 1) * 100.0
            clouds.append(
                Cloud(
                    id=len(clouds),
                    position=Vector2(
                        -(width * 0.25) - self._rng.next() * (width * 1.875),
                        self._rng.next() * height,
                    ),
                    velocity=Vector2(1.0, 0.0),
                    width=width * (0.75 + self._rng.next()),
                    height=height * (0.133 + self._rng.next() * 0.2),
                    noise_seed=Vector3(seed_multiplier, seed_multiplier, seed_multiplier / 2),
                    noise_scale=config.noise_scale,
                )
            )
        return clouds

    def _create_flock(self) -> List[Bird]:
        config = self._config.flock
        margin = config.edge_margin
        birds: List[Bird] = []
        for index in range(config.count):
            position = Vector2(
                uniform(self._rng, margin, 1.0 - margin),
                uniform(self._rng, margin, 1.0 - margin),
            )
            heading = self._rng.next() * 2.0 * math.pi
            velocity = Vector2(math.cos(heading), math.sin(heading)) * config.base_speed
            birds.append(
                Bird(
                    id=index,
                    position=position,
                    velocity=velocity,
                    target_direction=heading,
                    base_speed=config.base_speed,
                    current_speed=config.base_speed,
                    direction_change_timer=uniform(
                        self._rng, config.direction_change_min, config.direction_change_max
                    ),
                    scale=uniform(self._rng, config.scale_range[0], config.scale_range[1]),
                )
            )
        return birds

    @staticmethod
    def _cloud_snapshot(cloud: Cloud, field: List[tuple[Vector2, float]]) -> Dict[str, Any]:
        return {
            "id": cloud.id,
            "x": cloud.position.x,
            "y": cloud.position.y,
            "width": cloud.width,
            "height": cloud.height,
            "samples": [[point.x, point.y, alpha] for point, alpha in field],
        }

    @staticmethod
    def _bird_snapshot(bird: Bird) -> Dict[str, Any]:
        return {
            "id": bird.id,
            "x": bird.position.x,
            "y": bird.position.y,
            "heading": bird.heading,
            "speed": bird.current_speed,
            "scale": bird.scale,
            "avoidance": bird.avoidance.kind.value,
        }


def _check_dimensions(width: float, height: float) -> None:
    if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
        raise ValueError(f"Scene dimensions must be finite and positive, got {width}x{height}")
