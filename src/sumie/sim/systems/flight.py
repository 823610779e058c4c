from __future__ import annotations

import math

from ..core.agent import Bird, EdgeAvoidance, ObstacleAvoidance
from ..core.config import FlockConfig
from ..core.obstacle import Obstacle
from ..core.rng import RandomSource, uniform
from ..utils.math2d import _clamp_value, _normalize_direction, _wrap_angle
from .steering import choose_avoidance


def update_target(bird: Bird, delta_time: float, config: FlockConfig, rng: RandomSource, obstacle: Obstacle | None) -> None:
    avoidance = choose_avoidance(bird, config, obstacle)
    bird.avoidance = avoidance
    if isinstance(avoidance, ObstacleAvoidance):
        bird.target_direction = _normalize_direction(avoidance.direction)
        bird.current_speed = max(bird.current_speed, bird.base_speed * config.escape_speed_factor)
    elif isinstance(avoidance, EdgeAvoidance):
        bird.target_direction = _normalize_direction(avoidance.direction)
    else:
        bird.direction_change_timer -= delta_time
        if bird.direction_change_timer <= 0.0:
            offset = uniform(rng, -config.random_turn_range, config.random_turn_range)
            bird.target_direction = _normalize_direction(bird.heading + offset)
            bird.direction_change_timer = uniform(rng, config.direction_change_min, config.direction_change_max)


def turn_rate(angle_diff: float, config: FlockConfig) -> float:
    """Ease-out cubic: slow while banking into a wide turn, fast when nearly aligned."""
    normalized = min(1.0, abs(angle_diff) / math.pi)
    turn_factor = 1.0 - (1.0 - normalized) ** 3
    inertia = config.turn_inertia_min + turn_factor * (config.turn_inertia_max - config.turn_inertia_min)
    return config.turn_speed * inertia


def update_bird(
    bird: Bird,
    delta_time: float,
    config: FlockConfig,
    rng: RandomSource,
    obstacle: Obstacle | None = None,
) -> None:
    update_target(bird, delta_time, config, rng, obstacle)

    heading = bird.heading
    angle_diff = _wrap_angle(bird.target_direction - heading)
    max_turn = turn_rate(angle_diff, config) * delta_time
    new_heading = heading + math.copysign(min(abs(angle_diff), max_turn), angle_diff)

    # Positive y points down the screen: diving speeds up, climbing slows down.
    vertical = math.sin(new_heading)
    speed = bird.current_speed + config.gravity_effect * vertical * delta_time
    bird.current_speed = _clamp_value(speed, config.min_speed, config.max_speed)

    bird.velocity.update(math.cos(new_heading) * bird.current_speed, math.sin(new_heading) * bird.current_speed)
    bird.position.x += bird.velocity.x * delta_time
    bird.position.y += bird.velocity.y * delta_time
