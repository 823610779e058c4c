from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from pygame.math import Vector2

from ..core.agent import Bird, EdgeAvoidance, NO_AVOIDANCE, ObstacleAvoidance, Avoidance
from ..core.config import FlockConfig
from ..core.obstacle import Obstacle
from ..utils.math2d import _normalize_direction, _wrap_angle


@dataclass(frozen=True, slots=True)
class FlockView:
    """Start-of-tick copy of one bird's kinematic state."""

    id: int
    position: Vector2
    velocity: Vector2


def snapshot_flock(flock: Sequence[Bird]) -> List[FlockView]:
    return [FlockView(bird.id, bird.position.copy(), bird.velocity.copy()) for bird in flock]


def choose_avoidance(bird: Bird, config: FlockConfig, obstacle: Obstacle | None) -> Avoidance:
    if obstacle is not None and obstacle.is_point_inside(bird.position):
        return ObstacleAvoidance(-math.pi / 2)
    margin = config.edge_margin
    x = bird.position.x
    y = bird.position.y
    if x < margin:
        return EdgeAvoidance(0.0)
    if x > 1.0 - margin:
        return EdgeAvoidance(math.pi)
    if y < margin:
        return EdgeAvoidance(math.pi / 2)
    if y > 1.0 - margin:
        return EdgeAvoidance(-math.pi / 2)
    return NO_AVOIDANCE


def separation(own: FlockView, flock: Sequence[FlockView], config: FlockConfig) -> Vector2:
    radius = config.separation_distance
    accum_x = 0.0
    accum_y = 0.0
    total_weight = 0.0
    for other in flock:
        if other.id == own.id:
            continue
        offset_x = own.position.x - other.position.x
        offset_y = own.position.y - other.position.y
        dist = math.sqrt(offset_x * offset_x + offset_y * offset_y)
        if dist <= 0.0 or dist >= radius:
            continue
        urgency = 1.0 - dist / radius
        weight = urgency * urgency * urgency
        inv_len = 1.0 / dist
        accum_x += offset_x * inv_len * weight
        accum_y += offset_y * inv_len * weight
        total_weight += weight
    if total_weight <= 0.0:
        return Vector2()
    # Dividing by at least 1.0 averages a crowded neighbourhood while a lone
    # neighbour keeps its cubic falloff, reaching zero at the threshold.
    scale = config.separation_weight / max(total_weight, 1.0)
    return Vector2(accum_x * scale, accum_y * scale)


def alignment_weight(distance: float, radius: float) -> float:
    bell = 1.0 - abs(2.0 * distance / radius - 1.0)
    return bell * bell


def alignment(own: FlockView, flock: Sequence[FlockView], config: FlockConfig) -> Vector2:
    radius = config.alignment_distance
    sum_x = 0.0
    sum_y = 0.0
    total_weight = 0.0
    for other in flock:
        if other.id == own.id:
            continue
        dist = own.position.distance_to(other.position)
        if dist <= 0.0 or dist >= radius:
            continue
        weight = alignment_weight(dist, radius)
        sum_x += other.velocity.x * weight
        sum_y += other.velocity.y * weight
        total_weight += weight
    if total_weight <= 0.0:
        return Vector2()
    inv = 1.0 / total_weight
    return Vector2(
        (sum_x * inv - own.velocity.x) * config.alignment_weight,
        (sum_y * inv - own.velocity.y) * config.alignment_weight,
    )


def cohesion(own: FlockView, flock: Sequence[FlockView], config: FlockConfig) -> Vector2:
    radius = config.cohesion_distance
    sum_x = 0.0
    sum_y = 0.0
    total_weight = 0.0
    for other in flock:
        if other.id == own.id:
            continue
        dist = own.position.distance_to(other.position)
        if dist <= 0.0 or dist >= radius:
            continue
        ratio = dist / radius
        weight = ratio * ratio
        sum_x += other.position.x * weight
        sum_y += other.position.y * weight
        total_weight += weight
    if total_weight <= 0.0:
        return Vector2()
    inv = 1.0 / total_weight
    return Vector2(
        (sum_x * inv - own.position.x) * config.cohesion_weight,
        (sum_y * inv - own.position.y) * config.cohesion_weight,
    )


def flocking_force(own: FlockView, flock: Sequence[FlockView], config: FlockConfig) -> Vector2:
    return separation(own, flock, config) + alignment(own, flock, config) + cohesion(own, flock, config)


def apply_flocking(bird: Bird, flock: Sequence[FlockView], config: FlockConfig) -> Vector2:
    """Bias the bird's target direction towards the combined boid force.

    `flock` must be a start-of-tick snapshot so results do not depend on the
    order birds are processed in. Returns the combined force.
    """
    own = FlockView(bird.id, bird.position, bird.velocity)
    force = flocking_force(own, flock, config)
    if force.length() > config.force_threshold:
        desired = math.atan2(force.y, force.x)
        diff = _wrap_angle(desired - bird.target_direction)
        bird.target_direction = _normalize_direction(bird.target_direction + diff * config.blend_factor)
    return force
