from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from pygame.math import Vector2, Vector3


class AvoidanceKind(str, Enum):
    NONE = "None"
    EDGE = "Edge"
    OBSTACLE = "Obstacle"


@dataclass(frozen=True, slots=True)
class NoAvoidance:
    kind: AvoidanceKind = AvoidanceKind.NONE


@dataclass(frozen=True, slots=True)
class EdgeAvoidance:
    direction: float
    kind: AvoidanceKind = AvoidanceKind.EDGE


@dataclass(frozen=True, slots=True)
class ObstacleAvoidance:
    direction: float = -math.pi / 2
    kind: AvoidanceKind = AvoidanceKind.OBSTACLE


Avoidance = Union[NoAvoidance, EdgeAvoidance, ObstacleAvoidance]

NO_AVOIDANCE = NoAvoidance()


@dataclass(slots=True)
class Cloud:
    id: int
    position: Vector2
    velocity: Vector2
    width: float
    height: float
    noise_seed: Vector3 = field(default_factory=Vector3)
    noise_scale: float = 60.0

    @property
    def center(self) -> Vector2:
        return Vector2(self.position.x + self.width * 0.5, self.position.y + self.height * 0.5)


@dataclass(slots=True)
class Bird:
    id: int
    position: Vector2
    velocity: Vector2
    target_direction: float
    base_speed: float
    current_speed: float
    direction_change_timer: float
    scale: float = 1.0
    avoidance: Avoidance = NO_AVOIDANCE

    @property
    def heading(self) -> float:
        if self.velocity.length_squared() < 1e-18:
            return self.target_direction
        return math.atan2(self.velocity.y, self.velocity.x)
