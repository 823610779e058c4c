from __future__ import annotations

from typing import Sequence

from ..core.agent import AvoidanceKind, Bird
from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    time: float,
    cloud_count: int,
    birds: Sequence[Bird],
    duration_ms: float,
) -> TickMetrics:
    edge_avoiding = 0
    obstacle_avoiding = 0
    speed_sum = 0.0
    for bird in birds:
        kind = bird.avoidance.kind
        if kind is AvoidanceKind.EDGE:
            edge_avoiding += 1
        elif kind is AvoidanceKind.OBSTACLE:
            obstacle_avoiding += 1
        speed_sum += bird.current_speed
    count = len(birds)
    return TickMetrics(
        tick=tick,
        time=time,
        clouds=cloud_count,
        birds=count,
        edge_avoiding=edge_avoiding,
        obstacle_avoiding=obstacle_avoiding,
        neighbor_checks=count * (count - 1),
        average_speed=speed_sum / count if count else 0.0,
        tick_duration_ms=duration_ms,
    )
