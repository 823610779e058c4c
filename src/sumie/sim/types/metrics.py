from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    time: float
    clouds: int
    birds: int
    edge_avoiding: int
    obstacle_avoiding: int
    neighbor_checks: int
    average_speed: float
    tick_duration_ms: float = 0.0
