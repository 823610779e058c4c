from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    clouds: List[Dict[str, Any]]
    birds: List[Dict[str, Any]]
    obstacle: "SnapshotObstacle"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotObstacle:
    vertices: List[List[float]]


@dataclass(slots=True)
class SnapshotMetadata:
    width: float
    height: float
    time: float
    seed: int
    noise_seed: int
    splat_radius: float
    sample_step: float
    wingspan: float
    config_version: str
