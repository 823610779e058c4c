from __future__ import annotations

import math

TAU = 2.0 * math.pi


def _wrap_angle(angle: float) -> float:
    """Wrap to [-pi, pi)."""
    return (angle + math.pi) % TAU - math.pi


def _normalize_direction(angle: float) -> float:
    return angle % TAU


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
