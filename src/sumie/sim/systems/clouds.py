from __future__ import annotations

import math
from typing import List, TYPE_CHECKING

from pygame.math import Vector2

from ..core.agent import Cloud
from ..core.config import CloudConfig

if TYPE_CHECKING:
    from ..core.noise import NoiseField


def update_cloud(cloud: Cloud, delta_time: float, wind_speed: float, canvas_width: float, buffer: float) -> None:
    cloud.position.x += cloud.velocity.x * wind_speed * delta_time
    if cloud.position.x > canvas_width + buffer:
        cloud.position.x = -cloud.width - buffer


def noise_at(cloud: Cloud, noise_field: NoiseField, x: float, y: float, time: float, time_scale: float) -> float:
    seed = cloud.noise_seed
    value = noise_field.sample(
        (x + seed.x) / cloud.noise_scale,
        (y + seed.y) / cloud.noise_scale,
        time * time_scale + seed.z,
    )
    return (value + 1.0) * 0.5


def density_at(distance: float, noise_value: float, config: CloudConfig) -> float:
    """Un-boosted alpha for a normalized elliptical distance and a [0, 1] noise value."""
    core_end = config.core_end
    blend_end = config.blend_end
    transition_end = config.transition_end

    if distance < core_end:
        progress = distance / core_end
        return 1.0 - progress * 0.1 * (1.0 - noise_value)
    if distance < blend_end:
        progress = (distance - core_end) / (blend_end - core_end)
        base_density = 1.0 - progress * 0.3
        influence = progress * 0.5
        return base_density * (1.0 - influence + influence * noise_value)
    if distance < transition_end:
        progress = (distance - blend_end) / (transition_end - blend_end)
        return (1.0 - progress) * noise_value
    progress = (distance - transition_end) / (1.0 - transition_end)
    falloff = 1.0 - progress
    return falloff * falloff * noise_value * noise_value * config.washout_gain


def opacity_field(
    cloud: Cloud,
    noise_field: NoiseField,
    time: float,
    sample_step: float,
    config: CloudConfig,
) -> List[tuple[Vector2, float]]:
    if sample_step <= 0.0:
        raise ValueError(f"sample_step must be positive, got {sample_step}")
    radius_x = cloud.width * 0.5
    radius_y = cloud.height * 0.5
    center_x = cloud.position.x + radius_x
    center_y = cloud.position.y + radius_y
    boost = config.alpha_boost
    cutoff = config.alpha_cutoff
    time_scale = config.noise_time_scale

    samples: List[tuple[Vector2, float]] = []
    columns = math.ceil(cloud.width / sample_step)
    rows = math.ceil(cloud.height / sample_step)
    for column in range(columns):
        world_x = cloud.position.x + column * sample_step
        dx = (world_x - center_x) / radius_x
        dx_sq = dx * dx
        if dx_sq > 1.0:
            continue
        for row in range(rows):
            world_y = cloud.position.y + row * sample_step
            dy = (world_y - center_y) / radius_y
            distance = math.sqrt(dx_sq + dy * dy)
            if distance > 1.0:
                continue
            noise_value = noise_at(cloud, noise_field, world_x, world_y, time, time_scale)
            alpha = min(1.0, density_at(distance, noise_value, config) * boost)
            if alpha > cutoff:
                samples.append((Vector2(world_x, world_y), alpha))
    return samples
