from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..sim.core.clock import FrameClock
from ..sim.core.config import SceneConfig, setup_logging
from ..sim.core.scene import Scene

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "time",
    "clouds",
    "birds",
    "edge_avoiding",
    "obstacle_avoiding",
    "neighbor_checks",
    "average_speed",
    "cloud_points",
    "tick_ms",
]


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"mean": 0.0, "min": 0.0, "max": 0.0, "p95": 0.0}
    ordered = sorted(values)
    p95_index = min(len(ordered) - 1, max(0, math.ceil(0.95 * len(ordered)) - 1))
    return {
        "mean": sum(values) / len(values),
        "min": ordered[0],
        "max": ordered[-1],
        "p95": ordered[p95_index],
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    width: float = 1280.0,
    height: float = 720.0,
    fps: float = 60.0,
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    config: Optional[SceneConfig] = None,
    sample_fields: bool = True,
) -> Scene:
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    config = config if config is not None else SceneConfig()
    if seed is not None:
        config = replace(config, seed=seed)
    scene = Scene(config, width, height)
    clock = FrameClock()
    frame_seconds = 1.0 / fps
    logger.info("Running %d headless steps at %gx%g (seed=%d)", steps, width, height, config.seed)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    tick_ms_series: list[float] = []
    cloud_points_series: list[float] = []
    obstacle_ticks = 0
    edge_ticks = 0

    try:
        for tick in range(steps):
            delta_time = clock.tick(tick * frame_seconds)
            metrics = scene.step(delta_time, clock.elapsed)
            cloud_points = 0
            if sample_fields:
                cloud_points = sum(len(field) for field in scene.cloud_fields())
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            tick_ms_series.append(tick_ms)
            cloud_points_series.append(float(cloud_points))
            obstacle_ticks += metrics.obstacle_avoiding
            edge_ticks += metrics.edge_avoiding

            if writer:
                writer.writerow(
                    [
                        metrics.tick,
                        f"{metrics.time:.4f}",
                        metrics.clouds,
                        metrics.birds,
                        metrics.edge_avoiding,
                        metrics.obstacle_avoiding,
                        metrics.neighbor_checks,
                        f"{metrics.average_speed:.5f}",
                        cloud_points,
                        f"{tick_ms:.3f}",
                    ]
                )
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        summary = {
            "steps": steps,
            "seed": config.seed,
            "width": width,
            "height": height,
            "fps": fps,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "cloud_points": _summary_stats(cloud_points_series),
            "avoidance": {
                "edge_bird_ticks": edge_ticks,
                "obstacle_bird_ticks": obstacle_ticks,
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    logger.info("Headless run finished after %d steps", steps)
    return scene


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless sumie scene simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--width", type=float, default=1280.0)
    parser.add_argument("--height", type=float, default=720.0)
    parser.add_argument("--fps", type=float, default=60.0)
    parser.add_argument("--config", type=Path, default=None, help="YAML scene configuration")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-tick metrics")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run summary stats.")
    parser.add_argument(
        "--no-fields",
        action="store_true",
        help="Skip sampling cloud opacity fields each frame.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    args = parser.parse_args()
    config = SceneConfig.from_yaml(args.config) if args.config else SceneConfig()
    setup_logging(config.logging)
    run_headless(
        args.steps,
        args.seed,
        args.log,
        width=args.width,
        height=args.height,
        fps=args.fps,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        config=config,
        sample_fields=not args.no_fields,
    )


if __name__ == "__main__":
    main()
