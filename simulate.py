#!/usr/bin/env python3
"""
Lane-Sketch – Headless Simulation Run
═════════════════════════════════════
Runs the default road (or a straight test road) without a window, prints a
report and saves charts of the lane geometry and mean speed.

Usage:
    python simulate.py                            # 5000 ticks, default road
    python simulate.py --ticks 20000 --seed 3     # longer, reproducible
    python simulate.py --lanes 4 --verbose        # 4 lanes, DEBUG logging
"""

import argparse
import logging
import os
import random
import matplotlib
matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt
import numpy as np

from config.settings import (
    DEFAULT_ROAD_LANES, DEFAULT_ROAD_POINTS,
    MIN_LANE_COUNT, MAX_LANE_COUNT,
    SCREEN_WIDTH, SCREEN_HEIGHT,
)
from simulation.road_network import LaneNetwork
from simulation.world import SimulationWorld


def plot_lanes(road: LaneNetwork, path: str = "runs/lanes.png"):
    """Save the centreline, every lane and every knot of *road*."""
    plt.figure(figsize=(8, 6))
    centre = np.array([(p.x, p.y) for p in road.centerline.flatten()])
    plt.plot(centre[:, 0], centre[:, 1], color="gray", linestyle="--", linewidth=1, label="Centreline")
    for lane in range(road.lane_count):
        pts = road.lane_polyline(lane)
        plt.plot(pts[:, 0], pts[:, 1], linewidth=1.5,
                 label=f"Lane {lane} ({road.lane_length(lane):.0f})")
    if road.knots:
        knots = np.array([(k.x, k.y) for k in road.knots])
        plt.scatter(knots[:, 0], knots[:, 1], color="red", marker="x", zorder=3, label="Knots")

    plt.xlim(0, SCREEN_WIDTH)
    plt.ylim(SCREEN_HEIGHT, 0)  # screen coordinates: y grows downwards
    plt.gca().set_aspect("equal")
    plt.title("Lane-Sketch — Lane Geometry")
    plt.legend(fontsize=8)
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    print(f"📈 Lane plot saved to {path}")


def plot_speed(history: list, path: str = "runs/mean_speed.png"):
    """Save a mean-speed-over-ticks chart."""
    plt.figure(figsize=(10, 5))
    plt.plot(history, alpha=0.3, color="steelblue", label="Mean speed")

    # Smoothed (running avg of 200)
    window = 200
    if len(history) >= window:
        smoothed = np.convolve(history, np.ones(window) / window, mode="valid")
        plt.plot(range(window - 1, len(history)), smoothed, color="orange",
                 linewidth=2, label=f"Moving avg ({window})")

    plt.xlabel("Tick")
    plt.ylabel("Units / tick")
    plt.title("Lane-Sketch — Mean Agent Speed")
    plt.legend()
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    print(f"📈 Speed chart saved to {path}")


def run():
    parser = argparse.ArgumentParser(description="Run Lane-Sketch without a window")
    parser.add_argument("--ticks", type=int, default=5000, help="Number of ticks to simulate")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--lanes", type=int, default=DEFAULT_ROAD_LANES,
                        help=f"Lanes on the road ({MIN_LANE_COUNT}-{MAX_LANE_COUNT})")
    parser.add_argument("--save-dir", type=str, default="runs", help="Directory for charts")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    if not MIN_LANE_COUNT <= args.lanes <= MAX_LANE_COUNT:
        parser.error(f"--lanes must be between {MIN_LANE_COUNT} and {MAX_LANE_COUNT}")

    os.makedirs(args.save_dir, exist_ok=True)

    print("═" * 55)
    print("  Lane-Sketch — Headless Run")
    print("═" * 55)
    print(f"  Ticks          : {args.ticks}")
    print(f"  Lanes          : {args.lanes}")
    print(f"  Seed           : {args.seed}")
    print(f"  Save directory : {args.save_dir}")
    print("═" * 55)
    print()

    road = LaneNetwork.from_points(DEFAULT_ROAD_POINTS, args.lanes)
    world = SimulationWorld(rng=random.Random(args.seed))
    world.add_road(road)

    for tick in range(1, args.ticks + 1):
        info = world.step()
        if tick % 1000 == 0:
            print(f"  tick {info['tick']:>6}  active {info['active']:>3}  "
                  f"mean speed {info['mean_speed']:.2f}  lane changes {info['lane_changes']}")

    print()
    print(world.metrics.generate_report())

    plot_lanes(road, os.path.join(args.save_dir, "lanes.png"))
    plot_speed(world.metrics.speed_history, os.path.join(args.save_dir, "mean_speed.png"))
    print("\n🏁 Done!")


if __name__ == "__main__":
    run()
