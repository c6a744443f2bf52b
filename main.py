#!/usr/bin/env python3
"""
Lane-Sketch: Freehand Roads, Lane-Following Traffic
══════════════════════════════════════════════════
Main application: run this to start the interactive simulation.

Usage:
    python main.py                # Interactive window
    python main.py --seed 7       # Reproducible spawning
    python main.py --empty        # Start without the default road
"""

import argparse
import random
import sys
import pygame

from config.settings import (
    SCREEN_WIDTH, SCREEN_HEIGHT, FPS,
    MIN_LANE_COUNT, MAX_LANE_COUNT, DEFAULT_DRAW_LANE_COUNT,
    MIN_SAMPLE_SPACING,
    DEFAULT_ROAD_LANES, DEFAULT_ROAD_POINTS,
)
from geometry.errors import InvalidArgument
from simulation.road_network import LaneNetwork
from simulation.world import SimulationWorld
from visualization.renderer import Renderer


def add_default_road(world: SimulationWorld) -> None:
    world.add_road(LaneNetwork.from_points(DEFAULT_ROAD_POINTS, DEFAULT_ROAD_LANES))


def main():
    parser = argparse.ArgumentParser(description="Lane-Sketch Simulation")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for spawning")
    parser.add_argument("--empty", action="store_true", help="Start without the default road")
    args = parser.parse_args()

    # ── Initialise ───────────────────────────
    renderer = Renderer(SCREEN_WIDTH, SCREEN_HEIGHT)
    world = SimulationWorld(rng=random.Random(args.seed))
    if not args.empty:
        add_default_road(world)

    mode = "Draw"
    lane_count = DEFAULT_DRAW_LANE_COUNT
    drawing = None          # road being drawn, not yet in the world
    last_sample = None
    selected = None
    hovered = None
    paused = False
    arrived_total = 0
    collided_total = 0
    info = {}

    # ── Main loop ────────────────────────────
    clock = pygame.time.Clock()
    running = True

    print("Lane-Sketch is running!")
    print("   [D] Draw  [S] Select  [+/-] Lanes  [Del] Remove  [Space] Pause  [R] Reset\n")

    while running:
        # ── Events ──
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_d:
                    mode = "Draw"
                    selected = None

                elif event.key == pygame.K_s:
                    mode = "Select"

                elif event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                    lane_count = min(lane_count + 1, MAX_LANE_COUNT)
                    print(f"Lanes for new roads: {lane_count}")

                elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                    lane_count = max(lane_count - 1, MIN_LANE_COUNT)
                    print(f"Lanes for new roads: {lane_count}")

                elif event.key in (pygame.K_DELETE, pygame.K_BACKSPACE):
                    if selected is not None:
                        world.remove_road(selected)
                        selected = None
                        print("Road removed")

                elif event.key == pygame.K_SPACE:
                    paused = not paused

                elif event.key == pygame.K_r:
                    world.reset()
                    add_default_road(world)
                    drawing = selected = hovered = None
                    arrived_total = collided_total = 0
                    print("↻ Reset!")

                elif event.key == pygame.K_ESCAPE:
                    running = False

            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                if mode == "Draw":
                    drawing = LaneNetwork(lane_count)
                    drawing.add_point(*event.pos)
                    last_sample = event.pos
                else:
                    selected = world.road_at(*event.pos)

            elif event.type == pygame.MOUSEMOTION:
                if drawing is not None:
                    dx = event.pos[0] - last_sample[0]
                    dy = event.pos[1] - last_sample[1]
                    if (dx * dx + dy * dy) ** 0.5 >= MIN_SAMPLE_SPACING:
                        drawing.add_point(*event.pos)
                        last_sample = event.pos
                elif mode == "Select":
                    hovered = world.road_at(*event.pos)

            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                if drawing is not None:
                    drawing.add_point(*event.pos)
                    try:
                        drawing.finish()
                        world.add_road(drawing)
                    except InvalidArgument:
                        # A click without a drag is not a road
                        pass
                    drawing = None

        # ── Simulation tick ──
        if not paused:
            info = world.step()
            arrived_total += info["arrived"]
            collided_total += info["collided"]

        # ── Render ──
        stats = dict(info)
        stats.update({
            "fps": clock.get_fps(),
            "roads": len(world.roads),
            "arrived_total": arrived_total,
            "collided_total": collided_total,
        })
        renderer.render_frame(
            world=world,
            drawing=drawing,
            selected=selected,
            hovered=hovered,
            stats=stats,
            mode=mode,
            lane_count=lane_count,
            paused=paused,
        )

        clock.tick(FPS)

    # ── Cleanup ──
    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
