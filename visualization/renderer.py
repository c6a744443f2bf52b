"""
Lane-Sketch – PyGame Renderer
Draws roads (outline, surface, dashed lane separators, gates), agents and
the HUD. Reads road geometry through LaneNetwork; never changes it.
"""

import pygame
import math
from config.settings import (
    SCREEN_WIDTH, SCREEN_HEIGHT,
    PATH_OUTLINE_WIDTH,
    GRASS_COLOR, GRASS_STRIPE_COLOR,
    ROAD_COLOR, ROAD_OUTLINE_COLOR, ROAD_HOVER_COLOR, ROAD_SELECTED_COLOR,
    LANE_SEPARATOR_COLOR, LANE_PATH_COLOR, KNOT_COLOR,
    GATE_BODY_COLOR, GATE_ROOF_COLOR, GATE_DEPTH,
    SEPARATOR_DASH, SEPARATOR_GAP, SEPARATOR_WIDTH,
    AGENT_COLORS,
    DEBUG_SHOW_LANE_PATHS, DEBUG_SHOW_KNOTS,
    UI_PANEL_BORDER,
    UI_TEXT_PRIMARY, UI_TEXT_SECONDARY,
    UI_ACCENT_BLUE, UI_ACCENT_GREEN, UI_ACCENT_RED, UI_ACCENT_YELLOW,
)
from geometry.tracer import ArcLengthTracer
from simulation.agent import Carrying, TimedExplosive, behavior_name
from simulation.collision import agent_box


def dashed_runs(curve, dash: float = SEPARATOR_DASH, gap: float = SEPARATOR_GAP, step: float = 3.0):
    """Yield the painted stretches of a dashed line along *curve* as point lists."""
    if not curve.segments:
        return
    tracer = ArcLengthTracer.from_curve(curve)
    period = dash + gap
    run = []
    for point in tracer.walk(step):
        if tracer.distance_travelled % period < dash:
            run.append((point.x, point.y))
        elif run:
            if len(run) > 1:
                yield run
            run = []
    if len(run) > 1:
        yield run


def _thick_polyline(surface, color, points, width):
    """Polyline with round caps and joins."""
    if not points:
        return
    radius = max(1, width // 2)
    if len(points) > 1:
        pygame.draw.lines(surface, color, False, points, width)
    for p in points:
        pygame.draw.circle(surface, color, (int(p[0]), int(p[1])), radius)


class Renderer:
    """PyGame rendering engine for roads and agents."""

    def __init__(self, width: int = SCREEN_WIDTH, height: int = SCREEN_HEIGHT):
        pygame.init()
        self.width = width
        self.height = height
        self.screen = pygame.display.set_mode((width, height))
        pygame.display.set_caption("Lane-Sketch — draw roads, watch traffic")

        self.font_large = pygame.font.SysFont("Arial", 24, bold=True)
        self.font_med = pygame.font.SysFont("Arial", 18)
        self.font_small = pygame.font.SysFont("Arial", 14)
        self.font_tiny = pygame.font.SysFont("Arial", 12)

        self.frame_count = 0

    # ─── background & grass ───────────────
    def draw_background(self):
        self.screen.fill(GRASS_COLOR)
        stripe = 48
        for x in range(0, self.width, stripe * 2):
            pygame.draw.rect(self.screen, GRASS_STRIPE_COLOR, (x, 0, stripe, self.height))

    # ─── roads ────────────────────────────
    def draw_road(self, road, state: str = "normal"):
        centre = [(p.x, p.y) for p in road.centerline.flatten()]
        if not centre:
            return
        width = int(road.path_width)
        fill = {"hover": ROAD_HOVER_COLOR, "selected": ROAD_SELECTED_COLOR}.get(state, ROAD_COLOR)

        _thick_polyline(self.screen, ROAD_OUTLINE_COLOR, centre, width + PATH_OUTLINE_WIDTH * 2)
        _thick_polyline(self.screen, fill, centre, width)

        separators = road.separator_curves()
        for curve in separators:
            for run in dashed_runs(curve):
                pygame.draw.lines(self.screen, LANE_SEPARATOR_COLOR, False, run, SEPARATOR_WIDTH)

        # Clear separator paint where the road crosses itself
        if separators:
            for p in road.crossings:
                pygame.draw.circle(self.screen, fill, (int(p.x), int(p.y)), width // 2)

        if DEBUG_SHOW_LANE_PATHS:
            for lane in range(road.lane_count):
                pts = [tuple(p) for p in road.lane_polyline(lane)]
                if len(pts) > 1:
                    pygame.draw.lines(self.screen, LANE_PATH_COLOR, False, pts, 1)
        if DEBUG_SHOW_KNOTS:
            for k in road.knots:
                pygame.draw.circle(self.screen, KNOT_COLOR, (int(k.x), int(k.y)), 4)

    def draw_gates(self, road):
        """Entry and exit gates straddling the road ends."""
        if not road.is_finished:
            return
        start = road.centerline.start
        end = road.centerline.end
        span = road.path_width + PATH_OUTLINE_WIDTH * 2
        for point, angle in ((start, road.start_angle()), (end, road.end_angle())):
            forward = pygame.math.Vector2(math.cos(angle), math.sin(angle)) * (GATE_DEPTH / 2)
            side = pygame.math.Vector2(-math.sin(angle), math.cos(angle)) * (span / 2)
            corners = [point - forward - side, point + forward - side,
                       point + forward + side, point - forward + side]
            pygame.draw.polygon(self.screen, GATE_BODY_COLOR, corners)
            pygame.draw.polygon(self.screen, GATE_ROOF_COLOR, corners, 3)

    def draw_roads(self, roads, selected=None, hovered=None):
        for road in roads:
            state = "selected" if road is selected else ("hover" if road is hovered else "normal")
            self.draw_road(road, state)
        for road in roads:
            self.draw_gates(road)

    # ─── agents ───────────────────────────
    def draw_agent(self, agent):
        color = AGENT_COLORS.get(behavior_name(agent.behavior), AGENT_COLORS["plain"])
        box = agent_box(agent)
        corners = [(c.x, c.y) for c in box.corners()]
        pygame.draw.polygon(self.screen, color, corners)

        centre = box.center
        if isinstance(agent.behavior, Carrying):
            plate = int(min(agent.width, agent.length) / 2) - 2
            pygame.draw.circle(self.screen, (255, 255, 255), (int(centre.x), int(centre.y)), max(plate, 2))
            pygame.draw.circle(self.screen, color, (int(centre.x), int(centre.y)), max(plate - 4, 1))
        elif isinstance(agent.behavior, TimedExplosive):
            blink = (self.frame_count // 10) % 2 == 0
            pygame.draw.circle(self.screen, (20, 20, 20) if blink else UI_ACCENT_YELLOW,
                               (int(centre.x), int(centre.y)), int(agent.width / 3))

        # Border for definition
        border_color = tuple(max(0, c - 60) for c in color)
        pygame.draw.polygon(self.screen, border_color, corners, 1)

    def draw_agents(self, agents):
        for agent in agents:
            self.draw_agent(agent)

    # ─── UI overlay ───────────────────────
    def draw_ui_overlay(self, stats: dict, mode: str, lane_count: int, paused: bool):
        # ── Top bar ──
        top_bar = pygame.Surface((self.width, 60), pygame.SRCALPHA)
        top_bar.fill((20, 20, 20, 200))
        self.screen.blit(top_bar, (0, 0))

        title = self.font_large.render("Lane-Sketch", True, UI_ACCENT_BLUE)
        self.screen.blit(title, (15, 5))

        mode_text = f"Mode: {mode}  |  Lanes: {lane_count}" + ("  |  PAUSED" if paused else "")
        mode_surf = self.font_med.render(mode_text, True, UI_ACCENT_YELLOW if paused else UI_ACCENT_GREEN)
        self.screen.blit(mode_surf, (200, 8))

        info_surf = self.font_small.render(
            f"FPS: {stats.get('fps', 0):.0f}  |  "
            f"Tick: {stats.get('tick', 0)}  |  "
            f"Agents: {stats.get('active', 0)}  |  "
            f"Roads: {stats.get('roads', 0)}",
            True, UI_TEXT_SECONDARY,
        )
        self.screen.blit(info_surf, (200, 34))

        # ── Right stats ──
        x = self.width - 230
        lines = [
            (f"Arrived: {stats.get('arrived_total', 0)}", UI_ACCENT_GREEN),
            (f"Collided: {stats.get('collided_total', 0)}", UI_ACCENT_RED),
            (f"Lane changes: {stats.get('lane_changes', 0)}", UI_TEXT_PRIMARY),
        ]
        for i, (text, color) in enumerate(lines):
            s = self.font_tiny.render(text, True, color)
            self.screen.blit(s, (x + (i % 2) * 110, 10 + (i // 2) * 20))

        # ── Bottom bar ──
        bot_h = 40
        bot_surf = pygame.Surface((self.width, bot_h), pygame.SRCALPHA)
        bot_surf.fill((20, 20, 20, 200))
        by = self.height - bot_h
        self.screen.blit(bot_surf, (0, by))

        controls = [
            ("[D] Draw", mode == "Draw"),
            ("[S] Select", mode == "Select"),
            ("[+/-] Lanes", False),
            ("[Del] Remove", False),
            ("[Space] Pause", paused),
            ("[R] Reset", False),
        ]
        cx = 30
        for text, active in controls:
            color = UI_ACCENT_GREEN if active else UI_TEXT_SECONDARY
            s = self.font_small.render(text, True, color)
            if active:
                rect = s.get_rect(topleft=(cx - 4, by + 10))
                rect.inflate_ip(8, 4)
                pygame.draw.rect(self.screen, UI_PANEL_BORDER, rect, border_radius=3)
            self.screen.blit(s, (cx, by + 12))
            cx += s.get_width() + 25

    # ─── speed sparkline ──────────────────
    def draw_speed_graph(self, history: list):
        if len(history) < 2:
            return
        gw, gh = 180, 80
        gx = self.width - gw - 15
        gy = self.height - 55 - gh

        surf = pygame.Surface((gw, gh), pygame.SRCALPHA)
        surf.fill((20, 20, 20, 160))
        self.screen.blit(surf, (gx, gy))
        pygame.draw.rect(self.screen, UI_PANEL_BORDER, (gx, gy, gw, gh), 1, border_radius=3)

        data = history[-gw:]
        max_val = max(max(data), 1)
        points = []
        for i, val in enumerate(data):
            px = gx + int(i * gw / len(data))
            py_val = gy + gh - 5 - int((val / max_val) * (gh - 10))
            points.append((px, py_val))

        if len(points) >= 2:
            pygame.draw.lines(self.screen, UI_ACCENT_BLUE, False, points, 2)

        label = self.font_tiny.render("Mean speed", True, UI_TEXT_SECONDARY)
        self.screen.blit(label, (gx + 5, gy + 3))

    # ─── full frame ───────────────────────
    def render_frame(self, world, drawing, selected, hovered, stats, mode, lane_count, paused):
        self.frame_count += 1
        self.draw_background()
        roads = list(world.roads)
        if drawing is not None:
            roads.append(drawing)
        self.draw_roads(roads, selected=selected, hovered=hovered)
        self.draw_agents(world.agents)
        self.draw_ui_overlay(stats, mode, lane_count, paused)
        self.draw_speed_graph(world.metrics.speed_history)
        pygame.display.flip()
