"""
Lane-Sketch: Configuration & Tunables
All constants, colors, and tunable parameters in one place.
"""

import math

# ─────────────────────────────────────────────
# WINDOW / DISPLAY
# ─────────────────────────────────────────────
SCREEN_WIDTH = 1024
SCREEN_HEIGHT = 768
FPS = 60
BACKGROUND_COLOR = (30, 30, 30)  # Dark theme

# ─────────────────────────────────────────────
# ROAD GEOMETRY
# ─────────────────────────────────────────────
LANE_WIDTH = 50              # world units between adjacent lane centres
PATH_OUTLINE_WIDTH = 8       # yellow rim drawn around every road
MIN_LANE_COUNT = 1
MAX_LANE_COUNT = 10
DEFAULT_DRAW_LANE_COUNT = 2
MIN_SAMPLE_SPACING = 8.0     # pointer samples closer than this are skipped while drawing
END_ANGLE_SPAN = 32.0        # length of road used to average the entry/exit heading

# Road created on start-up (3 lanes)
DEFAULT_ROAD_LANES = 3
DEFAULT_ROAD_POINTS = [
    (925, 25), (875, 225), (750, 275), (575, 175), (350, 125),
    (200, 150), (100, 275), (125, 450), (300, 550), (550, 400),
    (700, 450), (725, 650), (750, 775),
]

# ─────────────────────────────────────────────
# CURVE TOLERANCES
# ─────────────────────────────────────────────
FLATNESS = 1.0                     # polyline tolerance used for tracing lanes
KNOT_TEST_FLATNESS = 1.0           # polyline tolerance used when hunting knots
KNOT_TEST_DISTANCE = LANE_WIDTH * math.pi * 2.0   # tail length kept open for knot tests
KNOT_IGNORE_RADIUS = 1.0           # hits this close to the new segment start are the shared joint
KNOT_TEST_SLACK = 1e-6             # absorbs rounding at segment ends in the knot test
CROSSING_TEST_SLACK = 1.0          # centreline self-crossings accept hits this far past a line end
JOIN_EPSILON = 1e-6                # offset segments further apart than this get a join segment
PARALLEL_EPSILON = 1e-9            # relative determinant below which two lines are parallel
MAX_SUBDIVISIONS = 10              # recursion limit when flattening a quadratic

ADJACENT_SEARCH_STEP = 1.0         # step used for the nearest-point search in another lane
TANGENT_PROBE = 1.0                # look-ahead used to estimate a lane's tangent

# ─────────────────────────────────────────────
# AGENTS
# ─────────────────────────────────────────────
AGENT_LENGTH = 48
AGENT_WIDTH = 32
AGENT_SPEED_MIN = 1.0
AGENT_SPEED_MAX = 2.5
ACCELERATION_RATE = 0.05           # speed recovered per tick when unobstructed
SLOWDOWN_DISTANCE = 96.0           # look-ahead for a slower agent in the same lane
LANE_CHANGE_COOLDOWN = 60          # ticks before another lane change is considered
HEADING_SMOOTHING = 0.05           # fraction of the heading error corrected per tick
BLAST_RADIUS = 100.0               # timed explosives destroy agents this close

# ─────────────────────────────────────────────
# SPAWNING
# ─────────────────────────────────────────────
LANE_SPAWN_MIN_TICKS = 120
LANE_SPAWN_MAX_TICKS = 480
SPAWN_ZONE_LENGTH = 60.0           # lane start must be clear this far before spawning
FOLLOW_GAP = 4.0                   # extra spacing between a lead and its follower
EXPLOSIVE_ROLL = 0.2               # probability a follower is a timed explosive
POISON_ROLL = 0.2                  # probability a follower carries poison
MAX_AGENTS = 200

# ─────────────────────────────────────────────
# ROAD / AGENT COLOURS
# ─────────────────────────────────────────────
GRASS_COLOR = (94, 175, 86)
GRASS_STRIPE_COLOR = (87, 165, 80)
ROAD_COLOR = (64, 64, 64)
ROAD_OUTLINE_COLOR = (255, 255, 0)
ROAD_HOVER_COLOR = (78, 106, 162)
ROAD_SELECTED_COLOR = (72, 88, 125)
LANE_SEPARATOR_COLOR = (255, 255, 255)
LANE_PATH_COLOR = (255, 0, 0)
KNOT_COLOR = (255, 175, 175)
GATE_BODY_COLOR = (196, 196, 196)
GATE_ROOF_COLOR = (128, 128, 128)
SEPARATOR_DASH = 15.0
SEPARATOR_GAP = 30.0
SEPARATOR_WIDTH = 5
GATE_DEPTH = 32

AGENT_COLORS = {
    "plain": (41, 128, 185),       # Blue truck
    "candy": (236, 240, 241),      # White plate
    "poison": (155, 89, 182),      # Purple
    "explosive": (231, 76, 60),    # Red
}

DEBUG_SHOW_LANE_PATHS = False
DEBUG_SHOW_KNOTS = False

# ─────────────────────────────────────────────
# UI COLOURS / THEME
# ─────────────────────────────────────────────
UI_PANEL_BORDER = (60, 60, 60)
UI_TEXT_PRIMARY = (240, 240, 240)
UI_TEXT_SECONDARY = (180, 180, 180)
UI_ACCENT_BLUE = (52, 152, 219)
UI_ACCENT_GREEN = (46, 204, 113)
UI_ACCENT_RED = (231, 76, 60)
UI_ACCENT_YELLOW = (241, 196, 15)
