"""
Lane-Sketch – Collision Detection Tests
═══════════════════════════════════════
Verifies the oriented hit boxes, the bounding-rect broad phase and the detector's
rules about which agents can hit each other.

Run: python -m pytest tests/test_collision.py -v
  or: python tests/test_collision.py
"""

import math
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pygame
pygame.init()  # needed for Rect

from pygame.math import Vector2

from simulation.collision import (
    inflate_rect,
    point_hits_agent,
    within_blast,
    CollisionDetector,
    OrientedBox,
)


# ─── helpers ────────────────────────────
class _StubAgent:
    """Just enough of an agent for the collision helpers."""
    _next_id = 0

    def __init__(self, x, y, angle=0.0, length=48, width=32, active=True):
        self.id = _StubAgent._next_id
        _StubAgent._next_id += 1
        self.position = Vector2(x, y)
        self.angle = angle
        self.length = length
        self.width = width
        self.is_active = active
        self.linked = set()


# ═══════════════════════════════════════════
# Rect helper tests
# ═══════════════════════════════════════════

def test_inflate_rect():
    r = pygame.Rect(10, 10, 20, 20)
    inflated = inflate_rect(r, 5)
    assert inflated.x == 5
    assert inflated.y == 5
    assert inflated.width == 30
    assert inflated.height == 30


# ═══════════════════════════════════════════
# Oriented box tests
# ═══════════════════════════════════════════

def test_box_extends_behind_front():
    box = OrientedBox(Vector2(10, 0), 0.0, 48, 32)
    assert box.center == Vector2(-14, 0)
    assert box.contains((0, 0))
    assert box.contains((-37, 0))
    assert not box.contains((11, 0)), "Nothing sticks out in front"
    assert not box.contains((-39, 0))
    assert not box.contains((0, 17))


def test_rotated_box():
    box = OrientedBox(Vector2(0, 10), math.pi / 2, 48, 32)
    assert box.contains((0, 0))
    assert box.contains((10, 0))
    assert not box.contains((20, 0))
    assert not box.contains((0, 11))


def test_bounding_rect_covers_corners():
    box = OrientedBox(Vector2(100, 100), math.radians(30), 48, 32)
    rect = box.bounding_rect()
    for corner in box.corners():
        assert rect.collidepoint(int(corner.x), int(corner.y)), f"{corner} outside {rect}"


def test_point_hits_agent():
    agent = _StubAgent(50, 50)
    assert point_hits_agent((40, 50), agent)
    assert not point_hits_agent((60, 50), agent)
    assert not point_hits_agent((40, 80), agent)


def test_within_blast():
    assert within_blast((0, 0), 100, (60, 80))
    assert not within_blast((0, 0), 100, (61, 80))


# ═══════════════════════════════════════════
# Detector tests
# ═══════════════════════════════════════════

def test_detector_finds_hit():
    mover = _StubAgent(0, 0)
    target = _StubAgent(20, 0)
    detector = CollisionDetector()
    assert detector.find_hit(mover, [mover, target]) is target
    assert detector.collision_count == 1


def test_detector_ignores_self_and_clear_agents():
    mover = _StubAgent(0, 0)
    far = _StubAgent(200, 0)
    detector = CollisionDetector()
    assert detector.find_hit(mover, [mover, far]) is None
    assert detector.collision_count == 0


def test_detector_ignores_linked_agents():
    mover = _StubAgent(0, 0)
    partner = _StubAgent(20, 0)
    mover.linked.add(partner)
    partner.linked.add(mover)
    assert CollisionDetector().find_hit(mover, [partner]) is None


def test_detector_ignores_inactive_agents():
    mover = _StubAgent(0, 0)
    wreck = _StubAgent(20, 0, active=False)
    assert CollisionDetector().find_hit(mover, [wreck]) is None


# ─── Run all tests ──────────────────────
if __name__ == "__main__":
    tests = [
        test_inflate_rect,
        test_box_extends_behind_front,
        test_rotated_box,
        test_bounding_rect_covers_corners,
        test_point_hits_agent,
        test_within_blast,
        test_detector_finds_hit,
        test_detector_ignores_self_and_clear_agents,
        test_detector_ignores_linked_agents,
        test_detector_ignores_inactive_agents,
    ]
    passed = 0
    failed = 0
    for t in tests:
        try:
            t()
            print(f"  ✅ {t.__name__}")
            passed += 1
        except Exception as e:
            print(f"  ❌ {t.__name__}: {e}")
            failed += 1

    print(f"\n{'=' * 40}")
    print(f"Results: {passed} passed, {failed} failed")
    sys.exit(1 if failed > 0 else 0)
