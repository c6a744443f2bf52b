"""
Lane-Sketch – Collision Detection
═══════════════════════════════════════════════════════
Point-versus-box tests between agents sharing a road.

Every agent owns an oriented hit box: a rectangle *length* long and
*width* wide whose middle of the front edge sits at the agent's position,
rotated to the agent's heading. An agent collides when its position (its
front) enters another agent's box.

Collision methods:
    - AABB broad phase on the boxes' bounding rects
    - Exact oriented-box containment for the narrow phase
    - Circular blast test for detonations
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, TYPE_CHECKING

import pygame
from pygame.math import Vector2

if TYPE_CHECKING:
    from simulation.agent import TrafficAgent

logger = logging.getLogger("collision")


# ═══════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════

@dataclass
class OrientedBox:
    """A rotated rectangle anchored at the middle of its front edge."""
    front: Vector2
    angle: float      # radians
    length: float
    width: float

    @property
    def direction(self) -> Vector2:
        return Vector2(math.cos(self.angle), math.sin(self.angle))

    @property
    def center(self) -> Vector2:
        return self.front - self.direction * (self.length / 2.0)

    def corners(self) -> List[Vector2]:
        """Front-left, front-right, rear-right, rear-left."""
        forward = self.direction
        side = Vector2(-forward.y, forward.x) * (self.width / 2.0)
        rear = self.front - forward * self.length
        return [self.front - side, self.front + side, rear + side, rear - side]

    def contains(self, point) -> bool:
        """True if *point* is inside (or on the edge of) the box."""
        offset = Vector2(point) - self.center
        forward = self.direction
        along = offset.dot(forward)
        across = offset.dot(Vector2(-forward.y, forward.x))
        return abs(along) <= self.length / 2.0 and abs(across) <= self.width / 2.0

    def bounding_rect(self) -> pygame.Rect:
        xs = [c.x for c in self.corners()]
        ys = [c.y for c in self.corners()]
        left = math.floor(min(xs))
        top = math.floor(min(ys))
        return pygame.Rect(left, top, math.ceil(max(xs)) - left + 1, math.ceil(max(ys)) - top + 1)


# ═══════════════════════════════════════════════
# Low-level Geometry Helpers
# ═══════════════════════════════════════════════

def inflate_rect(rect: pygame.Rect, margin: int) -> pygame.Rect:
    """Return a copy of *rect* expanded by *margin* pixels on every side."""
    return pygame.Rect(
        rect.x - margin,
        rect.y - margin,
        rect.width + 2 * margin,
        rect.height + 2 * margin,
    )


def agent_box(agent: "TrafficAgent") -> OrientedBox:
    return OrientedBox(Vector2(agent.position), agent.angle, agent.length, agent.width)


def point_hits_agent(point, agent: "TrafficAgent") -> bool:
    """Broad phase on the bounding rect, then the exact box test."""
    box = agent_box(agent)
    x, y = point
    if not inflate_rect(box.bounding_rect(), 1).collidepoint(int(x), int(y)):
        return False
    return box.contains(point)


def within_blast(center, radius: float, point) -> bool:
    return Vector2(center).distance_to(Vector2(point)) <= radius


# ═══════════════════════════════════════════════
# CollisionDetector
# ═══════════════════════════════════════════════

class CollisionDetector:
    """
    Stateless apart from a running count of the collisions it reported.

    Usage per agent tick:
        other = detector.find_hit(agent, agent.network.agents())
    """

    def __init__(self):
        self._collision_count = 0

    @property
    def collision_count(self) -> int:
        return self._collision_count

    def find_hit(self, agent: "TrafficAgent", others: Iterable["TrafficAgent"]) -> Optional["TrafficAgent"]:
        """
        First live agent (other than *agent* and the agents linked to it)
        whose box contains *agent*'s position.
        """
        for other in others:
            if other is agent or other in agent.linked or not other.is_active:
                continue
            if point_hits_agent(agent.position, other):
                self._collision_count += 1
                logger.debug(
                    "Collision: A%d front at (%.1f, %.1f) inside A%d",
                    agent.id, agent.position.x, agent.position.y, other.id,
                )
                return other
        return None
