"""
Lane-Sketch – Traffic Agents
A single agent type that follows one lane of a road, slows behind slower
traffic, changes lanes around it and reports how each tick ended.
Agent flavours (plain truck, payload carrier, timed explosive) are plain
behavior values dispatched through a capability table.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Set, Union

from pygame.math import Vector2

from config.settings import (
    ACCELERATION_RATE,
    AGENT_LENGTH,
    AGENT_SPEED_MAX,
    AGENT_SPEED_MIN,
    AGENT_WIDTH,
    HEADING_SMOOTHING,
    LANE_CHANGE_COOLDOWN,
    SLOWDOWN_DISTANCE,
)
from simulation.collision import CollisionDetector
from simulation.road_network import LaneNetwork

logger = logging.getLogger("simulation.agent")


# ═══════════════════════════════════════════════
# Status / Behavior
# ═══════════════════════════════════════════════

class AgentStatus(Enum):
    """How an agent's latest tick ended."""
    CONTINUING = "CONTINUING"
    REACHED_END = "REACHED_END"    # ran off the end of its lane
    COLLIDED = "COLLIDED"          # hit, or was hit by, another agent
    DETONATED = "DETONATED"        # timed explosive went off
    DESTROYED = "DESTROYED"        # caught in a blast or removed with its road


class PayloadKind(Enum):
    CANDY = "CANDY"
    POISON = "POISON"


@dataclass(frozen=True)
class Plain:
    pass


@dataclass(frozen=True)
class Carrying:
    payload: PayloadKind


@dataclass
class TimedExplosive:
    remaining_ticks: int


Behavior = Union[Plain, Carrying, TimedExplosive]


def _no_tick(agent: "TrafficAgent") -> Optional[AgentStatus]:
    return None


def _countdown(agent: "TrafficAgent") -> Optional[AgentStatus]:
    agent.behavior.remaining_ticks -= 1
    if agent.behavior.remaining_ticks <= 0:
        return AgentStatus.DETONATED
    return None


@dataclass(frozen=True)
class Capabilities:
    on_tick: Callable[["TrafficAgent"], Optional[AgentStatus]]
    delivers: bool      # reaching the lane end counts as a delivery


CAPABILITIES: Dict[type, Capabilities] = {
    Plain: Capabilities(on_tick=_no_tick, delivers=False),
    Carrying: Capabilities(on_tick=_no_tick, delivers=True),
    TimedExplosive: Capabilities(on_tick=_countdown, delivers=False),
}


def behavior_name(behavior: Behavior) -> str:
    """Short label used for colours and metrics."""
    if isinstance(behavior, Carrying):
        return behavior.payload.value.lower()
    if isinstance(behavior, TimedExplosive):
        return "explosive"
    return "plain"


# ═══════════════════════════════════════════════
# TrafficAgent Class
# ═══════════════════════════════════════════════

# Global agent ID counter
_agent_id_counter = 0


class TrafficAgent:
    """
    One vehicle on one lane of a LaneNetwork.

    Per tick (advance_one_tick):
        1. advance the tracer by the current speed
        2. run the behavior hook
        3. check for a collision with any other agent on the road
        4. re-evaluate the limiting (slower, ahead) agent
        5. adjust speed
        6. try a lane change while limited
    """

    def __init__(
        self,
        network: LaneNetwork,
        lane: int,
        distance: float = 0.0,
        target_speed: Optional[float] = None,
        speed: Optional[float] = None,
        length: float = AGENT_LENGTH,
        width: float = AGENT_WIDTH,
        behavior: Optional[Behavior] = None,
        slowdown_distance: float = SLOWDOWN_DISTANCE,
        acceleration: float = ACCELERATION_RATE,
        lane_change_cooldown: int = LANE_CHANGE_COOLDOWN,
        detector: Optional[CollisionDetector] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            network:      road the agent drives on (not owned)
            lane:         starting lane index
            distance:     starting distance along that lane
            target_speed: cruising speed; drawn at random when omitted
            speed:        current speed; defaults to the target speed
        """
        # Validates lane and distance before anything is registered
        tracer = network.tracer_for(lane, distance)

        global _agent_id_counter
        self.id = _agent_id_counter
        _agent_id_counter += 1

        rng = rng or random
        self.network = network
        self.lane = lane
        self.tracer = tracer
        self.distance = tracer.distance_travelled
        self.target_speed = (
            target_speed if target_speed is not None
            else rng.uniform(AGENT_SPEED_MIN, AGENT_SPEED_MAX)
        )
        self.speed = self.target_speed if speed is None else speed
        self.length = length
        self.width = width
        self.behavior: Behavior = behavior if behavior is not None else Plain()

        self.slowdown_distance = slowdown_distance
        self.acceleration = acceleration
        self.lane_change_cooldown = lane_change_cooldown
        self.detector = detector or CollisionDetector()

        self.status = AgentStatus.CONTINUING
        self.limiting: Optional["TrafficAgent"] = None
        self.linked: Set["TrafficAgent"] = set()
        self.cooldown = 0
        self.lane_changes = 0
        self.ticks_alive = 0

        self.position = tracer.current_point()
        self.angle = network.start_angle() if distance == 0 else tracer.heading()

        network.add_agent(self, lane)

    def __repr__(self):
        return (f"TrafficAgent(A{self.id}, {behavior_name(self.behavior)}, lane={self.lane}, "
                f"d={self.distance:.1f}, v={self.speed:.2f}, {self.status.name})")

    @property
    def is_active(self) -> bool:
        return self.status == AgentStatus.CONTINUING

    @property
    def capabilities(self) -> Capabilities:
        return CAPABILITIES[type(self.behavior)]

    def link(self, other: "TrafficAgent") -> None:
        """Tie a lead and its follower: they never collide with each other."""
        self.linked.add(other)
        other.linked.add(self)

    def despawn(self) -> None:
        """Leave the road. Safe to call more than once."""
        self.network.remove_agent(self)
        self.limiting = None

    # ────────────────────────────────────────────
    # Per-tick update
    # ────────────────────────────────────────────

    def advance_one_tick(self) -> AgentStatus:
        # Another agent may already have ended this one during the tick
        if not self.is_active:
            return self.status

        self.ticks_alive += 1
        if self.cooldown > 0:
            self.cooldown -= 1

        # ── 1. Advance ──
        previous = self.position
        self.position = self.tracer.advance(self.speed)
        self.distance = self.tracer.distance_travelled
        if self.tracer.is_done():
            self.status = AgentStatus.REACHED_END
            return self.status
        self._turn_towards(previous)

        # ── 2. Behavior hook ──
        outcome = self.capabilities.on_tick(self)
        if outcome is not None:
            self.status = outcome
            logger.debug("A%d %s at (%.1f, %.1f)", self.id, outcome.name,
                         self.position.x, self.position.y)
            return self.status

        # ── 3. Collision ──
        other = self.detector.find_hit(self, self.network.agents())
        if other is not None:
            self.status = AgentStatus.COLLIDED
            other.status = AgentStatus.COLLIDED
            return self.status

        # ── 4-5. Car following ──
        self._update_limiting()
        self._update_speed()

        # ── 6. Lane change ──
        if self.limiting is not None and self.cooldown == 0:
            self._try_lane_change()

        return self.status

    def _turn_towards(self, previous: Vector2) -> None:
        delta = self.position - previous
        if delta.length_squared() == 0.0:
            return
        target = math.atan2(delta.y, delta.x)
        # Wrap so the smoothed angle turns the short way round
        if abs(target - self.angle) > abs(target - (self.angle - 2 * math.pi)):
            self.angle -= 2 * math.pi
        elif abs(target - self.angle) > abs(target - (self.angle + 2 * math.pi)):
            self.angle += 2 * math.pi
        self.angle += (target - self.angle) * HEADING_SMOOTHING

    # ────────────────────────────────────────────
    # Car following
    # ────────────────────────────────────────────

    def _still_limits(self, other: Optional["TrafficAgent"]) -> bool:
        if other is None or not other.is_active:
            return False
        if other.network is not self.network or other.lane != self.lane:
            return False
        gap = other.distance - self.distance
        return 0.0 < gap <= self.slowdown_distance and other.speed < self.target_speed

    def _update_limiting(self) -> None:
        """Keep the current limiting agent if still valid, else search for one."""
        if self._still_limits(self.limiting):
            return
        self.limiting = self.find_limiting_agent()

    def find_limiting_agent(self) -> Optional["TrafficAgent"]:
        """Closest slower agent strictly ahead in this lane, within slowdown distance."""
        best = None
        best_gap = None
        for other in self.network.agents_in_lane(self.lane):
            if other is self or not self._still_limits(other):
                continue
            gap = other.distance - self.distance
            if best_gap is None or gap < best_gap:
                best = other
                best_gap = gap
        return best

    def _update_speed(self) -> None:
        if self.limiting is not None:
            self.speed = min(self.speed + self.acceleration, self.limiting.speed)
        elif self.speed < self.target_speed:
            self.speed = min(self.target_speed, self.speed + self.acceleration)
        else:
            self.speed = self.target_speed

    # ────────────────────────────────────────────
    # Lane changes
    # ────────────────────────────────────────────

    def _lane_is_clear(self, lane: int, distance: float) -> bool:
        # Whoever is behind the gap may close it by its own speed this tick
        high = distance + self.slowdown_distance
        for other in self.network.agents_in_lane(lane):
            if other is self:
                continue
            if distance - self.length - other.speed <= other.distance <= high:
                return False
        return True

    def _try_lane_change(self) -> bool:
        """Move to the first clear neighbouring lane (left, then right)."""
        for lane in (self.lane - 1, self.lane + 1):
            if not 0 <= lane < self.network.lane_count:
                continue
            candidate = self.network.adjacent_distance(self.lane, self.distance, lane)
            if candidate is None:
                continue
            if candidate >= self.network.lane_length(lane):
                continue
            if not self._lane_is_clear(lane, candidate):
                continue
            self._switch_lane(lane, candidate)
            return True
        return False

    def _switch_lane(self, lane: int, distance: float) -> None:
        tracer = self.network.tracer_for(lane, distance)
        self.network.move_agent_to_lane(self, lane)
        logger.debug("A%d lane %d -> %d at d=%.1f", self.id, self.lane, lane, distance)
        self.lane = lane
        self.tracer = tracer
        self.distance = tracer.distance_travelled
        self.position = tracer.current_point()
        self.limiting = None
        self.cooldown = self.lane_change_cooldown
        self.lane_changes += 1
