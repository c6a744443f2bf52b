"""
Lane-Sketch – Spawners
Tick-driven spawn timers, the per-lane lead spawner, and the delayed
follower spawn that trails a lead agent onto its lane.
"""

from __future__ import annotations

import logging
import math
import random
from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING

from config.settings import (
    EXPLOSIVE_ROLL,
    FOLLOW_GAP,
    LANE_SPAWN_MAX_TICKS,
    LANE_SPAWN_MIN_TICKS,
    POISON_ROLL,
    SPAWN_ZONE_LENGTH,
)
from simulation.agent import Carrying, PayloadKind, Plain, TimedExplosive, TrafficAgent
from simulation.road_network import LaneNetwork

if TYPE_CHECKING:
    from simulation.world import SimulationWorld

logger = logging.getLogger("simulation.spawner")


# ═══════════════════════════════════════════════
# Timers
# ═══════════════════════════════════════════════

class Spawner:
    """
    Calls run() every time its countdown expires.

    A spawn count below 1 means unlimited; otherwise the spawner is done
    after that many runs.
    """

    def __init__(self, spawn_count: int = 0, action: Optional[Callable[[], None]] = None):
        self.spawns_left = spawn_count if spawn_count >= 1 else -1
        self.timer = 0
        self.is_done = False
        self._action = action

    def reset_timer(self) -> None:
        raise NotImplementedError

    def run(self) -> None:
        if self._action is None:
            raise NotImplementedError
        self._action()

    def act(self) -> None:
        if self.is_done:
            return
        self.timer -= 1
        if self.timer > 0:
            return
        self.run()
        if self.spawns_left < 0:
            self.reset_timer()
            return
        self.spawns_left -= 1
        if self.spawns_left > 0:
            self.reset_timer()
            return
        self.is_done = True


class FixedSpawner(Spawner):
    """Runs every *interval* ticks."""

    def __init__(self, interval: int, spawn_count: int = 0, action=None):
        super().__init__(spawn_count, action)
        self.interval = interval
        self.reset_timer()

    def reset_timer(self) -> None:
        self.timer = self.interval


class RandomSpawner(Spawner):
    """Waits a random number of ticks in [min_ticks, max_ticks) between runs."""

    def __init__(self, min_ticks: int, max_ticks: int, spawn_count: int = 0,
                 rng: Optional[random.Random] = None, action=None):
        super().__init__(spawn_count, action)
        self.min_ticks = min_ticks
        self.max_ticks = max_ticks
        self.rng = rng or random.Random()
        self.reset_timer()

    def reset_timer(self) -> None:
        self.timer = int(self.rng.random() * (self.max_ticks - self.min_ticks)) + self.min_ticks


# ═══════════════════════════════════════════════
# Follower spawn state machine
# ═══════════════════════════════════════════════

class SpawnState(Enum):
    WAITING_FOR_LEAD = "WAITING_FOR_LEAD"
    SPAWNED = "SPAWNED"
    CANCELLED = "CANCELLED"


def roll_follower_behavior(rng, lane_length: float, speed: float):
    """1 in 5 explosive, 1 in 5 poison, otherwise candy."""
    roll = rng.random()
    if roll < EXPLOSIVE_ROLL:
        fuse = int(rng.random() * lane_length / speed) if speed > 0 else 0
        return TimedExplosive(remaining_ticks=max(1, fuse))
    if roll < EXPLOSIVE_ROLL + POISON_ROLL:
        return Carrying(PayloadKind.POISON)
    return Carrying(PayloadKind.CANDY)


class FollowerSpawn:
    """
    Puts a payload agent behind *lead* once the lead has moved one body
    length (plus a gap) clear of the lane start.

    WAITING_FOR_LEAD ──(delay elapsed, lead alive)──▶ SPAWNED
            │
            └──────────(lead gone)────────────────▶ CANCELLED
    """

    def __init__(self, world: "SimulationWorld", lead: TrafficAgent,
                 rng: Optional[random.Random] = None, gap: float = FOLLOW_GAP):
        self.world = world
        self.lead = lead
        self.network = lead.network
        self.rng = rng or random.Random()
        self.state = SpawnState.WAITING_FOR_LEAD
        self.ticks_left = math.ceil((lead.length + gap) / lead.speed) if lead.speed > 0 else 1
        self.follower: Optional[TrafficAgent] = None

    @property
    def is_finished(self) -> bool:
        return self.state != SpawnState.WAITING_FOR_LEAD

    def cancel(self) -> None:
        if self.state == SpawnState.WAITING_FOR_LEAD:
            self.state = SpawnState.CANCELLED
            logger.debug("Follower spawn for A%d cancelled", self.lead.id)

    def act(self) -> None:
        if self.state != SpawnState.WAITING_FOR_LEAD:
            return
        if not self.lead.is_active:
            self.cancel()
            return
        self.ticks_left -= 1
        if self.ticks_left > 0:
            return

        lead = self.lead
        behavior = roll_follower_behavior(
            self.rng, self.network.lane_length(lead.lane), lead.speed,
        )
        self.follower = self.world.spawn_agent(
            self.network, lead.lane,
            target_speed=lead.target_speed, speed=lead.speed,
            behavior=behavior,
        )
        self.follower.link(lead)
        self.state = SpawnState.SPAWNED


# ═══════════════════════════════════════════════
# Lane spawner
# ═══════════════════════════════════════════════

class LaneSpawner(RandomSpawner):
    """Every 120-480 ticks, sends a lead truck (and later its payload) down one lane."""

    def __init__(self, world: "SimulationWorld", network: LaneNetwork, lane: int,
                 rng: Optional[random.Random] = None):
        self.world = world
        self.network = network
        self.lane = lane
        super().__init__(LANE_SPAWN_MIN_TICKS, LANE_SPAWN_MAX_TICKS, rng=rng)

    def spawn_zone_clear(self) -> bool:
        for agent in self.network.agents_in_lane(self.lane):
            if agent.distance < SPAWN_ZONE_LENGTH:
                return False
        return True

    def run(self) -> None:
        if not self.world.can_spawn() or not self.spawn_zone_clear():
            return
        lead = self.world.spawn_agent(self.network, self.lane, behavior=Plain())
        self.world.add_follower_request(FollowerSpawn(self.world, lead, self.rng))
