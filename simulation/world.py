"""
Lane-Sketch – Simulation World
Owns the finished roads, the live agents and the spawners, and advances
everything one cooperative tick at a time.
"""

import logging
import random
from typing import Dict, List, Optional

from config.settings import BLAST_RADIUS, MAX_AGENTS
from geometry.errors import InvalidArgument
from simulation.agent import AgentStatus, TrafficAgent
from simulation.collision import CollisionDetector, within_blast
from simulation.road_network import LaneNetwork
from simulation.spawner import FollowerSpawn, LaneSpawner, Spawner

logger = logging.getLogger("simulation.world")


class SimulationWorld:
    """
    Tick loop:
        1. spawners act
        2. pending follower spawns act
        3. every agent advances one tick (over a snapshot of the agent list)
        4. detonations destroy nearby agents on the same road
        5. every agent that is no longer continuing is swept out
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        spawning: bool = True,
        max_agents: int = MAX_AGENTS,
        blast_radius: float = BLAST_RADIUS,
    ):
        self.rng = rng or random.Random()
        self.spawning = spawning
        self.max_agents = max_agents
        self.blast_radius = blast_radius

        from analytics.metrics import MetricsCollector
        self.detector = CollisionDetector()
        self.metrics = MetricsCollector()

        self.roads: List[LaneNetwork] = []
        self.agents: List[TrafficAgent] = []
        self.spawners: List[Spawner] = []
        self.follower_requests: List[FollowerSpawn] = []
        self._road_spawners: Dict[LaneNetwork, List[Spawner]] = {}
        self.tick = 0

    # ─── roads ────────────────────────────
    def add_road(self, road: LaneNetwork) -> None:
        if not road.is_finished:
            raise InvalidArgument("only finished roads can carry traffic")
        if road in self.roads:
            return
        self.roads.append(road)
        self._road_spawners[road] = []
        if self.spawning:
            for lane in range(road.lane_count):
                spawner = LaneSpawner(self, road, lane, self.rng)
                self.add_spawner(spawner)
                self._road_spawners[road].append(spawner)

    def remove_road(self, road: LaneNetwork) -> None:
        """Drop a road together with its agents, spawners and pending spawns."""
        if road not in self.roads:
            return
        for agent in road.agents():
            agent.status = AgentStatus.DESTROYED
            agent.despawn()
        self.agents = [a for a in self.agents if a.network is not road]

        for spawner in self._road_spawners.pop(road, []):
            self.remove_spawner(spawner)
        for request in self.follower_requests:
            if request.network is road:
                request.cancel()
        self.follower_requests = [r for r in self.follower_requests if not r.is_finished]
        self.roads.remove(road)

    def road_at(self, x: float, y: float) -> Optional[LaneNetwork]:
        """Topmost (most recently added) road under (x, y)."""
        for road in reversed(self.roads):
            if road.contains_point(x, y):
                return road
        return None

    # ─── spawning ─────────────────────────
    def add_spawner(self, spawner: Spawner) -> None:
        self.spawners.append(spawner)

    def remove_spawner(self, spawner: Spawner) -> None:
        if spawner in self.spawners:
            self.spawners.remove(spawner)

    def add_follower_request(self, request: FollowerSpawn) -> None:
        self.follower_requests.append(request)

    def can_spawn(self) -> bool:
        return len(self.agents) < self.max_agents

    def spawn_agent(self, road: LaneNetwork, lane: int, distance: float = 0.0, **kwargs) -> TrafficAgent:
        """Put a new agent on *lane* of *road* (which must be in this world)."""
        if road not in self.roads:
            raise InvalidArgument("road is not part of this world")
        kwargs.setdefault("rng", self.rng)
        agent = TrafficAgent(road, lane, distance, detector=self.detector, **kwargs)
        self.agents.append(agent)
        return agent

    # ─── step ─────────────────────────────
    def step(self) -> dict:
        """Advance the world by one tick and report what happened."""
        self.tick += 1

        for spawner in list(self.spawners):
            spawner.act()
        self.spawners = [s for s in self.spawners if not s.is_done]

        for request in list(self.follower_requests):
            request.act()
        self.follower_requests = [r for r in self.follower_requests if not r.is_finished]

        for agent in list(self.agents):
            agent.advance_one_tick()

        for agent in list(self.agents):
            if agent.status == AgentStatus.DETONATED:
                self._detonate(agent)

        # Sweep
        ended = {s: 0 for s in AgentStatus if s != AgentStatus.CONTINUING}
        survivors = []
        for agent in self.agents:
            if agent.is_active:
                survivors.append(agent)
                continue
            agent.despawn()
            ended[agent.status] += 1
            self.metrics.record_outcome(agent, agent.status)
        self.agents = survivors

        mean_speed = self.metrics.record_tick(self.agents)
        return {
            "tick": self.tick,
            "active": len(self.agents),
            "arrived": ended[AgentStatus.REACHED_END],
            "collided": ended[AgentStatus.COLLIDED],
            "detonated": ended[AgentStatus.DETONATED],
            "destroyed": ended[AgentStatus.DESTROYED],
            "lane_changes": self.metrics.lane_changes + sum(a.lane_changes for a in self.agents),
            "mean_speed": mean_speed,
        }

    def _detonate(self, bomb: TrafficAgent) -> None:
        victims = [
            other for other in bomb.network.agents()
            if other is not bomb and other.is_active
            and within_blast(bomb.position, self.blast_radius, other.position)
        ]
        # Linked partners go down with the agents they are tied to
        for agent in [bomb] + victims:
            for partner in agent.linked:
                if partner.is_active and partner not in victims:
                    victims.append(partner)
        for victim in victims:
            victim.status = AgentStatus.DESTROYED
        logger.debug("A%d detonated at (%.1f, %.1f), %d destroyed",
                     bomb.id, bomb.position.x, bomb.position.y, len(victims))

    def reset(self) -> None:
        """Remove every road, agent and spawner and restart the clock."""
        for agent in self.agents:
            agent.despawn()
        self.agents.clear()
        self.spawners.clear()
        self.follower_requests.clear()
        self._road_spawners.clear()
        self.roads.clear()
        self.detector = CollisionDetector()
        self.metrics.reset()
        self.tick = 0
