from .road_network import LaneNetwork
from .agent import (
    AgentStatus, PayloadKind, Plain, Carrying, TimedExplosive,
    CAPABILITIES, TrafficAgent,
)
from .collision import CollisionDetector, OrientedBox
from .spawner import Spawner, FixedSpawner, RandomSpawner, LaneSpawner, FollowerSpawn, SpawnState
from .world import SimulationWorld
