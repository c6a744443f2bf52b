import sys
import os
import random
import unittest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config.settings import AGENT_SPEED_MAX, AGENT_SPEED_MIN, LANE_CHANGE_COOLDOWN
from geometry.errors import InvalidArgument
from simulation.agent import (
    CAPABILITIES,
    AgentStatus,
    Carrying,
    PayloadKind,
    Plain,
    TimedExplosive,
    TrafficAgent,
    behavior_name,
)
from simulation.road_network import LaneNetwork


def _straight_road(lanes=1, length=1000):
    return LaneNetwork.from_points([(0, 0), (length / 2, 0), (length, 0)], lanes)


class TestCarFollowing(unittest.TestCase):
    def setUp(self):
        self.road = _straight_road()

    def _small(self, distance, target):
        # Short agents so the two start well clear of each other's boxes
        return TrafficAgent(self.road, 0, distance, target_speed=target,
                            length=5, width=5, slowdown_distance=30)

    def test_single_agent_moves_at_target_speed(self):
        agent = TrafficAgent(self.road, 0, target_speed=2.0)
        status = agent.advance_one_tick()
        self.assertEqual(status, AgentStatus.CONTINUING)
        self.assertAlmostEqual(agent.distance, 2.0)
        self.assertAlmostEqual(agent.position.x, 2.0)

    def test_follower_matches_slower_leader(self):
        rear = self._small(0.0, 2.0)
        front = self._small(10.0, 1.0)

        for _ in range(200):
            self.assertEqual(rear.advance_one_tick(), AgentStatus.CONTINUING)
            self.assertEqual(front.advance_one_tick(), AgentStatus.CONTINUING)
            if rear.limiting is not None:
                self.assertLessEqual(rear.speed, rear.limiting.speed)
            self.assertGreater(front.distance - rear.distance, front.length)

        self.assertIs(rear.limiting, front)
        self.assertAlmostEqual(rear.speed, front.speed)
        self.assertAlmostEqual(front.distance - rear.distance, 9.0)

    def test_distant_leader_does_not_limit(self):
        rear = self._small(0.0, 2.0)
        self._small(100.0, 1.0)
        rear.advance_one_tick()
        self.assertIsNone(rear.limiting)
        self.assertAlmostEqual(rear.speed, 2.0)

    def test_faster_leader_does_not_limit(self):
        rear = self._small(0.0, 1.0)
        self._small(10.0, 2.0)
        rear.advance_one_tick()
        self.assertIsNone(rear.limiting)

    def test_speed_recovers_gradually(self):
        agent = TrafficAgent(self.road, 0, target_speed=2.0, speed=0.5)
        agent.advance_one_tick()
        self.assertAlmostEqual(agent.speed, 0.55)
        for _ in range(40):
            agent.advance_one_tick()
            self.assertLessEqual(agent.speed, agent.target_speed)
        self.assertAlmostEqual(agent.speed, 2.0)

    def test_leader_leaving_releases_follower(self):
        rear = self._small(0.0, 2.0)
        front = self._small(10.0, 1.0)
        rear.advance_one_tick()
        self.assertIs(rear.limiting, front)

        front.status = AgentStatus.DESTROYED
        front.despawn()
        rear.advance_one_tick()
        self.assertIsNone(rear.limiting)
        self.assertAlmostEqual(rear.speed, 1.05)

    def test_random_target_speed_in_range(self):
        rng = random.Random(3)
        for _ in range(20):
            agent = TrafficAgent(self.road, 0, rng=rng)
            self.assertGreaterEqual(agent.target_speed, AGENT_SPEED_MIN)
            self.assertLessEqual(agent.target_speed, AGENT_SPEED_MAX)
            self.assertEqual(agent.speed, agent.target_speed)

    def test_ids_are_unique(self):
        a = TrafficAgent(self.road, 0, target_speed=1.0)
        b = TrafficAgent(self.road, 0, target_speed=1.0)
        self.assertNotEqual(a.id, b.id)


class TestLaneEnd(unittest.TestCase):
    def setUp(self):
        self.road = _straight_road()

    def test_reaches_end(self):
        agent = TrafficAgent(self.road, 0, 996.0, target_speed=2.0)
        ticks = 0
        while agent.advance_one_tick() == AgentStatus.CONTINUING:
            ticks += 1
            self.assertLess(ticks, 5)
        self.assertEqual(agent.status, AgentStatus.REACHED_END)
        self.assertAlmostEqual(agent.position.x, 1000.0)
        # Finished agents don't move any more
        self.assertEqual(agent.advance_one_tick(), AgentStatus.REACHED_END)

    def test_invalid_lane_rejected(self):
        with self.assertRaises(InvalidArgument):
            TrafficAgent(self.road, 1, target_speed=1.0)
        self.assertEqual(self.road.agents(), [])


class TestLaneChange(unittest.TestCase):
    def setUp(self):
        self.road = _straight_road(lanes=2)
        self.slow = TrafficAgent(self.road, 0, 60.0, target_speed=0.5)
        self.rear = TrafficAgent(self.road, 0, 0.0, target_speed=2.0)

    def test_overtakes_into_free_lane(self):
        self.rear.advance_one_tick()

        self.assertEqual(self.rear.lane, 1)
        self.assertEqual(self.rear.lane_changes, 1)
        self.assertEqual(self.rear.cooldown, LANE_CHANGE_COOLDOWN)
        self.assertIsNone(self.rear.limiting)
        self.assertIn(self.rear, self.road.agents_in_lane(1))
        self.assertNotIn(self.rear, self.road.agents_in_lane(0))
        self.assertAlmostEqual(self.rear.position.y, 25.0)
        self.assertAlmostEqual(self.rear.distance, 2.0, delta=1.0)

    def test_speed_recovers_after_overtaking(self):
        self.rear.advance_one_tick()
        self.assertAlmostEqual(self.rear.speed, 0.5)
        self.rear.advance_one_tick()
        self.assertAlmostEqual(self.rear.speed, 0.55)

    def test_occupied_lane_blocks_change(self):
        TrafficAgent(self.road, 1, 30.0, target_speed=0.5)
        self.rear.advance_one_tick()
        self.assertEqual(self.rear.lane, 0)
        self.assertEqual(self.rear.lane_changes, 0)
        self.assertIs(self.rear.limiting, self.slow)
        self.assertAlmostEqual(self.rear.speed, 0.5)

    def test_no_change_during_cooldown(self):
        self.rear.cooldown = 10
        self.rear.advance_one_tick()
        self.assertEqual(self.rear.lane, 0)
        self.assertEqual(self.rear.cooldown, 9)

    def test_fast_agent_just_behind_gap_blocks_change(self):
        road = _straight_road(lanes=2)
        TrafficAgent(road, 0, 160.0, target_speed=0.5)
        rear = TrafficAgent(road, 0, 100.0, target_speed=2.0)
        # Just outside one agent length behind the gap, but closing at 3 per tick
        TrafficAgent(road, 1, 53.0, target_speed=3.0)
        rear.advance_one_tick()
        self.assertEqual(rear.lane, 0)
        self.assertEqual(rear.lane_changes, 0)

    def test_agent_well_behind_gap_allows_change(self):
        road = _straight_road(lanes=2)
        TrafficAgent(road, 0, 160.0, target_speed=0.5)
        rear = TrafficAgent(road, 0, 100.0, target_speed=2.0)
        TrafficAgent(road, 1, 45.0, target_speed=3.0)
        rear.advance_one_tick()
        self.assertEqual(rear.lane, 1)
        self.assertEqual(rear.lane_changes, 1)


class TestCollisionAndBehavior(unittest.TestCase):
    def setUp(self):
        self.road = _straight_road()

    def test_front_entering_box_collides_both(self):
        front = TrafficAgent(self.road, 0, 20.0, target_speed=0.5)
        rear = TrafficAgent(self.road, 0, 0.0, target_speed=2.0)

        self.assertEqual(rear.advance_one_tick(), AgentStatus.COLLIDED)
        self.assertEqual(front.status, AgentStatus.COLLIDED)
        self.assertEqual(rear.detector.collision_count, 1)
        # The struck agent's own tick reports the outcome without moving
        self.assertEqual(front.advance_one_tick(), AgentStatus.COLLIDED)
        self.assertAlmostEqual(front.distance, 20.0)

    def test_linked_agents_never_collide(self):
        front = TrafficAgent(self.road, 0, 20.0, target_speed=0.5)
        rear = TrafficAgent(self.road, 0, 0.0, target_speed=2.0)
        rear.link(front)

        self.assertEqual(rear.advance_one_tick(), AgentStatus.CONTINUING)
        self.assertIn(front, rear.linked)
        self.assertIn(rear, front.linked)

    def test_timed_explosive_detonates(self):
        bomb = TrafficAgent(self.road, 0, target_speed=1.0, behavior=TimedExplosive(3))
        self.assertEqual(bomb.advance_one_tick(), AgentStatus.CONTINUING)
        self.assertEqual(bomb.advance_one_tick(), AgentStatus.CONTINUING)
        self.assertEqual(bomb.advance_one_tick(), AgentStatus.DETONATED)
        self.assertFalse(bomb.is_active)

    def test_capability_table(self):
        self.assertFalse(CAPABILITIES[Plain].delivers)
        self.assertTrue(CAPABILITIES[Carrying].delivers)
        self.assertFalse(CAPABILITIES[TimedExplosive].delivers)

        agent = TrafficAgent(self.road, 0, target_speed=1.0,
                             behavior=Carrying(PayloadKind.POISON))
        self.assertTrue(agent.capabilities.delivers)

    def test_behavior_names(self):
        self.assertEqual(behavior_name(Plain()), "plain")
        self.assertEqual(behavior_name(Carrying(PayloadKind.CANDY)), "candy")
        self.assertEqual(behavior_name(Carrying(PayloadKind.POISON)), "poison")
        self.assertEqual(behavior_name(TimedExplosive(5)), "explosive")


if __name__ == '__main__':
    unittest.main()
