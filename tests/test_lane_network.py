"""
Lane-Sketch – Lane Network Tests
═════════════════════════════════
Road construction from pointer samples, lane lengths, adjacent-lane
distance mapping, knots and the per-lane agent registry.

Run: python -m pytest tests/test_lane_network.py -v
"""

import math
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pygame
import pytest
from pygame.math import Vector2

from geometry.curve import distance_to_polyline, to_array
from geometry.errors import AlreadyFinalized, InvalidArgument
from geometry.offset import CurveOffsetSet
from simulation.agent import TrafficAgent
from simulation.road_network import LaneNetwork

pygame.init()


def _straight(lanes=2, length=200):
    return LaneNetwork.from_points([(0, 0), (length / 2, 0), (length, 0)], lanes)


# ═══════════════════════════════════════════
# Construction
# ═══════════════════════════════════════════

def test_zero_lanes_rejected():
    with pytest.raises(InvalidArgument):
        LaneNetwork(0)


def test_collinear_samples_give_full_length():
    road = LaneNetwork.from_points([(0, 0), (100, 0), (200, 0)], 1)
    assert road.lane_length(0) == pytest.approx(200.0, abs=1.0)
    assert road.knots == []
    assert road.crossings == []


def test_straight_road_lanes_sit_side_by_side():
    road = _straight(lanes=2)
    lower = road.lane_polyline(0)
    upper = road.lane_polyline(1)
    assert lower[0] == pytest.approx([0.0, -25.0])
    assert lower[-1] == pytest.approx([200.0, -25.0])
    assert upper[0] == pytest.approx([0.0, 25.0])
    assert road.lane_length(0) == pytest.approx(road.lane_length(1))
    assert len(road.separator_curves()) == 1


def test_single_lane_has_no_separators():
    assert _straight(lanes=1).separator_curves() == []


def test_duplicate_sample_ignored():
    road = LaneNetwork(1)
    assert road.add_point(10, 10)
    assert not road.add_point(10, 10)
    assert road.add_point(50, 10)


def test_finish_needs_two_distinct_points():
    road = LaneNetwork(2)
    road.add_point(5, 5)
    road.add_point(5, 5)
    with pytest.raises(InvalidArgument):
        road.finish()
    assert not road.is_finished


def test_finished_road_is_frozen():
    road = _straight()
    assert road.is_finished
    with pytest.raises(AlreadyFinalized):
        road.add_point(300, 0)
    with pytest.raises(AlreadyFinalized):
        road.finish()


def test_centerline_is_a_copy():
    road = _straight()
    centre = road.centerline
    segments = len(centre)
    centre.segments.clear()
    assert len(road.centerline) == segments


def test_road_end_angles():
    road = _straight()
    assert road.start_angle() == pytest.approx(0.0)
    assert road.end_angle() == pytest.approx(0.0)

    down = LaneNetwork.from_points([(0, 0), (0, 100), (0, 200)], 1)
    assert down.start_angle() == pytest.approx(math.pi / 2)
    assert down.end_angle() == pytest.approx(math.pi / 2)


def test_contains_point():
    road = _straight(lanes=2)
    assert road.contains_point(100, 0)
    assert road.contains_point(100, 40)
    assert not road.contains_point(100, 70)
    assert not LaneNetwork(1).contains_point(0, 0)


# ═══════════════════════════════════════════
# Knots and crossings
# ═══════════════════════════════════════════

def test_sharp_corner_knot_shortens_inner_lane():
    road = LaneNetwork.from_points([(0, 0), (100, 0), (100, 10), (100, 110)], 2)

    assert road.lane_knots(0) == []
    knots = road.lane_knots(1)
    assert len(knots) == 1
    assert knots[0].distance_to(Vector2(75, 22.4)) < 2.0
    assert road.knots == knots
    assert road.lane_length(1) < road.lane_length(0)


def test_reversal_swaps_lanes_instead_of_knotting():
    # At a 180° turn the offset lanes trade sides, so neither leg crosses
    # the other and nothing is spliced out
    road = LaneNetwork.from_points([(0, 0), (50, 0), (0, 0)], 2)
    assert road.knots == []
    for lane in range(road.lane_count):
        naive = sum(seg.chord_length() for seg in road.lane_curve(lane))
        assert naive == pytest.approx(100.0)
        assert road.lane_length(lane) < 2 * naive

    # A single lane on one side of the same centreline behaves the same way
    curves = CurveOffsetSet.with_offsets([25.0])
    curves.append_segment((0, 0), (12.5, 0), (25, 0))
    curves.append_segment((25, 0), (50, 0), (25, 0))
    curves.append_segment((25, 0), (12.5, 0), (0, 0))
    assert curves.knots == []
    end = curves.get_curve(0).end
    assert end.distance_to(Vector2(0, -25)) < 1e-6


def test_self_crossing_road_records_crossing():
    road = LaneNetwork.from_points([(0, 0), (200, 0), (200, 100), (60, 100), (60, -60)], 1)
    assert road.crossings
    assert any(hit.distance_to(Vector2(60, 0)) < 1.5 for hit in road.crossings)


def test_lanes_stay_at_lane_offset_on_gentle_curve():
    centre = Vector2(500, 500)
    samples = [centre + Vector2(400, 0).rotate_rad(i * 0.1) for i in range(12)]
    road = LaneNetwork.from_points(samples, 2)

    spine = to_array(road.centerline.flatten(0.25))
    assert road.knots == []
    for lane in range(2):
        for p in road.lane_curve(lane).flatten(0.25):
            assert distance_to_polyline(p, spine) == pytest.approx(25.0, abs=1.5)


# ═══════════════════════════════════════════
# Lane services
# ═══════════════════════════════════════════

def test_invalid_lane_rejected():
    road = _straight(lanes=2)
    with pytest.raises(InvalidArgument):
        road.lane_length(2)
    with pytest.raises(InvalidArgument):
        road.tracer_for(-1)
    with pytest.raises(InvalidArgument):
        road.adjacent_distance(0, 10.0, 3)


def test_tracer_for_starts_at_distance():
    road = _straight(lanes=2)
    tracer = road.tracer_for(0, 50.0)
    assert tracer.current_point().distance_to(Vector2(50, -25)) < 1e-6
    # Each call gives an independent tracer
    assert road.tracer_for(0).current_point().distance_to(Vector2(0, -25)) < 1e-6


def test_lane_polyline_cached_after_finish():
    road = _straight()
    assert road.lane_polyline(0) is road.lane_polyline(0)


@pytest.mark.parametrize("distance", [10.0, 50.0, 120.0, 190.0])
def test_adjacent_distance_round_trip(distance):
    road = _straight(lanes=2)
    across = road.adjacent_distance(0, distance, 1)
    back = road.adjacent_distance(1, across, 0)
    assert across == pytest.approx(distance, abs=1.0)
    assert back == pytest.approx(distance, abs=1.0)


def test_adjacent_distance_to_same_lane():
    road = _straight(lanes=3)
    assert road.adjacent_distance(1, 75.0, 1) == pytest.approx(75.0, abs=1.0)


def test_adjacent_distance_two_lanes_over():
    road = _straight(lanes=3)
    assert road.adjacent_distance(0, 75.0, 2) == pytest.approx(75.0, abs=1.0)


# ═══════════════════════════════════════════
# Agent registry
# ═══════════════════════════════════════════

def test_agents_register_per_lane():
    road = _straight(lanes=2)
    a = TrafficAgent(road, 0, target_speed=1.0)
    b = TrafficAgent(road, 1, target_speed=1.0)

    assert road.agents_in_lane(0) == [a]
    assert road.agents_in_lane(1) == [b]
    assert set(road.agents()) == {a, b}

    road.move_agent_to_lane(a, 1)
    assert road.agents_in_lane(0) == []
    assert road.agents_in_lane(1) == [b, a]

    road.remove_agent(a)
    road.remove_agent(a)
    assert road.agents() == [b]


def test_agent_from_another_road_cannot_move_lanes():
    road = _straight(lanes=2)
    other = _straight(lanes=2)
    stranger = TrafficAgent(other, 0, target_speed=1.0)
    with pytest.raises(InvalidArgument):
        road.move_agent_to_lane(stranger, 1)


def test_agent_on_invalid_lane_not_registered():
    road = _straight(lanes=2)
    with pytest.raises(InvalidArgument):
        TrafficAgent(road, 5, target_speed=1.0)
    assert road.agents() == []


# ─── Run all tests ──────────────────────
if __name__ == "__main__":
    tests = [
        test_zero_lanes_rejected,
        test_collinear_samples_give_full_length,
        test_straight_road_lanes_sit_side_by_side,
        test_single_lane_has_no_separators,
        test_duplicate_sample_ignored,
        test_finish_needs_two_distinct_points,
        test_finished_road_is_frozen,
        test_centerline_is_a_copy,
        test_road_end_angles,
        test_contains_point,
        test_sharp_corner_knot_shortens_inner_lane,
        test_reversal_swaps_lanes_instead_of_knotting,
        test_self_crossing_road_records_crossing,
        test_lanes_stay_at_lane_offset_on_gentle_curve,
        test_invalid_lane_rejected,
        test_tracer_for_starts_at_distance,
        test_lane_polyline_cached_after_finish,
        test_adjacent_distance_to_same_lane,
        test_adjacent_distance_two_lanes_over,
        test_agents_register_per_lane,
        test_agent_from_another_road_cannot_move_lanes,
        test_agent_on_invalid_lane_not_registered,
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
