"""
Lane-Sketch – Road Network
One freehand-drawn road: the smoothed centreline, its N lane curves and
lane separators, and the lane services agents rely on (length, tracing,
adjacent-lane distance, per-lane agent registry).
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, TYPE_CHECKING

import numpy as np
from pygame.math import Vector2

from config.settings import (
    ADJACENT_SEARCH_STEP,
    CROSSING_TEST_SLACK,
    END_ANGLE_SPAN,
    FLATNESS,
    KNOT_TEST_DISTANCE,
    LANE_WIDTH,
    PATH_OUTLINE_WIDTH,
    TANGENT_PROBE,
)
from geometry.curve import (
    CompositeCurve,
    QuadSegment,
    dedupe,
    distance_to_polyline,
    polyline_length,
    resample_polyline,
    to_array,
)
from geometry.errors import AlreadyFinalized, InvalidArgument
from geometry.intersection import shape_intersection
from geometry.offset import CurveOffsetSet
from geometry.tracer import ArcLengthTracer

if TYPE_CHECKING:
    from simulation.agent import TrafficAgent

logger = logging.getLogger("simulation.road")


class LaneNetwork:
    """A road with *lane_count* parallel lanes, built from pointer samples."""

    def __init__(
        self,
        lane_count: int,
        lane_width: float = LANE_WIDTH,
        knot_test_distance: float = KNOT_TEST_DISTANCE,
    ):
        if lane_count < 1:
            raise InvalidArgument(f"a road needs at least one lane, got {lane_count}")

        self.lane_count = lane_count
        self.lane_width = lane_width
        self._lanes = CurveOffsetSet(lane_count, lane_width, knot_test_distance)
        self._separators = (
            CurveOffsetSet(lane_count - 1, lane_width, knot_test_distance)
            if lane_count > 1 else None
        )

        self._centerline = CompositeCurve()
        self._last_sample: Optional[Vector2] = None
        self._points: List[Vector2] = []      # segment end points, for end angles
        self.crossings: List[Vector2] = []
        self._finished = False

        # Flattened lanes never change once the road is finished
        self._polylines: Dict[int, np.ndarray] = {}
        self._resampled: Dict[int, np.ndarray] = {}

        self._agents: List[List["TrafficAgent"]] = [[] for _ in range(lane_count)]

    @classmethod
    def from_points(cls, points, lane_count: int, **kwargs) -> "LaneNetwork":
        """A finished road through the given samples."""
        road = cls(lane_count, **kwargs)
        for x, y in points:
            road.add_point(x, y)
        road.finish()
        return road

    def __repr__(self):
        return (f"LaneNetwork(lanes={self.lane_count}, segments={len(self._centerline)}, "
                f"finished={self._finished})")

    # ──────────────────────────────────────────
    # Drawing
    # ──────────────────────────────────────────

    def add_point(self, x: float, y: float) -> bool:
        """
        Feed one pointer sample. Returns False when the sample repeats the
        previous one and was ignored.
        """
        if self._finished:
            raise AlreadyFinalized("cannot modify a finished road")
        p = Vector2(x, y)
        prev = self._last_sample
        if prev is not None and prev == p:
            return False

        if prev is None:
            self._points.append(Vector2(p))
        else:
            start = self._centerline.end if self._centerline.segments else Vector2(prev)
            end = (prev + p) * 0.5
            # The first segment is a straight line; later ones bend through
            # the previous sample
            if not self._centerline.segments:
                ctrl = (start + end) * 0.5
            else:
                ctrl = Vector2(prev)
            self._add_centre_segment(QuadSegment(start, ctrl, end))

        self._last_sample = p
        return True

    def finish(self) -> None:
        """Close the road at the last sample and freeze every lane."""
        if self._finished:
            raise AlreadyFinalized("road is already finished")
        if not self._centerline.segments:
            raise InvalidArgument("a road needs at least two distinct points")

        end = self._centerline.end
        if end != self._last_sample:
            self._add_centre_segment(QuadSegment.line(end, self._last_sample))

        self._lanes.finalize()
        if self._separators is not None:
            self._separators.finalize()
        self._finished = True
        logger.debug("Road finished: %d lanes, %d knot(s), lengths %s",
                     self.lane_count, len(self.knots),
                     [round(self.lane_length(i), 1) for i in range(self.lane_count)])

    def _add_centre_segment(self, segment: QuadSegment) -> None:
        if self._centerline.segments:
            hit = shape_intersection(
                segment, self._centerline, FLATNESS,
                ignore_point=segment.start, slack=CROSSING_TEST_SLACK,
            )
            if hit is not None:
                self.crossings.append(hit)

        self._lanes.append_segment(segment.start, segment.ctrl, segment.end)
        if self._separators is not None:
            self._separators.append_segment(segment.start, segment.ctrl, segment.end)
        self._centerline.append(segment)
        self._points.append(Vector2(segment.end))

    @property
    def is_finished(self) -> bool:
        return self._finished

    @property
    def centerline(self) -> CompositeCurve:
        return self._centerline.copy()

    @property
    def knots(self) -> List[Vector2]:
        return list(self._lanes.knots)

    def lane_knots(self, lane: int) -> List[Vector2]:
        self._check_lane(lane)
        return self._lanes.knots_for(lane)

    @property
    def path_width(self) -> float:
        return self.lane_width * self.lane_count

    def lane_curve(self, lane: int) -> CompositeCurve:
        self._check_lane(lane)
        return self._lanes.get_curve(lane)

    def separator_curves(self) -> List[CompositeCurve]:
        if self._separators is None:
            return []
        return [self._separators.get_curve(i) for i in range(len(self._separators))]

    def start_angle(self) -> float:
        """Heading at the start of the road, averaged over its first stretch."""
        return self._average_angle(self._points)

    def end_angle(self) -> float:
        """Heading at the end of the road, averaged over its last stretch."""
        if not self._points:
            return 0.0
        angle = self._average_angle(self._points[::-1])
        return math.atan2(-math.sin(angle), -math.cos(angle))

    @staticmethod
    def _average_angle(points: List[Vector2]) -> float:
        if not points:
            return 0.0
        first = points[0]
        current = first
        travelled = 0.0
        for p in points[1:]:
            if travelled >= END_ANGLE_SPAN:
                break
            travelled += current.distance_to(p)
            current = p
        return math.atan2(current.y - first.y, current.x - first.x)

    def contains_point(self, x: float, y: float) -> bool:
        """True if (x, y) lies on the road surface or its outline."""
        if self._centerline.segments:
            outline = self._centerline.flatten(FLATNESS)
        elif self._last_sample is not None:
            outline = [self._last_sample]
        else:
            return False
        reach = self.path_width / 2.0 + PATH_OUTLINE_WIDTH
        return distance_to_polyline((x, y), to_array(outline)) <= reach

    # ──────────────────────────────────────────
    # Lane services
    # ──────────────────────────────────────────

    def _check_lane(self, lane: int) -> None:
        if not 0 <= lane < self.lane_count:
            raise InvalidArgument(f"lane {lane} out of range for {self.lane_count} lane(s)")

    def lane_polyline(self, lane: int) -> np.ndarray:
        """Flattened lane as an (N, 2) array."""
        self._check_lane(lane)
        cached = self._polylines.get(lane)
        if cached is not None:
            return cached
        arr = dedupe(to_array(self._lanes.get_curve(lane).flatten(FLATNESS)))
        if self._finished:
            self._polylines[lane] = arr
        return arr

    def lane_length(self, lane: int) -> float:
        return polyline_length(self.lane_polyline(lane))

    def tracer_for(self, lane: int, at_distance: float = 0.0) -> ArcLengthTracer:
        """A fresh tracer on *lane*, already advanced to *at_distance*."""
        tracer = ArcLengthTracer(self.lane_polyline(lane))
        if at_distance:
            tracer.advance(at_distance)
        return tracer

    def _lane_samples(self, lane: int) -> np.ndarray:
        cached = self._resampled.get(lane)
        if cached is not None:
            return cached
        samples = resample_polyline(self.lane_polyline(lane), ADJACENT_SEARCH_STEP)
        if self._finished:
            self._resampled[lane] = samples
        return samples

    def adjacent_distance(self, src_lane: int, src_dist: float, dest_lane: int) -> Optional[float]:
        """
        Distance along *dest_lane* of the point beside the point at
        *src_dist* along *src_lane*.

        The ideal point one lane-width step sideways is computed from the
        source lane's local tangent, then the destination lane is searched
        linearly for its nearest sample. Knot removal makes lanes irregular
        near sharp turns, so in odd geometry the nearest sample found may not
        be the intended one. Returns None when the destination lane has fewer
        than two distinct points.
        """
        self._check_lane(src_lane)
        self._check_lane(dest_lane)

        samples = self._lane_samples(dest_lane)
        if len(samples) < 2:
            return None

        tracer = self.tracer_for(src_lane, src_dist)
        here = tracer.current_point()
        ahead = tracer.advance(TANGENT_PROBE)
        if ahead != here:
            tangent = math.atan2(ahead.y - here.y, ahead.x - here.x)
        else:
            tangent = tracer.heading()
        normal = tangent + math.pi / 2.0
        step = self.lane_width * (dest_lane - src_lane)
        target = np.array([here.x + step * math.cos(normal),
                           here.y + step * math.sin(normal)])

        gaps = np.hypot(*(samples - target).T)
        return float(np.argmin(gaps)) * ADJACENT_SEARCH_STEP

    # ──────────────────────────────────────────
    # Agent registry
    # ──────────────────────────────────────────

    def add_agent(self, agent: "TrafficAgent", lane: int) -> None:
        self._check_lane(lane)
        self._agents[lane].append(agent)

    def remove_agent(self, agent: "TrafficAgent") -> None:
        for lane_agents in self._agents:
            if agent in lane_agents:
                lane_agents.remove(agent)
                return

    def move_agent_to_lane(self, agent: "TrafficAgent", lane: int) -> None:
        self._check_lane(lane)
        if agent.network is not self:
            raise InvalidArgument("agent does not belong to this road")
        self.remove_agent(agent)
        self._agents[lane].append(agent)

    def agents_in_lane(self, lane: int) -> List["TrafficAgent"]:
        self._check_lane(lane)
        return list(self._agents[lane])

    def agents(self) -> List["TrafficAgent"]:
        result = []
        for lane_agents in self._agents:
            result.extend(lane_agents)
        return result
