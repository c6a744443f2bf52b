"""
Lane-Sketch – Offset Curves
Builds N parallel lane curves from one centreline, one quadratic at a time,
and splices knots (self-intersections at sharp inside turns) out of each lane.

The offset is the cheap control-polygon approximation: the three points of
each centreline segment are pushed sideways along the normal of the polygon
edge they sit on. Knot removal is a heuristic: every new offset segment is
tested against the lane's recent tail, oldest segment first, and the first
tail segment it crosses is cut at its earliest crossing, taking the loop out.
Heavily self-overlapping roads can still leave artifacts.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from pygame.math import Vector2

from config.settings import (
    JOIN_EPSILON,
    KNOT_IGNORE_RADIUS,
    KNOT_TEST_DISTANCE,
    KNOT_TEST_FLATNESS,
    KNOT_TEST_SLACK,
    LANE_WIDTH,
)
from geometry.curve import CompositeCurve, QuadSegment
from geometry.errors import AlreadyFinalized, InvalidArgument
from geometry.intersection import iter_intersections

logger = logging.getLogger("geometry.offset")


def lane_offsets(count: int, spacing: float = LANE_WIDTH) -> List[float]:
    """Lateral offsets of *count* lanes centred on the centreline."""
    return [spacing * (i - (count - 1) / 2.0) for i in range(count)]


def edge_normal(*directions: Vector2) -> Vector2:
    """Unit normal (direction rotated +90°) of the first non-zero direction."""
    for direction in directions:
        if direction.length_squared() > 0.0:
            break
    angle = math.atan2(direction.y, direction.x) + math.pi / 2.0
    return Vector2(math.cos(angle), math.sin(angle))


@dataclass
class _LaneState:
    offset: float
    committed: List[QuadSegment] = field(default_factory=list)
    tail: List[QuadSegment] = field(default_factory=list)
    tail_length: float = 0.0
    knots: List[Vector2] = field(default_factory=list)

    @property
    def end(self) -> Optional[Vector2]:
        if self.tail:
            return self.tail[-1].end
        if self.committed:
            return self.committed[-1].end
        return None


class CurveOffsetSet:
    """
    A fixed number of curves, each at a constant lateral offset from a shared
    centreline, fed one centreline segment at a time.
    """

    def __init__(
        self,
        count: int,
        spacing: float = LANE_WIDTH,
        knot_test_distance: float = KNOT_TEST_DISTANCE,
        flatness: float = KNOT_TEST_FLATNESS,
        offsets: Optional[Sequence[float]] = None,
    ):
        if offsets is None:
            if count < 1:
                raise InvalidArgument(f"need at least one curve, got {count}")
            offsets = lane_offsets(count, spacing)
        elif len(offsets) < 1:
            raise InvalidArgument("need at least one offset")

        self.knot_test_distance = knot_test_distance
        self.flatness = flatness
        self.knots: List[Vector2] = []
        self._lanes = [_LaneState(float(o)) for o in offsets]
        self._finalized = False

    @classmethod
    def with_offsets(cls, offsets: Sequence[float], **kwargs) -> "CurveOffsetSet":
        """A set whose curves sit at exactly the given lateral offsets."""
        offsets = list(offsets)
        return cls(len(offsets), offsets=offsets, **kwargs)

    # ── queries ───────────────────────────────

    def __len__(self) -> int:
        return len(self._lanes)

    @property
    def offsets(self) -> List[float]:
        return [lane.offset for lane in self._lanes]

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def get_curve(self, index: int) -> CompositeCurve:
        """Committed segments plus the open tail of curve *index*, as a copy."""
        if not 0 <= index < len(self._lanes):
            raise InvalidArgument(f"curve index {index} out of range")
        lane = self._lanes[index]
        return CompositeCurve(lane.committed + lane.tail)

    def knots_for(self, index: int) -> List[Vector2]:
        if not 0 <= index < len(self._lanes):
            raise InvalidArgument(f"curve index {index} out of range")
        return list(self._lanes[index].knots)

    # ── construction ──────────────────────────

    def append_segment(self, start, ctrl, end) -> None:
        """Offset one centreline segment into every curve."""
        if self._finalized:
            raise AlreadyFinalized("curve set is finalized")
        segment = QuadSegment(Vector2(start), Vector2(ctrl), Vector2(end))
        if segment.is_degenerate():
            raise InvalidArgument(f"degenerate segment at {tuple(segment.start)}")

        chord = segment.end - segment.start
        n_start = edge_normal(segment.ctrl - segment.start, chord)
        n_ctrl = edge_normal(chord)
        n_end = edge_normal(segment.end - segment.ctrl, chord)

        for lane in self._lanes:
            o = lane.offset
            shifted = QuadSegment(
                segment.start + n_start * o,
                segment.ctrl + n_ctrl * o,
                segment.end + n_end * o,
            )
            last = lane.end
            if last is not None and last.distance_to(shifted.start) > JOIN_EPSILON:
                self._push(lane, QuadSegment.line(last, shifted.start))
            self._push(lane, shifted)
            self._commit_settled(lane)

    def finalize(self) -> None:
        """Commit every tail; the set is immutable afterwards."""
        if self._finalized:
            raise AlreadyFinalized("curve set is already finalized")
        for lane in self._lanes:
            lane.committed.extend(lane.tail)
            lane.tail = []
            lane.tail_length = 0.0
        self._finalized = True

    # ── knot removal ──────────────────────────

    def _push(self, lane: _LaneState, segment: QuadSegment) -> None:
        last = len(lane.tail) - 1
        for index, old in enumerate(lane.tail):
            # only a segment that ends where the new one starts shares a joint with it
            shares_joint = (index == last
                            or old.end.distance_to(segment.start) < KNOT_IGNORE_RADIUS)
            hits = list(iter_intersections(
                segment, old, self.flatness,
                ignore_point=segment.start if shares_joint else None,
                ignore_radius=KNOT_IGNORE_RADIUS,
                slack=KNOT_TEST_SLACK,
            ))
            if not hits:
                continue

            # earliest crossing along the old segment cuts out the whole loop
            hit = min(hits, key=lambda h: old.parameter_near(h, self.flatness))
            self.knots.append(Vector2(hit))
            lane.knots.append(Vector2(hit))
            logger.debug(
                "Knot at (%.1f, %.1f) on lane offset %.1f, dropping %d tail segment(s)",
                hit.x, hit.y, lane.offset, len(lane.tail) - index - 1,
            )
            del lane.tail[index + 1:]
            lane.tail[index] = old.truncated_at(hit, self.flatness)
            segment = segment.trimmed_from(hit, self.flatness)
            break

        lane.tail.append(segment)
        lane.tail_length = sum(seg.chord_length() for seg in lane.tail)

    def _commit_settled(self, lane: _LaneState) -> None:
        # the newest segment always stays open
        while lane.tail_length > self.knot_test_distance and len(lane.tail) > 1:
            oldest = lane.tail.pop(0)
            lane.committed.append(oldest)
            lane.tail_length -= oldest.chord_length()
