"""
Lane-Sketch – Curve Primitives
Quadratic segments, composite curves built from them, and polyline helpers.

Curves are only ever consumed as polylines: every query (tracing, length,
intersection) first flattens the quadratics to line segments whose control
points lie within a flatness tolerance of the chord.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from pygame.math import Vector2

from config.settings import FLATNESS, JOIN_EPSILON, MAX_SUBDIVISIONS


# ═══════════════════════════════════════════════
# Quadratic segment
# ═══════════════════════════════════════════════

@dataclass(frozen=True)
class QuadSegment:
    """A quadratic Bezier segment: start, control point, end."""
    start: Vector2
    ctrl: Vector2
    end: Vector2

    @classmethod
    def line(cls, start, end) -> "QuadSegment":
        """A straight segment (control point halfway along the chord)."""
        start = Vector2(start)
        end = Vector2(end)
        return cls(start, (start + end) * 0.5, end)

    def is_degenerate(self) -> bool:
        """True when all three points coincide (the segment has no extent)."""
        return (
            self.start.distance_squared_to(self.ctrl) == 0.0
            and self.ctrl.distance_squared_to(self.end) == 0.0
        )

    def chord_length(self) -> float:
        return self.start.distance_to(self.end)

    def point_at(self, t: float) -> Vector2:
        u = 1.0 - t
        return self.start * (u * u) + self.ctrl * (2.0 * u * t) + self.end * (t * t)

    # ── flattening ────────────────────────────

    def flatten_with_params(self, flatness: float = FLATNESS) -> List[Tuple[float, Vector2]]:
        """Polyline approximation as (t, point) pairs, starting at t=0."""
        out = [(0.0, Vector2(self.start))]
        _subdivide(self.start, self.ctrl, self.end, 0.0, 1.0, flatness * flatness, 0, out)
        return out

    def flatten(self, flatness: float = FLATNESS) -> List[Vector2]:
        return [p for _, p in self.flatten_with_params(flatness)]

    # ── splitting ─────────────────────────────

    def parameter_near(self, point, flatness: float = FLATNESS) -> float:
        """Curve parameter of the flattened point closest to *point*."""
        point = Vector2(point)
        samples = self.flatten_with_params(flatness)
        best_t = 0.0
        best_dist = float("inf")
        for (t0, p0), (t1, p1) in zip(samples, samples[1:]):
            edge = p1 - p0
            length_sq = edge.length_squared()
            frac = 0.0
            if length_sq > 0.0:
                frac = min(1.0, max(0.0, (point - p0).dot(edge) / length_sq))
            dist = point.distance_squared_to(p0 + edge * frac)
            if dist < best_dist:
                best_dist = dist
                best_t = t0 + (t1 - t0) * frac
        return best_t

    def split_at(self, t: float) -> Tuple["QuadSegment", "QuadSegment"]:
        """de Casteljau split into the [0, t] and [t, 1] pieces."""
        a = self.start + (self.ctrl - self.start) * t
        b = self.ctrl + (self.end - self.ctrl) * t
        mid = a + (b - a) * t
        return QuadSegment(Vector2(self.start), a, mid), QuadSegment(Vector2(mid), b, Vector2(self.end))

    def truncated_at(self, point, flatness: float = FLATNESS) -> "QuadSegment":
        """The part of this segment from its start up to *point* (which must lie on it)."""
        left, _ = self.split_at(self.parameter_near(point, flatness))
        return QuadSegment(left.start, left.ctrl, Vector2(point))

    def trimmed_from(self, point, flatness: float = FLATNESS) -> "QuadSegment":
        """The part of this segment from *point* (which must lie on it) to its end."""
        _, right = self.split_at(self.parameter_near(point, flatness))
        return QuadSegment(Vector2(point), right.ctrl, right.end)


def _subdivide(p0, p1, p2, t0, t1, flatness_sq, depth, out):
    if depth >= MAX_SUBDIVISIONS or _point_segment_distance_sq(p1, p0, p2) <= flatness_sq:
        out.append((t1, Vector2(p2)))
        return
    m01 = (p0 + p1) * 0.5
    m12 = (p1 + p2) * 0.5
    mid = (m01 + m12) * 0.5
    tm = (t0 + t1) * 0.5
    _subdivide(p0, m01, mid, t0, tm, flatness_sq, depth + 1, out)
    _subdivide(mid, m12, p2, tm, t1, flatness_sq, depth + 1, out)


def _point_segment_distance_sq(p: Vector2, a: Vector2, b: Vector2) -> float:
    edge = b - a
    length_sq = edge.length_squared()
    if length_sq == 0.0:
        return p.distance_squared_to(a)
    frac = min(1.0, max(0.0, (p - a).dot(edge) / length_sq))
    return p.distance_squared_to(a + edge * frac)


# ═══════════════════════════════════════════════
# Composite curve
# ═══════════════════════════════════════════════

class CompositeCurve:
    """An ordered run of quadratic segments (a centreline or one lane)."""

    def __init__(self, segments: Iterable[QuadSegment] = ()):
        self.segments: List[QuadSegment] = list(segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[QuadSegment]:
        return iter(self.segments)

    def __repr__(self):
        return f"CompositeCurve({len(self.segments)} segments)"

    @property
    def start(self) -> Optional[Vector2]:
        return Vector2(self.segments[0].start) if self.segments else None

    @property
    def end(self) -> Optional[Vector2]:
        return Vector2(self.segments[-1].end) if self.segments else None

    def append(self, segment: QuadSegment) -> None:
        self.segments.append(segment)

    def copy(self) -> "CompositeCurve":
        return CompositeCurve(self.segments)

    def chord_length(self) -> float:
        return sum(seg.chord_length() for seg in self.segments)

    def flatten(self, flatness: float = FLATNESS) -> List[Vector2]:
        """Polyline through every segment; coincident joints appear once."""
        points: List[Vector2] = []
        for seg in self.segments:
            seg_points = seg.flatten(flatness)
            if points and points[-1].distance_to(seg_points[0]) <= JOIN_EPSILON:
                seg_points = seg_points[1:]
            points.extend(seg_points)
        return points


# ═══════════════════════════════════════════════
# Polyline helpers (numpy)
# ═══════════════════════════════════════════════

def to_array(points: Sequence) -> np.ndarray:
    """(N, 2) float array from a sequence of Vector2 / (x, y) pairs."""
    return np.array([(float(p[0]), float(p[1])) for p in points], dtype=np.float64).reshape(-1, 2)


def dedupe(points: np.ndarray) -> np.ndarray:
    """Drop vertices that repeat the previous one."""
    if len(points) < 2:
        return points
    keep = np.ones(len(points), dtype=bool)
    keep[1:] = np.any(np.diff(points, axis=0) != 0.0, axis=1)
    return points[keep]


def polyline_length(points) -> float:
    arr = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(arr) < 2:
        return 0.0
    return float(np.hypot(*np.diff(arr, axis=0).T).sum())


def resample_polyline(points, step: float) -> np.ndarray:
    """Points every *step* units of arc length from the start (end included
    when it falls on a step)."""
    arr = dedupe(np.asarray(points, dtype=np.float64).reshape(-1, 2))
    if len(arr) < 2:
        return arr.copy()
    cumulative = np.concatenate(([0.0], np.cumsum(np.hypot(*np.diff(arr, axis=0).T))))
    distances = np.arange(0.0, cumulative[-1] + 1e-9, step)
    return np.column_stack((
        np.interp(distances, cumulative, arr[:, 0]),
        np.interp(distances, cumulative, arr[:, 1]),
    ))


def distance_to_polyline(point, points) -> float:
    """Shortest distance from *point* to any edge of the polyline."""
    arr = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    p = np.array([float(point[0]), float(point[1])])
    if len(arr) == 0:
        return float("inf")
    if len(arr) == 1:
        return float(np.hypot(*(p - arr[0])))
    a = arr[:-1]
    edges = arr[1:] - a
    length_sq = np.einsum("ij,ij->i", edges, edges)
    safe = np.where(length_sq > 0.0, length_sq, 1.0)
    frac = np.clip(np.einsum("ij,ij->i", p - a, edges) / safe, 0.0, 1.0)
    frac = np.where(length_sq > 0.0, frac, 0.0)
    nearest = a + edges * frac[:, None]
    return float(np.min(np.hypot(*(nearest - p).T)))
