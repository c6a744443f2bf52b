"""
Lane-Sketch – Intersection Test
Shared segment/shape intersection used by knot removal and crossing detection.
"""

from __future__ import annotations

from typing import Iterator, List, Optional

from pygame.math import Vector2

from config.settings import FLATNESS, KNOT_IGNORE_RADIUS, PARALLEL_EPSILON


def line_intersection(a1, a2, b1, b2, slack: float = 0.0) -> Optional[Vector2]:
    """
    Intersection point of line segments a1→a2 and b1→b2, or None.

    *slack* is a distance: hits up to that far beyond either end of either
    segment still count. Parallel and zero-length lines never intersect.
    """
    a1 = Vector2(a1)
    b1 = Vector2(b1)
    da = Vector2(a2) - a1
    db = Vector2(b2) - b1
    len_a = da.length()
    len_b = db.length()
    if len_a == 0.0 or len_b == 0.0:
        return None

    denom = da.cross(db)
    if abs(denom) <= PARALLEL_EPSILON * len_a * len_b:
        return None

    diff = b1 - a1
    ta = diff.cross(db) / denom
    tb = diff.cross(da) / denom
    slack_a = slack / len_a
    slack_b = slack / len_b
    if -slack_a <= ta <= 1.0 + slack_a and -slack_b <= tb <= 1.0 + slack_b:
        return a1 + da * ta
    return None


def as_polyline(shape, flatness: float = FLATNESS) -> List[Vector2]:
    """Segments and curves are flattened; point sequences pass through."""
    if hasattr(shape, "flatten"):
        return shape.flatten(flatness)
    return [Vector2(p) for p in shape]


def iter_intersections(
    shape_a,
    shape_b,
    flatness: float = FLATNESS,
    ignore_point=None,
    ignore_radius: float = KNOT_IGNORE_RADIUS,
    slack: float = 0.0,
) -> Iterator[Vector2]:
    """
    Every intersection between two shapes, scanning the lines of *shape_a*
    in the outer loop and those of *shape_b* in the inner loop.

    Hits within *ignore_radius* of *ignore_point* are skipped, so that
    consecutive segments don't report their shared joint.
    """
    line_a = as_polyline(shape_a, flatness)
    line_b = as_polyline(shape_b, flatness)
    if ignore_point is not None:
        ignore_point = Vector2(ignore_point)

    for a1, a2 in zip(line_a, line_a[1:]):
        for b1, b2 in zip(line_b, line_b[1:]):
            hit = line_intersection(a1, a2, b1, b2, slack)
            if hit is None:
                continue
            if ignore_point is not None and hit.distance_to(ignore_point) < ignore_radius:
                continue
            yield hit


def shape_intersection(shape_a, shape_b, flatness: float = FLATNESS, **kwargs) -> Optional[Vector2]:
    """First intersection in scan order (see iter_intersections), or None."""
    return next(iter_intersections(shape_a, shape_b, flatness, **kwargs), None)
