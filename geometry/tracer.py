"""
Lane-Sketch – Arc-Length Tracer
A one-way cursor that walks a polyline by distance.
"""

from __future__ import annotations

import math
from typing import Iterator, Sequence

from pygame.math import Vector2

from config.settings import FLATNESS
from geometry.errors import InvalidArgument


class ArcLengthTracer:
    """
    Walks a flattened curve, turning "move d units further" requests into
    points. The cursor only moves forward; to walk the curve again, build a
    new tracer. Construction of the curve never touches an existing tracer.
    """

    def __init__(self, points: Sequence):
        vertices = []
        for p in points:
            v = Vector2(float(p[0]), float(p[1]))
            if not vertices or vertices[-1] != v:
                vertices.append(v)
        if not vertices:
            raise InvalidArgument("cannot trace an empty polyline")

        self._points = vertices
        self._index = 0                       # last vertex passed
        self._current = Vector2(vertices[0])
        self._done = len(vertices) == 1
        self.distance_travelled = 0.0
        self.length = sum(
            a.distance_to(b) for a, b in zip(vertices, vertices[1:])
        )

    @classmethod
    def from_curve(cls, curve, flatness: float = FLATNESS) -> "ArcLengthTracer":
        return cls(curve.flatten(flatness))

    def __repr__(self):
        return (f"ArcLengthTracer(at={self.distance_travelled:.1f}/"
                f"{self.length:.1f}, done={self._done})")

    def current_point(self) -> Vector2:
        return Vector2(self._current)

    def is_done(self) -> bool:
        return self._done

    def advance(self, distance: float) -> Vector2:
        """Move *distance* further along; clamps at the last vertex."""
        if distance < 0:
            raise InvalidArgument(f"cannot advance by a negative distance ({distance})")
        if self._done:
            return Vector2(self._current)

        remaining = distance
        last = len(self._points) - 1
        while True:
            nxt = self._points[self._index + 1]
            edge_left = self._current.distance_to(nxt)
            if remaining < edge_left:
                self._current += (nxt - self._current) * (remaining / edge_left)
                self.distance_travelled += remaining
                break
            remaining -= edge_left
            self.distance_travelled += edge_left
            self._current = Vector2(nxt)
            self._index += 1
            if self._index == last:
                self._done = True
                break
        return Vector2(self._current)

    def heading(self) -> float:
        """Angle (radians) of the edge the cursor is on."""
        if len(self._points) < 2:
            return 0.0
        i = min(self._index, len(self._points) - 2)
        edge = self._points[i + 1] - self._points[i]
        return math.atan2(edge.y, edge.x)

    def walk(self, step: float) -> Iterator[Vector2]:
        """Yield the current point, then one point per *step* until done."""
        if step <= 0:
            raise InvalidArgument(f"step must be positive, got {step}")
        yield self.current_point()
        while not self._done:
            yield self.advance(step)
