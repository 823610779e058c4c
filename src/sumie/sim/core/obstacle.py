from __future__ import annotations

from typing import Iterable, List, Sequence

from pygame.math import Vector2


class Obstacle:
    """Static closed polygon in normalized coordinates."""

    def __init__(self, vertices: Iterable[Sequence[float]]):
        self._vertices: List[Vector2] = [Vector2(float(v[0]), float(v[1])) for v in vertices]

    @property
    def vertices(self) -> List[Vector2]:
        return self._vertices

    def is_point_inside(self, point: Vector2) -> bool:
        vertices = self._vertices
        count = len(vertices)
        if count < 3:
            return False

        # Ray casting towards +x; each edge joins vertex i with vertex i - 1.
        inside = False
        x = point.x
        y = point.y
        j = count - 1
        for i in range(count):
            xi = vertices[i].x
            yi = vertices[i].y
            xj = vertices[j].x
            yj = vertices[j].y
            if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
                inside = not inside
            j = i
        return inside

    def export_vertices(self) -> List[List[float]]:
        return [[vertex.x, vertex.y] for vertex in self._vertices]
