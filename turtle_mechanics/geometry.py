"""Shape primitives and the bounding-box collision predicate."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable, List, Sequence, Tuple

Point2D = Tuple[float, float]


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_points(cls, points: Iterable[Point2D]) -> "BoundingBox":
        pts = list(points)
        if not pts:
            return cls(0.0, 0.0, 0.0, 0.0)
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        return cls(min(xs), min(ys), max(xs), max(ys))

    def intersects(self, other: "BoundingBox") -> bool:
        return not (
            self.max_x < other.min_x
            or self.min_x > other.max_x
            or self.max_y < other.min_y
            or self.min_y > other.max_y
        )

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def diagonal(self) -> float:
        return math.hypot(self.width, self.height)


@dataclass(frozen=True)
class Polygon:
    """Closed polygon given by its vertices in canvas coordinates."""

    vertices: Tuple[Point2D, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "vertices", tuple((float(x), float(y)) for x, y in self.vertices))

    @classmethod
    def from_rect(cls, min_x: float, min_y: float, max_x: float, max_y: float) -> "Polygon":
        return cls(((min_x, min_y), (max_x, min_y), (max_x, max_y), (min_x, max_y)))

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self):
        return iter(self.vertices)

    def is_empty(self) -> bool:
        return not self.vertices

    def bounding_box(self) -> BoundingBox:
        return BoundingBox.from_points(self.vertices)

    def translated(self, dx: float, dy: float) -> "Polygon":
        if dx == 0.0 and dy == 0.0:
            return self
        return Polygon(tuple((x + dx, y + dy) for x, y in self.vertices))

    def centroid(self) -> Point2D:
        """Average of the vertices (not the area centroid)."""
        if not self.vertices:
            return (0.0, 0.0)
        xs = [v[0] for v in self.vertices]
        ys = [v[1] for v in self.vertices]
        return (sum(xs) / len(xs), sum(ys) / len(ys))

    def intersects(self, other: "Polygon") -> bool:
        return intersects(self, other)


def regular_polygon(center: Point2D, radius: float, sides: int, rotation: float = 0.0) -> Polygon:
    """Vertices spaced 360/sides degrees apart, starting at `rotation` degrees."""
    if sides < 1:
        raise ValueError("A regular polygon needs at least one side")
    cx, cy = center
    step = 360.0 / sides
    points: List[Point2D] = []
    for i in range(sides):
        angle = math.radians(rotation + step * i)
        points.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle)))
    return Polygon(tuple(points))


def bounding_radius(polygon: Polygon | Sequence[Point2D]) -> float:
    """Half the diagonal of the axis-aligned bounding rectangle."""
    points = polygon.vertices if isinstance(polygon, Polygon) else polygon
    return BoundingBox.from_points(points).diagonal() * 0.5


def intersects(shape_a: Polygon | BoundingBox, shape_b: Polygon | BoundingBox) -> bool:
    # Bounding rectangles only; exact polygon overlap is never computed.
    box_a = shape_a if isinstance(shape_a, BoundingBox) else shape_a.bounding_box()
    box_b = shape_b if isinstance(shape_b, BoundingBox) else shape_b.bounding_box()
    if isinstance(shape_a, Polygon) and shape_a.is_empty():
        return False
    if isinstance(shape_b, Polygon) and shape_b.is_empty():
        return False
    return box_a.intersects(box_b)


def distance(a: Point2D, b: Point2D) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def lerp_point(start: Point2D, end: Point2D, alpha: float) -> Point2D:
    alpha = max(0.0, min(1.0, alpha))
    return (start[0] + (end[0] - start[0]) * alpha, start[1] + (end[1] - start[1]) * alpha)


__all__ = [
    "Point2D",
    "BoundingBox",
    "Polygon",
    "regular_polygon",
    "bounding_radius",
    "intersects",
    "distance",
    "lerp_point",
]
