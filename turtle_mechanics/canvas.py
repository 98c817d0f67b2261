"""Canvas boundary, obstacles and random obstacle placement."""
from __future__ import annotations

import logging
import math
import random
from typing import List, Optional

from .colors import OBSTACLE_PALETTE, RED, Color, to_hex
from .geometry import BoundingBox, Point2D, Polygon, bounding_radius, regular_polygon

logger = logging.getLogger(__name__)

SHAPE_SIDES = (3, 4, 5)  # triangle, rectangle, pentagon


class Obstacle:
    """Static polygon placed on the canvas."""

    def __init__(self, points: Polygon, color: Color = RED, *, name: Optional[str] = None) -> None:
        self.name = name
        self.color = color
        self._points = points
        self._position: Point2D = points.centroid()
        self._bounding_radius = self._compute_bounding_radius()

    @property
    def points(self) -> Polygon:
        return self._points

    @property
    def position(self) -> Point2D:
        return self._position

    @property
    def bounding_radius(self) -> float:
        return self._bounding_radius

    def set_points(self, points: Polygon) -> None:
        if points == self._points:
            return
        self._points = points
        self._position = points.centroid()
        self._bounding_radius = self._compute_bounding_radius()

    def set_position(self, position: Point2D) -> None:
        """Move the centroid, translating the polygon with it."""
        if position == self._position:
            return
        dx = position[0] - self._position[0]
        dy = position[1] - self._position[1]
        self._position = position
        self._points = self._points.translated(dx, dy)

    def intersects(self, rect: BoundingBox) -> bool:
        return self._points.bounding_box().intersects(rect)

    def _compute_bounding_radius(self) -> float:
        if self._points.is_empty():
            return 0.001
        return bounding_radius(self._points)

    def __repr__(self) -> str:
        return f"Obstacle(name={self.name!r}, position={self._position}, sides={len(self._points)})"


class ObstacleField:
    """Read-only view the motion state machine uses for collision tests."""

    def boundary_shape(self) -> Polygon:  # pragma: no cover - interface only
        raise NotImplementedError

    def obstacles(self) -> List[Obstacle]:  # pragma: no cover - interface only
        raise NotImplementedError


class Canvas(ObstacleField):
    """Rectangular drawing area starting at the origin, plus its obstacles.

    The obstacle list should only be changed while no motion is in flight.
    """

    def __init__(
        self,
        width: float = 900.0,
        height: float = 900.0,
        *,
        seed: Optional[int] = None,
        min_obstacle_size: float = 25.0,
        obstacle_size_range: float = 20.0,
        turtle_clearance: float = 25.0,
        max_attempts: int = 100,
    ) -> None:
        self.width = float(width)
        self.height = float(height)
        self.min_obstacle_size = min_obstacle_size
        self.obstacle_size_range = obstacle_size_range
        self.turtle_clearance = turtle_clearance
        self.max_attempts = max_attempts
        self._rng = random.Random(seed)
        self._obstacles: List[Obstacle] = []

    # --- ObstacleField ---------------------------------------------------

    def boundary_shape(self) -> Polygon:
        return Polygon.from_rect(0.0, 0.0, self.width, self.height)

    def obstacles(self) -> List[Obstacle]:
        return list(self._obstacles)

    # --- Obstacle management ---------------------------------------------

    def add_obstacle(self, obstacle: Obstacle) -> None:
        self._obstacles.append(obstacle)

    def clear_obstacles(self) -> None:
        self._obstacles.clear()

    def obstacle_points(self, index: int) -> List[float]:
        """Flattened x, y coordinates of one obstacle, empty if out of range."""
        if not 0 <= index < len(self._obstacles):
            return []
        flat: List[float] = []
        for x, y in self._obstacles[index].points:
            flat.extend((x, y))
        return flat

    def obstacle_color(self, index: int) -> str:
        if not 0 <= index < len(self._obstacles):
            return to_hex(RED)
        return to_hex(self._obstacles[index].color)

    def generate_obstacles(self, count: int, turtle_position: Point2D) -> int:
        """Add up to `count` random obstacles that keep clear of the turtle.

        Each obstacle gets `max_attempts` placements; one that never fits is
        skipped. Returns how many were added.
        """
        added = 0
        for _ in range(count):
            for _attempt in range(self.max_attempts):
                obstacle = self.create_random_obstacle()
                if not self._overlaps_turtle(obstacle, turtle_position):
                    obstacle.name = f"obstacle_{len(self._obstacles) + 1}"
                    self._obstacles.append(obstacle)
                    added += 1
                    break
            else:
                logger.warning("Could not place obstacle after %d attempts", self.max_attempts)
        logger.debug("Generated %d/%d obstacles", added, count)
        return added

    def create_random_obstacle(self) -> Obstacle:
        rng = self._rng
        center = (rng.random() * self.width, rng.random() * self.height)
        size = self.min_obstacle_size + rng.random() * self.obstacle_size_range
        rotation = math.degrees(rng.random() * 2 * math.pi)
        sides = rng.choice(SHAPE_SIDES)
        polygon = regular_polygon(center, size, sides, rotation)
        color = OBSTACLE_PALETTE[rng.randrange(len(OBSTACLE_PALETTE))]
        return Obstacle(polygon, color)

    def _overlaps_turtle(self, obstacle: Obstacle, turtle_position: Point2D) -> bool:
        half = self.turtle_clearance / 2.0
        area = BoundingBox(
            turtle_position[0] - half,
            turtle_position[1] - half,
            turtle_position[0] + half,
            turtle_position[1] + half,
        )
        return obstacle.intersects(area)

    def summary(self) -> str:
        return f"Canvas(width={self.width:g}, height={self.height:g}, obstacles={len(self._obstacles)})"

    def __len__(self) -> int:
        return len(self._obstacles)

    def __iter__(self):
        return iter(self._obstacles)


__all__ = ["Obstacle", "ObstacleField", "Canvas"]
