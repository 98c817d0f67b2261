"""Turtle mechanics: geometry, obstacle canvas and the motion state machine."""

from .geometry import BoundingBox, Polygon, bounding_radius, intersects, regular_polygon
from .colors import Color, from_hex, to_hex
from .canvas import Canvas, Obstacle, ObstacleField
from .motion import Line, MotionSink, MovementResult, TurtleControl, normalize_rotation

__all__ = [
    "BoundingBox",
    "Polygon",
    "bounding_radius",
    "intersects",
    "regular_polygon",
    "Color",
    "from_hex",
    "to_hex",
    "Canvas",
    "Obstacle",
    "ObstacleField",
    "Line",
    "MotionSink",
    "MovementResult",
    "TurtleControl",
    "normalize_rotation",
]
