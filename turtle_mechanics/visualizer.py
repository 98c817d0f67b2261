"""Pygame renderer for the canvas, its obstacles, drawn lines and the turtle."""
from __future__ import annotations

from typing import Sequence, Tuple

try:  # pragma: no cover - pygame import is environment specific
    import pygame
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "Pygame is required to use the turtle_mechanics.visualizer module."
    ) from exc

from .canvas import Canvas
from .colors import Color
from .geometry import Point2D
from .motion import TurtleControl

DEFAULT_COLORS = {
    "background": (18, 18, 18),
    "paper": (250, 250, 246),
    "border": (80, 80, 80),
    "turtle": (40, 140, 60),
    "heading": (20, 20, 20),
    "blocked": (220, 70, 70),
    "text": (230, 230, 230),
}


class TurtleVisualizer:
    """Draws a `Canvas` and a `TurtleControl` into a rectangle of a surface.

    Canvas coordinates are scaled uniformly to fit the viewport; y grows
    downwards in both spaces so no flip is needed.
    """

    def __init__(
        self,
        surface: "pygame.Surface",
        viewport: "pygame.Rect",
        *,
        font_size: int = 16,
        show_footprint: bool = True,
    ) -> None:
        self.surface = surface
        self.viewport = viewport
        self.show_footprint = show_footprint
        self._font = pygame.font.SysFont("Arial", font_size)
        self.scale = 1.0
        self._blocked_frames = 0

    def flash_blocked(self, frames: int = 20) -> None:
        """Tint the turtle for a few frames after a collision."""
        self._blocked_frames = frames

    def fit(self, canvas: Canvas) -> None:
        self.scale = min(self.viewport.width / canvas.width, self.viewport.height / canvas.height)

    def to_screen(self, point: Point2D) -> Tuple[int, int]:
        return (
            int(self.viewport.x + point[0] * self.scale),
            int(self.viewport.y + point[1] * self.scale),
        )

    def to_canvas(self, pos: Tuple[int, int]) -> Point2D:
        return ((pos[0] - self.viewport.x) / self.scale, (pos[1] - self.viewport.y) / self.scale)

    def draw(self, canvas: Canvas, turtle: TurtleControl, status_lines: Sequence[str] = ()) -> None:
        self.fit(canvas)
        paper = pygame.Rect(
            self.viewport.x,
            self.viewport.y,
            int(canvas.width * self.scale),
            int(canvas.height * self.scale),
        )
        pygame.draw.rect(self.surface, DEFAULT_COLORS["paper"], paper)
        pygame.draw.rect(self.surface, DEFAULT_COLORS["border"], paper, 1)
        self._draw_obstacles(canvas)
        self._draw_lines(turtle)
        self._draw_turtle(turtle)
        self._draw_status(turtle, status_lines, paper)

    def _draw_obstacles(self, canvas: Canvas) -> None:
        for obstacle in canvas:
            if len(obstacle.points) < 3:
                continue
            points = [self.to_screen(v) for v in obstacle.points]
            pygame.draw.polygon(self.surface, obstacle.color, points, 0)
            pygame.draw.polygon(self.surface, (30, 30, 30), points, 1)

    def _draw_lines(self, turtle: TurtleControl) -> None:
        for line in turtle.get_lines():
            width = max(1, int(round(line.width * self.scale)))
            pygame.draw.line(
                self.surface,
                line.color,
                self.to_screen(line.start),
                self.to_screen(line.end),
                width,
            )

    def _draw_turtle(self, turtle: TurtleControl) -> None:
        color: Color = DEFAULT_COLORS["turtle"]
        if self._blocked_frames > 0:
            color = DEFAULT_COLORS["blocked"]
            self._blocked_frames -= 1
        if self.show_footprint and len(turtle.shape) >= 3:
            points = [self.to_screen(v) for v in turtle.shape]
            pygame.draw.polygon(self.surface, color, points, 0 if turtle.pen_down else 1)
        # Heading arrow, a small triangle in front of the footprint.
        size = max(6.0, turtle.pen_radius * 3.0)
        fx, fy = turtle.forward_vector()
        rx, ry = turtle.right_vector()
        x, y = turtle.position
        tip = (x + fx * size * 1.6, y + fy * size * 1.6)
        left = (x - rx * size * 0.6, y - ry * size * 0.6)
        right = (x + rx * size * 0.6, y + ry * size * 0.6)
        pygame.draw.polygon(
            self.surface,
            DEFAULT_COLORS["heading"],
            [self.to_screen(tip), self.to_screen(left), self.to_screen(right)],
            1,
        )

    def _draw_status(self, turtle: TurtleControl, status_lines: Sequence[str], paper: "pygame.Rect") -> None:
        x, y = turtle.position
        state = "moving" if turtle.is_moving() else "idle"
        if turtle.is_paused():
            state = "paused"
        status = (
            f"pos=({x:.1f}, {y:.1f})  rot={turtle.rotation:.1f}  speed={turtle.speed:g}  "
            f"pen={'down' if turtle.pen_down else 'up'}  lines={turtle.line_count}  {state}"
        )
        base_y = paper.bottom + 6
        for line in (status, *status_lines):
            self.surface.blit(self._font.render(line, True, DEFAULT_COLORS["text"]), (paper.x, base_y))
            base_y += 18


__all__ = ["TurtleVisualizer", "DEFAULT_COLORS"]
