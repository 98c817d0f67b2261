"""Turtle motion state machine: animated moves, collision tests and rollback.

A `TurtleControl` owns the cursor pose, pen state and drawn lines. `forward`
and `arc` start a motion that only progresses when the host calls
`advance(dt_ms)`; every advance that moves the turtle is collision-tested
against the attached `ObstacleField` before it is settled. Results are
reported to completion listeners as `MovementResult` values.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
import logging
import math
import random
import threading
from typing import Callable, List, Optional, Tuple

from .canvas import ObstacleField
from .colors import BLACK, Color
from .geometry import Point2D, Polygon, distance, intersects, lerp_point, regular_polygon

logger = logging.getLogger(__name__)

MIN_ARC_RADIUS = 0.001
INSTANT_DURATION = 0.001
ROLLBACK_STEP = "step"
ROLLBACK_MOTION = "motion"


class MovementResult(IntEnum):
    SUCCESS = 0
    FAILURE = 1
    BLOCKED = 2
    PAUSED = 3


CompletionListener = Callable[[MovementResult], None]
CollisionListener = Callable[[object, Polygon], None]
ChangeListener = Callable[[str], None]


@dataclass(frozen=True)
class Line:
    """One drawn segment."""

    start: Point2D = (0.0, 0.0)
    end: Point2D = (0.0, 0.0)
    color: Color = BLACK
    width: float = 1.0

    def length(self) -> float:
        return distance(self.start, self.end)


def normalize_rotation(value: float) -> float:
    """Wrap degrees into [0, 360)."""
    if 0.0 < value < 360.0:
        return value
    wrapped = value % 360.0
    # A tiny negative input wraps to exactly 360.0 in float arithmetic.
    if wrapped >= 360.0:
        wrapped = 0.0
    return wrapped + 0.0


@dataclass
class _Motion:
    kind: str
    start_position: Point2D
    start_rotation: float
    end_rotation: float
    keypoints: List[Point2D]
    duration_ms: float
    elapsed_ms: float = 0.0
    paused: bool = False
    reached: int = 0
    anchor: Point2D = (0.0, 0.0)
    pending_lines: List[Line] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.anchor = self.keypoints[0]

    @property
    def segment_count(self) -> int:
        return len(self.keypoints) - 1

    def progress(self) -> float:
        if self.duration_ms <= 0.0:
            return 1.0
        return min(1.0, self.elapsed_ms / self.duration_ms)

    def sample(self, progress: float) -> Tuple[Point2D, float]:
        if progress >= 1.0:
            return self.keypoints[-1], self.end_rotation
        n = self.segment_count
        scaled = progress * n
        index = min(int(scaled), n - 1)
        position = lerp_point(self.keypoints[index], self.keypoints[index + 1], scaled - index)
        rotation = self.start_rotation + (self.end_rotation - self.start_rotation) * progress
        return position, rotation

    def keypoints_passed(self, progress: float) -> int:
        n = self.segment_count
        if progress >= 1.0:
            return n
        return min(n, int(progress * n + 1e-9))


class MotionSink:
    """Primitive requests the interpreter can issue to a turtle."""

    def forward(self, distance: float) -> float:  # pragma: no cover - interface only
        raise NotImplementedError

    def turn(self, degrees: float) -> float:  # pragma: no cover - interface only
        raise NotImplementedError

    def arc(self, radius: float, degrees: float = 360.0) -> float:  # pragma: no cover - interface only
        raise NotImplementedError

    def set_position(self, position: Point2D) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def set_rotation(self, rotation: float) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def set_pen_down(self, pen_down: bool) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def set_pen_radius(self, radius: float) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def set_pen_color(self, color: Color) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def set_speed(self, speed: float) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def is_moving(self) -> bool:  # pragma: no cover - interface only
        raise NotImplementedError

    def add_completion_listener(self, listener: CompletionListener) -> None:  # pragma: no cover
        raise NotImplementedError

    def remove_completion_listener(self, listener: CompletionListener) -> None:  # pragma: no cover
        raise NotImplementedError


class TurtleControl(MotionSink):
    """Cursor state plus the time-stepped motion it is currently playing."""

    def __init__(
        self,
        *,
        start_position: Point2D = (450.0, 450.0),
        speed: float = 200.0,
        min_speed: float = 1.0,
        max_speed: float = 9999.0,
        arc_segments: int = 50,
        pen_radius: float = 3.0,
        pen_color: Color = BLACK,
        footprint_sides: int = 10,
        rollback: str = ROLLBACK_STEP,
        canvas: Optional[ObstacleField] = None,
    ) -> None:
        if rollback not in (ROLLBACK_STEP, ROLLBACK_MOTION):
            raise ValueError(f"Unknown rollback policy '{rollback}'")
        self.start_position: Point2D = (float(start_position[0]), float(start_position[1]))
        self.min_speed = min_speed
        self.max_speed = max_speed
        self.footprint_sides = footprint_sides
        self.rollback = rollback
        self.canvas = canvas
        self.position: Point2D = self.start_position
        self.rotation: float = 0.0
        self.speed: float = 0.0
        self.set_speed(speed)
        self.arc_segments: int = max(1, int(arc_segments))
        self.pen_down: bool = True
        self.pen_radius: float = max(1.0, min(9.0, pen_radius))
        self.pen_color: Color = pen_color
        self.previous_position: Point2D = self.position
        self.previous_rotation: float = self.rotation
        self.shape: Polygon = Polygon(())
        self._lines: List[Line] = []
        self._motion: Optional[_Motion] = None
        self._lock = threading.RLock()
        self._completion_listeners: List[CompletionListener] = []
        self._collision_listeners: List[CollisionListener] = []
        self._change_listeners: List[ChangeListener] = []
        self.update_shape()

    # --- Listeners ---------------------------------------------------------

    def add_completion_listener(self, listener: CompletionListener) -> None:
        if listener not in self._completion_listeners:
            self._completion_listeners.append(listener)

    def remove_completion_listener(self, listener: CompletionListener) -> None:
        if listener in self._completion_listeners:
            self._completion_listeners.remove(listener)

    def add_collision_listener(self, listener: CollisionListener) -> None:
        if listener not in self._collision_listeners:
            self._collision_listeners.append(listener)

    def add_change_listener(self, listener: ChangeListener) -> None:
        if listener not in self._change_listeners:
            self._change_listeners.append(listener)

    def _emit_completed(self, result: MovementResult) -> None:
        for listener in tuple(self._completion_listeners):
            listener(result)

    def _emit_collision(self, hit_object: object, hit_polygon: Polygon) -> None:
        for listener in tuple(self._collision_listeners):
            listener(hit_object, hit_polygon)

    def _notify(self, prop: str) -> None:
        for listener in tuple(self._change_listeners):
            listener(prop)

    # --- Plain state -------------------------------------------------------

    def set_canvas(self, canvas: Optional[ObstacleField]) -> None:
        self.canvas = canvas

    def set_position(self, position: Point2D) -> None:
        position = (float(position[0]), float(position[1]))
        if position == self.position:
            return
        dx = position[0] - self.position[0]
        dy = position[1] - self.position[1]
        self.position = position
        self.update_shape((dx, dy))
        self._notify("position")

    def set_rotation(self, rotation: float) -> None:
        rotation = normalize_rotation(float(rotation))
        if rotation == self.rotation:
            return
        self.rotation = rotation
        self._notify("rotation")

    def set_pen_down(self, pen_down: bool) -> None:
        if self.pen_down == pen_down:
            return
        self.pen_down = pen_down
        if pen_down:
            self.previous_position = self.position
        self._notify("pen_down")

    def set_pen_radius(self, radius: float) -> None:
        radius = max(1.0, min(9.0, float(radius)))
        if radius == self.pen_radius:
            return
        self.pen_radius = radius
        self.update_shape()
        self._notify("pen_radius")

    def set_pen_color(self, color: Color) -> None:
        color = (int(color[0]), int(color[1]), int(color[2]))
        if color == self.pen_color:
            return
        self.pen_color = color
        self._notify("pen_color")

    def set_speed(self, speed: float) -> None:
        self.speed = max(self.min_speed, min(self.max_speed, float(speed)))

    def update_shape(self, translation: Optional[Point2D] = None) -> None:
        """Translate the footprint, or rebuild it when no translation is given."""
        if translation is not None and translation != (0.0, 0.0):
            self.shape = self.shape.translated(translation[0], translation[1])
            return
        self.shape = regular_polygon(self.position, self.pen_radius, self.footprint_sides)

    def forward_vector(self) -> Point2D:
        angle = math.radians(self.rotation - 90.0)
        return (math.cos(angle), math.sin(angle))

    def right_vector(self) -> Point2D:
        angle = math.radians(self.rotation)
        return (math.cos(angle), math.sin(angle))

    # --- Lines -------------------------------------------------------------

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> Line:
        if 0 <= index < len(self._lines):
            return self._lines[index]
        return Line()

    def get_lines(self) -> List[Line]:
        return list(self._lines)

    def set_lines(self, lines: List[Line]) -> None:
        """Replace every drawn line, e.g. after loading a saved session."""
        self._lines = list(lines)
        self.previous_position = self.position
        self._notify("lines")

    # --- Motion ------------------------------------------------------------

    def is_moving(self) -> bool:
        return self._motion is not None

    def is_paused(self) -> bool:
        return self._motion is not None and self._motion.paused

    def turn(self, degrees: float = 30.0) -> float:
        with self._lock:
            if self.is_moving():
                self._emit_completed(MovementResult.FAILURE)
                return INSTANT_DURATION
            new_rotation = self.rotation + degrees
            self.previous_rotation = normalize_rotation(new_rotation)
            self.set_rotation(new_rotation)
            self._emit_completed(MovementResult.SUCCESS)
            return INSTANT_DURATION

    def forward(self, distance: float = 100.0) -> float:
        with self._lock:
            if self.is_moving():
                self._emit_completed(MovementResult.FAILURE)
                return INSTANT_DURATION
            fx, fy = self.forward_vector()
            start = self.position
            end = (start[0] + fx * distance, start[1] + fy * distance)
            duration = abs(distance) * 1000.0 / self.speed
            if duration <= 0.0:
                self._emit_completed(MovementResult.SUCCESS)
                return 0.0
            self._start_motion(_Motion("forward", start, self.rotation, self.rotation, [start, end], duration))
            return duration

    def arc(self, radius: float, degrees: float = 360.0) -> float:
        with self._lock:
            if self.is_moving():
                self._emit_completed(MovementResult.FAILURE)
                return INSTANT_DURATION
            if radius < MIN_ARC_RADIUS:
                self._emit_completed(MovementResult.SUCCESS)
                return INSTANT_DURATION
            sweep = abs(degrees) / 360.0
            duration = sweep * 2.0 * math.pi * radius / self.speed * 1000.0
            if duration <= 0.0:
                self._emit_completed(MovementResult.SUCCESS)
                return 0.0
            # Positive degrees sweep clockwise on screen.
            side = -1.0 if degrees > 0.0 else 1.0
            start = self.position
            rx, ry = self.right_vector()
            start_radians = math.radians(self.rotation)
            sweep_radians = math.radians(degrees)
            count = max(1, math.ceil(self.arc_segments * sweep))
            keypoints: List[Point2D] = [start]
            for k in range(1, count + 1):
                angle = start_radians + sweep_radians * k / count
                keypoints.append(
                    (
                        start[0] + side * radius * (math.cos(angle) - rx),
                        start[1] + side * radius * (math.sin(angle) - ry),
                    )
                )
            motion = _Motion("arc", start, self.rotation, self.rotation + degrees, keypoints, duration)
            self._start_motion(motion)
            return duration

    def random_move(self, rng: random.Random) -> float:
        """Turn then go forward, or sweep an arc, by random amounts.

        Angles are 30-360 degrees either way, distances 20-200 and radii
        50-100. Returns the duration of the motion started.
        """
        angle = rng.choice((-1, 1)) * max(30, rng.randrange(361))
        if rng.randrange(2):
            self.turn(angle)
            return self.forward(max(20, rng.randrange(201)))
        return self.arc(max(50, rng.randrange(101)), angle)

    def _start_motion(self, motion: _Motion) -> None:
        self.previous_position = self.position
        self.previous_rotation = self.rotation
        self._motion = motion
        logger.debug("Started %s motion lasting %.1f ms", motion.kind, motion.duration_ms)

    def advance(self, dt_ms: float) -> Optional[MovementResult]:
        """Move the current motion forward by `dt_ms` of animation time.

        Returns the terminal result when the motion ended during this call.
        """
        with self._lock:
            motion = self._motion
            if motion is None or motion.paused:
                return None
            motion.elapsed_ms += max(0.0, dt_ms)
            progress = motion.progress()
            position, rotation = motion.sample(progress)
            self.set_position(position)
            self.set_rotation(rotation)
            if self.test_collision():
                return MovementResult.BLOCKED
            self._settle(motion, progress)
            if progress >= 1.0:
                self._finish(motion)
                return MovementResult.SUCCESS
            return None

    def _settle(self, motion: _Motion, progress: float) -> None:
        passed = motion.keypoints_passed(progress)
        while motion.reached < passed:
            motion.reached += 1
            keypoint = motion.keypoints[motion.reached]
            if self.pen_down and keypoint != motion.anchor:
                motion.pending_lines.append(Line(motion.anchor, keypoint, self.pen_color, self.pen_radius))
            motion.anchor = keypoint
        self.previous_position = self.position
        self.previous_rotation = self.rotation

    def _finish(self, motion: _Motion) -> None:
        self._motion = None
        if motion.pending_lines:
            self._lines.extend(motion.pending_lines)
            self._notify("lines")
        self.previous_position = self.position
        self.previous_rotation = self.rotation
        self._emit_completed(MovementResult.SUCCESS)

    def pause(self) -> None:
        with self._lock:
            if self._motion is None or self._motion.paused:
                return
            self._motion.paused = True
            self._emit_completed(MovementResult.PAUSED)

    def resume(self) -> None:
        with self._lock:
            if self._motion is not None:
                self._motion.paused = False

    # --- Collisions --------------------------------------------------------

    def find_collision(self) -> Tuple[Optional[object], Optional[Polygon]]:
        if self.canvas is None:
            return None, None
        footprint = self.shape
        boundary = self.canvas.boundary_shape()
        if not intersects(boundary, footprint):
            return self.canvas, boundary
        for obstacle in self.canvas.obstacles():
            if distance(self.position, obstacle.position) > obstacle.bounding_radius:
                continue
            if intersects(obstacle.points, footprint):
                return obstacle, obstacle.points
        return None, None

    def test_collision(self) -> bool:
        """Cancel the motion and roll back when the footprint hits something."""
        hit_object, hit_polygon = self.find_collision()
        if hit_object is None or hit_polygon is None:
            return False
        motion = self._motion
        self._motion = None
        if self.rollback == ROLLBACK_MOTION and motion is not None:
            target_position, target_rotation = motion.start_position, motion.start_rotation
        else:
            target_position, target_rotation = self.previous_position, self.previous_rotation
        self.set_position(target_position)
        self.set_rotation(target_rotation)
        self.previous_position = self.position
        self.previous_rotation = self.rotation
        logger.warning("Movement blocked by %r at %s", hit_object, self.position)
        self._emit_completed(MovementResult.BLOCKED)
        self._emit_collision(hit_object, hit_polygon)
        return True

    # --- Reset -------------------------------------------------------------

    def reset_state(self) -> None:
        """Abort any motion and return to the start pose with no lines.

        Emits a SUCCESS completion so a waiting interpreter is released.
        """
        with self._lock:
            self._motion = None
            self.set_pen_down(False)
            self.set_position(self.start_position)
            self.set_pen_down(True)
            self.set_rotation(0.0)
            self.previous_rotation = self.rotation
            self._lines.clear()
            self._notify("lines")
            self._emit_completed(MovementResult.SUCCESS)

