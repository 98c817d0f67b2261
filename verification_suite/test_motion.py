"""Motion state machine: timing, arcs, busy rejection, collisions and rollback."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from turtle_mechanics.canvas import Canvas, Obstacle  # noqa: E402
from turtle_mechanics.geometry import Polygon  # noqa: E402
from turtle_mechanics.motion import (  # noqa: E402
    ROLLBACK_MOTION,
    Line,
    MovementResult,
    TurtleControl,
    normalize_rotation,
)


def _turtle(**kwargs) -> TurtleControl:
    kwargs.setdefault("canvas", Canvas(900, 900))
    return TurtleControl(**kwargs)


def _record(turtle: TurtleControl) -> List[MovementResult]:
    results: List[MovementResult] = []
    turtle.add_completion_listener(results.append)
    return results


def _run(turtle: TurtleControl, step_ms: float = 10.0, limit: int = 100_000) -> None:
    for _ in range(limit):
        if not turtle.is_moving():
            return
        turtle.advance(step_ms)
    raise AssertionError("motion did not finish")


def _blocking_square() -> Canvas:
    canvas = Canvas(900, 900)
    canvas.add_obstacle(Obstacle(Polygon.from_rect(440, 340, 460, 360), name="wall"))
    return canvas


@pytest.mark.parametrize(
    "value, expected",
    [(0.0, 0.0), (360.0, 0.0), (450.0, 90.0), (-90.0, 270.0), (-720.0, 0.0), (359.5, 359.5), (-1e-14, 0.0)],
)
def test_normalize_rotation(value, expected):
    result = normalize_rotation(value)
    assert 0.0 <= result < 360.0
    assert result == pytest.approx(expected)
    assert normalize_rotation(result) == result


def test_forward_moves_along_heading_with_one_success():
    turtle = _turtle(speed=200)
    results = _record(turtle)
    duration = turtle.forward(100)
    assert duration == pytest.approx(500.0)
    assert turtle.is_moving()
    _run(turtle)
    assert turtle.position == pytest.approx((450.0, 350.0))
    assert results == [MovementResult.SUCCESS]
    assert turtle.line_count == 1
    line = turtle.get_line(0)
    assert line.start == pytest.approx((450.0, 450.0))
    assert line.end == pytest.approx((450.0, 350.0))
    assert line.width == turtle.pen_radius


def test_forward_is_animated_in_time():
    turtle = _turtle(speed=100)
    turtle.forward(100)
    turtle.advance(250)
    assert turtle.position == pytest.approx((450.0, 425.0))
    assert turtle.line_count == 0
    turtle.advance(750)
    assert not turtle.is_moving()


def test_forward_heading_right_after_turn():
    turtle = _turtle()
    turtle.turn(90)
    turtle.forward(50)
    _run(turtle)
    assert turtle.position == pytest.approx((500.0, 450.0))


def test_pen_up_draws_nothing():
    turtle = _turtle()
    turtle.set_pen_down(False)
    turtle.forward(40)
    _run(turtle)
    assert turtle.line_count == 0
    assert turtle.position == pytest.approx((450.0, 410.0))


def test_zero_distance_forward_completes_immediately():
    turtle = _turtle()
    results = _record(turtle)
    turtle.forward(0)
    assert results == [MovementResult.SUCCESS]
    assert not turtle.is_moving()


def test_turn_is_instant_and_normalized():
    turtle = _turtle()
    results = _record(turtle)
    turtle.turn(450)
    assert turtle.rotation == pytest.approx(90.0)
    turtle.turn(-180)
    assert turtle.rotation == pytest.approx(270.0)
    assert results == [MovementResult.SUCCESS, MovementResult.SUCCESS]


def test_second_motion_while_moving_fails_without_state_change():
    turtle = _turtle()
    turtle.forward(100)
    turtle.advance(50)
    results = _record(turtle)
    position, rotation = turtle.position, turtle.rotation
    assert turtle.forward(30) == pytest.approx(0.001)
    turtle.turn(45)
    turtle.arc(50, 90)
    assert results == [MovementResult.FAILURE] * 3
    assert turtle.position == position
    assert turtle.rotation == rotation
    _run(turtle)
    assert turtle.position == pytest.approx((450.0, 350.0))


def test_full_circle_arc_returns_to_start():
    turtle = _turtle(speed=3500)
    results = _record(turtle)
    turtle.arc(100, 360)
    _run(turtle, step_ms=16)
    assert results == [MovementResult.SUCCESS]
    assert turtle.position[0] == pytest.approx(450.0, abs=1e-6)
    assert turtle.position[1] == pytest.approx(450.0, abs=1e-6)
    assert turtle.rotation == pytest.approx(0.0)
    assert turtle.line_count == 50


def test_quarter_arc_is_clockwise():
    turtle = _turtle(speed=1000)
    turtle.arc(100, 90)
    _run(turtle)
    # Heading up, a clockwise quarter circle ends up-right facing right.
    assert turtle.position == pytest.approx((550.0, 350.0))
    assert turtle.rotation == pytest.approx(90.0)
    assert turtle.line_count == 13


def test_negative_arc_is_counter_clockwise():
    turtle = _turtle(speed=1000)
    turtle.arc(100, -90)
    _run(turtle)
    assert turtle.position == pytest.approx((350.0, 350.0))
    assert turtle.rotation == pytest.approx(270.0)


def test_tiny_radius_arc_is_a_no_op_success():
    turtle = _turtle()
    results = _record(turtle)
    turtle.arc(0.0, 90)
    assert results == [MovementResult.SUCCESS]
    assert turtle.position == (450.0, 450.0)


def test_obstacle_blocks_forward_between_start_and_target():
    turtle = _turtle(speed=1000, canvas=_blocking_square())
    results = _record(turtle)
    hits = []
    turtle.add_collision_listener(lambda obj, poly: hits.append(obj))
    turtle.forward(200)
    _run(turtle, step_ms=10)
    assert results == [MovementResult.BLOCKED]
    x, y = turtle.position
    assert x == pytest.approx(450.0)
    assert 250.0 < y < 450.0
    assert y > 360.0
    assert turtle.line_count == 0
    assert [h.name for h in hits] == ["wall"]
    assert not turtle.is_moving()


def test_motion_rollback_returns_to_motion_start():
    turtle = _turtle(speed=1000, canvas=_blocking_square(), rollback=ROLLBACK_MOTION)
    results = _record(turtle)
    turtle.forward(200)
    _run(turtle, step_ms=10)
    assert results == [MovementResult.BLOCKED]
    assert turtle.position == pytest.approx((450.0, 450.0))


def test_leaving_the_canvas_is_blocked():
    canvas = Canvas(900, 900)
    turtle = _turtle(start_position=(450, 20), speed=1000, canvas=canvas)
    results = _record(turtle)
    hits = []
    turtle.add_collision_listener(lambda obj, poly: hits.append(obj))
    turtle.forward(100)
    _run(turtle, step_ms=5)
    assert results == [MovementResult.BLOCKED]
    assert -80.0 < turtle.position[1] < 20.0
    assert hits == [canvas]


def test_far_obstacle_is_ignored():
    canvas = Canvas(900, 900)
    canvas.add_obstacle(Obstacle(Polygon.from_rect(10, 10, 30, 30)))
    turtle = _turtle(speed=1000, canvas=canvas)
    turtle.forward(100)
    _run(turtle)
    assert turtle.position == pytest.approx((450.0, 350.0))


def test_pause_and_resume():
    turtle = _turtle(speed=100)
    results = _record(turtle)
    turtle.forward(100)
    turtle.advance(200)
    turtle.pause()
    assert turtle.is_paused()
    position = turtle.position
    turtle.advance(5000)
    assert turtle.position == position
    turtle.resume()
    _run(turtle)
    assert results == [MovementResult.PAUSED, MovementResult.SUCCESS]
    assert turtle.position == pytest.approx((450.0, 350.0))


def test_reset_state_aborts_motion_and_clears_lines():
    turtle = _turtle()
    turtle.forward(20)
    _run(turtle)
    turtle.turn(30)
    turtle.forward(100)
    turtle.advance(10)
    results = _record(turtle)
    turtle.reset_state()
    assert results == [MovementResult.SUCCESS]
    assert not turtle.is_moving()
    assert turtle.position == (450.0, 450.0)
    assert turtle.rotation == 0.0
    assert turtle.pen_down
    assert turtle.line_count == 0


def test_pen_radius_and_speed_are_clamped():
    turtle = _turtle()
    turtle.set_pen_radius(20)
    assert turtle.pen_radius == 9.0
    turtle.set_pen_radius(0.2)
    assert turtle.pen_radius == 1.0
    turtle.set_speed(0)
    assert turtle.speed == 1.0
    turtle.set_speed(1e9)
    assert turtle.speed == 9999.0


def test_set_position_translates_footprint():
    turtle = _turtle()
    before = turtle.shape.bounding_box()
    turtle.set_position((500, 400))
    after = turtle.shape.bounding_box()
    assert after.min_x - before.min_x == pytest.approx(50.0)
    assert after.min_y - before.min_y == pytest.approx(-50.0)
    assert after.width == pytest.approx(before.width)


def test_lines_accessors():
    turtle = _turtle()
    assert turtle.get_line(3) == Line()
    turtle.set_lines([Line((0, 0), (1, 1)), Line((1, 1), (2, 2))])
    assert turtle.line_count == 2
    turtle.set_lines([])
    assert turtle.line_count == 0


def test_unknown_rollback_policy_rejected():
    with pytest.raises(ValueError):
        TurtleControl(rollback="nowhere")


class _ScriptedRandom:
    """Stands in for random.Random with preset draws."""

    def __init__(self, sign: int, draws: List[int]) -> None:
        self.sign = sign
        self.draws = list(draws)

    def choice(self, seq):
        return self.sign

    def randrange(self, stop: int) -> int:
        value = self.draws.pop(0)
        assert 0 <= value < stop
        return value


def test_random_move_turns_then_goes_forward():
    turtle = _turtle()
    # angle 90 to the left, "forward" branch, distance 100
    duration = turtle.random_move(_ScriptedRandom(-1, [90, 1, 100]))
    assert duration > 0.0
    _run(turtle)
    assert turtle.rotation == pytest.approx(270.0)
    assert turtle.position == pytest.approx((350.0, 450.0))
    assert turtle.line_count == 1


def test_random_move_arc_uses_minimum_angle_and_radius():
    turtle = _turtle()
    turtle.random_move(_ScriptedRandom(1, [10, 0, 10]))
    assert turtle.is_moving()
    _run(turtle)
    assert turtle.rotation == pytest.approx(30.0)
    assert turtle.line_count > 0
    # 30 degrees of a radius-50 circle, clockwise from the start.
    assert turtle.position[0] > 450.0
    assert turtle.position[1] < 450.0


def test_change_listeners_see_property_updates():
    turtle = _turtle()
    changes: List[str] = []
    turtle.add_change_listener(changes.append)
    turtle.set_pen_down(False)
    turtle.set_pen_radius(5)
    turtle.set_pen_color((1, 2, 3))
    turtle.set_position((10.0, 20.0))
    turtle.set_rotation(45.0)
    turtle.set_lines([])
    assert changes == ["pen_down", "pen_radius", "pen_color", "position", "rotation", "lines"]

    changes.clear()
    turtle.set_pen_radius(5)
    assert changes == []
