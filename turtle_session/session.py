"""Wires canvas, turtle, completion channel and interpreter from a config."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from turtle_language.completion import CompletionChannel, Pump
from turtle_language.interpreter import Interpreter
from turtle_mechanics.canvas import Canvas
from turtle_mechanics.motion import TurtleControl

from .config import CanvasConfig, SessionConfig, TurtleConfig

logger = logging.getLogger(__name__)


@dataclass
class Session:
    config: SessionConfig
    canvas: Canvas
    turtle: TurtleControl
    channel: CompletionChannel
    interpreter: Interpreter


def build_canvas(cfg: CanvasConfig) -> Canvas:
    return Canvas(
        cfg.width,
        cfg.height,
        seed=cfg.seed,
        min_obstacle_size=cfg.min_obstacle_size,
        obstacle_size_range=cfg.obstacle_size_range,
        turtle_clearance=cfg.turtle_clearance,
        max_attempts=cfg.max_attempts,
    )


def build_turtle(cfg: TurtleConfig, canvas: Optional[Canvas] = None) -> TurtleControl:
    return TurtleControl(
        start_position=cfg.start_position,
        speed=cfg.speed,
        min_speed=cfg.min_speed,
        max_speed=cfg.max_speed,
        arc_segments=cfg.arc_segments,
        pen_radius=cfg.pen_radius,
        pen_color=tuple(cfg.pen_color),
        footprint_sides=cfg.footprint_sides,
        rollback=cfg.rollback,
        canvas=canvas,
    )


def build_session(cfg: Optional[SessionConfig] = None, *, pump: Optional[Pump] = None) -> Session:
    """Create a ready-to-run session.

    Without a `pump` the channel plays motions back in simulated time using
    `cfg.runner.step_ms`, which is what headless runs and tests want.
    """
    cfg = cfg or SessionConfig()
    canvas = build_canvas(cfg.canvas)
    turtle = build_turtle(cfg.turtle, canvas)
    if cfg.canvas.obstacle_count > 0:
        canvas.generate_obstacles(cfg.canvas.obstacle_count, turtle.position)
    if pump is None:
        channel = CompletionChannel.fixed_step(turtle, cfg.runner.step_ms, timeout=cfg.runner.wait_timeout)
    else:
        channel = CompletionChannel(turtle, pump=pump, timeout=cfg.runner.wait_timeout)
    interpreter = Interpreter(turtle, channel)
    logger.debug("Built session: %s", canvas.summary())
    return Session(config=cfg, canvas=canvas, turtle=turtle, channel=channel, interpreter=interpreter)


__all__ = ["Session", "build_canvas", "build_turtle", "build_session"]
