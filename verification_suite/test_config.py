"""Session config JSON helpers and session wiring."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from turtle_mechanics.motion import ROLLBACK_MOTION  # noqa: E402
from turtle_session.config import (  # noqa: E402
    CanvasConfig,
    SessionConfig,
    TurtleConfig,
    load_json,
    load_session_config,
    save_json,
)
from turtle_session.session import build_session  # noqa: E402


def test_session_config_roundtrip(tmp_path: Path) -> None:
    cfg = SessionConfig(
        turtle=TurtleConfig(start_position=(100.0, 120.0), speed=350.0, pen_color=(10, 20, 30), rollback="motion"),
        canvas=CanvasConfig(width=400.0, height=300.0, obstacle_count=4, seed=9),
    )
    path = tmp_path / "nested" / "session.json"
    save_json(path, cfg)
    loaded = load_json(path, SessionConfig)
    assert loaded == cfg
    assert isinstance(loaded.turtle.start_position, tuple)
    assert isinstance(loaded.runner.window_size, tuple)


def test_partial_config_keeps_defaults(tmp_path: Path) -> None:
    path = tmp_path / "partial.json"
    path.write_text(json.dumps({"canvas": {"width": 500}}), encoding="utf-8")
    cfg = load_session_config(path)
    assert cfg.canvas.width == 500
    assert cfg.canvas.height == 900.0
    assert cfg.turtle == TurtleConfig()


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"turtle": {"colour": [1, 2, 3]}}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_session_config(path)


def test_no_path_gives_defaults() -> None:
    assert load_session_config(None) == SessionConfig()


def test_build_session_applies_config() -> None:
    cfg = SessionConfig(
        turtle=TurtleConfig(start_position=(200.0, 200.0), speed=123.0, rollback=ROLLBACK_MOTION, arc_segments=8),
        canvas=CanvasConfig(width=400.0, height=400.0, obstacle_count=3, seed=5),
    )
    session = build_session(cfg)
    assert session.turtle.position == (200.0, 200.0)
    assert session.turtle.speed == 123.0
    assert session.turtle.rollback == ROLLBACK_MOTION
    assert session.turtle.arc_segments == 8
    assert session.turtle.canvas is session.canvas
    assert len(session.canvas) == 3
    assert session.interpreter.sink is session.turtle

    again = build_session(cfg)
    assert [o.points for o in again.canvas] == [o.points for o in session.canvas]


def test_built_session_runs_commands_headless() -> None:
    session = build_session()
    session.interpreter.parse_line("forward(25); turn(90); forward(25)")
    assert session.turtle.position == pytest.approx((475.0, 425.0))
    assert session.turtle.line_count == 2
