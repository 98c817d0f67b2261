"""Data models and JSON helpers for turtle sessions."""
from __future__ import annotations

from dataclasses import dataclass, asdict, field
import json
from pathlib import Path
from typing import Dict, Optional, Tuple, get_type_hints, get_origin, get_args

Point = Tuple[float, float]


@dataclass
class TurtleConfig:
    start_position: Point = (450.0, 450.0)
    speed: float = 200.0
    min_speed: float = 1.0
    max_speed: float = 9999.0
    arc_segments: int = 50
    pen_radius: float = 3.0
    pen_color: Tuple[int, int, int] = (0, 0, 0)
    footprint_sides: int = 10
    rollback: str = "step"  # "step" | "motion"


@dataclass
class CanvasConfig:
    width: float = 900.0
    height: float = 900.0
    obstacle_count: int = 0
    seed: Optional[int] = None
    min_obstacle_size: float = 25.0
    obstacle_size_range: float = 20.0
    turtle_clearance: float = 25.0
    max_attempts: int = 100


@dataclass
class RunnerConfig:
    """Host loop settings for the GUI and headless runner."""

    window_size: Tuple[int, int] = (1300, 940)
    fps: int = 60
    step_ms: float = 16.0
    output_limit: int = 100
    state_dir: str = "saves"
    wait_timeout: Optional[float] = None


@dataclass
class SessionConfig:
    turtle: TurtleConfig = field(default_factory=TurtleConfig)
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)


def _coerce(expected, value):
    """Lists from JSON become tuples where the field is a tuple."""
    if get_origin(expected) is tuple and isinstance(value, list):
        return tuple(value)
    return value


def _dataclass_from_dict(cls, data: Dict) -> object:
    field_types = get_type_hints(cls)
    kwargs = {}
    for key, value in data.items():
        expected = field_types.get(key)
        if expected is None:
            raise ValueError(f"Unknown field '{key}' for {cls.__name__}")
        if hasattr(expected, "__dataclass_fields__"):
            kwargs[key] = _dataclass_from_dict(expected, value or {})
            continue
        origin = get_origin(expected)
        if origin is not None and origin is not tuple:
            args = [a for a in get_args(expected) if a is not type(None)]
            if len(args) == 1 and hasattr(args[0], "__dataclass_fields__"):
                kwargs[key] = None if value is None else _dataclass_from_dict(args[0], value)
                continue
        kwargs[key] = _coerce(expected, value)
    return cls(**kwargs)


def load_json(path: Path, cls):
    """Read `path` into dataclass `cls`, nested sections included."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return _dataclass_from_dict(cls, data)


def save_json(path: Path, cfg) -> Path:
    """Write dataclass `cfg` as indented JSON; tuples come out as lists."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2) + "\n", encoding="utf-8")
    return path


def load_session_config(path: Optional[Path]) -> SessionConfig:
    """Read a session config, falling back to defaults when no path is given."""
    if path is None:
        return SessionConfig()
    return load_json(path, SessionConfig)
