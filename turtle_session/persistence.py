"""Text save/load of the turtle pose, pen and drawn lines.

File layout::

    x;y;rotation;pen_down;pen_radius;#rrggbb;
    sx;sy;ex;ey;#rrggbb;width
    ...

Lines with five fields fall back to a width of 1.0; any other field count is
skipped. A bad header or an unparsable number rejects the whole file.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from turtle_mechanics.colors import Color, from_hex, to_hex
from turtle_mechanics.motion import Line, TurtleControl

logger = logging.getLogger(__name__)

STATE_SUFFIX = ".txt"
DEFAULT_LINE_WIDTH = 1.0


class StateFormatError(ValueError):
    """Raised when a saved state cannot be decoded."""


@dataclass
class TurtleState:
    position: Tuple[float, float] = (0.0, 0.0)
    rotation: float = 0.0
    pen_down: bool = True
    pen_radius: float = 1.0
    pen_color: Color = (0, 0, 0)
    lines: List[Line] = field(default_factory=list)


def _fields(text: str) -> List[str]:
    return [part.strip() for part in text.split(";") if part.strip()]


def _number(raw: str, what: str, line_no: int) -> float:
    try:
        return float(raw)
    except ValueError as exc:
        raise StateFormatError(f"line {line_no}: {what} is not a number: {raw!r}") from exc


def _color(raw: str, line_no: int) -> Color:
    try:
        return from_hex(raw)
    except ValueError as exc:
        raise StateFormatError(f"line {line_no}: bad color {raw!r}") from exc


def capture_state(turtle: TurtleControl) -> TurtleState:
    return TurtleState(
        position=turtle.position,
        rotation=turtle.rotation,
        pen_down=turtle.pen_down,
        pen_radius=turtle.pen_radius,
        pen_color=turtle.pen_color,
        lines=turtle.get_lines(),
    )


def encode_state(state: TurtleState) -> str:
    x, y = state.position
    header = ";".join(
        [
            repr(float(x)),
            repr(float(y)),
            repr(float(state.rotation)),
            "1" if state.pen_down else "0",
            repr(float(state.pen_radius)),
            to_hex(state.pen_color),
        ]
    )
    rows = [header + ";"]
    for line in state.lines:
        rows.append(
            ";".join(
                [
                    repr(float(line.start[0])),
                    repr(float(line.start[1])),
                    repr(float(line.end[0])),
                    repr(float(line.end[1])),
                    to_hex(line.color),
                    repr(float(line.width)),
                ]
            )
        )
    return "\n".join(rows) + "\n"


def decode_state(text: str) -> TurtleState:
    rows = [row.strip() for row in text.splitlines()]
    if not rows or not rows[0]:
        raise StateFormatError("state is empty")

    header = _fields(rows[0])
    if len(header) < 6:
        raise StateFormatError(f"line 1: expected 6 header fields, got {len(header)}")
    try:
        pen_down = int(header[3]) != 0
    except ValueError as exc:
        raise StateFormatError(f"line 1: pen state must be 0 or 1, got {header[3]!r}") from exc
    state = TurtleState(
        position=(_number(header[0], "x", 1), _number(header[1], "y", 1)),
        rotation=_number(header[2], "rotation", 1),
        pen_down=pen_down,
        pen_radius=_number(header[4], "pen radius", 1),
        pen_color=_color(header[5], 1),
    )

    for line_no, row in enumerate(rows[1:], start=2):
        if not row:
            continue
        parts = _fields(row)
        if len(parts) not in (5, 6):
            logger.warning("Skipping line %d with %d fields", line_no, len(parts))
            continue
        width = _number(parts[5], "width", line_no) if len(parts) == 6 else DEFAULT_LINE_WIDTH
        state.lines.append(
            Line(
                start=(_number(parts[0], "start x", line_no), _number(parts[1], "start y", line_no)),
                end=(_number(parts[2], "end x", line_no), _number(parts[3], "end y", line_no)),
                color=_color(parts[4], line_no),
                width=width,
            )
        )
    return state


def apply_state(turtle: TurtleControl, state: TurtleState) -> None:
    turtle.set_position(state.position)
    turtle.set_rotation(state.rotation)
    turtle.set_pen_down(state.pen_down)
    turtle.set_pen_radius(state.pen_radius)
    turtle.set_pen_color(state.pen_color)
    turtle.set_lines(state.lines)


def timestamped_name(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%d_%m_%H_%M")


def local_path(path: Union[str, Path]) -> Path:
    """Path from a plain path or a `file://` URL as handed out by file dialogs."""
    raw = str(path)
    if raw.startswith("file://"):
        raw = raw[len("file://"):]
    return Path(raw)


def state_path(directory: Path, name: str) -> Path:
    path = Path(directory) / name
    if not path.suffix:
        path = path.with_suffix(STATE_SUFFIX)
    return path


def save_state(path: Path, turtle: TurtleControl) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write(encode_state(capture_state(turtle)))
    logger.info("State saved successfully: %s", path)
    return path


def load_state(path: Union[str, Path], turtle: TurtleControl) -> bool:
    """Load a saved state into `turtle`; False (and nothing applied) on failure."""
    path = local_path(path)
    if not path.is_file():
        logger.error("Failed to load state: %s does not exist", path)
        return False
    if turtle.is_moving():
        logger.error("Failed to load state: turtle is still moving")
        return False
    try:
        with path.open("r", encoding="utf-8") as f:
            state = decode_state(f.read())
    except (OSError, StateFormatError) as exc:
        logger.error("Failed to load state from %s: %s", path, exc)
        return False
    apply_state(turtle, state)
    logger.info("State loaded successfully: %s (%d lines)", path, len(state.lines))
    return True


__all__ = [
    "StateFormatError",
    "TurtleState",
    "capture_state",
    "encode_state",
    "decode_state",
    "apply_state",
    "timestamped_name",
    "local_path",
    "state_path",
    "save_state",
    "load_state",
]
