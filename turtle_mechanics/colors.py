"""RGB color helpers shared by the turtle, obstacles and persistence."""
from __future__ import annotations

import math
from typing import Tuple

Color = Tuple[int, int, int]

BLACK: Color = (0, 0, 0)
RED: Color = (255, 0, 0)

OBSTACLE_PALETTE: Tuple[Color, ...] = (
    (255, 0, 0),
    (0, 0, 255),
    (0, 255, 0),
    (0, 255, 255),
    (255, 0, 255),
    (255, 255, 0),
    (128, 0, 0),
    (0, 128, 0),
    (0, 0, 128),
)


def clamp_channel(value: float) -> int:
    return int(max(0, min(255, value)))


def color_from_floats(r: float, g: float, b: float) -> Color:
    """Channels are floor(abs(value)), clamped into 0..255."""
    return (
        clamp_channel(math.floor(abs(r))),
        clamp_channel(math.floor(abs(g))),
        clamp_channel(math.floor(abs(b))),
    )


def to_hex(color: Color) -> str:
    r, g, b = color
    return f"#{r:02x}{g:02x}{b:02x}"


def from_hex(text: str) -> Color:
    raw = text.strip()
    if raw.startswith("#"):
        raw = raw[1:]
    if len(raw) != 6:
        raise ValueError(f"Expected a #rrggbb color, got {text!r}")
    try:
        return (int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16))
    except ValueError as exc:
        raise ValueError(f"Expected a #rrggbb color, got {text!r}") from exc


__all__ = ["Color", "BLACK", "RED", "OBSTACLE_PALETTE", "color_from_floats", "to_hex", "from_hex"]
