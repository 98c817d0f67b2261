"""Regular expressions for every command form of the turtle language.

Commands reach the primitive patterns with all whitespace removed; the block
headers are matched against raw script lines.
"""
from __future__ import annotations

import re

NUMBER = r"-?\d*\.?\d+"
STRICT_NUMBER = r"-?\d+(?:\.\d+)?"
IDENTIFIER = r"[a-zA-Z_]\w*"

# Block headers (script stream only)
FUNCDEF = re.compile(rf"^\s*DEF\s+({IDENTIFIER})\s*\(\s*({IDENTIFIER})?\s*\)\s*\{{\s*$")
LOOPDEF = re.compile(r"^\s*LOOP\s*(\d+)\s*\{\s*$")

# One-line loop, checked before splitting on ';'
INLINE_LOOP = re.compile(r"^\s*LOOP(\d+)\s*\{\s*(.*?)\s*\}\s*$")

# Variables
VARDEF = re.compile(rf"^\s*({IDENTIFIER})\s*=\s*({STRICT_NUMBER})\s*$")
VARADD = re.compile(rf"^\s*({IDENTIFIER})\s*=\s*add\(\s*({STRICT_NUMBER})\s*,\s*({STRICT_NUMBER})\s*\)\s*$")
VARMUL = re.compile(rf"^\s*({IDENTIFIER})\s*=\s*mul\(\s*({STRICT_NUMBER})\s*,\s*({STRICT_NUMBER})\s*\)\s*$")
VARASSIGN = re.compile(rf"^\s*({IDENTIFIER})\s*=\s*({IDENTIFIER})\s*$")

# Substitution targets: the contents of every (...) group
ARGUMENT_LIST = re.compile(r"\(([^\)]+)\)")

# A call that may name a user-defined function
FUNCTION_CALL = re.compile(r"(\w+)\(([-+]?\d*\.?\d+)?\)")

# Nullary, parentheses optional
UP = re.compile(r"^\s*up\s*\(?\)?\s*$")
DOWN = re.compile(r"^\s*down\s*\(?\)?\s*$")


def _unary(name: str) -> "re.Pattern[str]":
    return re.compile(rf"^\s*{name}\s*\(\s*({NUMBER})\s*\)\s*$")


def _binary(name: str) -> "re.Pattern[str]":
    return re.compile(rf"^\s*{name}\s*\(\s*({NUMBER})\s*,\s*({NUMBER})\s*\)\s*$")


FORWARD = _unary("forward")
TURN = _unary("turn")
SETROT = _unary("setrot")
SETSPEED = _unary("setspeed")
SETSIZE = _unary("setsize")

SETPOS = _binary("setpos")
ARC = _binary("arc")

SETCOLOR = re.compile(rf"^\s*setcolor\s*\(\s*({NUMBER})\s*,\s*({NUMBER})\s*,\s*({NUMBER})\s*\)\s*$")

BLOCK_END = "}"
BLOCK_START = "{"


def strip_whitespace(text: str) -> str:
    return "".join(text.split())


def opens_block(line: str) -> bool:
    return bool(FUNCDEF.match(line) or LOOPDEF.match(line))


def closes_block(line: str) -> bool:
    """A line with '}' ends a block unless it also opens one inline."""
    return BLOCK_END in line and BLOCK_START not in line
