"""Variables, user functions and the text substitution that uses them."""
from __future__ import annotations

from dataclasses import dataclass, field
import math
import re
import struct
from typing import Dict, Iterator, List, Optional

from . import grammar


def to_float32(value: float) -> float:
    """Round a Python float to single precision."""
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def format_value(value: float) -> str:
    return f"{value:f}"


class VariableStore:
    """Name -> float32 mapping that lives as long as its interpreter."""

    def __init__(self) -> None:
        self._values: Dict[str, float] = {}

    def set(self, name: str, value: float) -> float:
        stored = to_float32(float(value))
        self._values[name] = stored
        return stored

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return self._values.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __getitem__(self, name: str) -> float:
        return self._values[name]

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def as_dict(self) -> Dict[str, float]:
        return dict(self._values)


@dataclass
class UserFunction:
    name: str
    body: List[str] = field(default_factory=list)
    parameter: Optional[str] = None


class FunctionTable:
    """User-defined functions; defining a name again replaces it."""

    def __init__(self) -> None:
        self._functions: Dict[str, UserFunction] = {}

    def define(self, name: str, body: List[str], parameter: Optional[str] = None) -> UserFunction:
        function = UserFunction(name=name, body=list(body), parameter=parameter or None)
        self._functions[name] = function
        return function

    def get(self, name: str) -> Optional[UserFunction]:
        return self._functions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)

    def names(self) -> List[str]:
        return sorted(self._functions)


class Environment:
    """State shared by every command an interpreter runs."""

    def __init__(self) -> None:
        self.variables = VariableStore()
        self.functions = FunctionTable()

    def substitute_variables(self, command: str) -> str:
        """Replace known variable names inside argument lists with their values.

        Unknown tokens are kept as-is so the grammar rejects them later. A
        leading '-' negates the looked-up value. `a=b` with a known `b` becomes
        `a=<value of b>`. The result has no whitespace.
        """
        substituted = grammar.ARGUMENT_LIST.sub(self._substitute_arguments, command)

        match = grammar.VARASSIGN.match(substituted)
        if match:
            value = self.variables.get(match.group(2))
            if value is not None:
                substituted = f"{match.group(1)}={format_value(value)}"

        return grammar.strip_whitespace(substituted)

    def _substitute_arguments(self, match: "re.Match[str]") -> str:
        tokens = []
        for token in match.group(1).split(","):
            replacement = token
            name = token.strip()
            sign = 1.0
            if name.startswith("-"):
                sign = -1.0
                name = name[1:]
            value = self.variables.get(name)
            if value is not None:
                replacement = format_value(sign * value)
            tokens.append(replacement)
        return "(" + ",".join(tokens) + ")"


__all__ = ["Environment", "VariableStore", "FunctionTable", "UserFunction", "to_float32", "format_value"]
