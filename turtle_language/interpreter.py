"""Command parser/executor for the turtle language.

Lines are split on ';' into sub-commands; each has its variables
substituted, is matched against the grammar and dispatched to a
`MotionSink`. Animated primitives (`forward`, `arc`) are awaited through the
`CompletionChannel` so commands run strictly one after another.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Pattern, Sequence, Tuple, Union

from turtle_mechanics.colors import color_from_floats
from turtle_mechanics.motion import MotionSink, MovementResult, TurtleControl

from . import grammar
from .completion import CompletionChannel
from .environment import Environment, FunctionTable, UserFunction, VariableStore

logger = logging.getLogger(__name__)

ScriptSource = Union[str, Iterable[str]]


class Interpreter:
    """Runs command lines and scripts against one turtle."""

    def __init__(
        self,
        sink: MotionSink,
        channel: Optional[CompletionChannel] = None,
        *,
        environment: Optional[Environment] = None,
    ) -> None:
        self.sink = sink
        if channel is None:
            if not isinstance(sink, TurtleControl):
                raise TypeError("a CompletionChannel is required for sinks other than TurtleControl")
            # Motions then advance in simulated time while the interpreter waits.
            channel = CompletionChannel.fixed_step(sink)
        self.channel = channel
        self.env = environment or Environment()
        self.history: List[str] = []
        self.last_result: Optional[MovementResult] = None
        self._call_stack: List[str] = []
        self._depth = 0
        self._cancelled = False
        self._primitives: List[Tuple[Pattern[str], Callable[..., None]]] = [
            (grammar.FORWARD, self._forward),
            (grammar.TURN, self._turn),
            (grammar.SETROT, self._setrot),
            (grammar.SETPOS, self._setpos),
            (grammar.ARC, self._arc),
            (grammar.UP, self._up),
            (grammar.DOWN, self._down),
            (grammar.SETSIZE, self._setsize),
            (grammar.SETSPEED, self._setspeed),
            (grammar.SETCOLOR, self._setcolor),
            (grammar.VARDEF, self._vardef),
            (grammar.VARADD, self._varadd),
            (grammar.VARMUL, self._varmul),
        ]

    @property
    def variables(self) -> VariableStore:
        return self.env.variables

    @property
    def functions(self) -> FunctionTable:
        return self.env.functions

    @property
    def busy(self) -> bool:
        return self._depth > 0

    # --- Public entry points ---------------------------------------------

    def parse_line(self, text: str) -> List[str]:
        """Run one line typed at the prompt; returns the commands executed."""
        return self._top_level(lambda: self._parse_line(text))

    def parse_script(self, source: ScriptSource) -> List[str]:
        """Run a whole script, reading DEF/LOOP blocks from its line stream."""
        lines = source.splitlines() if isinstance(source, str) else source
        return self._top_level(lambda: self._execute_lines(iter(lines), allow_definitions=True))

    def load_script(self, path: Path) -> List[str]:
        with Path(path).open("r", encoding="utf-8") as f:
            return self.parse_script(f)

    def run_loop(self, count: int, body: Union[str, Sequence[str]]) -> List[str]:
        """Execute `body` `count` times, re-parsing it on every pass."""
        lines = body.splitlines() if isinstance(body, str) else list(body)
        executed: List[str] = []
        for _ in range(count):
            if self._cancelled:
                break
            executed.extend(self._execute_lines(iter(lines), allow_definitions=False))
        return executed

    def substitute_variables(self, command: str) -> str:
        return self.env.substitute_variables(command)

    def cancel(self) -> None:
        """Skip the rest of the running line/script and stop waiting."""
        self._cancelled = True
        self.channel.release()

    def _top_level(self, run: Callable[[], List[str]]) -> List[str]:
        if self._depth == 0:
            self._cancelled = False
        self._depth += 1
        try:
            executed = run()
        finally:
            self._depth -= 1
        self.history.extend(executed)
        return executed

    # --- Line streams and blocks -----------------------------------------

    def _execute_lines(self, lines: Iterator[str], *, allow_definitions: bool) -> List[str]:
        executed: List[str] = []
        for line in lines:
            if self._cancelled:
                break
            self.channel.drain()

            match = grammar.FUNCDEF.match(line)
            if match:
                body = self._collect_block(lines)
                if not allow_definitions:
                    logger.warning("Function definitions are not allowed here: %s", line.strip())
                    continue
                name, parameter = match.group(1), match.group(2)
                self.env.functions.define(name, body, parameter)
                logger.debug("Function defined: %s with arg: %s", name, parameter or "")
                continue

            match = grammar.LOOPDEF.match(line)
            if match:
                body = self._collect_block(lines)
                executed.extend(self.run_loop(int(match.group(1)), body))
                continue

            executed.extend(self._parse_line(line))
        return executed

    @staticmethod
    def _collect_block(lines: Iterator[str]) -> List[str]:
        """Consume lines up to the '}' that closes the current block."""
        body: List[str] = []
        depth = 1
        for line in lines:
            if grammar.opens_block(line):
                depth += 1
            elif grammar.closes_block(line):
                depth -= 1
                if depth == 0:
                    break
            body.append(line.rstrip("\r\n"))
        return body

    # --- Single lines ------------------------------------------------------

    def _parse_line(self, text: str) -> List[str]:
        # Inline loops first: their body may contain ';'.
        match = grammar.INLINE_LOOP.match(grammar.strip_whitespace(text))
        if match:
            logger.debug("Matched inline loop: %s", match.group(2))
            return self.run_loop(int(match.group(1)), match.group(2))

        executed: List[str] = []
        for raw in text.split(";"):
            if self._cancelled:
                break
            self.channel.drain()

            command = self.env.substitute_variables(raw)
            if not command:
                continue

            call = grammar.FUNCTION_CALL.fullmatch(command)
            if call:
                function = self.env.functions.get(call.group(1))
                if function is not None:
                    executed.extend(self._call_function(function, call.group(2)))
                    continue

            if self._execute_primitive(command):
                executed.append(command)
            else:
                logger.warning("Parser failed to match the given input to a valid command: %s", command)
        return executed

    def _call_function(self, function: UserFunction, argument: Optional[str]) -> List[str]:
        if function.name in self._call_stack:
            logger.warning("Recursive call to %s() ignored", function.name)
            return []
        if argument and function.parameter:
            self.env.variables.set(function.parameter, float(argument))
        self._call_stack.append(function.name)
        try:
            return self._execute_lines(iter(function.body), allow_definitions=False)
        finally:
            self._call_stack.pop()

    def _execute_primitive(self, command: str) -> bool:
        for pattern, handler in self._primitives:
            match = pattern.match(command)
            if match:
                handler(*match.groups())
                return True
        return False

    # --- Primitive handlers ------------------------------------------------

    def _await(self, issue: Callable[[], object]) -> None:
        result = self.channel.run(issue)
        self.last_result = result
        if result is not None and result is not MovementResult.SUCCESS:
            logger.info("Motion finished with %s", result.name)

    def _forward(self, distance: str) -> None:
        self._await(lambda: self.sink.forward(float(distance)))

    def _arc(self, radius: str, degrees: str) -> None:
        self._await(lambda: self.sink.arc(float(radius), float(degrees)))

    def _turn(self, degrees: str) -> None:
        self._await(lambda: self.sink.turn(float(degrees)))

    def _setrot(self, rotation: str) -> None:
        self.sink.set_rotation(float(rotation))

    def _setpos(self, x: str, y: str) -> None:
        self.sink.set_position((float(x), float(y)))

    def _up(self) -> None:
        self.sink.set_pen_down(False)

    def _down(self) -> None:
        self.sink.set_pen_down(True)

    def _setsize(self, size: str) -> None:
        self.sink.set_pen_radius(float(size))

    def _setspeed(self, speed: str) -> None:
        self.sink.set_speed(float(speed))

    def _setcolor(self, r: str, g: str, b: str) -> None:
        self.sink.set_pen_color(color_from_floats(float(r), float(g), float(b)))

    def _vardef(self, name: str, value: str) -> None:
        self.env.variables.set(name, float(value))

    def _varadd(self, name: str, a: str, b: str) -> None:
        self.env.variables.set(name, float(a) + float(b))

    def _varmul(self, name: str, a: str, b: str) -> None:
        self.env.variables.set(name, float(a) * float(b))


__all__ = ["Interpreter"]
