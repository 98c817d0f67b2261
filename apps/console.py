"""Command console shared by the GUI runner and headless runs.

Keeps the command history and a bounded output log, handles the console
keywords (`clear`, `quit`, `help`) and forwards everything else to the
interpreter.
"""
from __future__ import annotations

import logging
from pathlib import Path
import random
from typing import Callable, List, Optional, Union

from apps.help_content import help_lines
from turtle_mechanics.canvas import Canvas, Obstacle
from turtle_mechanics.geometry import Polygon
from turtle_session import persistence
from turtle_session.session import Session

logger = logging.getLogger(__name__)

WELCOME = "Welcome to Turtle graphics"
OutputListener = Callable[[str], None]

# Handled even while a script is running.
IMMEDIATE_COMMANDS = frozenset({"quit", "clear"})


def runs_immediately(command: str) -> bool:
    return command.strip() in IMMEDIATE_COMMANDS


class CommandConsole:
    def __init__(
        self,
        session: Session,
        *,
        output_limit: int = 100,
        state_dir: Path = Path("saves"),
        on_quit: Optional[Callable[[], None]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.session = session
        self.output_limit = max(1, int(output_limit))
        self.state_dir = Path(state_dir)
        self.history: List[str] = []
        self.output_log: List[str] = [WELCOME]
        self.quit_requested = False
        self._on_quit = on_quit
        self._listeners: List[OutputListener] = []
        self._rng = rng or random.Random()
        self.status = self._describe_turtle()
        session.turtle.add_collision_listener(self._on_collision)
        session.turtle.add_change_listener(self._on_turtle_changed)

    @property
    def interpreter(self):
        return self.session.interpreter

    @property
    def turtle(self):
        return self.session.turtle

    @property
    def canvas(self) -> Canvas:
        return self.session.canvas

    # --- Output log --------------------------------------------------------

    def add_output_listener(self, listener: OutputListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def append_output(self, message: str) -> str:
        self.output_log.append(message)
        if len(self.output_log) > self.output_limit:
            del self.output_log[: len(self.output_log) - self.output_limit]
        for listener in tuple(self._listeners):
            listener(message)
        return message

    def clear_output(self) -> str:
        self.output_log.clear()
        for listener in tuple(self._listeners):
            listener("")
        return "Output cleared."

    def output(self) -> str:
        return "\n".join(self.output_log)

    def _on_turtle_changed(self, prop: str) -> None:
        self.status = self._describe_turtle()

    def _describe_turtle(self) -> str:
        turtle = self.turtle
        pen = "down" if turtle.pen_down else "up"
        return (
            f"({turtle.position[0]:.1f}, {turtle.position[1]:.1f}) "
            f"rotation {turtle.rotation:.1f}, pen {pen}, {turtle.line_count} lines"
        )

    def _on_collision(self, hit_object: object, hit_polygon: Polygon) -> None:
        if isinstance(hit_object, Obstacle):
            what = hit_object.name or "obstacle"
        else:
            what = "canvas boundary"
        self.append_output(f"Blocked by {what}")

    # --- Commands ------------------------------------------------------------

    def process_command(self, command: str) -> str:
        """Run one console line and return the message it produced."""
        trimmed = command.strip()
        if not trimmed:
            return self.append_output("Error: Command cannot be empty.")

        self.history.append(trimmed)

        if trimmed == "clear":
            return self.clear_output()
        if trimmed == "quit":
            message = self.append_output("Application quitting...")
            self.quit_requested = True
            self.interpreter.cancel()
            if self._on_quit is not None:
                self._on_quit()
            return message
        if trimmed == "help" or trimmed.startswith("help "):
            topic = trimmed[len("help"):].strip() or None
            lines = help_lines(topic)
            for line in lines:
                self.append_output(line)
            return "\n".join(lines)

        try:
            executed = self.interpreter.parse_line(trimmed)
        except (ValueError, OverflowError) as exc:
            logger.exception("Command failed: %s", trimmed)
            return self.append_output(f"Error: {exc}")
        self.history.extend(executed)
        return self.append_output(f"Processed: {trimmed}")

    def load_script(self, path: Union[str, Path]) -> str:
        path = persistence.local_path(path)
        logger.debug("Attempting to load script from file: %s", path)
        if not path.is_file():
            return self.append_output(f"File does not exist: {path}")
        try:
            if path.stat().st_size == 0:
                return self.append_output(f"File is empty: {path}")
            executed = self.interpreter.load_script(path)
        except OSError as exc:
            logger.error("Failed to open %s: %s", path, exc)
            return self.append_output(f"Failed to open file: {path}")
        self.history.extend(executed)
        return self.append_output(f"File loaded successfully: {path}")

    # --- Session state -------------------------------------------------------

    def save_state(self, name: Optional[str] = None) -> str:
        path = persistence.state_path(self.state_dir, name or persistence.timestamped_name())
        try:
            persistence.save_state(path, self.turtle)
        except OSError as exc:
            logger.error("Failed to save %s: %s", path, exc)
            return self.append_output(f"Failed to save to file: {path}")
        return self.append_output(f"State saved successfully: {path}")

    def load_state(self, path: Union[str, Path]) -> str:
        path = persistence.local_path(path)
        if persistence.load_state(path, self.turtle):
            return self.append_output(f"State loaded successfully: {path}")
        return self.append_output(f"Failed to load state: {path}")

    def latest_state(self) -> Optional[Path]:
        if not self.state_dir.is_dir():
            return None
        saves = sorted(self.state_dir.glob(f"*{persistence.STATE_SUFFIX}"), key=lambda p: p.stat().st_mtime)
        return saves[-1] if saves else None

    def random_move(self) -> str:
        """Random turn and forward, or a random arc, as when the turtle is clicked."""
        if self.turtle.is_moving() or self.interpreter.busy:
            return self.append_output("Error: the turtle is busy.")
        self.turtle.random_move(self._rng)
        self.session.channel.drain()
        return self.append_output("Random move.")

    def reset(self) -> str:
        self.turtle.reset_state()
        return self.append_output("Turtle reset.")

    # --- Obstacles -----------------------------------------------------------

    def add_obstacles(self, count: int) -> str:
        if self.turtle.is_moving():
            return self.append_output("Error: cannot change obstacles while the turtle is moving.")
        added = self.canvas.generate_obstacles(count, self.turtle.position)
        return self.append_output(f"Added {added} obstacles ({len(self.canvas)} total)")

    def clear_obstacles(self) -> str:
        if self.turtle.is_moving():
            return self.append_output("Error: cannot change obstacles while the turtle is moving.")
        self.canvas.clear_obstacles()
        return self.append_output("Obstacles cleared.")


__all__ = ["CommandConsole", "IMMEDIATE_COMMANDS", "WELCOME", "runs_immediately"]
