"""Turtle graphics window with pygame + pygame_gui.

The window is the host scheduler: every frame advances the turtle by the
elapsed time. While the interpreter waits for a motion it keeps calling
`pump_frame`, so the window stays responsive during long scripts. Commands
typed or clicked while something runs are queued and executed afterwards,
except `quit` and `clear`, which act at once. Clicking the turtle makes a
random move.
"""
from __future__ import annotations

from collections import deque
import html
import logging
from pathlib import Path
from typing import Deque, List, Optional, Tuple

import pygame
import pygame_gui
from pygame_gui.windows import UIFileDialog

from apps.console import CommandConsole, runs_immediately
from turtle_mechanics.geometry import Polygon, distance
from turtle_mechanics.visualizer import DEFAULT_COLORS, TurtleVisualizer
from turtle_session.config import SessionConfig
from turtle_session.persistence import timestamped_name
from turtle_session.session import build_session

logger = logging.getLogger(__name__)

PANEL_WIDTH = 380
OBSTACLE_BATCH = 5
TURTLE_CLICK_MARGIN = 12.0


class TurtleApp:
    def __init__(
        self,
        cfg: SessionConfig,
        *,
        script: Optional[str] = None,
        state: Optional[str] = None,
        commands: Tuple[str, ...] = (),
    ) -> None:
        pygame.init()
        pygame.display.set_caption("Turtle Graphics")
        self.cfg = cfg
        self.window_size = (int(cfg.runner.window_size[0]), int(cfg.runner.window_size[1]))
        self.window_surface = pygame.display.set_mode(self.window_size)
        self.manager = pygame_gui.UIManager(self.window_size)
        self.clock = pygame.time.Clock()
        self.running = True

        self.session = build_session(cfg, pump=self.pump_frame)
        self.console = CommandConsole(
            self.session,
            output_limit=cfg.runner.output_limit,
            state_dir=Path(cfg.runner.state_dir),
            on_quit=self._request_quit,
        )
        self.console.add_output_listener(self._on_output)
        self.session.turtle.add_collision_listener(self._on_collision)

        self.pending: Deque[Tuple[str, str]] = deque()
        self.history_index = 0
        self.file_dialog: Optional[UIFileDialog] = None
        self.file_dialog_mode: Optional[str] = None
        self._output_dirty = True

        self.viewport_rect = pygame.Rect(20, 20, self.window_size[0] - PANEL_WIDTH - 40, self.window_size[1] - 80)
        self.visualizer = TurtleVisualizer(self.window_surface, self.viewport_rect)
        self._build_ui()

        if state:
            self.pending.append(("state", state))
        if script:
            self.pending.append(("script", script))
        for command in commands:
            self.pending.append(("command", command))

    def _build_ui(self) -> None:
        x = self.window_size[0] - PANEL_WIDTH - 10
        width = PANEL_WIDTH
        half = (width - 10) // 2

        def button(row: int, col: int, text: str) -> pygame_gui.elements.UIButton:
            return pygame_gui.elements.UIButton(
                relative_rect=pygame.Rect((x + col * (half + 10), 20 + row * 36), (half, 30)),
                text=text,
                manager=self.manager,
            )

        self.btn_reset = button(0, 0, "Reset")
        self.btn_pause = button(0, 1, "Pause")
        self.btn_obstacles = button(1, 0, f"Add {OBSTACLE_BATCH} obstacles")
        self.btn_clear_obstacles = button(1, 1, "Clear obstacles")
        self.btn_save = button(2, 0, "Save state")
        self.btn_load_state = button(2, 1, "Load state")
        self.btn_load_script = button(3, 0, "Load script")
        self.btn_screenshot = button(3, 1, "Screenshot")
        self.btn_help = button(4, 0, "Help")
        self.btn_clear_output = button(4, 1, "Clear output")

        top = 20 + 5 * 36 + 4
        entry_height = 32
        self.output_box = pygame_gui.elements.UITextBox(
            html_text="",
            relative_rect=pygame.Rect((x, top), (width, self.window_size[1] - top - entry_height - 30)),
            manager=self.manager,
        )
        self.command_entry = pygame_gui.elements.UITextEntryLine(
            relative_rect=pygame.Rect((x, self.window_size[1] - entry_height - 20), (width, entry_height)),
            manager=self.manager,
        )
        self.command_entry.set_text("")

    # --- Host loop -----------------------------------------------------------

    def run(self) -> None:
        try:
            while self.running:
                self.pump_frame()
                while self.pending and self.running and not self.session.interpreter.busy:
                    kind, arg = self.pending.popleft()
                    self._execute(kind, arg)
        finally:
            self.session.channel.close()
            pygame.quit()

    def pump_frame(self) -> None:
        """One frame: events, UI, turtle animation, drawing."""
        dt_ms = self.clock.tick(self.cfg.runner.fps)
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._request_quit()
            if event.type == pygame.KEYDOWN and self.command_entry.is_focused:
                self._handle_history_key(event.key)
            self._handle_ui_event(event)
            self.manager.process_events(event)
        self.manager.update(dt_ms / 1000.0)
        if self.running:
            self.session.turtle.advance(float(dt_ms))
        self._draw()

    def _request_quit(self) -> None:
        self.running = False
        self.session.interpreter.cancel()

    def _execute(self, kind: str, arg: str) -> None:
        if kind == "command":
            self.console.process_command(arg)
        elif kind == "script":
            self.console.load_script(arg)
        elif kind == "state":
            self.console.load_state(arg)
        elif kind == "save":
            self.console.save_state(arg or None)
        elif kind == "obstacles":
            self.console.add_obstacles(int(arg))
        elif kind == "clear_obstacles":
            self.console.clear_obstacles()
        elif kind == "random_move":
            self.console.random_move()
        else:
            logger.error("Unknown queued action %r", kind)

    # --- Events --------------------------------------------------------------

    def _handle_history_key(self, key: int) -> None:
        history = self.console.history
        if not history or key not in (pygame.K_UP, pygame.K_DOWN):
            return
        step = -1 if key == pygame.K_UP else 1
        self.history_index = max(0, min(len(history), self.history_index + step))
        text = history[self.history_index] if self.history_index < len(history) else ""
        self.command_entry.set_text(text)

    def _handle_ui_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame_gui.UI_TEXT_ENTRY_FINISHED and event.ui_element == self.command_entry:
            text = event.text
            self.command_entry.set_text("")
            if runs_immediately(text):
                self.console.process_command(text)
            elif text.strip():
                self.pending.append(("command", text))
            self.history_index = len(self.console.history) + 1
            return
        if event.type == pygame_gui.UI_FILE_DIALOG_PATH_PICKED:
            if self.file_dialog and event.ui_element == self.file_dialog:
                self.pending.append((self.file_dialog_mode or "script", event.text))
                self.file_dialog = None
                self.file_dialog_mode = None
            return
        if event.type == pygame_gui.UI_WINDOW_CLOSE:
            if self.file_dialog and event.ui_element == self.file_dialog:
                self.file_dialog = None
                self.file_dialog_mode = None
            return
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and self._turtle_hit(event.pos):
            self.pending.append(("random_move", ""))
            return
        if event.type != pygame_gui.UI_BUTTON_PRESSED:
            return
        turtle = self.session.turtle
        if event.ui_element == self.btn_reset:
            self.console.reset()
            self.btn_pause.set_text("Pause")
        elif event.ui_element == self.btn_pause:
            if turtle.is_paused():
                turtle.resume()
                self.btn_pause.set_text("Pause")
            else:
                turtle.pause()
                self.btn_pause.set_text("Resume" if turtle.is_paused() else "Pause")
        elif event.ui_element == self.btn_obstacles:
            self.pending.append(("obstacles", str(OBSTACLE_BATCH)))
        elif event.ui_element == self.btn_clear_obstacles:
            self.pending.append(("clear_obstacles", ""))
        elif event.ui_element == self.btn_save:
            self.pending.append(("save", ""))
        elif event.ui_element == self.btn_load_state:
            self._open_file_dialog("state", "Load state")
        elif event.ui_element == self.btn_load_script:
            self._open_file_dialog("script", "Load script")
        elif event.ui_element == self.btn_screenshot:
            self._save_screenshot()
        elif event.ui_element == self.btn_help:
            self.console.process_command("help")
        elif event.ui_element == self.btn_clear_output:
            self.console.process_command("clear")

    def _open_file_dialog(self, mode: str, title: str) -> None:
        if self.file_dialog:
            self.file_dialog.kill()
        rect = pygame.Rect(
            max(40, self.window_size[0] // 2 - 220),
            max(40, self.window_size[1] // 2 - 160),
            440,
            320,
        )
        initial = Path(self.cfg.runner.state_dir) if mode == "state" else Path.cwd()
        self.file_dialog = UIFileDialog(
            rect=rect,
            manager=self.manager,
            window_title=title,
            initial_file_path=str(initial if initial.exists() else Path.cwd()),
            allow_existing_files_only=True,
        )
        self.file_dialog_mode = mode

    def _save_screenshot(self) -> None:
        directory = Path(self.cfg.runner.state_dir)
        path = directory / f"Screenshot_{timestamped_name()}.png"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            pygame.image.save(self.window_surface, str(path))
        except (OSError, pygame.error) as exc:
            logger.error("Failed to save screenshot %s: %s", path, exc)
            self.console.append_output(f"Failed to save screenshot: {path}")
            return
        self.console.append_output(f"Screenshot saved successfully: {path}")

    def _turtle_hit(self, pos: Tuple[int, int]) -> bool:
        if not self.viewport_rect.collidepoint(pos):
            return False
        turtle = self.session.turtle
        return distance(self.visualizer.to_canvas(pos), turtle.position) <= turtle.pen_radius + TURTLE_CLICK_MARGIN

    def _on_output(self, message: str) -> None:
        self._output_dirty = True

    def _on_collision(self, hit_object: object, hit_polygon: Polygon) -> None:
        self.visualizer.flash_blocked()

    # --- Drawing -------------------------------------------------------------

    def _status_lines(self) -> List[str]:
        lines = [self.console.status]
        if self.session.interpreter.busy:
            lines.append("running...")
        if self.pending:
            lines.append(f"queued: {len(self.pending)}")
        return lines

    def _draw(self) -> None:
        if self._output_dirty:
            self.output_box.set_text("<br>".join(html.escape(line) for line in self.console.output_log))
            self._output_dirty = False
        self.window_surface.fill(DEFAULT_COLORS["background"])
        self.visualizer.draw(self.session.canvas, self.session.turtle, self._status_lines())
        self.manager.draw_ui(self.window_surface)
        pygame.display.update()


__all__ = ["TurtleApp"]
