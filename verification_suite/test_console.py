"""Command console behaviour and the headless runner."""
from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from apps.console import WELCOME, CommandConsole, runs_immediately  # noqa: E402
from apps.help_content import HELP_TOPICS, help_lines, serialize_help_topics  # noqa: E402
from apps.runner import build_parser, main  # noqa: E402
from turtle_mechanics.canvas import Obstacle  # noqa: E402
from turtle_mechanics.geometry import Polygon  # noqa: E402
from turtle_session.config import load_session_config  # noqa: E402
from turtle_session.session import build_session  # noqa: E402


@pytest.fixture
def console(tmp_path: Path) -> CommandConsole:
    return CommandConsole(build_session(), state_dir=tmp_path / "saves")


def test_welcome_and_processed_message(console):
    assert console.output_log == [WELCOME]
    message = console.process_command("  forward(10)  ")
    assert message == "Processed: forward(10)"
    assert console.output_log[-1] == message
    assert console.history == ["forward(10)", "forward(10)"]
    assert console.turtle.line_count == 1


def test_empty_command_is_rejected(console):
    assert console.process_command("   ") == "Error: Command cannot be empty."
    assert console.history == []


def test_clear_and_quit(console):
    quits = []
    console._on_quit = lambda: quits.append(True)
    console.process_command("turn(10)")
    assert console.process_command("clear") == "Output cleared."
    assert console.output_log == []
    console.process_command("quit")
    assert console.quit_requested
    assert quits == [True]
    assert console.output_log == ["Application quitting..."]


def test_output_log_is_bounded():
    console = CommandConsole(build_session(), output_limit=5)
    for i in range(10):
        console.process_command(f"turn({i})")
    assert len(console.output_log) == 5
    assert console.output_log[-1] == "Processed: turn(9)"


def test_output_listener_sees_messages(console):
    seen = []
    console.add_output_listener(seen.append)
    console.process_command("up")
    assert seen == ["Processed: up"]


def test_collision_is_reported(console):
    console.canvas.add_obstacle(Obstacle(Polygon.from_rect(440, 340, 460, 360), name="block"))
    console.process_command("setspeed(1000); forward(200)")
    assert "Blocked by block" in console.output_log


def test_help_topics(console):
    ids = [topic["id"] for topic in serialize_help_topics()]
    assert ids == [topic["id"] for topic in HELP_TOPICS]
    assert {"motion", "pen", "variables", "blocks", "console"} <= set(ids)
    output = console.process_command("help blocks")
    assert "Loops and functions:" in output
    assert help_lines("nothing") == ["No help topic 'nothing'."]


def test_load_script_reports_missing_and_empty(console, tmp_path: Path):
    assert console.load_script(tmp_path / "missing.txt").startswith("File does not exist")
    empty = tmp_path / "empty.txt"
    empty.write_text("", encoding="utf-8")
    assert console.load_script(empty).startswith("File is empty")


def test_load_script_runs_and_records_history(console, tmp_path: Path):
    script = tmp_path / "tri.txt"
    script.write_text("LOOP 3 {\nforward(30)\nturn(120)\n}\n", encoding="utf-8")
    message = console.load_script(f"file://{script}")
    assert message == f"File loaded successfully: {script}"
    assert console.turtle.line_count == 3
    assert console.history.count("forward(30)") == 3


def test_save_and_load_state(console):
    console.process_command("forward(40)")
    saved = console.save_state("first")
    assert saved.startswith("State saved successfully")
    path = console.state_dir / "first.txt"
    assert path.is_file()
    assert console.latest_state() == path

    console.reset()
    assert console.turtle.line_count == 0
    assert console.load_state(path).startswith("State loaded successfully")
    assert console.turtle.line_count == 1
    assert console.load_state(console.state_dir / "nope.txt").startswith("Failed to load state")


def test_obstacle_buttons(console):
    message = console.add_obstacles(3)
    assert message.startswith("Added")
    assert len(console.canvas) > 0
    assert console.clear_obstacles() == "Obstacles cleared."
    assert len(console.canvas) == 0


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.script is None
    assert not args.headless
    assert args.save is None
    assert args.dump_config is None
    assert build_parser().parse_args(["--save"]).save == ""


def test_headless_runner_plays_script_and_saves(tmp_path: Path, capsys):
    script = tmp_path / "draw.txt"
    script.write_text("forward(20)\nturn(90)\nforward(20)\n", encoding="utf-8")
    code = main(
        [
            str(script),
            "--headless",
            "--state-dir",
            str(tmp_path / "out"),
            "--save",
            "result",
            "-c",
            "turn(90)",
        ]
    )
    assert code == 0
    saved = tmp_path / "out" / "result.txt"
    assert saved.is_file()
    assert len(saved.read_text(encoding="utf-8").splitlines()) == 3
    printed = capsys.readouterr().out
    assert "File loaded successfully" in printed
    assert "2 lines" in printed


def test_quit_while_a_command_runs_cancels_it(tmp_path: Path):
    frames = []

    def pump():
        frames.append(1)
        console.turtle.advance(10.0)
        if len(frames) == 3:
            assert runs_immediately("quit")
            console.process_command("quit")

    console = CommandConsole(build_session(pump=pump), state_dir=tmp_path)
    console.process_command("forward(100); turn(90); forward(100)")
    assert console.quit_requested
    assert "Application quitting..." in console.output_log
    assert console.turtle.rotation == 0.0
    assert len(frames) == 3


def test_only_quit_and_clear_run_immediately():
    assert runs_immediately(" quit ")
    assert runs_immediately("clear")
    assert not runs_immediately("forward(10)")
    assert not runs_immediately("help")


def test_status_follows_the_turtle(console):
    assert console.status == "(450.0, 450.0) rotation 0.0, pen down, 0 lines"
    console.process_command("forward(40); up")
    assert console.status == "(450.0, 410.0) rotation 0.0, pen up, 1 lines"


def test_random_move_draws_and_finishes(tmp_path: Path):
    console = CommandConsole(build_session(), state_dir=tmp_path, rng=random.Random(7))
    assert console.random_move() == "Random move."
    assert not console.turtle.is_moving()
    assert console.turtle.line_count >= 1


def test_random_move_refused_while_moving(console):
    console.turtle.forward(100)
    assert console.random_move() == "Error: the turtle is busy."


def test_dump_config_writes_effective_settings(tmp_path: Path, capsys):
    path = tmp_path / "cfg" / "session.json"
    assert main(["--dump-config", str(path), "--obstacles", "4", "--seed", "9"]) == 0
    cfg = load_session_config(path)
    assert cfg.canvas.obstacle_count == 4
    assert cfg.canvas.seed == 9
    assert f"Config written: {path}" in capsys.readouterr().out
