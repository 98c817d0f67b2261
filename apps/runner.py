"""Entry point: run the turtle window, or play a script headless.

    python -m apps.runner                      # window
    python -m apps.runner drawing.txt          # window, run a script first
    python -m apps.runner drawing.txt --headless --save result
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

sys.path.append(str(Path(__file__).resolve().parent.parent))

from apps.console import CommandConsole  # noqa: E402
from turtle_session.config import SessionConfig, load_session_config, save_json  # noqa: E402
from turtle_session.session import Session, build_session  # noqa: E402

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="turtle", description="Turtle graphics interpreter")
    parser.add_argument("script", nargs="?", help="script file to run at start-up")
    parser.add_argument("--headless", action="store_true", help="run without a window using simulated time")
    parser.add_argument("-c", "--command", action="append", default=[], help="command line to run (repeatable)")
    parser.add_argument("--obstacles", type=int, default=None, help="number of random obstacles")
    parser.add_argument("--seed", type=int, default=None, help="seed for obstacle placement")
    parser.add_argument("--load", default=None, help="saved state to load before running")
    parser.add_argument(
        "--save",
        nargs="?",
        const="",
        default=None,
        help="save the final state (headless); without a name a timestamp is used",
    )
    parser.add_argument("--state-dir", default=None, help="directory for saves and screenshots")
    parser.add_argument("--config", default=None, help="session config JSON")
    parser.add_argument(
        "--dump-config",
        default=None,
        metavar="FILE",
        help="write the effective session config (defaults, --config and flags) to FILE and exit",
    )
    parser.add_argument("--log-level", default="WARNING", help="logging level (DEBUG, INFO, ...)")
    return parser


def configure_logging(level: str) -> None:
    numeric = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'")
    logging.basicConfig(level=numeric, format="%(levelname)s %(name)s: %(message)s")


def load_config(args: argparse.Namespace) -> SessionConfig:
    cfg = load_session_config(Path(args.config) if args.config else None)
    if args.obstacles is not None:
        cfg.canvas.obstacle_count = max(0, args.obstacles)
    if args.seed is not None:
        cfg.canvas.seed = args.seed
    if args.state_dir:
        cfg.runner.state_dir = args.state_dir
    return cfg


def run_headless(session: Session, args: argparse.Namespace) -> CommandConsole:
    """Play the requested state/script/commands with the fixed-step clock."""
    runner_cfg = session.config.runner
    console = CommandConsole(session, output_limit=runner_cfg.output_limit, state_dir=Path(runner_cfg.state_dir))
    if args.load:
        console.load_state(args.load)
    if args.script:
        console.load_script(args.script)
    for command in args.command:
        if console.quit_requested:
            break
        console.process_command(command)
    if args.save is not None:
        console.save_state(args.save or None)
    return console


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    cfg = load_config(args)

    if args.dump_config:
        path = save_json(Path(args.dump_config), cfg)
        print(f"Config written: {path}")
        return 0

    if args.headless:
        session = build_session(cfg)
        console = run_headless(session, args)
        for line in console.output_log:
            print(line)
        print(f"Turtle at {console.status}")
        return 0

    from apps.gui import TurtleApp

    app = TurtleApp(cfg, script=args.script, state=args.load, commands=tuple(args.command))
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
