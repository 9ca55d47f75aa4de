"""Command-line front door for wayfinder.

Parses CLI options, loads configuration and logging, resolves the start
directory, and dispatches into the interactive runtime.
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
from pathlib import Path

from . import __version__
from .effects import RequestScan
from .errors import FsOperationError
from .fs_model.scan import scan_directory
from .fs_model.types import SortMode
from .input.interpreter import CommandInterpreter
from .machine import StateMachine
from .render.ansi import ANSI_ESCAPE_RE
from .render.frame import FrameLayout, build_frame
from .runtime.config import WayfinderConfig, load_config
from .runtime.logs import configure_logging
from .state import AppView
from .tasks.types import Scanned, TaskOutcome

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _default_render_width() -> int:
    term = shutil.get_terminal_size((80, 24))
    return max(1, term.columns)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wayfinder",
        description="Keyboard-driven terminal file manager with modal key bindings.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Start directory. Defaults to current directory.")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml.")
    parser.add_argument(
        "--show-hidden",
        action="store_true",
        default=None,
        help="Include dot-entries in listings.",
    )
    parser.add_argument("--sort", choices=[mode.value for mode in SortMode], default=None, help="Listing order.")
    parser.add_argument("--debounce-ms", type=_positive_int, default=None, help="Scan debounce window.")
    parser.add_argument(
        "--sequence-timeout-ms",
        type=_positive_int,
        default=None,
        help="Inactivity timeout for unfinished key sequences.",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Write logs to this file.")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="WARNING", help="Log verbosity.")
    parser.add_argument("--render", action="store_true", help="Print one frame of the listing and exit.")
    parser.add_argument(
        "--max-cols",
        type=_positive_int,
        default=None,
        help="Column width for --render output (default: terminal width).",
    )
    parser.add_argument("--no-color", action="store_true", help="Strip colors from --render output.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_config(args: argparse.Namespace) -> WayfinderConfig:
    """Load the config file and apply CLI overrides on top."""
    return load_config(args.config).with_overrides(
        show_hidden=args.show_hidden,
        sort=SortMode.parse(args.sort) if args.sort else None,
        debounce_ms=args.debounce_ms,
        sequence_timeout_ms=args.sequence_timeout_ms,
    )


def resolve_start(raw: str | None) -> tuple[Path, str | None]:
    """Return the start directory and, for a file argument, the name to select."""
    path = Path(raw).expanduser() if raw else Path.cwd()
    path = path.resolve()
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")
    if path.is_dir():
        return path, None
    return path.parent, path.name


def render_listing(
    directory: Path,
    config: WayfinderConfig,
    max_cols: int,
    *,
    select: str | None = None,
    no_color: bool = False,
) -> str:
    """Render one frame of ``directory`` without entering the interactive UI."""
    machine = StateMachine(
        directory,
        sort_mode=config.sort,
        show_hidden=config.show_hidden,
        aliases=config.command_aliases,
    )
    machine.state.prefer_name = select
    (scan,) = [effect for effect in machine.start() if isinstance(effect, RequestScan)]
    try:
        snapshot = scan_directory(
            directory,
            scan.generation,
            show_hidden=config.show_hidden,
            sort_mode=config.sort,
        )
    except FsOperationError as exc:
        raise SystemExit(f"Cannot list {directory}: {exc.message}") from exc
    machine.apply_outcome(TaskOutcome.for_task(scan.to_task(), Scanned(snapshot)))

    view = AppView.of(machine.state)
    layout = FrameLayout(columns=max_cols, lines=len(view.entries) + 2)
    rows = build_frame(view, CommandInterpreter().view(), layout)
    text = "\n".join(row.rstrip() for row in rows) + "\n"
    return ANSI_ESCAPE_RE.sub("", text) if no_color else text


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and run wayfinder.

    Returns the process exit status; terminal-driver failures exit with 1.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.log_level)
    config = resolve_config(args)
    start, select = resolve_start(args.path)

    if args.render:
        max_cols = args.max_cols if args.max_cols is not None else _default_render_width()
        sys.stdout.write(render_listing(start, config, max_cols, select=select, no_color=args.no_color))
        return 0

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        raise SystemExit("wayfinder needs an interactive terminal (use --render for plain output).")

    from .runtime.app import run_app
    from .runtime.loop import TerminalDriverError

    try:
        reason = run_app(start, config, sys.stdin.fileno(), sys.stdout.fileno(), select=select)
    except TerminalDriverError as exc:
        LOGGER.error("Terminal driver failed: %s", exc)
        sys.stderr.write(f"wayfinder: terminal input failed: {exc}\n")
        return 1
    LOGGER.info("Session ended: %s", reason)
    return 0


__all__ = ["build_parser", "resolve_config", "resolve_start", "render_listing", "main"]
