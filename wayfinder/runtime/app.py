"""Interactive session wiring.

Builds the event stream, producers, worker pools, interpreter, and state
machine, then runs the dispatcher inside raw terminal mode. Teardown
cancels scans but waits for filesystem mutations to finish.
"""

from __future__ import annotations

import logging
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..effects import RunExternal
from ..events import EventStream, InputBridge
from ..input.interpreter import CommandInterpreter
from ..machine import StateMachine
from ..preview.scheduler import PreviewScheduler
from ..tasks.queue import TaskQueue
from .config import WayfinderConfig
from .external import run_external
from .loop import Dispatcher, RuntimeLoopCallbacks
from .redraw import RenderWorker
from .sources import KeyboardPump, Ticker
from .terminal import TerminalController

LOGGER = logging.getLogger(__name__)

INTERRUPT_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGTERM, signal.SIGHUP)
SHUTDOWN_TIMEOUT_SECONDS: float | None = None


@contextmanager
def _signals_to_events(bridge: InputBridge, renderer: RenderWorker) -> Iterator[None]:
    """Turn termination signals into interrupt events while the session runs."""
    previous: dict[signal.Signals, object] = {}

    def _on_interrupt(signum: int, _frame: object) -> None:
        bridge.submit_interrupt(signum)

    def _on_resize(_signum: int, _frame: object) -> None:
        renderer.invalidate()

    for signum in INTERRUPT_SIGNALS:
        previous[signum] = signal.signal(signum, _on_interrupt)
    previous[signal.SIGWINCH] = signal.signal(signal.SIGWINCH, _on_resize)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def run_app(
    start_path: Path,
    config: WayfinderConfig,
    stdin_fd: int,
    stdout_fd: int,
    *,
    select: str | None = None,
) -> str:
    """Run one interactive session on ``start_path`` and return the quit reason.

    ``select`` names the entry to highlight once the first listing arrives.
    """
    stream = EventStream()
    bridge = InputBridge(stream)
    tasks = TaskQueue(
        bridge.submit_outcome,
        debounce_seconds=config.debounce_seconds,
        max_workers=config.max_workers,
    )
    previews = PreviewScheduler(bridge.submit_preview, style=config.preview_style)
    terminal = TerminalController(stdin_fd, stdout_fd)
    renderer = RenderWorker(terminal.write, terminal.size)
    keys = KeyboardPump(bridge, stdin_fd)
    ticker = Ticker(bridge, config.tick_seconds)
    interpreter = CommandInterpreter(config.keymap, sequence_timeout=config.sequence_timeout_seconds)
    machine = StateMachine(
        start_path,
        sort_mode=config.sort,
        show_hidden=config.show_hidden,
        aliases=config.command_aliases,
    )
    machine.state.prefer_name = select

    def handoff(effect: RunExternal) -> str | None:
        """Give the terminal to a child process with all producers paused."""
        renderer.pause()
        keys.pause()
        ticker.pause()
        try:
            return run_external(effect, terminal.suspend, terminal.resume)
        finally:
            ticker.resume()
            keys.resume()
            renderer.resume()

    dispatcher = Dispatcher(
        stream,
        interpreter,
        machine,
        RuntimeLoopCallbacks(
            enqueue_task=tasks.enqueue,
            cancel_scans=tasks.cancel_scans,
            schedule_preview=previews.schedule,
            run_external=handoff,
            request_redraw=renderer.submit,
        ),
    )

    LOGGER.info("Starting session in %s", start_path)
    try:
        with terminal.raw_mode(), _signals_to_events(bridge, renderer):
            renderer.start()
            keys.start()
            ticker.start()
            try:
                return dispatcher.run()
            finally:
                keys.stop()
                ticker.stop()
                previews.close()
                renderer.stop()
    finally:
        scans, mutations = tasks.pending_counts()
        if mutations:
            LOGGER.info("Waiting for %d filesystem operation(s) before exit", mutations)
        LOGGER.debug("Cancelling %d outstanding scan(s)", scans)
        tasks.shutdown(timeout=SHUTDOWN_TIMEOUT_SECONDS)


__all__ = ["run_app"]
