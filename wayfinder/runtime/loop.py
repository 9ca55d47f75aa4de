"""Dispatcher: the single consumer of the merged event stream.

Key and tick events go through the modal interpreter; task results and
previews go straight to the state machine. Effects are handed to injected
callbacks, and the render collaborator is signalled only when the visible
state changed. All ``AppState`` mutation happens on this thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..actions import Quit
from ..effects import (
    CancelScans,
    Effect,
    RequestMutation,
    RequestPreview,
    RequestQuit,
    RequestScan,
    RunExternal,
)
from ..events import (
    DriverFailureEvent,
    Event,
    EventStream,
    InterruptEvent,
    KeyEvent,
    PreviewEvent,
    TaskResultEvent,
    TickEvent,
)
from ..input.interpreter import CommandInterpreter, PendingView
from ..machine import StateMachine
from ..state import AppView
from ..tasks.types import FsTask

LOGGER = logging.getLogger(__name__)


class TerminalDriverError(RuntimeError):
    """Raised when the terminal input driver failed irrecoverably."""


@dataclass(frozen=True)
class RuntimeLoopCallbacks:
    """Injected operations used by ``run_event_loop``.

    Keeping the loop callback-driven isolates I/O outside the core
    dispatcher and makes it easy to drive from tests.
    """

    enqueue_task: Callable[[FsTask], int]
    cancel_scans: Callable[[Path], int]
    schedule_preview: Callable[[Path], int]
    run_external: Callable[[RunExternal], str | None]
    request_redraw: Callable[[AppView, PendingView], None]


class Dispatcher:
    """Route events to the interpreter and state machine, and run effects."""

    def __init__(
        self,
        stream: EventStream,
        interpreter: CommandInterpreter,
        machine: StateMachine,
        callbacks: RuntimeLoopCallbacks,
    ) -> None:
        self._stream = stream
        self._interpreter = interpreter
        self._machine = machine
        self._ops = callbacks
        self._last_frame: tuple[AppView, PendingView] | None = None
        self.quit_reason: str | None = None

    @property
    def finished(self) -> bool:
        return self.quit_reason is not None

    def start(self) -> None:
        """Run startup effects and draw the first frame."""
        self._execute(self._machine.start())
        self._redraw()

    def process(self, event: Event) -> None:
        """Handle one event to completion."""
        if isinstance(event, DriverFailureEvent):
            raise TerminalDriverError(str(event.error)) from event.error
        effects: list[Effect] = []
        if isinstance(event, (KeyEvent, TickEvent)):
            for action in self._interpreter.feed(event):
                effects.extend(self._machine.apply_action(action))
                self._interpreter.sync_mode(self._machine.state.mode)
        elif isinstance(event, TaskResultEvent):
            effects.extend(self._machine.apply_outcome(event.outcome))
        elif isinstance(event, PreviewEvent):
            self._machine.apply_preview(event.preview)
        elif isinstance(event, InterruptEvent):
            LOGGER.info("Received signal %d; shutting down", event.signum)
            effects.extend(self._machine.apply_action(Quit()))
            self.quit_reason = f"signal {event.signum}"
        self._execute(effects)
        self._redraw()

    def run(self, poll_timeout: float | None = None) -> str:
        """Consume events until a quit is requested and return the reason."""
        self.start()
        while not self.finished:
            event = self._stream.get(timeout=poll_timeout)
            if event is None:
                continue
            self.process(event)
        return self.quit_reason or "quit"

    def _execute(self, effects: list[Effect]) -> None:
        pending = list(effects)
        while pending:
            effect = pending.pop(0)
            if isinstance(effect, RequestScan):
                self._ops.enqueue_task(effect.to_task())
            elif isinstance(effect, RequestMutation):
                self._ops.enqueue_task(effect.task)
            elif isinstance(effect, CancelScans):
                self._ops.cancel_scans(effect.path)
            elif isinstance(effect, RequestPreview):
                self._ops.schedule_preview(effect.path)
            elif isinstance(effect, RunExternal):
                error = self._ops.run_external(effect)
                self._last_frame = None
                pending.extend(self._machine.external_finished(effect.kind, error))
            elif isinstance(effect, RequestQuit):
                if self.quit_reason is None:
                    self.quit_reason = "quit"

    def _redraw(self) -> None:
        frame = (AppView.of(self._machine.state), self._interpreter.view())
        if frame == self._last_frame:
            return
        self._last_frame = frame
        self._ops.request_redraw(*frame)


def run_event_loop(
    stream: EventStream,
    interpreter: CommandInterpreter,
    machine: StateMachine,
    callbacks: RuntimeLoopCallbacks,
) -> str:
    """Run the dispatcher until quit; see ``Dispatcher.run``."""
    return Dispatcher(stream, interpreter, machine, callbacks).run()


__all__ = [
    "TerminalDriverError",
    "RuntimeLoopCallbacks",
    "Dispatcher",
    "run_event_loop",
]
