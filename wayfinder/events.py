"""Merged event stream and the input bridge that feeds it.

Keyboard, clock, filesystem-worker, and preview sources each run on their
own thread and only ever talk to the dispatcher by putting tagged events on
one ``EventStream``. Sequence numbers are for diagnostics only; ordering
comes from the stream being a single FIFO with one consumer.
"""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from queue import Empty, Queue

from .preview.types import Preview
from .tasks.types import TaskOutcome


@dataclass(frozen=True)
class KeyEvent:
    code: str
    modifiers: frozenset[str]
    seq: int
    at: float

    @property
    def token(self) -> str:
        """Return the key token with modifiers folded back into its name."""
        prefix = "".join(f"{mod.upper()}_" for mod in sorted(self.modifiers))
        if not prefix:
            return self.code
        return prefix + self.code.upper()


@dataclass(frozen=True)
class TickEvent:
    seq: int
    at: float


@dataclass(frozen=True)
class TaskResultEvent:
    task_id: int
    outcome: TaskOutcome
    seq: int
    at: float


@dataclass(frozen=True)
class PreviewEvent:
    preview: Preview
    seq: int
    at: float


@dataclass(frozen=True)
class InterruptEvent:
    """Process-level stop request, e.g. ``SIGTERM``."""

    signum: int
    seq: int
    at: float


@dataclass(frozen=True)
class DriverFailureEvent:
    """Unrecoverable terminal-driver failure raised on the input thread."""

    error: BaseException
    seq: int
    at: float


Event = KeyEvent | TickEvent | TaskResultEvent | PreviewEvent | InterruptEvent | DriverFailureEvent


class EventStream:
    """Unbounded multi-producer, single-consumer FIFO of events."""

    def __init__(self) -> None:
        self._queue: Queue[Event] = Queue()

    def put(self, event: Event) -> None:
        self._queue.put(event)

    def get(self, timeout: float | None = None) -> Event | None:
        """Block for the next event; ``None`` when ``timeout`` elapses first."""
        try:
            return self._queue.get(timeout=timeout)
        except Empty:
            return None

    def drain(self) -> list[Event]:
        """Return all events that are ready without blocking."""
        out: list[Event] = []
        while True:
            try:
                out.append(self._queue.get_nowait())
            except Empty:
                break
        return out

    def empty(self) -> bool:
        return self._queue.empty()


class InputBridge:
    """Tag raw inputs with a process-wide sequence number and enqueue them.

    Every ``submit_*`` method is safe to call from any thread and returns
    the event it pushed.
    """

    def __init__(self, stream: EventStream, clock: Callable[[], float] = time.monotonic) -> None:
        self._stream = stream
        self._clock = clock
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def _stamp(self) -> tuple[int, float]:
        with self._lock:
            return next(self._seq), self._clock()

    def _push(self, event: Event) -> Event:
        self._stream.put(event)
        return event

    def submit_key(self, code: str, modifiers: frozenset[str] = frozenset()) -> KeyEvent:
        seq, at = self._stamp()
        event = KeyEvent(code=code, modifiers=frozenset(modifiers), seq=seq, at=at)
        self._push(event)
        return event

    def submit_tick(self) -> TickEvent:
        seq, at = self._stamp()
        event = TickEvent(seq=seq, at=at)
        self._push(event)
        return event

    def submit_outcome(self, outcome: TaskOutcome) -> TaskResultEvent:
        seq, at = self._stamp()
        event = TaskResultEvent(task_id=outcome.task_id, outcome=outcome, seq=seq, at=at)
        self._push(event)
        return event

    def submit_preview(self, preview: Preview) -> PreviewEvent:
        seq, at = self._stamp()
        event = PreviewEvent(preview=preview, seq=seq, at=at)
        self._push(event)
        return event

    def submit_interrupt(self, signum: int) -> InterruptEvent:
        seq, at = self._stamp()
        event = InterruptEvent(signum=signum, seq=seq, at=at)
        self._push(event)
        return event

    def submit_failure(self, error: BaseException) -> DriverFailureEvent:
        seq, at = self._stamp()
        event = DriverFailureEvent(error=error, seq=seq, at=at)
        self._push(event)
        return event


__all__ = [
    "KeyEvent",
    "TickEvent",
    "TaskResultEvent",
    "PreviewEvent",
    "InterruptEvent",
    "DriverFailureEvent",
    "Event",
    "EventStream",
    "InputBridge",
]
