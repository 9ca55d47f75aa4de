"""Background producers for the merged event stream.

``KeyboardPump`` decodes stdin into key events and ``Ticker`` emits clock
ticks. Both can be paused so a child process owns the terminal during a
shell or editor handoff.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from ..events import InputBridge
from ..input.reader import read_key, split_modifiers

LOGGER = logging.getLogger(__name__)

KEY_POLL_MS = 50


class KeyboardPump:
    """Read keys on a daemon thread and submit them to the bridge.

    A read failure is unrecoverable for the UI; it is posted as a driver
    failure event and the pump stops.
    """

    def __init__(
        self,
        bridge: InputBridge,
        stdin_fd: int,
        *,
        read: Callable[[int, int | None], str] = read_key,
        poll_ms: int = KEY_POLL_MS,
    ) -> None:
        self._bridge = bridge
        self._stdin_fd = stdin_fd
        self._read = read
        self._poll_ms = poll_ms
        self._cond = threading.Condition()
        self._paused = False
        self._reading = False
        self._stopped = False
        self._thread = threading.Thread(target=self._run, name="wayfinder-keys", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def pause(self) -> None:
        """Stop reading and wait until no read is in progress."""
        with self._cond:
            self._paused = True
            while self._reading:
                self._cond.wait()

    def resume(self) -> None:
        with self._cond:
            self._paused = False
            self._cond.notify_all()

    def stop(self, timeout: float | None = 1.0) -> None:
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._cond:
                while self._paused and not self._stopped:
                    self._cond.wait()
                if self._stopped:
                    return
                self._reading = True
            try:
                key = self._read(self._stdin_fd, self._poll_ms)
            except OSError as exc:
                LOGGER.error("Terminal read failed: %s", exc)
                self._bridge.submit_failure(exc)
                return
            finally:
                with self._cond:
                    self._reading = False
                    self._cond.notify_all()
            if key:
                code, modifiers = split_modifiers(key)
                self._bridge.submit_key(code, modifiers)


class Ticker:
    """Submit a tick every ``interval`` seconds until stopped."""

    def __init__(self, bridge: InputBridge, interval: float) -> None:
        self._bridge = bridge
        self._interval = max(0.001, interval)
        self._stop = threading.Event()
        self._running = threading.Event()
        self._running.set()
        self._thread = threading.Thread(target=self._run, name="wayfinder-ticks", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    def stop(self, timeout: float | None = 1.0) -> None:
        self._stop.set()
        self._running.set()
        if self._thread.is_alive():
            self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self._running.wait()
            if self._stop.is_set():
                return
            self._bridge.submit_tick()


__all__ = ["KEY_POLL_MS", "KeyboardPump", "Ticker"]
