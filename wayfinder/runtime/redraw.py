"""Background frame renderer with latest-frame-wins scheduling.

The dispatcher hands over immutable views and never waits for drawing;
when frames arrive faster than they can be written, intermediate ones are
skipped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from ..input.interpreter import PendingView
from ..render.frame import FrameLayout, build_frame, compose_frame
from ..state import AppView

LOGGER = logging.getLogger(__name__)


class RenderWorker:
    """Draw the newest submitted frame on a dedicated thread."""

    def __init__(
        self,
        write: Callable[[str], None],
        size: Callable[[], tuple[int, int]],
    ) -> None:
        self._write = write
        self._size = size
        self._cond = threading.Condition()
        self._latest: tuple[AppView, PendingView] | None = None
        self._shown: tuple[AppView, PendingView] | None = None
        self._paused = False
        self._drawing = False
        self._stopped = False
        self._thread = threading.Thread(target=self._run, name="wayfinder-render", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def submit(self, view: AppView, pending: PendingView) -> None:
        with self._cond:
            self._latest = (view, pending)
            self._cond.notify_all()

    def invalidate(self) -> None:
        """Redraw the last frame, e.g. after the terminal was resized."""
        with self._cond:
            if self._latest is None:
                self._latest = self._shown
            self._cond.notify_all()

    def pause(self) -> None:
        """Stop drawing and wait for an in-progress frame to finish."""
        with self._cond:
            self._paused = True
            while self._drawing:
                self._cond.wait()

    def resume(self) -> None:
        with self._cond:
            self._paused = False
            self._cond.notify_all()

    def stop(self, timeout: float | None = 1.0) -> None:
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        if self._thread.is_alive():
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._stopped and (self._paused or self._latest is None):
                    self._cond.wait()
                if self._stopped:
                    return
                view, pending = self._latest
                self._latest = None
                self._shown = (view, pending)
                self._drawing = True
            try:
                columns, lines = self._size()
                rows = build_frame(view, pending, FrameLayout(columns=columns, lines=lines))
                self._write(compose_frame(rows))
            except OSError as exc:
                LOGGER.warning("Frame write failed: %s", exc)
            finally:
                with self._cond:
                    self._drawing = False
                    self._cond.notify_all()


__all__ = ["RenderWorker"]
