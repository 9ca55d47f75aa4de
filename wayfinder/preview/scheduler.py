"""Background preview worker with latest-request-wins scheduling."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .builder import build_preview
from .highlighting import DEFAULT_STYLE
from .types import Preview

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewRequest:
    """One preview build job."""

    request_id: int
    target: Path
    style: str


class PreviewScheduler:
    """Single-threaded preview builder that only keeps the newest request.

    Completed previews are handed to ``deliver`` from the worker thread.
    """

    def __init__(
        self,
        deliver: Callable[[Preview], None],
        *,
        style: str = DEFAULT_STYLE,
        build: Callable[..., Preview] = build_preview,
    ) -> None:
        self._deliver = deliver
        self._style = style
        self._build = build
        self._lock = threading.Lock()
        self._pending: PreviewRequest | None = None
        self._running = False
        self._closed = False
        self._next_request_id = 1

    def _worker(self) -> None:
        while True:
            with self._lock:
                request = self._pending
                self._pending = None
                if request is None or self._closed:
                    self._running = False
                    return

            try:
                preview = self._build(request.target, request.style, request.request_id)
            except Exception:
                LOGGER.exception("Preview build failed for %s", request.target)
                continue
            self._deliver(preview)

    def schedule(self, target: Path) -> int:
        """Queue or replace pending preview work and return its request id."""
        with self._lock:
            request_id = self._next_request_id
            self._next_request_id += 1
            if self._closed:
                return request_id
            self._pending = PreviewRequest(request_id=request_id, target=target, style=self._style)
            if self._running:
                return request_id
            self._running = True

        worker = threading.Thread(
            target=self._worker,
            name="wayfinder-preview",
            daemon=True,
        )
        worker.start()
        return request_id

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._pending = None


__all__ = [
    "PreviewRequest",
    "PreviewScheduler",
]
