"""File logging setup.

The terminal belongs to the UI, so log records go to a file only.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .config import DEFAULT_LOG_PATH

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(log_file: Path | None = None, level: str | int = logging.WARNING) -> Path | None:
    """Route ``wayfinder`` log records to ``log_file``.

    Returns the file in use, or ``None`` when it cannot be opened; logging
    is then disabled rather than written to the terminal.
    """
    target = log_file if log_file is not None else DEFAULT_LOG_PATH
    root = logging.getLogger("wayfinder")
    root.setLevel(level)
    root.propagate = False
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(target, encoding="utf-8")
    except OSError:
        root.addHandler(logging.NullHandler())
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    return target


__all__ = ["LOG_FORMAT", "configure_logging"]
