"""Public runtime orchestration entry points.

This package groups the interactive session bootstrap (`run_app`) and the
lower-level dispatcher contracts used by tests and composition code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .loop import Dispatcher, RuntimeLoopCallbacks


def run_app(*args, **kwargs):
    """Lazily import session entrypoint to avoid terminal setup on import."""
    from .app import run_app as _run_app

    return _run_app(*args, **kwargs)


def run_event_loop(*args, **kwargs):
    """Lazily import loop runner to avoid package-import cycles."""
    from .loop import run_event_loop as _run_event_loop

    return _run_event_loop(*args, **kwargs)


def __getattr__(name: str):
    if name in {"Dispatcher", "RuntimeLoopCallbacks"}:
        from . import loop

        return getattr(loop, name)
    raise AttributeError(name)


__all__ = ["run_app", "run_event_loop", "Dispatcher", "RuntimeLoopCallbacks"]
