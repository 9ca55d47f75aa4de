"""Shell and editor handoff.

Runs ``$SHELL`` or ``$EDITOR`` while the TUI is suspended. Returns an error
message string instead of raising, for UI-friendly handling.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Callable
from pathlib import Path

from ..effects import ExternalKind, RunExternal

LOGGER = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/sh"


def _run_suspended(
    cmd: list[str],
    cwd: Path,
    suspend: Callable[[], None],
    resume: Callable[[], None],
) -> str | None:
    suspend()
    try:
        completed = subprocess.run(cmd, cwd=cwd, check=False)
    except OSError as exc:
        LOGGER.warning("Failed to launch %s: %s", cmd[0], exc)
        return f"Failed to launch {cmd[0]}: {exc}"
    finally:
        resume()
    if completed.returncode != 0:
        LOGGER.info("%s exited with status %d", cmd[0], completed.returncode)
    return None


def launch_editor(
    target: Path,
    suspend: Callable[[], None],
    resume: Callable[[], None],
) -> str | None:
    editor_env = os.environ.get("EDITOR", "").strip()
    if not editor_env:
        return "Cannot edit: $EDITOR is not set."
    cmd = shlex.split(editor_env)
    if not cmd:
        return "Cannot edit: $EDITOR is empty."
    return _run_suspended([*cmd, str(target)], target.parent, suspend, resume)


def launch_shell(
    cwd: Path,
    suspend: Callable[[], None],
    resume: Callable[[], None],
) -> str | None:
    shell = os.environ.get("SHELL", "").strip() or DEFAULT_SHELL
    return _run_suspended(shlex.split(shell), cwd, suspend, resume)


def run_external(
    effect: RunExternal,
    suspend: Callable[[], None],
    resume: Callable[[], None],
) -> str | None:
    """Carry out one ``RunExternal`` effect synchronously."""
    if effect.kind is ExternalKind.EDITOR:
        return launch_editor(effect.target, suspend, resume)
    return launch_shell(effect.target, suspend, resume)


__all__ = ["launch_editor", "launch_shell", "run_external"]
