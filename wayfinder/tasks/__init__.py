"""Filesystem task queue: debounced scans and serialized mutations."""

from __future__ import annotations

from .types import (
    Cancelled,
    Failed,
    FsTask,
    Mutated,
    Scanned,
    TaskKind,
    TaskOutcome,
    TaskResult,
)
from .queue import TaskQueue, paths_conflict, tasks_conflict
from .workers import run_task

__all__ = [
    "Cancelled",
    "Failed",
    "FsTask",
    "Mutated",
    "Scanned",
    "TaskKind",
    "TaskOutcome",
    "TaskResult",
    "TaskQueue",
    "paths_conflict",
    "tasks_conflict",
    "run_task",
]
