"""Execution of one ``FsTask`` on a worker thread."""

from __future__ import annotations

from ..errors import ErrorKind, FsOperationError
from ..fs_model.ops import (
    copy_entries,
    delete_entries,
    make_directory,
    move_entries,
    rename_entry,
    touch_file,
)
from ..fs_model.scan import ScanCancelled, scan_directory
from .types import Cancelled, Failed, FsTask, Mutated, Scanned, TaskKind, TaskResult


def _run_mutation(task: FsTask) -> tuple:
    if task.kind is TaskKind.COPY:
        assert task.destination is not None
        return tuple(copy_entries(task.paths, task.destination, into_directory=task.into_directory))
    if task.kind is TaskKind.MOVE:
        assert task.destination is not None
        return tuple(move_entries(task.paths, task.destination, into_directory=task.into_directory))
    if task.kind is TaskKind.DELETE:
        return tuple(delete_entries(task.paths))
    if task.kind is TaskKind.RENAME:
        assert task.name is not None
        return (rename_entry(task.target, task.name),)
    if task.kind is TaskKind.MKDIR:
        assert task.name is not None
        return (make_directory(task.target, task.name),)
    if task.kind is TaskKind.TOUCH:
        assert task.name is not None
        return (touch_file(task.target, task.name),)
    raise FsOperationError(ErrorKind.IO_ERROR, f"unsupported task kind: {task.kind.value}")


def run_task(task: FsTask) -> TaskResult:
    """Execute ``task`` and translate its result into a ``TaskResult``.

    Scans honor the task's cancellation flag between directory entries.
    Mutations only check it before starting; once running they complete or
    fail as a whole.
    """
    if task.cancelled:
        return Cancelled()
    try:
        if task.kind is TaskKind.SCAN:
            snapshot = scan_directory(
                task.target,
                task.generation,
                show_hidden=task.show_hidden,
                sort_mode=task.sort_mode,
                is_cancelled=lambda: task.cancelled,
            )
            return Scanned(snapshot)
        return Mutated(_run_mutation(task))
    except ScanCancelled:
        return Cancelled()
    except FsOperationError as exc:
        return Failed(exc.kind, exc.message)
    except OSError as exc:
        return Failed(ErrorKind.IO_ERROR, str(exc))


__all__ = ["run_task"]
