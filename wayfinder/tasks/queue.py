"""Debounced scan scheduling and serialized mutation dispatch.

Scan requests for one directory collapse within a debounce window so the
worker pool lists each directory once per burst of requests. Mutating
tasks run on the same pool but never concurrently with another mutation
touching a related path; conflicting mutations run in submission order.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ..errors import ErrorKind
from .types import Cancelled, Failed, FsTask, TaskKind, TaskOutcome, TaskResult
from .workers import run_task

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.03
DEFAULT_MAX_WORKERS = 4


def paths_conflict(a: Path, b: Path) -> bool:
    """Return whether mutating ``a`` and ``b`` concurrently could race.

    Equal paths, ancestor/descendant pairs, and siblings in one directory
    all conflict.
    """
    return a == b or a.is_relative_to(b) or b.is_relative_to(a) or a.parent == b.parent


def tasks_conflict(a: FsTask, b: FsTask) -> bool:
    return any(paths_conflict(x, y) for x in a.touched_paths() for y in b.touched_paths())


class TaskQueue:
    """Accept filesystem tasks and report ``TaskOutcome`` values via ``report``.

    ``report`` is called from worker threads; it must only enqueue a message.
    """

    def __init__(
        self,
        report: Callable[[TaskOutcome], None],
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS,
        runner: Callable[[FsTask], TaskResult] = run_task,
    ) -> None:
        self._report = report
        self._debounce_seconds = max(0.0, debounce_seconds)
        self._runner = runner
        self._cond = threading.Condition()
        self._pending_scans: dict[Path, tuple[FsTask, float]] = {}
        self._running_scans: dict[int, FsTask] = {}
        self._queued_mutations: list[FsTask] = []
        self._running_mutations: dict[int, FsTask] = {}
        self._closed = False
        self._scheduler: threading.Thread | None = None
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="wayfinder-fs",
        )

    def enqueue(self, task: FsTask) -> int:
        """Queue ``task`` and return its id."""
        superseded: list[FsTask] = []
        with self._cond:
            if self._closed:
                superseded.append(task)
            elif task.kind is TaskKind.SCAN:
                superseded.extend(self._schedule_scan_locked(task))
            else:
                self._queued_mutations.append(task)
                self._dispatch_mutations_locked()
        for stale in superseded:
            self._emit(stale, Cancelled())
        return task.task_id

    def cancel(self, task_id: int) -> bool:
        """Cancel a task that has not produced a result yet.

        Pending scans and queued mutations are dropped immediately; running
        scans are flagged and stop at their next safe point. Running
        mutations cannot be cancelled and return ``False``.
        """
        dropped: FsTask | None = None
        with self._cond:
            for path, (task, _due) in list(self._pending_scans.items()):
                if task.task_id == task_id:
                    del self._pending_scans[path]
                    task.cancel()
                    dropped = task
                    break
            if dropped is None and task_id in self._running_scans:
                self._running_scans[task_id].cancel()
                return True
            if dropped is None:
                for idx, task in enumerate(self._queued_mutations):
                    if task.task_id == task_id:
                        dropped = self._queued_mutations.pop(idx)
                        dropped.cancel()
                        self._dispatch_mutations_locked()
                        break
            self._cond.notify_all()
        if dropped is None:
            return False
        self._emit(dropped, Cancelled())
        return True

    def cancel_scans(self, path: Path) -> int:
        """Cancel pending and running scans of ``path``; return how many."""
        dropped: list[FsTask] = []
        flagged = 0
        with self._cond:
            pending = self._pending_scans.pop(path, None)
            if pending is not None:
                pending[0].cancel()
                dropped.append(pending[0])
            for task in self._running_scans.values():
                if task.target == path and not task.cancelled:
                    task.cancel()
                    flagged += 1
            self._cond.notify_all()
        for task in dropped:
            self._emit(task, Cancelled())
        return len(dropped) + flagged

    def pending_counts(self) -> tuple[int, int]:
        """Return ``(outstanding_scans, outstanding_mutations)``."""
        with self._cond:
            scans = len(self._pending_scans) + len(self._running_scans)
            mutations = len(self._queued_mutations) + len(self._running_mutations)
        return scans, mutations

    def shutdown(self, timeout: float | None = None) -> bool:
        """Cancel outstanding scans and wait for mutations to finish.

        Returns ``False`` when ``timeout`` elapsed with mutations still running.
        """
        dropped: list[FsTask] = []
        with self._cond:
            self._closed = True
            for task, _due in self._pending_scans.values():
                task.cancel()
                dropped.append(task)
            self._pending_scans.clear()
            for task in self._running_scans.values():
                task.cancel()
            self._cond.notify_all()
        for task in dropped:
            self._emit(task, Cancelled())

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while self._queued_mutations or self._running_mutations:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    LOGGER.warning(
                        "Shutdown timed out with %d mutation(s) outstanding",
                        len(self._queued_mutations) + len(self._running_mutations),
                    )
                    return False
                self._cond.wait(timeout=remaining)
        self._executor.shutdown(wait=True)
        return True

    def _schedule_scan_locked(self, task: FsTask) -> list[FsTask]:
        superseded: list[FsTask] = []
        path = task.target
        previous = self._pending_scans.get(path)
        if previous is not None:
            previous[0].cancel()
            superseded.append(previous[0])
            LOGGER.debug("Collapsed scan %d of %s into %d", previous[0].task_id, path, task.task_id)
        for running in self._running_scans.values():
            if running.target == path and not running.cancelled:
                running.cancel()
        self._pending_scans[path] = (task, time.monotonic() + self._debounce_seconds)
        if self._scheduler is None:
            self._scheduler = threading.Thread(
                target=self._scheduler_loop,
                name="wayfinder-scan-debounce",
                daemon=True,
            )
            self._scheduler.start()
        self._cond.notify_all()
        return superseded

    def _scheduler_loop(self) -> None:
        while True:
            with self._cond:
                while not self._closed and not self._pending_scans:
                    self._cond.wait()
                if self._closed:
                    return
                now = time.monotonic()
                due = [task for task, due_at in self._pending_scans.values() if due_at <= now]
                if not due:
                    next_due = min(due_at for _task, due_at in self._pending_scans.values())
                    self._cond.wait(timeout=max(0.0, next_due - now))
                    continue
                for task in due:
                    del self._pending_scans[task.target]
                    self._running_scans[task.task_id] = task
                    self._executor.submit(self._run_scan, task)

    def _run_scan(self, task: FsTask) -> None:
        try:
            result = self._runner(task)
        except Exception as exc:
            LOGGER.exception("Scan task %d crashed", task.task_id)
            result = _crash_result(exc)
        if task.cancelled:
            result = Cancelled()
        with self._cond:
            self._running_scans.pop(task.task_id, None)
            self._cond.notify_all()
        self._emit(task, result)

    def _dispatch_mutations_locked(self) -> None:
        blockers = list(self._running_mutations.values())
        waiting: list[FsTask] = []
        for task in self._queued_mutations:
            if any(tasks_conflict(task, other) for other in blockers):
                waiting.append(task)
            else:
                self._running_mutations[task.task_id] = task
                self._executor.submit(self._run_mutation, task)
            blockers.append(task)
        self._queued_mutations = waiting

    def _run_mutation(self, task: FsTask) -> None:
        try:
            result = self._runner(task)
        except Exception as exc:
            LOGGER.exception("Mutation task %d crashed", task.task_id)
            result = _crash_result(exc)
        self._emit(task, result)
        with self._cond:
            self._running_mutations.pop(task.task_id, None)
            self._dispatch_mutations_locked()
            self._cond.notify_all()

    def _emit(self, task: FsTask, result: TaskResult) -> None:
        self._report(TaskOutcome.for_task(task, result))


def _crash_result(exc: Exception) -> TaskResult:
    return Failed(ErrorKind.IO_ERROR, f"{type(exc).__name__}: {exc}")


__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "DEFAULT_MAX_WORKERS",
    "paths_conflict",
    "tasks_conflict",
    "TaskQueue",
]
