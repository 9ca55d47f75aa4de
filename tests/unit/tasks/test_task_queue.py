"""Task queue scheduling: scan debounce, mutation serialization, cancellation, shutdown."""

from __future__ import annotations

import tempfile
import threading
import time
import unittest
from pathlib import Path

from wayfinder.errors import ErrorKind
from wayfinder.fs_model.types import DirSnapshot
from wayfinder.tasks.queue import TaskQueue, paths_conflict, tasks_conflict
from wayfinder.tasks.types import Cancelled, Failed, FsTask, Mutated, Scanned, TaskKind, TaskOutcome
from wayfinder.tasks.workers import run_task

WAIT = 2.0


class OutcomeCollector:
    def __init__(self) -> None:
        self.outcomes: list[TaskOutcome] = []
        self._cond = threading.Condition()

    def __call__(self, outcome: TaskOutcome) -> None:
        with self._cond:
            self.outcomes.append(outcome)
            self._cond.notify_all()

    def wait_for(self, count: int, timeout: float = WAIT) -> list[TaskOutcome]:
        with self._cond:
            ok = self._cond.wait_for(lambda: len(self.outcomes) >= count, timeout=timeout)
        if not ok:
            raise AssertionError(f"expected {count} outcomes, got {len(self.outcomes)}")
        return list(self.outcomes)

    def for_task(self, task: FsTask) -> TaskOutcome:
        with self._cond:
            for outcome in self.outcomes:
                if outcome.task_id == task.task_id:
                    return outcome
        raise AssertionError(f"no outcome for task {task.task_id}")


class GatedRunner:
    """Runner that records start order and blocks on per-path gates."""

    def __init__(self) -> None:
        self.started: list[FsTask] = []
        self.gates: dict[Path, threading.Event] = {}
        self._cond = threading.Condition()

    def gate(self, path: Path) -> threading.Event:
        event = threading.Event()
        self.gates[path] = event
        return event

    def __call__(self, task: FsTask):
        with self._cond:
            self.started.append(task)
            self._cond.notify_all()
        gate = self.gates.get(task.target)
        if gate is not None:
            gate.wait(WAIT)
        if task.kind is TaskKind.SCAN:
            return Scanned(DirSnapshot(path=task.target, generation=task.generation))
        return Mutated(task.paths)

    def wait_started(self, count: int, timeout: float = WAIT) -> None:
        with self._cond:
            ok = self._cond.wait_for(lambda: len(self.started) >= count, timeout=timeout)
        if not ok:
            raise AssertionError(f"expected {count} started tasks, got {len(self.started)}")


def delete_task(path: str) -> FsTask:
    return FsTask(kind=TaskKind.DELETE, paths=(Path(path),))


class PathsConflictTests(unittest.TestCase):
    def test_equal_ancestor_and_sibling_paths_conflict(self) -> None:
        self.assertTrue(paths_conflict(Path("/a/b"), Path("/a/b")))
        self.assertTrue(paths_conflict(Path("/a"), Path("/a/b/c")))
        self.assertTrue(paths_conflict(Path("/a/b/c"), Path("/a")))
        self.assertTrue(paths_conflict(Path("/a/x"), Path("/a/y")))

    def test_unrelated_paths_do_not_conflict(self) -> None:
        self.assertFalse(paths_conflict(Path("/a/x"), Path("/b/y")))
        self.assertFalse(paths_conflict(Path("/a/x/1"), Path("/a/y/2")))

    def test_destination_counts_toward_conflicts(self) -> None:
        copy = FsTask(kind=TaskKind.COPY, paths=(Path("/src/f"),), destination=Path("/dst/sub"))
        self.assertTrue(tasks_conflict(copy, delete_task("/dst/sub/old")))
        self.assertFalse(tasks_conflict(copy, delete_task("/elsewhere/x")))

    def test_new_name_counts_toward_conflicts(self) -> None:
        mkdir = FsTask(kind=TaskKind.MKDIR, paths=(Path("/p"),), name="new")
        self.assertIn(Path("/p/new"), mkdir.touched_paths())
        rename = FsTask(kind=TaskKind.RENAME, paths=(Path("/p/old"),), name="fresh")
        self.assertIn(Path("/p/fresh"), rename.touched_paths())


class TaskQueueTests(unittest.TestCase):
    def setUp(self) -> None:
        self.collector = OutcomeCollector()
        self.runner = GatedRunner()
        self.queue: TaskQueue | None = None

    def tearDown(self) -> None:
        for gate in self.runner.gates.values():
            gate.set()
        if self.queue is not None:
            self.queue.shutdown(timeout=WAIT)

    def make_queue(self, debounce: float = 0.0) -> TaskQueue:
        self.queue = TaskQueue(self.collector, debounce_seconds=debounce, runner=self.runner)
        return self.queue

    def test_scan_burst_runs_once_and_reports_superseded_as_cancelled(self) -> None:
        queue = self.make_queue(debounce=0.05)
        first = FsTask.scan(Path("/w"), 1)
        second = FsTask.scan(Path("/w"), 2)
        queue.enqueue(first)
        queue.enqueue(second)

        outcomes = self.collector.wait_for(2)
        self.assertEqual(outcomes[0].task_id, first.task_id)
        self.assertIsInstance(outcomes[0].result, Cancelled)
        self.assertEqual(outcomes[1].task_id, second.task_id)
        self.assertIsInstance(outcomes[1].result, Scanned)
        self.assertEqual(outcomes[1].generation, 2)
        time.sleep(0.1)
        self.assertEqual([task.task_id for task in self.runner.started], [second.task_id])

    def test_scans_of_different_directories_are_not_collapsed(self) -> None:
        queue = self.make_queue(debounce=0.02)
        queue.enqueue(FsTask.scan(Path("/a"), 1))
        queue.enqueue(FsTask.scan(Path("/b"), 2))
        outcomes = self.collector.wait_for(2)
        self.assertTrue(all(isinstance(outcome.result, Scanned) for outcome in outcomes))

    def test_conflicting_mutations_run_in_submission_order(self) -> None:
        queue = self.make_queue()
        gate = self.runner.gate(Path("/x/a"))
        first = delete_task("/x/a")
        second = delete_task("/x/b")
        queue.enqueue(first)
        queue.enqueue(second)

        self.runner.wait_started(1)
        time.sleep(0.05)
        self.assertEqual([task.task_id for task in self.runner.started], [first.task_id])
        self.assertEqual(queue.pending_counts(), (0, 2))

        gate.set()
        outcomes = self.collector.wait_for(2)
        self.assertEqual([outcome.task_id for outcome in outcomes], [first.task_id, second.task_id])
        self.assertEqual([task.task_id for task in self.runner.started], [first.task_id, second.task_id])

    def test_unrelated_mutations_run_concurrently(self) -> None:
        queue = self.make_queue()
        gate_a = self.runner.gate(Path("/x/a"))
        gate_b = self.runner.gate(Path("/y/b"))
        queue.enqueue(delete_task("/x/a"))
        queue.enqueue(delete_task("/y/b"))
        self.runner.wait_started(2)
        gate_a.set()
        gate_b.set()
        self.collector.wait_for(2)

    def test_queued_mutation_can_be_cancelled_but_running_one_cannot(self) -> None:
        queue = self.make_queue()
        gate = self.runner.gate(Path("/x/a"))
        running = delete_task("/x/a")
        queued = delete_task("/x/b")
        queue.enqueue(running)
        queue.enqueue(queued)
        self.runner.wait_started(1)

        self.assertTrue(queue.cancel(queued.task_id))
        self.assertFalse(queue.cancel(running.task_id))
        self.assertIsInstance(self.collector.for_task(queued).result, Cancelled)

        gate.set()
        self.collector.wait_for(2)
        self.assertIsInstance(self.collector.for_task(running).result, Mutated)
        self.assertEqual(len(self.runner.started), 1)

    def test_cancel_unknown_task_returns_false(self) -> None:
        queue = self.make_queue()
        self.assertFalse(queue.cancel(987654))

    def test_cancel_scans_drops_pending_scan(self) -> None:
        queue = self.make_queue(debounce=10.0)
        task = FsTask.scan(Path("/w"), 1)
        queue.enqueue(task)
        self.assertEqual(queue.cancel_scans(Path("/w")), 1)
        (outcome,) = self.collector.wait_for(1)
        self.assertIsInstance(outcome.result, Cancelled)
        self.assertEqual(queue.cancel_scans(Path("/w")), 0)

    def test_running_scan_cancelled_reports_cancelled(self) -> None:
        queue = self.make_queue()
        gate = self.runner.gate(Path("/w"))
        task = FsTask.scan(Path("/w"), 1)
        queue.enqueue(task)
        self.runner.wait_started(1)
        self.assertTrue(queue.cancel(task.task_id))
        gate.set()
        (outcome,) = self.collector.wait_for(1)
        self.assertIsInstance(outcome.result, Cancelled)

    def test_shutdown_cancels_scans_and_waits_for_mutations(self) -> None:
        queue = self.make_queue(debounce=10.0)
        gate = self.runner.gate(Path("/x/a"))
        scan = FsTask.scan(Path("/w"), 1)
        mutation = delete_task("/x/a")
        queue.enqueue(scan)
        queue.enqueue(mutation)
        self.runner.wait_started(1)

        result: list[bool] = []
        closer = threading.Thread(target=lambda: result.append(queue.shutdown()))
        closer.start()
        self.collector.wait_for(1)
        self.assertIsInstance(self.collector.for_task(scan).result, Cancelled)
        time.sleep(0.05)
        self.assertTrue(closer.is_alive())

        gate.set()
        closer.join(WAIT)
        self.assertFalse(closer.is_alive())
        self.assertEqual(result, [True])
        self.assertIsInstance(self.collector.for_task(mutation).result, Mutated)

    def test_shutdown_timeout_reports_outstanding_mutations(self) -> None:
        queue = self.make_queue()
        gate = self.runner.gate(Path("/x/a"))
        queue.enqueue(delete_task("/x/a"))
        self.runner.wait_started(1)
        with self.assertLogs("wayfinder.tasks.queue", level="WARNING"):
            self.assertFalse(queue.shutdown(timeout=0.05))
        gate.set()

    def test_enqueue_after_shutdown_is_cancelled(self) -> None:
        queue = self.make_queue()
        queue.shutdown()
        task = delete_task("/x/a")
        queue.enqueue(task)
        (outcome,) = self.collector.wait_for(1)
        self.assertIsInstance(outcome.result, Cancelled)
        self.assertEqual(self.runner.started, [])

    def test_crashing_runner_becomes_io_error(self) -> None:
        def explode(task: FsTask):
            raise RuntimeError("boom")

        self.queue = TaskQueue(self.collector, debounce_seconds=0.0, runner=explode)
        with self.assertLogs("wayfinder.tasks.queue", level="ERROR"):
            self.queue.enqueue(delete_task("/x/a"))
            (outcome,) = self.collector.wait_for(1)
        self.assertEqual(outcome.result, Failed(ErrorKind.IO_ERROR, "RuntimeError: boom"))


class RunTaskTests(unittest.TestCase):
    def test_scan_of_real_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "f.txt").write_text("x", encoding="utf-8")
            result = run_task(FsTask.scan(root, 7))
        self.assertIsInstance(result, Scanned)
        self.assertEqual(result.snapshot.generation, 7)
        self.assertEqual([entry.name for entry in result.snapshot.entries], ["f.txt"])

    def test_scan_of_missing_directory_fails_with_not_found(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            result = run_task(FsTask.scan(Path(tmp) / "missing", 1))
        self.assertIsInstance(result, Failed)
        self.assertIs(result.kind, ErrorKind.NOT_FOUND)

    def test_precancelled_task_is_not_run(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "keep"
            target.write_text("x", encoding="utf-8")
            task = FsTask(kind=TaskKind.DELETE, paths=(target,))
            task.cancel()
            self.assertIsInstance(run_task(task), Cancelled)
            self.assertTrue(target.exists())

    def test_mkdir_task(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            result = run_task(FsTask(kind=TaskKind.MKDIR, paths=(root,), name="new"))
            self.assertEqual(result, Mutated((root / "new",)))
            self.assertTrue((root / "new").is_dir())


if __name__ == "__main__":
    unittest.main()
