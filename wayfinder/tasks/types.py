"""Task and outcome datatypes exchanged with the filesystem worker pool."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..errors import ErrorKind
from ..fs_model.types import DirSnapshot, SortMode

_TASK_IDS = itertools.count(1)


class TaskKind(str, Enum):
    SCAN = "scan"
    COPY = "copy"
    MOVE = "move"
    DELETE = "delete"
    RENAME = "rename"
    MKDIR = "mkdir"
    TOUCH = "touch"

    @property
    def is_mutation(self) -> bool:
        return self is not TaskKind.SCAN


@dataclass(frozen=True)
class FsTask:
    """One cancellable unit of filesystem work.

    ``paths`` holds the scanned directory, mutation sources, or the parent
    directory for ``mkdir``/``touch``. ``destination`` is the copy/move
    target, and ``name`` the new name for ``rename``/``mkdir``/``touch``.
    """

    kind: TaskKind
    paths: tuple[Path, ...]
    destination: Path | None = None
    name: str | None = None
    into_directory: bool = False
    generation: int = 0
    show_hidden: bool = False
    sort_mode: SortMode = SortMode.NAME
    task_id: int = field(default_factory=lambda: next(_TASK_IDS))
    cancel_event: threading.Event = field(default_factory=threading.Event, compare=False, repr=False)

    @classmethod
    def scan(
        cls,
        path: Path,
        generation: int,
        *,
        show_hidden: bool = False,
        sort_mode: SortMode = SortMode.NAME,
    ) -> FsTask:
        return cls(
            kind=TaskKind.SCAN,
            paths=(path,),
            generation=generation,
            show_hidden=show_hidden,
            sort_mode=sort_mode,
        )

    @property
    def target(self) -> Path:
        return self.paths[0]

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def touched_paths(self) -> tuple[Path, ...]:
        """Return every path this task reads from or writes to."""
        out = list(self.paths)
        if self.destination is not None:
            out.append(self.destination)
        if self.name is not None:
            out.append(self.paths[0].parent / self.name if self.kind is TaskKind.RENAME else self.paths[0] / self.name)
        return tuple(out)


@dataclass(frozen=True)
class Scanned:
    snapshot: DirSnapshot


@dataclass(frozen=True)
class Mutated:
    paths: tuple[Path, ...]


@dataclass(frozen=True)
class Failed:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Cancelled:
    pass


TaskResult = Scanned | Mutated | Failed | Cancelled


@dataclass(frozen=True)
class TaskOutcome:
    """Completion report for one task, delivered through the event stream."""

    task_id: int
    kind: TaskKind
    paths: tuple[Path, ...]
    generation: int
    result: TaskResult

    @classmethod
    def for_task(cls, task: FsTask, result: TaskResult) -> TaskOutcome:
        return cls(
            task_id=task.task_id,
            kind=task.kind,
            paths=task.paths,
            generation=task.generation,
            result=result,
        )


__all__ = [
    "TaskKind",
    "FsTask",
    "Scanned",
    "Mutated",
    "Failed",
    "Cancelled",
    "TaskResult",
    "TaskOutcome",
]
