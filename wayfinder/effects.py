"""Side-effect requests emitted by the state machine.

The dispatcher carries these out; the state machine never performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .fs_model.types import SortMode
from .tasks.types import FsTask


class ExternalKind(str, Enum):
    SHELL = "shell"
    EDITOR = "editor"


@dataclass(frozen=True)
class RequestScan:
    path: Path
    generation: int
    show_hidden: bool = False
    sort_mode: SortMode = SortMode.NAME

    def to_task(self) -> FsTask:
        return FsTask.scan(
            self.path,
            self.generation,
            show_hidden=self.show_hidden,
            sort_mode=self.sort_mode,
        )


@dataclass(frozen=True)
class RequestMutation:
    task: FsTask


@dataclass(frozen=True)
class CancelScans:
    """Cancel outstanding scans of a directory that is no longer displayed."""

    path: Path


@dataclass(frozen=True)
class RequestPreview:
    path: Path


@dataclass(frozen=True)
class RunExternal:
    """Synchronous terminal handoff to a shell or editor."""

    kind: ExternalKind
    target: Path


@dataclass(frozen=True)
class RequestQuit:
    pass


Effect = RequestScan | RequestMutation | CancelScans | RequestPreview | RunExternal | RequestQuit


__all__ = [
    "ExternalKind",
    "RequestScan",
    "RequestMutation",
    "CancelScans",
    "RequestPreview",
    "RunExternal",
    "RequestQuit",
    "Effect",
]
