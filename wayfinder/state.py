"""Application state owned by the state machine.

Only the dispatcher thread mutates ``AppState``. Other threads receive
``AppView`` copies, which share immutable snapshots but no mutable
containers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .errors import AppError
from .fs_model.types import DirEntry, DirSnapshot, SortMode
from .preview.types import Preview


class Mode(str, Enum):
    NORMAL = "normal"
    SEARCH = "search"
    COMMAND = "command"
    CONFIRM = "confirm"


class PendingOpKind(str, Enum):
    DELETE = "delete"


@dataclass(frozen=True)
class PendingOp:
    """Destructive operation waiting for operator confirmation."""

    kind: PendingOpKind
    paths: tuple[Path, ...]

    def prompt(self) -> str:
        if len(self.paths) == 1:
            return f"Delete '{self.paths[0].name}'?"
        return f"Delete {len(self.paths)} entries?"


@dataclass
class AppState:
    current_path: Path
    snapshot: DirSnapshot | None = None
    selected_idx: int = 0
    marks: set[str] = field(default_factory=set)
    sort_mode: SortMode = SortMode.NAME
    show_hidden: bool = False
    mode: Mode = Mode.NORMAL
    pending_op: PendingOp | None = None
    last_error: AppError | None = None
    status_message: str = ""
    loading: bool = False
    generation: int = 0
    path_generation: int = 0
    prefer_name: str | None = None
    last_search: str | None = None
    yanked: tuple[Path, ...] = ()
    quit_requested: bool = False
    preview: Preview | None = None

    @property
    def entries(self) -> tuple[DirEntry, ...]:
        if self.snapshot is None or self.snapshot.path != self.current_path:
            return ()
        return self.snapshot.entries

    def selected_entry(self) -> DirEntry | None:
        entries = self.entries
        if 0 <= self.selected_idx < len(entries):
            return entries[self.selected_idx]
        return None

    def selected_path(self) -> Path | None:
        entry = self.selected_entry()
        return None if entry is None else self.current_path / entry.name


@dataclass(frozen=True)
class AppView:
    """Read-only copy of ``AppState`` handed to the render collaborator."""

    current_path: Path
    snapshot: DirSnapshot | None
    selected_idx: int
    marks: frozenset[str]
    sort_mode: SortMode
    show_hidden: bool
    mode: Mode
    pending_op: PendingOp | None
    last_error: AppError | None
    status_message: str
    loading: bool
    preview: Preview | None
    last_search: str | None

    @classmethod
    def of(cls, state: AppState) -> AppView:
        return cls(
            current_path=state.current_path,
            snapshot=state.snapshot,
            selected_idx=state.selected_idx,
            marks=frozenset(state.marks),
            sort_mode=state.sort_mode,
            show_hidden=state.show_hidden,
            mode=state.mode,
            pending_op=state.pending_op,
            last_error=state.last_error,
            status_message=state.status_message,
            loading=state.loading,
            preview=state.preview,
            last_search=state.last_search,
        )

    @property
    def entries(self) -> tuple[DirEntry, ...]:
        if self.snapshot is None or self.snapshot.path != self.current_path:
            return ()
        return self.snapshot.entries

    def selected_entry(self) -> DirEntry | None:
        entries = self.entries
        if 0 <= self.selected_idx < len(entries):
            return entries[self.selected_idx]
        return None


__all__ = [
    "Mode",
    "PendingOpKind",
    "PendingOp",
    "AppState",
    "AppView",
]
