"""Domain datatypes for directory listings."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path


class EntryKind(str, Enum):
    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"
    OTHER = "other"


class SortMode(str, Enum):
    """Listing order applied to every directory snapshot."""

    NAME = "name"
    SIZE = "size"
    MTIME = "mtime"

    @classmethod
    def parse(cls, value: str) -> SortMode:
        """Resolve a user-supplied sort name, raising ``ValueError`` when unknown."""
        normalized = value.strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise ValueError(f"unknown sort mode: {value!r}")


@dataclass(frozen=True)
class DirEntry:
    """Snapshot of one filesystem child observed during a scan."""

    name: str
    kind: EntryKind
    size: int | None = None
    modified: float | None = None
    permissions: str = ""
    link_target: str | None = None
    link_is_dir: bool = False

    @property
    def is_dir(self) -> bool:
        """Return whether the entry can be entered as a directory."""
        return self.kind is EntryKind.DIR or (self.kind is EntryKind.SYMLINK and self.link_is_dir)


@dataclass(frozen=True)
class DirSnapshot:
    """Immutable listing of one directory at one scan generation.

    ``valid`` is ``False`` on copies that have been superseded by a newer
    scan request which has not completed yet.
    """

    path: Path
    generation: int
    entries: tuple[DirEntry, ...] = ()
    valid: bool = True

    def names(self) -> frozenset[str]:
        return frozenset(entry.name for entry in self.entries)

    def index_of(self, name: str) -> int | None:
        """Return index of entry ``name`` or ``None`` when absent."""
        for idx, entry in enumerate(self.entries):
            if entry.name == name:
                return idx
        return None

    def superseded(self) -> DirSnapshot:
        """Return a copy flagged as superseded by a pending rescan."""
        return replace(self, valid=False)

    def sorted_by(self, mode: SortMode) -> DirSnapshot:
        """Return a copy with entries reordered for ``mode``."""
        return replace(self, entries=sort_entries(self.entries, mode))


def sort_entries(entries: Iterable[DirEntry], mode: SortMode) -> tuple[DirEntry, ...]:
    """Order entries directories-first, then by ``mode``.

    Name order is case-insensitive; size order is largest first; mtime order
    is newest first. Ties fall back to name order.
    """
    items = sorted(entries, key=lambda entry: entry.name.casefold())
    if mode is SortMode.SIZE:
        items.sort(key=lambda entry: -(entry.size or 0))
    elif mode is SortMode.MTIME:
        items.sort(key=lambda entry: -(entry.modified or 0.0))
    items.sort(key=lambda entry: not entry.is_dir)
    return tuple(items)


__all__ = [
    "EntryKind",
    "SortMode",
    "DirEntry",
    "DirSnapshot",
    "sort_entries",
]
