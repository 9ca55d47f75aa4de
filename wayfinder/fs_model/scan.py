"""Directory listing for the filesystem worker pool."""

from __future__ import annotations

import os
import stat
from collections.abc import Callable
from pathlib import Path

from ..errors import fs_error_from_os_error
from .ops import STAGING_MARKER
from .types import DirEntry, DirSnapshot, EntryKind, SortMode, sort_entries


class ScanCancelled(Exception):
    """Raised when a scan observes its cancellation flag."""


def _never_cancelled() -> bool:
    return False


def _entry_kind(mode: int) -> EntryKind:
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIR
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    return EntryKind.OTHER


def describe_child(child: os.DirEntry) -> DirEntry:
    """Build a ``DirEntry`` from one ``os.scandir`` item.

    Metadata failures degrade to an ``OTHER`` entry without size or mtime
    instead of failing the whole listing.
    """
    try:
        st = child.stat(follow_symlinks=False)
    except OSError:
        return DirEntry(name=child.name, kind=EntryKind.OTHER)

    kind = _entry_kind(st.st_mode)
    link_target: str | None = None
    link_is_dir = False
    if kind is EntryKind.SYMLINK:
        try:
            link_target = os.readlink(child.path)
        except OSError:
            link_target = None
        try:
            link_is_dir = child.is_dir(follow_symlinks=True)
        except OSError:
            link_is_dir = False

    return DirEntry(
        name=child.name,
        kind=kind,
        size=None if kind is EntryKind.DIR else int(st.st_size),
        modified=float(st.st_mtime),
        permissions=stat.filemode(st.st_mode),
        link_target=link_target,
        link_is_dir=link_is_dir,
    )


def scan_directory(
    directory: Path,
    generation: int,
    *,
    show_hidden: bool = False,
    sort_mode: SortMode = SortMode.NAME,
    is_cancelled: Callable[[], bool] = _never_cancelled,
) -> DirSnapshot:
    """List ``directory`` into a sorted ``DirSnapshot``.

    Raises ``FsOperationError`` for listing failures and ``ScanCancelled``
    when ``is_cancelled`` turns true between entries.
    """
    entries: list[DirEntry] = []
    try:
        with os.scandir(directory) as children:
            for child in children:
                if is_cancelled():
                    raise ScanCancelled(str(directory))
                if child.name.startswith(STAGING_MARKER):
                    continue
                if not show_hidden and child.name.startswith("."):
                    continue
                entries.append(describe_child(child))
    except ScanCancelled:
        raise
    except OSError as exc:
        raise fs_error_from_os_error(exc, "cannot list directory") from exc

    if is_cancelled():
        raise ScanCancelled(str(directory))
    return DirSnapshot(
        path=directory,
        generation=generation,
        entries=sort_entries(entries, sort_mode),
    )


__all__ = [
    "ScanCancelled",
    "describe_child",
    "scan_directory",
]
