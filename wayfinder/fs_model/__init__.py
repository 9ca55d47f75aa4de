"""Filesystem domain model: entry snapshots, listing, and mutations.

This package contains non-UI primitives only:
- immutable directory entry/snapshot datatypes and sort orders
- directory scanning with cooperative cancellation
- copy/move/delete/rename/mkdir/touch with atomic-or-absent semantics
"""

from __future__ import annotations

from .types import DirEntry, DirSnapshot, EntryKind, SortMode, sort_entries
from .scan import ScanCancelled, describe_child, scan_directory
from .ops import (
    copy_entries,
    delete_entries,
    make_directory,
    move_entries,
    plan_destinations,
    rename_entry,
    touch_file,
)

__all__ = [
    "DirEntry",
    "DirSnapshot",
    "EntryKind",
    "SortMode",
    "sort_entries",
    "ScanCancelled",
    "describe_child",
    "scan_directory",
    "copy_entries",
    "delete_entries",
    "make_directory",
    "move_entries",
    "plan_destinations",
    "rename_entry",
    "touch_file",
]
