"""Mutating filesystem operations with atomic-or-absent semantics.

Every operation validates all preconditions before touching the
filesystem. Multi-step operations stage their work under hidden names in
the destination directory and roll back on failure, so callers observe
either the complete result or an unchanged tree.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import uuid
from collections.abc import Sequence
from pathlib import Path

from ..errors import ErrorKind, FsOperationError, fs_error_from_os_error

LOGGER = logging.getLogger(__name__)

STAGING_MARKER = ".wayfinder-staging-"


def staging_path(final: Path) -> Path:
    """Return an unused hidden sibling path for staging ``final``."""
    return final.parent / f"{STAGING_MARKER}{uuid.uuid4().hex[:12]}-{final.name}"


def _exists(path: Path) -> bool:
    return os.path.lexists(path)


def _is_real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def _remove_path(path: Path) -> None:
    if _is_real_dir(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)


def _require_exists(path: Path) -> None:
    if not _exists(path):
        raise FsOperationError(ErrorKind.NOT_FOUND, f"no such file or directory: {path}")


def _require_absent(path: Path) -> None:
    if _exists(path):
        raise FsOperationError(ErrorKind.ALREADY_EXISTS, f"destination already exists: {path}")


def _require_parent_directory(path: Path) -> None:
    parent = path.parent
    if not parent.exists():
        raise FsOperationError(ErrorKind.NOT_FOUND, f"no such directory: {parent}")
    if not parent.is_dir():
        raise FsOperationError(ErrorKind.NOT_A_DIRECTORY, f"not a directory: {parent}")


def _require_not_inside(source: Path, final: Path) -> None:
    try:
        resolved_source = source.resolve()
        resolved_final = final.parent.resolve() / final.name
    except OSError as exc:
        raise fs_error_from_os_error(exc) from exc
    if resolved_final == resolved_source or resolved_final.is_relative_to(resolved_source):
        raise FsOperationError(ErrorKind.IO_ERROR, f"cannot place {source} inside itself")


def plan_destinations(
    sources: Sequence[Path],
    destination: Path,
    into_directory: bool,
) -> list[tuple[Path, Path]]:
    """Resolve each source to its final path under ``destination``.

    Multiple sources, an explicit directory hint, or an existing directory at
    ``destination`` all place sources inside it under their own names.
    """
    if not sources:
        raise FsOperationError(ErrorKind.NOT_FOUND, "nothing to transfer")
    treat_as_directory = into_directory or len(sources) > 1 or destination.is_dir()
    if treat_as_directory:
        if not destination.exists():
            raise FsOperationError(ErrorKind.NOT_FOUND, f"no such directory: {destination}")
        if not destination.is_dir():
            raise FsOperationError(ErrorKind.NOT_A_DIRECTORY, f"not a directory: {destination}")
        plan = [(source, destination / source.name) for source in sources]
    else:
        plan = [(sources[0], destination)]

    finals: set[Path] = set()
    for source, final in plan:
        _require_exists(source)
        _require_parent_directory(final)
        _require_absent(final)
        _require_not_inside(source, final)
        if final in finals:
            raise FsOperationError(ErrorKind.ALREADY_EXISTS, f"duplicate destination: {final}")
        finals.add(final)
    return plan


def _copy_to(source: Path, target: Path) -> None:
    if _is_real_dir(source):
        shutil.copytree(source, target, symlinks=True)
    else:
        shutil.copy2(source, target, follow_symlinks=False)


def _discard(paths: Sequence[Path]) -> None:
    for path in paths:
        try:
            if _exists(path):
                _remove_path(path)
        except OSError as exc:
            LOGGER.warning("Could not clean up %s: %s", path, exc)


def copy_entries(
    sources: Sequence[Path],
    destination: Path,
    *,
    into_directory: bool = False,
) -> list[Path]:
    """Copy ``sources`` to ``destination`` and return the created paths."""
    plan = plan_destinations(sources, destination, into_directory)
    staged: list[tuple[Path, Path]] = []
    try:
        for source, final in plan:
            staging = staging_path(final)
            staged.append((staging, final))
            _copy_to(source, staging)
    except OSError as exc:
        _discard([staging for staging, _final in staged])
        raise fs_error_from_os_error(exc, "copy failed") from exc

    committed: list[Path] = []
    try:
        for staging, final in staged:
            _require_absent(final)
            os.rename(staging, final)
            committed.append(final)
    except (OSError, FsOperationError) as exc:
        _discard(committed)
        _discard([staging for staging, final in staged if final not in committed])
        if isinstance(exc, FsOperationError):
            raise
        raise fs_error_from_os_error(exc, "copy failed") from exc
    return committed


def _move_across_devices(source: Path, final: Path) -> Path:
    """Copy ``source`` to ``final`` and park the original under a staging name.

    Returns the parked path; the caller purges it once every source has been
    placed, or renames it back to undo the move.
    """
    staging = staging_path(final)
    try:
        _copy_to(source, staging)
        os.rename(staging, final)
    except OSError:
        _discard([staging])
        raise
    parked = staging_path(source)
    try:
        os.rename(source, parked)
    except OSError:
        _discard([final])
        raise
    return parked


def _undo_move(source: Path, final: Path, parked: Path | None) -> None:
    try:
        if parked is None:
            os.rename(final, source)
            return
        os.rename(parked, source)
    except OSError as exc:
        LOGGER.warning("Could not restore %s from %s: %s", source, parked or final, exc)
        return
    _discard([final])


def move_entries(
    sources: Sequence[Path],
    destination: Path,
    *,
    into_directory: bool = False,
) -> list[Path]:
    """Move ``sources`` to ``destination`` and return the new paths.

    A failure part-way through moves already-relocated sources back.
    Sources copied across devices stay parked beside their original path
    until every source is in place.
    """
    plan = plan_destinations(sources, destination, into_directory)
    moved: list[tuple[Path, Path, Path | None]] = []
    try:
        for source, final in plan:
            try:
                os.rename(source, final)
                parked = None
            except OSError as exc:
                if exc.errno != errno.EXDEV:
                    raise
                LOGGER.debug("Rename of %s crossed devices; copying instead", source)
                parked = _move_across_devices(source, final)
            moved.append((source, final, parked))
    except OSError as exc:
        for source, final, parked in reversed(moved):
            _undo_move(source, final, parked)
        raise fs_error_from_os_error(exc, "move failed") from exc

    for source, final, parked in moved:
        if parked is None:
            continue
        try:
            _remove_path(parked)
        except OSError as exc:
            LOGGER.warning("Moved %s to %s but could not purge %s: %s", source, final, parked, exc)
    return [final for _source, final, _parked in moved]


def delete_entries(targets: Sequence[Path]) -> list[Path]:
    """Delete ``targets`` and return them.

    Targets are first renamed to staging names so that either all of them
    disappear from their visible paths or none do.
    """
    if not targets:
        raise FsOperationError(ErrorKind.NOT_FOUND, "nothing to delete")
    for target in targets:
        _require_exists(target)

    staged: list[tuple[Path, Path]] = []
    try:
        for target in targets:
            staging = staging_path(target)
            os.rename(target, staging)
            staged.append((target, staging))
    except OSError as exc:
        for target, staging in reversed(staged):
            try:
                os.rename(staging, target)
            except OSError as rollback_exc:
                LOGGER.warning("Could not restore %s: %s", target, rollback_exc)
        raise fs_error_from_os_error(exc, "delete failed") from exc

    for target, staging in staged:
        try:
            _remove_path(staging)
        except OSError as exc:
            LOGGER.warning("Deleted %s but could not purge %s: %s", target, staging, exc)
    return list(targets)


def rename_entry(source: Path, new_name: str) -> Path:
    """Rename ``source`` within its directory to ``new_name``."""
    final = source.parent / new_name
    _require_exists(source)
    _require_absent(final)
    try:
        os.rename(source, final)
    except OSError as exc:
        raise fs_error_from_os_error(exc, "rename failed") from exc
    return final


def make_directory(parent: Path, name: str) -> Path:
    target = parent / name
    _require_absent(target)
    try:
        os.mkdir(target)
    except OSError as exc:
        raise fs_error_from_os_error(exc, "mkdir failed") from exc
    return target


def touch_file(parent: Path, name: str) -> Path:
    """Create ``parent/name`` if missing, otherwise update its mtime."""
    target = parent / name
    if _is_real_dir(target):
        raise FsOperationError(ErrorKind.ALREADY_EXISTS, f"a directory named {name!r} exists")
    try:
        target.touch(exist_ok=True)
    except OSError as exc:
        raise fs_error_from_os_error(exc, "touch failed") from exc
    return target


__all__ = [
    "STAGING_MARKER",
    "staging_path",
    "plan_destinations",
    "copy_entries",
    "move_entries",
    "delete_entries",
    "rename_entry",
    "make_directory",
    "touch_file",
]
