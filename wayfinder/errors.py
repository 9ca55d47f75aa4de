"""Error vocabulary shared by filesystem workers, commands, and state.

Filesystem failures are classified into a small typed vocabulary so the
state machine can record them uniformly as ``AppState.last_error``.
"""

from __future__ import annotations

import errno
from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Typed failure categories surfaced to the operator."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    NOT_A_DIRECTORY = "not_a_directory"
    ALREADY_EXISTS = "already_exists"
    IO_ERROR = "io_error"
    INVALID_COMMAND = "invalid_command"
    SEQUENCE_ABORTED = "sequence_aborted"


@dataclass(frozen=True)
class AppError:
    """Displayable error value stored on application state."""

    kind: ErrorKind
    message: str

    def describe(self) -> str:
        """Return a one-line description for status rendering."""
        label = self.kind.value.replace("_", " ")
        return f"{label}: {self.message}" if self.message else label


class FsOperationError(Exception):
    """Filesystem operation failure carrying its classified kind."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_app_error(self) -> AppError:
        return AppError(self.kind, self.message)


class CommandError(Exception):
    """Raised when colon-command text cannot be resolved."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.INVALID_COMMAND) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_app_error(self) -> AppError:
        return AppError(self.kind, self.message)


_ERRNO_KINDS: dict[int, ErrorKind] = {
    errno.ENOENT: ErrorKind.NOT_FOUND,
    errno.EACCES: ErrorKind.PERMISSION_DENIED,
    errno.EPERM: ErrorKind.PERMISSION_DENIED,
    errno.ENOTDIR: ErrorKind.NOT_A_DIRECTORY,
    errno.EEXIST: ErrorKind.ALREADY_EXISTS,
    errno.ENOTEMPTY: ErrorKind.ALREADY_EXISTS,
}


def classify_os_error(exc: OSError) -> ErrorKind:
    """Map an ``OSError`` subclass or errno onto an ``ErrorKind``."""
    if isinstance(exc, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(exc, NotADirectoryError):
        return ErrorKind.NOT_A_DIRECTORY
    if isinstance(exc, FileExistsError):
        return ErrorKind.ALREADY_EXISTS
    if exc.errno is not None and exc.errno in _ERRNO_KINDS:
        return _ERRNO_KINDS[exc.errno]
    return ErrorKind.IO_ERROR


def fs_error_from_os_error(exc: OSError, context: str = "") -> FsOperationError:
    """Wrap ``exc`` in an ``FsOperationError`` with an operator-readable message."""
    detail = exc.strerror or str(exc)
    target = exc.filename if exc.filename is not None else ""
    message = f"{detail}: {target}" if target else detail
    if context:
        message = f"{context}: {message}"
    return FsOperationError(classify_os_error(exc), message)


__all__ = [
    "ErrorKind",
    "AppError",
    "FsOperationError",
    "CommandError",
    "classify_os_error",
    "fs_error_from_os_error",
]
