"""Colon-command grammar.

Commands are a fixed set of names with at most one argument. Aliases from
configuration are resolved before the name is looked up.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import CommandError


class CommandName(str, Enum):
    DELETE = "delete"
    COPY = "copy"
    MOVE = "move"
    RENAME = "rename"
    MKDIR = "mkdir"
    TOUCH = "touch"
    SH = "sh"
    EDIT = "edit"
    CD = "cd"
    PWD = "pwd"
    REFRESH = "refresh"
    HELP = "help"
    QUIT = "quit"
    SORT = "sort"
    HIDDEN = "hidden"


DEFAULT_ALIASES: dict[str, str] = {
    "rm": "delete",
    "cp": "copy",
    "mv": "move",
    "q": "quit",
}

_REQUIRES_ARGUMENT = frozenset(
    {
        CommandName.COPY,
        CommandName.MOVE,
        CommandName.RENAME,
        CommandName.MKDIR,
        CommandName.TOUCH,
        CommandName.SORT,
    }
)
_OPTIONAL_ARGUMENT = frozenset({CommandName.CD})

_USAGE: dict[CommandName, str] = {
    CommandName.COPY: "copy <destination>",
    CommandName.MOVE: "move <destination>",
    CommandName.RENAME: "rename <name>",
    CommandName.MKDIR: "mkdir <name>",
    CommandName.TOUCH: "touch <name>",
    CommandName.SORT: "sort <name|size|mtime>",
}

HELP_TEXT = (
    "delete copy move rename mkdir touch sh edit cd pwd refresh sort hidden quit"
)


@dataclass(frozen=True)
class Command:
    name: CommandName
    argument: str | None = None


def _split_argument(rest: str) -> str:
    """Return the argument text, honoring shell-style quoting when balanced."""
    rest = rest.strip()
    if not rest:
        return ""
    try:
        parts = shlex.split(rest)
    except ValueError:
        return rest
    if len(parts) == 1:
        return parts[0]
    return rest


def parse_command(text: str, aliases: Mapping[str, str] | None = None) -> Command:
    """Parse colon-command ``text`` into a ``Command``.

    Raises ``CommandError`` for unknown names, missing arguments, and
    arguments given to commands that take none.
    """
    stripped = text.strip()
    if not stripped:
        raise CommandError("empty command")
    head, _sep, rest = stripped.partition(" ")
    word = head.lower()
    table = DEFAULT_ALIASES if aliases is None else aliases
    word = table.get(word, word).lower()
    try:
        name = CommandName(word)
    except ValueError:
        raise CommandError(stripped) from None

    argument = _split_argument(rest)
    if name in _REQUIRES_ARGUMENT and not argument:
        raise CommandError(f"usage: {_USAGE[name]}")
    if argument and name not in _REQUIRES_ARGUMENT and name not in _OPTIONAL_ARGUMENT:
        raise CommandError(f"{name.value} takes no argument")
    return Command(name, argument or None)


def validate_entry_name(name: str, current: str | None = None) -> str:
    """Return ``name`` when it is usable as a single directory entry name."""
    candidate = name.strip()
    if not candidate:
        raise CommandError("name must not be empty")
    if candidate in {".", ".."}:
        raise CommandError(f"invalid name: {candidate}")
    if os.sep in candidate or (os.altsep is not None and os.altsep in candidate):
        raise CommandError(f"name must not contain '{os.sep}': {candidate}")
    if "\x00" in candidate:
        raise CommandError("name must not contain NUL")
    if current is not None and candidate == current:
        raise CommandError(f"'{candidate}' already has that name")
    return candidate


def resolve_destination(argument: str, cwd: Path) -> tuple[Path, bool]:
    """Resolve a copy/move destination against ``cwd``.

    Returns the absolute destination and whether the operator asked for
    "into this directory" with a trailing separator.
    """
    into_directory = argument.endswith(os.sep) or (
        os.altsep is not None and argument.endswith(os.altsep)
    )
    target = Path(os.path.expanduser(argument))
    if not target.is_absolute():
        target = cwd / target
    return Path(os.path.normpath(target)), into_directory


def resolve_directory(argument: str | None, cwd: Path) -> Path:
    """Resolve a ``cd`` argument; no argument means the home directory."""
    if not argument:
        return Path.home()
    target = Path(os.path.expanduser(argument))
    if not target.is_absolute():
        target = cwd / target
    return Path(os.path.normpath(target))


def merge_aliases(configured: Mapping[str, str] | None) -> dict[str, str]:
    """Combine built-in aliases with configured ones, lower-casing both sides."""
    merged = dict(DEFAULT_ALIASES)
    for alias, canonical in (configured or {}).items():
        merged[alias.strip().lower()] = canonical.strip().lower()
    return merged


__all__ = [
    "CommandName",
    "Command",
    "DEFAULT_ALIASES",
    "HELP_TEXT",
    "parse_command",
    "validate_entry_name",
    "resolve_destination",
    "resolve_directory",
    "merge_aliases",
]
