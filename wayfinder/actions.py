"""Resolved user intents emitted by the modal command interpreter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"

    @property
    def step(self) -> int:
        return -1 if self is Direction.UP else 1


@dataclass(frozen=True)
class Move:
    direction: Direction
    count: int = 1


@dataclass(frozen=True)
class JumpTop:
    """Jump to the first entry, or to entry ``count`` (1-based) when given."""

    count: int | None = None


@dataclass(frozen=True)
class JumpBottom:
    """Jump to the last entry, or to entry ``count`` (1-based) when given."""

    count: int | None = None


@dataclass(frozen=True)
class EnterDir:
    pass


@dataclass(frozen=True)
class LeaveDir:
    pass


@dataclass(frozen=True)
class ToggleMark:
    pass


@dataclass(frozen=True)
class StartSearch:
    pass


@dataclass(frozen=True)
class SubmitSearch:
    text: str


@dataclass(frozen=True)
class SearchNext:
    count: int = 1
    reverse: bool = False


@dataclass(frozen=True)
class StartCommand:
    pass


@dataclass(frozen=True)
class SubmitCommand:
    text: str


@dataclass(frozen=True)
class ConfirmPending:
    accepted: bool


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Yank:
    pass


@dataclass(frozen=True)
class Paste:
    pass


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class ToggleHidden:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Action = (
    Move
    | JumpTop
    | JumpBottom
    | EnterDir
    | LeaveDir
    | ToggleMark
    | StartSearch
    | SubmitSearch
    | SearchNext
    | StartCommand
    | SubmitCommand
    | ConfirmPending
    | Cancel
    | Yank
    | Paste
    | Refresh
    | ToggleHidden
    | Quit
)


__all__ = [
    "Direction",
    "Move",
    "JumpTop",
    "JumpBottom",
    "EnterDir",
    "LeaveDir",
    "ToggleMark",
    "StartSearch",
    "SubmitSearch",
    "SearchNext",
    "StartCommand",
    "SubmitCommand",
    "ConfirmPending",
    "Cancel",
    "Yank",
    "Paste",
    "Refresh",
    "ToggleHidden",
    "Quit",
    "Action",
]
