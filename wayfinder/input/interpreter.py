"""Modal command interpreter: key events in, resolved actions out.

The interpreter owns the partially-typed input (count prefix, first key of
an operator pair, prompt text) and resolves it synchronously per event.
It never touches application state; the dispatcher keeps its mode in step
with the state machine through ``sync_mode``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..actions import (
    Action,
    Cancel,
    ConfirmPending,
    Direction,
    EnterDir,
    JumpBottom,
    JumpTop,
    LeaveDir,
    Move,
    Paste,
    Quit,
    Refresh,
    SearchNext,
    StartCommand,
    StartSearch,
    SubmitCommand,
    SubmitSearch,
    ToggleHidden,
    ToggleMark,
    Yank,
)
from ..events import Event, KeyEvent, TickEvent
from ..state import Mode
from .key_registry import KeyComboBinding, KeyComboRegistry, normalize_key_name

LOGGER = logging.getLogger(__name__)

DEFAULT_SEQUENCE_TIMEOUT_SECONDS = 1.0
MAX_COUNT = 9_999

CONFIRM_ACCEPT_KEYS = frozenset({"y", "Y", "ENTER"})
CONFIRM_REJECT_KEYS = frozenset({"n", "N"})
TEXT_CANCEL_KEYS = frozenset({"ESC", "CTRL_C"})


@dataclass
class PendingSequence:
    """Partially-entered input awaiting resolution or abort."""

    count: int | None = None
    keys: list[str] = field(default_factory=list)
    text: str = ""
    last_input_at: float = 0.0

    def is_idle(self) -> bool:
        return self.count is None and not self.keys and not self.text


@dataclass(frozen=True)
class PendingView:
    """Immutable copy of the pending input for rendering."""

    mode: Mode
    count: int | None
    keys: tuple[str, ...]
    text: str


def build_default_registry() -> KeyComboRegistry:
    """Return the Normal-mode bindings keyed by their binding names."""
    return KeyComboRegistry(normalize=normalize_key_name).register_bindings(
        KeyComboBinding("move_down", ("j", "DOWN"), lambda count: Move(Direction.DOWN, 1 if count is None else count)),
        KeyComboBinding("move_up", ("k", "UP"), lambda count: Move(Direction.UP, 1 if count is None else count)),
        KeyComboBinding("enter_dir", ("l", "RIGHT", "ENTER"), lambda _count: EnterDir()),
        KeyComboBinding("leave_dir", ("h", "LEFT", "BACKSPACE"), lambda _count: LeaveDir()),
        KeyComboBinding("jump_top", ("g",), lambda count: JumpTop(count), repeat=True),
        KeyComboBinding("jump_bottom", ("G", "END"), lambda count: JumpBottom(count)),
        KeyComboBinding("toggle_mark", (" ",), lambda _count: ToggleMark()),
        KeyComboBinding("search_next", ("n",), lambda count: SearchNext(1 if count is None else count)),
        KeyComboBinding(
            "search_prev",
            ("N",),
            lambda count: SearchNext(1 if count is None else count, reverse=True),
        ),
        KeyComboBinding("start_search", ("/",), lambda _count: StartSearch()),
        KeyComboBinding("start_command", (":",), lambda _count: StartCommand()),
        KeyComboBinding("refresh", ("r",), lambda _count: Refresh()),
        KeyComboBinding("toggle_hidden", (".",), lambda _count: ToggleHidden()),
        KeyComboBinding("delete", ("d",), lambda _count: SubmitCommand("delete"), repeat=True),
        KeyComboBinding("yank", ("y",), lambda _count: Yank(), repeat=True),
        KeyComboBinding("paste", ("p",), lambda _count: Paste()),
        KeyComboBinding("quit", ("q", "CTRL_C"), lambda _count: Quit()),
    )


class CommandInterpreter:
    """Turn key and tick events into ``Action`` lists.

    ``feed`` usually returns zero or one action. When a key aborts a pending
    sequence, the result is ``Cancel`` followed by whatever that key yields
    when re-evaluated as a fresh sequence start.
    """

    def __init__(
        self,
        keymap: Mapping[str, str] | None = None,
        *,
        sequence_timeout: float = DEFAULT_SEQUENCE_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = build_default_registry()
        self._sequence_timeout = max(0.0, sequence_timeout)
        self._mode = Mode.NORMAL
        self._pending = PendingSequence()
        for key, name in (keymap or {}).items():
            if not self._registry.rebind(key, name):
                LOGGER.warning("Ignoring keymap entry %r: unknown binding %r", key, name)

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def binding_names(self) -> frozenset[str]:
        return self._registry.names()

    def view(self) -> PendingView:
        return PendingView(
            mode=self._mode,
            count=self._pending.count,
            keys=tuple(self._pending.keys),
            text=self._pending.text,
        )

    def sync_mode(self, mode: Mode) -> None:
        """Follow an interaction-mode change; pending input never survives one."""
        if mode is not self._mode:
            self._mode = mode
            self._pending = PendingSequence()

    def feed(self, event: Event) -> list[Action]:
        if isinstance(event, TickEvent):
            self._expire(event.at)
            return []
        if not isinstance(event, KeyEvent):
            return []
        self._pending.last_input_at = event.at
        key = event.token
        if self._mode is Mode.NORMAL:
            return self._feed_normal(key, event.at)
        if self._mode is Mode.CONFIRM:
            return self._feed_confirm(key)
        return self._feed_text(key)

    def _reset(self, at: float = 0.0) -> None:
        self._pending = PendingSequence(last_input_at=at)

    def _switch(self, mode: Mode) -> None:
        self._mode = mode
        self._pending = PendingSequence()

    def _expire(self, now: float) -> None:
        if self._mode is not Mode.NORMAL or self._pending.is_idle():
            return
        if now - self._pending.last_input_at >= self._sequence_timeout:
            LOGGER.debug("Pending sequence %r timed out", self._pending)
            self._reset(now)

    def _feed_normal(self, key: str, at: float) -> list[Action]:
        pending = self._pending
        if key == "ESC":
            self._reset(at)
            return [Cancel()]

        if pending.keys:
            operator = pending.keys[0]
            binding = self._registry.lookup(operator)
            if key == operator and binding is not None:
                count = pending.count
                self._reset(at)
                return self._resolve(binding, count)
            LOGGER.debug("Operator %r aborted by %r", operator, key)
            self._reset(at)
            return [Cancel(), *self._feed_normal(key, at)]

        if len(key) == 1 and key in "0123456789":
            pending.count = min(MAX_COUNT, (pending.count or 0) * 10 + int(key))
            return []

        binding = self._registry.lookup(key)
        if binding is None:
            if pending.is_idle():
                return []
            LOGGER.debug("Count %r aborted by %r", pending.count, key)
            self._reset(at)
            return [Cancel()]

        if binding.repeat:
            pending.keys.append(key)
            return []

        count = pending.count
        self._reset(at)
        return self._resolve(binding, count)

    def _resolve(self, binding: KeyComboBinding, count: int | None) -> list[Action]:
        action = binding.handler(count)
        if action is None:
            return []
        if isinstance(action, StartSearch):
            self._switch(Mode.SEARCH)
        elif isinstance(action, StartCommand):
            self._switch(Mode.COMMAND)
        return [action]

    def _feed_text(self, key: str) -> list[Action]:
        pending = self._pending
        if key in TEXT_CANCEL_KEYS:
            self._switch(Mode.NORMAL)
            return [Cancel()]
        if key == "ENTER":
            mode = self._mode
            text = pending.text
            self._switch(Mode.NORMAL)
            if mode is Mode.SEARCH:
                return [SubmitSearch(text)] if text else [Cancel()]
            stripped = text.strip()
            return [SubmitCommand(stripped)] if stripped else [Cancel()]
        if key == "BACKSPACE":
            if not pending.text:
                self._switch(Mode.NORMAL)
                return [Cancel()]
            pending.text = pending.text[:-1]
            return []
        if key == "CTRL_U":
            pending.text = ""
            return []
        if len(key) == 1 and key.isprintable():
            pending.text += key
        return []

    def _feed_confirm(self, key: str) -> list[Action]:
        if key in CONFIRM_ACCEPT_KEYS:
            self._switch(Mode.NORMAL)
            return [ConfirmPending(True)]
        if key in CONFIRM_REJECT_KEYS:
            self._switch(Mode.NORMAL)
            return [ConfirmPending(False)]
        if key in TEXT_CANCEL_KEYS:
            self._switch(Mode.NORMAL)
            return [Cancel()]
        return []


__all__ = [
    "DEFAULT_SEQUENCE_TIMEOUT_SECONDS",
    "MAX_COUNT",
    "PendingSequence",
    "PendingView",
    "build_default_registry",
    "CommandInterpreter",
]
