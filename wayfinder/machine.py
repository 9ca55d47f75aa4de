"""Application state machine.

``StateMachine`` is the only writer of ``AppState``. It consumes resolved
actions, task outcomes, and previews on the dispatcher thread and answers
with a list of effects; it never performs I/O itself.

Scan freshness uses two counters: ``generation`` is bumped for every scan
request, and ``path_generation`` records the generation at which the
current directory was entered. A scan result is accepted only for the
current directory, only if it was requested after that directory was
entered, and only if it is not older than the snapshot already shown.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from .actions import (
    Action,
    Cancel,
    ConfirmPending,
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
from .commands import (
    HELP_TEXT,
    Command,
    CommandName,
    merge_aliases,
    parse_command,
    resolve_destination,
    resolve_directory,
    validate_entry_name,
)
from .effects import (
    CancelScans,
    Effect,
    ExternalKind,
    RequestMutation,
    RequestPreview,
    RequestQuit,
    RequestScan,
    RunExternal,
)
from .errors import AppError, CommandError, ErrorKind
from .fs_model.types import SortMode
from .preview.types import Preview
from .state import AppState, Mode, PendingOp, PendingOpKind
from .tasks.types import Cancelled, Failed, FsTask, Mutated, Scanned, TaskKind, TaskOutcome

LOGGER = logging.getLogger(__name__)

_MUTATION_VERBS: dict[TaskKind, str] = {
    TaskKind.COPY: "Copied",
    TaskKind.MOVE: "Moved",
    TaskKind.DELETE: "Deleted",
    TaskKind.RENAME: "Renamed",
    TaskKind.MKDIR: "Created",
    TaskKind.TOUCH: "Touched",
}


def _plural(count: int, noun: str = "entry") -> str:
    if count == 1:
        return f"1 {noun}"
    if noun.endswith("y"):
        return f"{count} {noun[:-1]}ies"
    return f"{count} {noun}s"


class StateMachine:
    """Single owner of navigation state."""

    def __init__(
        self,
        start_path: Path,
        *,
        sort_mode: SortMode = SortMode.NAME,
        show_hidden: bool = False,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        self.state = AppState(current_path=start_path, sort_mode=sort_mode, show_hidden=show_hidden)
        self._aliases = merge_aliases(aliases)
        self._requested_generation = 0
        self._previewed: Path | None = None

    # -- entry points ---------------------------------------------------

    def start(self) -> list[Effect]:
        """Request the initial listing of the startup directory."""
        state = self.state
        effects: list[Effect] = [self._request_scan(entering=True)]
        state.loading = True
        return effects

    def apply_action(self, action: Action) -> list[Effect]:
        state = self.state
        if not isinstance(action, Cancel):
            state.last_error = None
            state.status_message = ""
        effects = self._dispatch_action(action)
        return self._with_preview(effects)

    def apply_outcome(self, outcome: TaskOutcome) -> list[Effect]:
        if outcome.kind is TaskKind.SCAN:
            effects = self._apply_scan_outcome(outcome)
        else:
            effects = self._apply_mutation_outcome(outcome)
        return self._with_preview(effects)

    def apply_preview(self, preview: Preview) -> bool:
        """Store ``preview`` when it still describes the selection."""
        if preview.path != self.state.selected_path():
            LOGGER.debug("Dropping preview for %s; selection moved on", preview.path)
            return False
        self.state.preview = preview
        return True

    def external_finished(self, kind: ExternalKind, error: str | None) -> list[Effect]:
        """Record the end of a shell/editor handoff and refresh the listing."""
        state = self.state
        if error is not None:
            state.last_error = AppError(ErrorKind.IO_ERROR, error)
        else:
            state.status_message = f"{kind.value} exited"
        return self._with_preview([self._refresh()])

    # -- actions --------------------------------------------------------

    def _dispatch_action(self, action: Action) -> list[Effect]:
        state = self.state
        if isinstance(action, Quit):
            return self._quit()
        if isinstance(action, Cancel):
            return self._cancel()

        if state.mode is Mode.CONFIRM:
            if isinstance(action, ConfirmPending):
                return self._confirm(action.accepted)
            LOGGER.debug("Ignoring %r while awaiting confirmation", action)
            return []

        if state.mode in (Mode.SEARCH, Mode.COMMAND):
            if isinstance(action, SubmitSearch) and state.mode is Mode.SEARCH:
                state.mode = Mode.NORMAL
                return self._submit_search(action.text)
            if isinstance(action, SubmitCommand) and state.mode is Mode.COMMAND:
                state.mode = Mode.NORMAL
                return self._submit_command(action.text)
            LOGGER.debug("Ignoring %r in %s mode", action, state.mode.value)
            return []

        if isinstance(action, Move):
            self._select(state.selected_idx + action.direction.step * max(1, action.count))
            return []
        if isinstance(action, JumpTop):
            self._select(0 if action.count is None else action.count - 1)
            return []
        if isinstance(action, JumpBottom):
            last = len(state.entries) - 1
            self._select(last if action.count is None else action.count - 1)
            return []
        if isinstance(action, EnterDir):
            return self._enter_selected()
        if isinstance(action, LeaveDir):
            return self._leave_dir()
        if isinstance(action, ToggleMark):
            self._toggle_mark()
            return []
        if isinstance(action, StartSearch):
            state.mode = Mode.SEARCH
            return []
        if isinstance(action, StartCommand):
            state.mode = Mode.COMMAND
            return []
        if isinstance(action, SearchNext):
            return self._search(action.count, reverse=action.reverse)
        if isinstance(action, SubmitCommand):
            # Normal-mode operator bindings such as ``d d`` submit directly.
            return self._submit_command(action.text)
        if isinstance(action, SubmitSearch):
            return self._submit_search(action.text)
        if isinstance(action, Yank):
            return self._yank()
        if isinstance(action, Paste):
            return self._paste()
        if isinstance(action, Refresh):
            return [self._refresh()]
        if isinstance(action, ToggleHidden):
            return self._toggle_hidden()
        if isinstance(action, ConfirmPending):
            return []
        LOGGER.debug("Unhandled action %r", action)
        return []

    def _quit(self) -> list[Effect]:
        self.state.quit_requested = True
        return [RequestQuit()]

    def _cancel(self) -> list[Effect]:
        state = self.state
        if state.mode is Mode.CONFIRM:
            state.pending_op = None
            state.status_message = "Cancelled"
        state.mode = Mode.NORMAL
        return []

    def _confirm(self, accepted: bool) -> list[Effect]:
        state = self.state
        pending = state.pending_op
        state.pending_op = None
        state.mode = Mode.NORMAL
        if pending is None or not accepted:
            state.status_message = "Cancelled"
            return []
        task = FsTask(kind=TaskKind.DELETE, paths=pending.paths)
        state.marks.clear()
        state.status_message = f"Deleting {_plural(len(pending.paths))}..."
        return [RequestMutation(task)]

    def _select(self, idx: int) -> None:
        state = self.state
        count = len(state.entries)
        if count == 0:
            state.selected_idx = 0
            return
        state.selected_idx = max(0, min(idx, count - 1))

    def _enter_selected(self) -> list[Effect]:
        state = self.state
        entry = state.selected_entry()
        if entry is None:
            return []
        target = state.current_path / entry.name
        if entry.is_dir:
            return self._navigate(target)
        return [RunExternal(ExternalKind.EDITOR, target)]

    def _leave_dir(self) -> list[Effect]:
        current = self.state.current_path
        parent = current.parent
        if parent == current:
            return []
        return self._navigate(parent, prefer_name=current.name)

    def _toggle_mark(self) -> None:
        state = self.state
        entry = state.selected_entry()
        if entry is None:
            return
        if entry.name in state.marks:
            state.marks.discard(entry.name)
        else:
            state.marks.add(entry.name)

    def _targets(self) -> tuple[Path, ...]:
        """Return marked paths, or the selection when nothing is marked."""
        state = self.state
        if state.marks:
            return tuple(
                state.current_path / entry.name for entry in state.entries if entry.name in state.marks
            )
        selected = state.selected_path()
        return () if selected is None else (selected,)

    def _submit_search(self, text: str) -> list[Effect]:
        if not text:
            return []
        self.state.last_search = text
        return self._search(1, reverse=False)

    def _search(self, count: int, *, reverse: bool) -> list[Effect]:
        state = self.state
        needle = state.last_search
        if not needle:
            state.status_message = "No previous search"
            return []
        entries = state.entries
        folded = needle.casefold()
        matches = [idx for idx, entry in enumerate(entries) if folded in entry.name.casefold()]
        if not matches:
            state.status_message = f"No match for '{needle}'"
            return []
        total = len(entries)
        start = state.selected_idx
        if reverse:
            ordered = sorted(matches, key=lambda idx: (start - idx - 1) % total)
        else:
            ordered = sorted(matches, key=lambda idx: (idx - start - 1) % total)
        state.selected_idx = ordered[(max(1, count) - 1) % len(ordered)]
        return []

    def _yank(self) -> list[Effect]:
        state = self.state
        targets = self._targets()
        if not targets:
            state.status_message = "Nothing to yank"
            return []
        state.yanked = targets
        state.marks.clear()
        state.status_message = f"Yanked {_plural(len(targets))}"
        return []

    def _paste(self) -> list[Effect]:
        state = self.state
        if not state.yanked:
            state.status_message = "Nothing to paste"
            return []
        task = FsTask(
            kind=TaskKind.COPY,
            paths=state.yanked,
            destination=state.current_path,
            into_directory=True,
        )
        return [RequestMutation(task)]

    def _toggle_hidden(self) -> list[Effect]:
        state = self.state
        state.show_hidden = not state.show_hidden
        state.status_message = "Showing hidden entries" if state.show_hidden else "Hiding hidden entries"
        return [self._refresh()]

    # -- commands -------------------------------------------------------

    def _submit_command(self, text: str) -> list[Effect]:
        state = self.state
        state.mode = Mode.NORMAL
        try:
            command = parse_command(text, self._aliases)
            return self._run_command(command)
        except CommandError as exc:
            LOGGER.info("Command %r rejected: %s", text, exc.message)
            state.last_error = exc.to_app_error()
            return []

    def _run_command(self, command: Command) -> list[Effect]:
        state = self.state
        name = command.name
        arg = command.argument

        if name is CommandName.DELETE:
            targets = self._require_targets()
            state.pending_op = PendingOp(PendingOpKind.DELETE, targets)
            state.mode = Mode.CONFIRM
            return []
        if name in (CommandName.COPY, CommandName.MOVE):
            assert arg is not None
            targets = self._require_targets()
            destination, into_directory = resolve_destination(arg, state.current_path)
            kind = TaskKind.COPY if name is CommandName.COPY else TaskKind.MOVE
            task = FsTask(
                kind=kind,
                paths=targets,
                destination=destination,
                into_directory=into_directory or len(targets) > 1,
            )
            state.marks.clear()
            return [RequestMutation(task)]
        if name is CommandName.RENAME:
            assert arg is not None
            entry = state.selected_entry()
            if entry is None:
                raise CommandError("nothing selected")
            new_name = validate_entry_name(arg, current=entry.name)
            state.prefer_name = new_name
            task = FsTask(kind=TaskKind.RENAME, paths=(state.current_path / entry.name,), name=new_name)
            return [RequestMutation(task)]
        if name in (CommandName.MKDIR, CommandName.TOUCH):
            assert arg is not None
            new_name = validate_entry_name(arg)
            state.prefer_name = new_name
            kind = TaskKind.MKDIR if name is CommandName.MKDIR else TaskKind.TOUCH
            return [RequestMutation(FsTask(kind=kind, paths=(state.current_path,), name=new_name))]
        if name is CommandName.SH:
            return [RunExternal(ExternalKind.SHELL, state.current_path)]
        if name is CommandName.EDIT:
            selected = state.selected_path()
            if selected is None:
                raise CommandError("nothing selected")
            return [RunExternal(ExternalKind.EDITOR, selected)]
        if name is CommandName.CD:
            target = resolve_directory(arg, state.current_path)
            if target == state.current_path:
                return [self._refresh()]
            return self._navigate(target)
        if name is CommandName.PWD:
            state.status_message = str(state.current_path)
            return []
        if name is CommandName.REFRESH:
            return [self._refresh()]
        if name is CommandName.HELP:
            state.status_message = HELP_TEXT
            return []
        if name is CommandName.QUIT:
            return self._quit()
        if name is CommandName.SORT:
            assert arg is not None
            try:
                mode = SortMode.parse(arg)
            except ValueError:
                raise CommandError(f"unknown sort mode: {arg}") from None
            self._resort(mode)
            return []
        if name is CommandName.HIDDEN:
            return self._toggle_hidden()
        raise CommandError(name.value)

    def _require_targets(self) -> tuple[Path, ...]:
        targets = self._targets()
        if not targets:
            raise CommandError("nothing selected")
        return targets

    def _resort(self, mode: SortMode) -> None:
        state = self.state
        state.sort_mode = mode
        state.status_message = f"Sorted by {mode.value}"
        if state.snapshot is None:
            return
        selected = state.selected_entry()
        state.snapshot = state.snapshot.sorted_by(mode)
        if selected is not None:
            idx = state.snapshot.index_of(selected.name)
            if idx is not None:
                state.selected_idx = idx

    # -- scans ----------------------------------------------------------

    def _request_scan(self, *, entering: bool) -> RequestScan:
        state = self.state
        state.generation += 1
        if entering:
            state.path_generation = state.generation
        self._requested_generation = state.generation
        return RequestScan(
            path=state.current_path,
            generation=state.generation,
            show_hidden=state.show_hidden,
            sort_mode=state.sort_mode,
        )

    def _refresh(self) -> RequestScan:
        state = self.state
        if state.snapshot is not None and state.snapshot.path == state.current_path:
            state.snapshot = state.snapshot.superseded()
        state.loading = True
        return self._request_scan(entering=False)

    def _navigate(self, target: Path, prefer_name: str | None = None) -> list[Effect]:
        """Switch to ``target`` optimistically; its listing arrives later."""
        state = self.state
        previous = state.current_path
        effects: list[Effect] = []
        if target != previous:
            effects.append(CancelScans(previous))
        state.current_path = target
        state.snapshot = None
        state.selected_idx = 0
        state.marks.clear()
        state.prefer_name = prefer_name
        state.loading = True
        state.preview = None
        effects.append(self._request_scan(entering=True))
        return effects

    def _scan_is_current(self, outcome: TaskOutcome) -> bool:
        state = self.state
        if outcome.paths[0] != state.current_path:
            return False
        if outcome.generation < state.path_generation:
            return False
        snapshot = state.snapshot
        if snapshot is not None and snapshot.path == state.current_path:
            return outcome.generation >= snapshot.generation
        return True

    def _apply_scan_outcome(self, outcome: TaskOutcome) -> list[Effect]:
        state = self.state
        result = outcome.result
        if isinstance(result, Cancelled):
            return []
        if not self._scan_is_current(outcome):
            LOGGER.info(
                "Discarding stale scan of %s (generation %d, current %s at %d)",
                outcome.paths[0],
                outcome.generation,
                state.current_path,
                state.path_generation,
            )
            return []
        if isinstance(result, Failed):
            LOGGER.warning("Scan of %s failed: %s", outcome.paths[0], result.message)
            state.last_error = AppError(result.kind, result.message)
            if outcome.generation >= self._requested_generation:
                state.loading = False
            return []
        if isinstance(result, Scanned):
            self._replace_snapshot(result, outcome.generation)
        return []

    def _replace_snapshot(self, result: Scanned, generation: int) -> None:
        state = self.state
        previous = state.snapshot
        same_dir = previous is not None and previous.path == result.snapshot.path
        keep_name = state.prefer_name
        if keep_name is None and same_dir:
            selected = state.selected_entry()
            keep_name = None if selected is None else selected.name

        state.snapshot = result.snapshot
        names = result.snapshot.names()
        if same_dir:
            state.marks.intersection_update(names)
        else:
            state.marks.clear()

        idx = None if keep_name is None else result.snapshot.index_of(keep_name)
        if idx is not None:
            state.selected_idx = idx
            state.prefer_name = None
        else:
            self._select(state.selected_idx)
        if generation >= self._requested_generation:
            state.loading = False
            state.prefer_name = None

    # -- mutations ------------------------------------------------------

    def _apply_mutation_outcome(self, outcome: TaskOutcome) -> list[Effect]:
        state = self.state
        result = outcome.result
        if isinstance(result, Cancelled):
            return []
        if isinstance(result, Failed):
            LOGGER.warning("%s failed: %s", outcome.kind.value, result.message)
            state.last_error = AppError(result.kind, result.message)
            state.prefer_name = None
            return []
        if isinstance(result, Mutated):
            verb = _MUTATION_VERBS.get(outcome.kind, "Changed")
            if len(result.paths) == 1:
                state.status_message = f"{verb} '{result.paths[0].name}'"
            else:
                state.status_message = f"{verb} {_plural(len(result.paths))}"
            return [self._refresh()]
        return []

    def _with_preview(self, effects: list[Effect]) -> list[Effect]:
        """Append a preview request when the selected path changed."""
        state = self.state
        selected = state.selected_path()
        if selected == self._previewed:
            return effects
        self._previewed = selected
        if state.preview is not None and state.preview.path != selected:
            state.preview = None
        if selected is None:
            return effects
        return [*effects, RequestPreview(selected)]


__all__ = ["StateMachine"]
