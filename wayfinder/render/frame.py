"""Frame composition for the file-manager view.

Builds a full screen of rows from an ``AppView`` and the interpreter's
pending input. Pure string work: no terminal I/O happens here.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from ..fs_model.types import DirEntry, EntryKind
from ..input.interpreter import PendingView
from ..state import AppView, Mode
from .ansi import (
    BLUE,
    BOLD,
    CYAN,
    DIM,
    RED,
    YELLOW,
    fit_ansi_line,
    selected_with_ansi,
    styled,
)

LIST_WIDTH_PERCENT = 45
MIN_LIST_WIDTH = 20
DIVIDER = "│"
LOADING_MARKER = "[loading]"

_SIZE_UNITS = ("B", "K", "M", "G", "T")


@dataclass(frozen=True)
class FrameLayout:
    columns: int
    lines: int

    @property
    def body_rows(self) -> int:
        return max(1, self.lines - 2)

    @property
    def list_width(self) -> int:
        if self.columns < MIN_LIST_WIDTH * 2:
            return max(1, self.columns)
        return max(MIN_LIST_WIDTH, self.columns * LIST_WIDTH_PERCENT // 100)

    @property
    def side_width(self) -> int:
        return max(0, self.columns - self.list_width - len(DIVIDER))


def human_size(size: int | None) -> str:
    if size is None:
        return ""
    value = float(size)
    for unit in _SIZE_UNITS:
        if value < 1024 or unit == _SIZE_UNITS[-1]:
            if unit == "B":
                return f"{int(value)}{unit}"
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{size}B"


def format_modified(modified: float | None) -> str:
    if modified is None:
        return "-"
    return time.strftime("%Y-%m-%d %H:%M", time.localtime(modified))


def entry_label(entry: DirEntry) -> str:
    if entry.kind is EntryKind.DIR:
        return f"{entry.name}/"
    if entry.kind is EntryKind.SYMLINK:
        return f"{entry.name}@"
    return entry.name


def format_entry_row(entry: DirEntry, width: int, *, marked: bool, selected: bool) -> str:
    """Render one list row: mark column, colored name, right-aligned size."""
    marker = "*" if marked else " "
    size = "" if entry.is_dir else human_size(entry.size)
    name_width = max(1, width - 2 - len(size) - (1 if size else 0))
    label = entry_label(entry)
    if len(label) > name_width:
        label = label[: max(1, name_width - 1)] + "~"
    padded = label.ljust(name_width)
    if entry.is_dir:
        padded = styled(padded, BOLD, BLUE)
    elif entry.kind is EntryKind.SYMLINK:
        padded = styled(padded, CYAN)
    row = f"{styled(marker, YELLOW) if marked else marker} {padded}{' ' + size if size else ''}"
    row = fit_ansi_line(row, width)
    return selected_with_ansi(row) if selected else row


def list_window(selected: int, total: int, rows: int) -> int:
    """Return the first visible index keeping ``selected`` on screen."""
    if total <= rows:
        return 0
    start = selected - rows // 2
    return max(0, min(start, total - rows))


def detail_lines(view: AppView) -> list[str]:
    entry = view.selected_entry()
    if entry is None:
        return []
    lines = [
        styled(entry.name, BOLD),
        f"{entry.kind.value}  {entry.permissions or '-'}  {human_size(entry.size) or '-'}",
        f"modified {format_modified(entry.modified)}",
    ]
    if entry.link_target is not None:
        lines.append(f"-> {entry.link_target}")
    return lines


def side_lines(view: AppView, rows: int) -> list[str]:
    """Details of the selected entry followed by its preview."""
    lines = detail_lines(view)
    preview = view.preview
    entry = view.selected_entry()
    if preview is not None and entry is not None and preview.path.name == entry.name:
        lines.append(styled(preview.title, DIM))
        lines.extend(preview.lines)
    return lines[:rows]


def header_line(view: AppView) -> str:
    flags: list[str] = [f"sort:{view.sort_mode.value}"]
    if view.show_hidden:
        flags.append("hidden")
    if view.marks:
        flags.append(f"{len(view.marks)} marked")
    if view.loading:
        flags.append(LOADING_MARKER)
    return f"{styled(str(view.current_path), BOLD)}  {styled(' '.join(flags), DIM)}"


def footer_line(view: AppView, pending: PendingView) -> str:
    if pending.mode is Mode.SEARCH:
        return f"/{pending.text}"
    if pending.mode is Mode.COMMAND:
        return f":{pending.text}"
    if view.mode is Mode.CONFIRM and view.pending_op is not None:
        return styled(f"{view.pending_op.prompt()} [y/n]", BOLD, YELLOW)
    if view.last_error is not None:
        left = styled(view.last_error.describe(), RED)
    else:
        left = view.status_message
    typed = "".join(pending.keys)
    if pending.count is not None:
        typed = f"{pending.count}{typed}"
    if typed:
        return f"{left}  {styled(typed, DIM)}" if left else styled(typed, DIM)
    return left


def build_frame(view: AppView, pending: PendingView, layout: FrameLayout) -> list[str]:
    """Return exactly ``layout.lines`` rows, each fitted to ``layout.columns``."""
    rows: list[str] = [fit_ansi_line(header_line(view), layout.columns)]
    body = layout.body_rows
    entries = view.entries
    start = list_window(view.selected_idx, len(entries), body)
    visible = entries[start : start + body]
    side = side_lines(view, body) if layout.side_width > 0 else []

    for row in range(body):
        if row < len(visible):
            idx = start + row
            entry = visible[row]
            left = format_entry_row(
                entry,
                layout.list_width,
                marked=entry.name in view.marks,
                selected=idx == view.selected_idx,
            )
        elif row == 0 and not entries:
            left = fit_ansi_line(styled(LOADING_MARKER if view.loading else "(empty)", DIM), layout.list_width)
        else:
            left = " " * layout.list_width
        if layout.side_width <= 0:
            rows.append(left)
            continue
        right = side[row] if row < len(side) else ""
        rows.append(f"{left}{styled(DIVIDER, DIM)}{fit_ansi_line(right, layout.side_width)}")

    rows.append(fit_ansi_line(footer_line(view, pending), layout.columns))
    return rows[: max(1, layout.lines)]


def compose_frame(rows: list[str]) -> str:
    """Join rows into one write that redraws the whole screen."""
    return "\033[H" + "\r\n".join(rows) + "\033[J"


__all__ = [
    "FrameLayout",
    "human_size",
    "entry_label",
    "format_entry_row",
    "list_window",
    "side_lines",
    "header_line",
    "footer_line",
    "build_frame",
    "compose_frame",
]
