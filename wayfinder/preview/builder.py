"""Build preview payloads for files and directories."""

from __future__ import annotations

import mimetypes
import os
from pathlib import Path

from .highlighting import DEFAULT_STYLE, colorize_source, decode_text, sanitize_terminal_text
from .types import Preview

PREVIEW_MAX_BYTES = 8 * 1024
PREVIEW_MAX_LINES = 80
PREVIEW_DIR_ENTRIES = 12


def _preview_directory(path: Path, request_id: int) -> Preview:
    rows: list[str] = []
    truncated = False
    with os.scandir(path) as children:
        for child in children:
            if len(rows) >= PREVIEW_DIR_ENTRIES:
                truncated = True
                break
            try:
                is_dir = child.is_dir()
            except OSError:
                is_dir = False
            rows.append(f"{'[D]' if is_dir else '[F]'} {child.name}")
    if not rows:
        rows.append("Directory is empty")
    if truncated:
        rows.append("...")
    return Preview(path=path, title="Preview", lines=tuple(rows), request_id=request_id, truncated=truncated)


def describe_file_type(path: Path) -> str:
    mime, encoding = mimetypes.guess_type(path.name)
    if mime is None:
        return "Unknown type"
    return f"{mime} ({encoding})" if encoding else mime


def _preview_file(path: Path, style: str, request_id: int) -> Preview:
    with path.open("rb") as handle:
        data = handle.read(PREVIEW_MAX_BYTES)
    if not data:
        return Preview(path=path, title="Preview", lines=("<empty file>",), request_id=request_id)
    if b"\x00" in data:
        return Preview(
            path=path,
            title="Preview",
            lines=("Non-text file", f"Type: {describe_file_type(path)}"),
            request_id=request_id,
        )

    text = sanitize_terminal_text(decode_text(data))
    source_lines = text.splitlines()
    truncated = len(source_lines) > PREVIEW_MAX_LINES
    shown = "\n".join(source_lines[:PREVIEW_MAX_LINES])
    rendered = colorize_source(shown, path, style).rstrip("\n").split("\n")
    if truncated:
        rendered.append("...")
    return Preview(path=path, title="Preview", lines=tuple(rendered), request_id=request_id, truncated=truncated)


def build_preview(path: Path, style: str = DEFAULT_STYLE, request_id: int = 0) -> Preview:
    """Return a preview for ``path``; read failures become an error preview."""
    try:
        if path.is_dir():
            return _preview_directory(path, request_id)
        return _preview_file(path, style, request_id)
    except OSError as exc:
        message = exc.strerror or str(exc)
        return Preview(path=path, title="Preview", lines=(f"Preview error: {message}",), request_id=request_id)


__all__ = [
    "PREVIEW_MAX_BYTES",
    "PREVIEW_MAX_LINES",
    "PREVIEW_DIR_ENTRIES",
    "describe_file_type",
    "build_preview",
]
