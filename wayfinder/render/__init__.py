"""Rendering for the terminal file-manager view."""

from .ansi import clip_ansi_line, display_width, fit_ansi_line, selected_with_ansi
from .frame import FrameLayout, build_frame, compose_frame, format_entry_row, human_size

__all__ = [
    "clip_ansi_line",
    "display_width",
    "fit_ansi_line",
    "selected_with_ansi",
    "FrameLayout",
    "build_frame",
    "compose_frame",
    "format_entry_row",
    "human_size",
]
