"""Selected-entry previews built off the dispatcher thread."""

from __future__ import annotations

from .types import Preview
from .builder import build_preview, describe_file_type
from .scheduler import PreviewRequest, PreviewScheduler

__all__ = [
    "Preview",
    "build_preview",
    "describe_file_type",
    "PreviewRequest",
    "PreviewScheduler",
]
