"""Preview payload shown for the selected entry."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Preview:
    path: Path
    title: str
    lines: tuple[str, ...]
    request_id: int = 0
    truncated: bool = False


__all__ = ["Preview"]
