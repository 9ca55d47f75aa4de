"""TOML configuration loading.

Reads ``config.toml`` from the platform config directory once at startup.
All access is defensive: a missing file yields defaults, and malformed
files or wrongly-typed values are logged and replaced by defaults.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType

from platformdirs import user_config_dir, user_log_dir

from ..commands import DEFAULT_ALIASES
from ..fs_model.types import SortMode

LOGGER = logging.getLogger(__name__)

APP_NAME = "wayfinder"
CONFIG_FILENAME = "config.toml"
LOG_FILENAME = "wayfinder.log"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_LOG_PATH = Path(user_log_dir(APP_NAME, appauthor=False)) / LOG_FILENAME

DEFAULT_DEBOUNCE_MS = 30
DEFAULT_SEQUENCE_TIMEOUT_MS = 1000
DEFAULT_TICK_MS = 100
DEFAULT_MAX_WORKERS = 4
DEFAULT_PREVIEW_STYLE = "monokai"


def _frozen(mapping: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class WayfinderConfig:
    """Immutable startup configuration."""

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    sequence_timeout_ms: int = DEFAULT_SEQUENCE_TIMEOUT_MS
    tick_ms: int = DEFAULT_TICK_MS
    max_workers: int = DEFAULT_MAX_WORKERS
    show_hidden: bool = False
    sort: SortMode = SortMode.NAME
    preview_style: str = DEFAULT_PREVIEW_STYLE
    command_aliases: Mapping[str, str] = field(default_factory=lambda: _frozen(DEFAULT_ALIASES))
    keymap: Mapping[str, str] = field(default_factory=lambda: _frozen({}))

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def sequence_timeout_seconds(self) -> float:
        return self.sequence_timeout_ms / 1000.0

    @property
    def tick_seconds(self) -> float:
        return self.tick_ms / 1000.0

    def with_overrides(self, **changes: object) -> WayfinderConfig:
        """Return a copy with non-``None`` ``changes`` applied."""
        applied = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **applied) if applied else self


def _read_table(config_path: Path) -> dict[str, object]:
    """Load the TOML table at ``config_path``; ``{}`` when missing or malformed."""
    try:
        with config_path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning("Ignoring unreadable config %s: %s", config_path, exc)
        return {}


def _coerce_positive_int(data: Mapping[str, object], key: str, default: int) -> int:
    """Accept positive integers only; booleans and other types fall back."""
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        LOGGER.warning("Config %s must be a positive integer, got %r", key, value)
        return default
    return value


def _coerce_bool(data: Mapping[str, object], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        LOGGER.warning("Config %s must be a boolean, got %r", key, value)
        return default
    return value


def _coerce_str(data: Mapping[str, object], key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value.strip():
        LOGGER.warning("Config %s must be a non-empty string, got %r", key, value)
        return default
    return value.strip()


def _coerce_sort(data: Mapping[str, object]) -> SortMode:
    value = data.get("sort", SortMode.NAME.value)
    if isinstance(value, str):
        try:
            return SortMode.parse(value)
        except ValueError:
            pass
    LOGGER.warning("Config sort must be one of name/size/mtime, got %r", value)
    return SortMode.NAME


def _coerce_string_table(data: Mapping[str, object], key: str, lower: bool) -> dict[str, str]:
    """Read a ``[table]`` of string -> string, dropping malformed rows."""
    value = data.get(key, {})
    if not isinstance(value, dict):
        LOGGER.warning("Config [%s] must be a table, got %r", key, value)
        return {}
    table: dict[str, str] = {}
    for raw_key, raw_value in value.items():
        if not isinstance(raw_value, str) or not raw_key.strip() or not raw_value.strip():
            LOGGER.warning("Dropping config [%s] entry %r = %r", key, raw_key, raw_value)
            continue
        left = raw_key.strip()
        right = raw_value.strip()
        table[left.lower() if lower else left] = right.lower() if lower else right
    return table


def load_config(config_path: Path | None = None) -> WayfinderConfig:
    """Load ``WayfinderConfig`` from ``config_path`` (default location if ``None``)."""
    data = _read_table(config_path if config_path is not None else DEFAULT_CONFIG_PATH)
    aliases = dict(DEFAULT_ALIASES)
    aliases.update(_coerce_string_table(data, "command_aliases", lower=True))
    return WayfinderConfig(
        debounce_ms=_coerce_positive_int(data, "debounce_ms", DEFAULT_DEBOUNCE_MS),
        sequence_timeout_ms=_coerce_positive_int(data, "sequence_timeout_ms", DEFAULT_SEQUENCE_TIMEOUT_MS),
        tick_ms=_coerce_positive_int(data, "tick_ms", DEFAULT_TICK_MS),
        max_workers=_coerce_positive_int(data, "max_workers", DEFAULT_MAX_WORKERS),
        show_hidden=_coerce_bool(data, "show_hidden", False),
        sort=_coerce_sort(data),
        preview_style=_coerce_str(data, "preview_style", DEFAULT_PREVIEW_STYLE),
        command_aliases=_frozen(aliases),
        keymap=_frozen(_coerce_string_table(data, "keymap", lower=False)),
    )


__all__ = [
    "APP_NAME",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LOG_PATH",
    "WayfinderConfig",
    "load_config",
]
