"""Input-layer public API for key decoding and modal interpretation.

Exports are split between low-level terminal decoding (`read_key`) and the
interpreter that turns decoded keys into actions.
"""

from .reader import ESC_SEQUENCE_TIMEOUT_MS, _PENDING_BYTES, read_key, split_modifiers
from .key_registry import KeyComboBinding, KeyComboRegistry, normalize_key_name
from .interpreter import (
    DEFAULT_SEQUENCE_TIMEOUT_SECONDS,
    CommandInterpreter,
    PendingSequence,
    PendingView,
    build_default_registry,
)

__all__ = [
    "read_key",
    "split_modifiers",
    "_PENDING_BYTES",
    "ESC_SEQUENCE_TIMEOUT_MS",
    "KeyComboBinding",
    "KeyComboRegistry",
    "normalize_key_name",
    "DEFAULT_SEQUENCE_TIMEOUT_SECONDS",
    "CommandInterpreter",
    "PendingSequence",
    "PendingView",
    "build_default_registry",
]
