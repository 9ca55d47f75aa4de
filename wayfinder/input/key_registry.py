"""Reusable key-binding registry primitives."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..actions import Action


def normalize_key_name(key: str) -> str:
    """Normalize user-facing key names to reader tokens.

    Single characters are kept verbatim; named keys are upper-cased, and
    ``space`` maps to a literal space.
    """
    if len(key) <= 1:
        return key
    upper = key.upper()
    if upper == "SPACE":
        return " "
    return upper


@dataclass(frozen=True)
class KeyComboBinding:
    """Mapping from one or more key tokens to a named action factory.

    ``repeat`` bindings are operators that only fire when their key is
    pressed twice in a row (``d d``). The handler receives the pending count.
    """

    name: str
    combos: tuple[str, ...]
    handler: Callable[[int | None], Action | None]
    repeat: bool = False


class KeyComboRegistry:
    """Small key-dispatch table with optional key normalization strategy."""

    def __init__(self, normalize: Callable[[str], str] | None = None) -> None:
        """Initialize empty registry with optional token normalizer."""
        self._normalize = normalize if normalize is not None else self._identity
        self._by_key: dict[str, KeyComboBinding] = {}
        self._by_name: dict[str, KeyComboBinding] = {}

    @staticmethod
    def _identity(key: str) -> str:
        """Return key unchanged for exact-match dispatch registries."""
        return key

    def register_binding(self, binding: KeyComboBinding) -> KeyComboRegistry:
        """Register one binding, overwriting existing handlers for same combos."""
        self._by_name[binding.name] = binding
        for combo in binding.combos:
            self._by_key[self._normalize(combo)] = binding
        return self

    def register_bindings(self, *bindings: KeyComboBinding) -> KeyComboRegistry:
        """Register multiple bindings and return ``self`` for fluent usage."""
        for binding in bindings:
            self.register_binding(binding)
        return self

    def rebind(self, key: str, name: str) -> bool:
        """Point ``key`` at the binding called ``name``; ``False`` if unknown."""
        binding = self._by_name.get(name)
        if binding is None:
            return False
        self._by_key[self._normalize(key)] = binding
        return True

    def lookup(self, key: str) -> KeyComboBinding | None:
        return self._by_key.get(self._normalize(key))

    def names(self) -> frozenset[str]:
        return frozenset(self._by_name)


__all__ = [
    "normalize_key_name",
    "KeyComboBinding",
    "KeyComboRegistry",
]
