"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into normalized key tokens.
Handles ESC-sequence timing, modifier combos, and multi-byte UTF-8 input.
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

MODIFIER_PREFIXES: tuple[tuple[str, str], ...] = (
    ("CTRL_", "ctrl"),
    ("ALT_", "alt"),
    ("SHIFT_", "shift"),
)

_CSI_FINAL_KEYS: dict[bytes, str] = {
    b"A": "UP",
    b"B": "DOWN",
    b"C": "RIGHT",
    b"D": "LEFT",
    b"H": "HOME",
    b"F": "END",
}

_CSI_TILDE_KEYS: dict[bytes, str] = {
    b"1": "HOME",
    b"3": "DELETE",
    b"4": "END",
    b"5": "PAGE_UP",
    b"6": "PAGE_DOWN",
    b"7": "HOME",
    b"8": "END",
}

_CONTROL_KEYS: dict[bytes, str] = {
    b"\t": "TAB",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
    b"\r": "ENTER",
    b"\n": "ENTER",
}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _utf8_length(lead: int) -> int:
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


def _read_utf8(fd: int, lead: bytes) -> str:
    data = bytearray(lead)
    for _ in range(_utf8_length(lead[0]) - 1):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data.extend(nxt)
    return data.decode("utf-8", errors="replace")


def _read_csi(fd: int) -> str:
    """Decode the remainder of an ``ESC [`` sequence."""
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq in _CSI_FINAL_KEYS:
        return _CSI_FINAL_KEYS[seq]
    if not seq.isdigit():
        return "ESC"

    params = bytearray(seq)
    while True:
        part = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if part is None:
            return "ESC"
        if part.isdigit() or part == b";":
            params.extend(part)
            if len(params) > 16:
                return "ESC"
            continue
        final = part
        break

    fields = bytes(params).split(b";")
    if final == b"~":
        return _CSI_TILDE_KEYS.get(fields[0], "ESC")
    if final in _CSI_FINAL_KEYS and len(fields) == 2:
        # xterm modifier parameter: 2 shift, 3 alt, 5 ctrl.
        name = _CSI_FINAL_KEYS[final]
        modifier = fields[1]
        if modifier == b"2":
            return f"SHIFT_{name}"
        if modifier in {b"3", b"9"}:
            return f"ALT_{name}"
        if modifier == b"5":
            return f"CTRL_{name}"
        return name
    return "ESC"


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Read one key token from ``fd``; ``""`` when ``timeout_ms`` elapses."""
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    if ch in _CONTROL_KEYS:
        return _CONTROL_KEYS[ch]
    if ch != b"\x1b" and ch[0] < 0x20:
        return f"CTRL_{chr(ch[0] + 0x40)}"
    if ch[0] >= 0x80:
        return _read_utf8(fd, ch)
    if ch != b"\x1b":
        return ch.decode("ascii", errors="replace")

    # Escape / arrow key sequences.
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq in {b"b", b"B"}:
        return "ALT_LEFT"
    if seq in {b"f", b"F"}:
        return "ALT_RIGHT"
    if seq == b"O":
        final = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if final is None:
            return "ESC"
        return _CSI_FINAL_KEYS.get(final, "ESC")
    if seq != b"[":
        _PENDING_BYTES.append(seq)
        return "ESC"
    return _read_csi(fd)


def split_modifiers(token: str) -> tuple[str, frozenset[str]]:
    """Split ``CTRL_C``-style tokens into ``("c", {"ctrl"})``.

    Single-letter control codes are lower-cased; named keys keep their name.
    """
    for prefix, modifier in MODIFIER_PREFIXES:
        if token.startswith(prefix) and len(token) > len(prefix):
            code = token[len(prefix):]
            if len(code) == 1:
                code = code.lower()
            return code, frozenset({modifier})
    return token, frozenset()


__all__ = [
    "ESC_SEQUENCE_TIMEOUT_MS",
    "_PENDING_BYTES",
    "read_key",
    "split_modifiers",
]
