"""Terminal control helpers for the TUI session.

Owns raw-mode lifecycle and alternate-screen switching, and lets the UI
hand the terminal to a child process and take it back.
"""

from __future__ import annotations

import contextlib
import os
import termios
import threading
import tty


class TerminalController:
    """Manage terminal mode transitions for one stdin/stdout pair."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state and bind stdin/stdout file descriptors."""
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)
        self._write_lock = threading.Lock()
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with the cursor hidden."""
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        self.write("\x1b[?1049h\x1b[?25l")
        self._active = True

    def disable_tui_mode(self) -> None:
        """Restore the main screen buffer and the saved tty attributes."""
        self.write("\x1b[?25h\x1b[?1049l")
        self._active = False
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    def suspend(self) -> None:
        """Give the terminal back in cooked mode for a child process."""
        if self._active:
            self.disable_tui_mode()

    def resume(self) -> None:
        if not self._active:
            self.enable_tui_mode()

    def size(self) -> tuple[int, int]:
        """Return ``(columns, lines)``, defaulting to 80x24 off a tty."""
        try:
            size = os.get_terminal_size(self.stdout_fd)
        except OSError:
            return 80, 24
        return size.columns, size.lines

    def write(self, data: str) -> None:
        with self._write_lock:
            os.write(self.stdout_fd, data.encode("utf-8", errors="replace"))

    @contextlib.contextmanager
    def raw_mode(self):
        """Context manager that brackets code with TUI enter/exit calls."""
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()


__all__ = ["TerminalController"]
