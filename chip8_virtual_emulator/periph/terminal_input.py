"""
CHIP-8 Virtual Emulator - Terminal Keyboard Source

Reads raw keystrokes from the controlling terminal on a background thread
and feeds them to a Keypad through KEY_MAP. Terminals only report key-down,
so every press is followed by a synthetic release HOLD_SECONDS later (a
repeat keystroke before then extends the hold).

POSIX terminals are switched to cbreak mode for the lifetime of the source
and restored by stop(). Windows consoles are read through msvcrt.
"""

import logging
import os
import sys
import threading
import time
from typing import Dict, Optional

from .keypad import KEY_MAP

log = logging.getLogger(__name__)

HOLD_SECONDS = 0.15
POLL_SECONDS = 0.005
QUIT_KEYS = ('\x1b',)   # Esc


class TerminalKeySource:
    """Background reader turning stdin characters into keypad events."""

    def __init__(self, keypad, key_map: Optional[Dict[str, int]] = None,
                 stream=None):
        self.keypad = keypad
        self.key_map = key_map or KEY_MAP
        self.stream = stream or sys.stdin
        self.quit_requested = threading.Event()
        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._held: Dict[int, float] = {}
        self._restore = None

    # --- Lifecycle ---

    def start(self):
        self._restore = self._enter_raw_mode()
        self._running.set()
        self._thread = threading.Thread(target=self._run, name="chip8-keys",
                                        daemon=True)
        self._thread.start()

    def stop(self):
        self._running.clear()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        if self._restore is not None:
            self._restore()
            self._restore = None

    # --- Key handling ---

    def feed(self, char: str, now: Optional[float] = None):
        """Handle one received character."""
        now = time.monotonic() if now is None else now
        if char in QUIT_KEYS:
            self.quit_requested.set()
            return
        key = self.key_map.get(char.lower())
        if key is None:
            return
        if key not in self._held:
            self.keypad.press(key)
        self._held[key] = now + HOLD_SECONDS

    def expire(self, now: Optional[float] = None):
        """Release every key whose hold time has run out."""
        now = time.monotonic() if now is None else now
        for key, deadline in list(self._held.items()):
            if now >= deadline:
                del self._held[key]
                self.keypad.release(key)

    def _run(self):
        read_char = self._reader()
        while self._running.is_set():
            char = read_char()
            if char:
                self.feed(char)
            else:
                time.sleep(POLL_SECONDS)
            self.expire()

    # --- Platform plumbing ---

    def _enter_raw_mode(self):
        if sys.platform == "win32" or not self.stream.isatty():
            return None
        import termios
        import tty
        fd = self.stream.fileno()
        old_settings = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        log.debug("Terminal switched to cbreak mode")

        def restore():
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        return restore

    def _reader(self):
        if sys.platform == "win32":
            import msvcrt

            def get_key():
                if msvcrt.kbhit():
                    return msvcrt.getwch()
                return None
            return get_key

        import select
        fd = self.stream.fileno()

        # Read the fd directly; select() cannot see a text wrapper's buffer.
        def get_key():
            ready, _, _ = select.select([fd], [], [], 0)
            if ready:
                return os.read(fd, 1).decode("latin-1")
            return None
        return get_key
