"""
CHIP-8 Virtual Emulator - Hex Keypad (input state)

Logical layout:          Default host mapping:
  1 2 3 C                  1 2 3 4
  4 5 6 D                  Q W E R
  7 8 9 E                  A S D F
  A 0 B F                  Z X C V

Threading model: the input source (terminal reader, GUI hook, test) calls
press()/release() from its own thread. Those only enqueue events. The
interpreter thread calls poll() once per cycle, which drains the queue and
applies each event whole, so the pressed array and last-pressed key are
only ever mutated by the interpreter and a press/release pair can never be
seen half-applied.
"""

import logging
import queue
import time
from typing import NamedTuple, Tuple

log = logging.getLogger(__name__)

NUM_KEYS = 16

# Host character -> keypad value
KEY_MAP = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}


class KeyEvent(NamedTuple):
    key: int
    pressed: bool


class KeypadSnapshot(NamedTuple):
    """Immutable view of the keypad after the last poll()."""
    pressed: Tuple[bool, ...]
    last_pressed: int
    pressed_count: int

    def is_pressed(self, key: int) -> bool:
        return self.pressed[key & 0xF]


class Keypad:
    """16-key input state shared between an input thread and the interpreter."""

    def __init__(self):
        self._events: "queue.SimpleQueue[KeyEvent]" = queue.SimpleQueue()
        self._pressed = [False] * NUM_KEYS
        self._last_pressed = 0
        self._snapshot = KeypadSnapshot(tuple(self._pressed), 0, 0)

    # --- Producer side (any thread) ---

    def press(self, key: int):
        self._events.put(KeyEvent(key & 0xF, True))

    def release(self, key: int):
        self._events.put(KeyEvent(key & 0xF, False))

    # --- Consumer side (interpreter thread) ---

    def poll(self) -> KeypadSnapshot:
        """Apply all queued events and publish a new snapshot."""
        changed = False
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                break
            self._pressed[event.key] = event.pressed
            if event.pressed:
                self._last_pressed = event.key
            changed = True
            log.debug("Key %X %s", event.key, "down" if event.pressed else "up")

        if changed:
            self._snapshot = KeypadSnapshot(
                tuple(self._pressed), self._last_pressed, sum(self._pressed))
        return self._snapshot

    @property
    def snapshot(self) -> KeypadSnapshot:
        return self._snapshot

    def is_pressed(self, key: int) -> bool:
        return self._snapshot.is_pressed(key)

    def wait_for_key(self) -> int:
        """Block until at least one key is down, then return a held key.

        The most recently pressed key wins if it is still held; otherwise
        the lowest-numbered held key is returned.

        Cooperative spin: polls the event queue and yields the CPU between
        polls. There is no timeout; the whole machine (timers included)
        stalls here until input arrives.
        """
        snap = self.poll()
        while snap.pressed_count == 0:
            time.sleep(0)
            snap = self.poll()
        if snap.pressed[snap.last_pressed]:
            return snap.last_pressed
        return snap.pressed.index(True)

    def reset(self):
        while True:
            try:
                self._events.get_nowait()
            except queue.Empty:
                break
        self._pressed = [False] * NUM_KEYS
        self._last_pressed = 0
        self._snapshot = KeypadSnapshot(tuple(self._pressed), 0, 0)
