"""
CHIP-8 Virtual Emulator - Tone Generators

The machine has a single buzzer: on while ST is non-zero. The emulator
calls start_tone() on every 60 Hz frame where ST > 0 and stop_tone() on
the frame where ST reaches 0, so start_tone() must be cheap and idempotent.

  NullTone  records the signals (headless/tests)
  BellTone  rings the terminal bell from its own daemon thread while on
"""

import logging
import threading
from typing import Optional

from rich.console import Console

log = logging.getLogger(__name__)


class ToneGenerator:
    """Base class for the buzzer collaborator."""

    def start_tone(self):
        raise NotImplementedError

    def stop_tone(self):
        raise NotImplementedError

    @property
    def playing(self) -> bool:
        return False

    def close(self):
        self.stop_tone()


class NullTone(ToneGenerator):
    """Silent buzzer that counts start/stop transitions."""

    def __init__(self):
        self._playing = False
        self.starts = 0
        self.stops = 0

    @property
    def playing(self) -> bool:
        return self._playing

    def start_tone(self):
        if not self._playing:
            self._playing = True
            self.starts += 1

    def stop_tone(self):
        if self._playing:
            self._playing = False
            self.stops += 1


class BellTone(ToneGenerator):
    """Terminal bell buzzer.

    Each start_tone() while silent spawns a daemon thread that rings the
    bell every RING_INTERVAL until its own stop event is set. Repeat
    start_tone() calls while playing are no-ops.
    """

    RING_INTERVAL = 0.25  # seconds between bells while the tone is held

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def playing(self) -> bool:
        return self._stop is not None

    def start_tone(self):
        if self._stop is not None:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._play, args=(self._stop,),
                                        name="chip8-tone", daemon=True)
        self._thread.start()

    def stop_tone(self):
        if self._stop is not None:
            self._stop.set()
            self._stop = None

    def close(self):
        self.stop_tone()
        if self._thread is not None:
            self._thread.join(timeout=self.RING_INTERVAL * 4)
            self._thread = None

    def _play(self, stop: threading.Event):
        log.debug("Tone on")
        while True:
            self.console.bell()
            if stop.wait(self.RING_INTERVAL):
                break
        log.debug("Tone off")
