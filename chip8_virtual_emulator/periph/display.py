"""
CHIP-8 Virtual Emulator - Display Surfaces

The emulator hands a surface an immutable 64x32 frame (indexed [x][y])
at most once per 60 Hz frame, and only when the framebuffer changed since
the previous hand-off.

  NullDisplay      keeps the last frame and a present counter (headless/tests)
  TerminalDisplay  draws into the terminal with rich, two pixel rows per
                   character cell using half-block glyphs
"""

import logging
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ..config import SCREEN_HEIGHT, SCREEN_WIDTH

log = logging.getLogger(__name__)


class DisplaySurface:
    """Base class for anything that can show a frame."""

    def present(self, frame):
        raise NotImplementedError

    def close(self):
        pass


class NullDisplay(DisplaySurface):
    """Records frames without drawing them."""

    def __init__(self):
        self.last_frame = None
        self.presents = 0

    def present(self, frame):
        self.last_frame = frame
        self.presents += 1


# (top pixel, bottom pixel) -> glyph
_HALF_BLOCKS = {
    (False, False): ' ',
    (True, False): '▀',   # upper half block
    (False, True): '▄',   # lower half block
    (True, True): '█',    # full block
}


def frame_to_text(frame) -> str:
    """Render a frame as SCREEN_HEIGHT/2 lines of half-block characters."""
    lines = []
    for y in range(0, SCREEN_HEIGHT, 2):
        lines.append(''.join(
            _HALF_BLOCKS[(frame[x][y], frame[x][y + 1])]
            for x in range(SCREEN_WIDTH)
        ))
    return '\n'.join(lines)


class TerminalDisplay(DisplaySurface):
    """Live terminal renderer built on rich."""

    def __init__(self, console: Optional[Console] = None, title: str = "CHIP-8"):
        self.console = console or Console()
        self.title = title
        self._live: Optional[Live] = None

    def _render(self, frame) -> Panel:
        return Panel(Text(frame_to_text(frame), style="bold green"),
                     title=self.title, expand=False)

    def present(self, frame):
        panel = self._render(frame)
        if self._live is None:
            self._live = Live(panel, console=self.console,
                              auto_refresh=False, transient=False)
            self._live.start()
            log.debug("Terminal display started")
        self._live.update(panel, refresh=True)

    def close(self):
        if self._live is not None:
            self._live.stop()
            self._live = None
