"""
CHIP-8 Virtual Emulator - 60 Hz Frame Divider

DT and ST count down at 60 Hz no matter how fast the CPU runs, and the
screen is refreshed at the same rate. The divider converts CPU ticks into
60 Hz frames with a prescaler of ceil(cpu_hz / 60):

  cpu_hz   prescaler   frame every
    500        9        9 ticks
    600       10       10 ticks
     60        1        every tick

The first tick of a session is a frame boundary, so timers loaded before
the first instruction start counting immediately.
"""


class FrameTimer:
    """Counts CPU ticks and reports how many 60 Hz frames elapsed."""

    def __init__(self, prescaler: int):
        if prescaler < 1:
            raise ValueError(f"prescaler must be >= 1, got {prescaler}")
        self._prescaler = prescaler
        self._sub_count = prescaler - 1     # fire on the very first tick
        self.frames = 0

    @property
    def prescaler(self) -> int:
        return self._prescaler

    def update(self, elapsed_cycles: int = 1) -> int:
        """Advance by elapsed_cycles CPU ticks. Returns frames elapsed."""
        self._sub_count += elapsed_cycles
        ticks = self._sub_count // self._prescaler
        self._sub_count %= self._prescaler
        self.frames += ticks
        return ticks

    def reset(self):
        self._sub_count = self._prescaler - 1
        self.frames = 0
