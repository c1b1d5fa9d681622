"""
CHIP-8 Virtual Emulator - Cycle Pacing

Each CPU tick owns a fixed wall-clock budget of 1e9 / cpu_hz nanoseconds,
measured from the start of the tick. After the tick's work is done the
clock waits out whatever is left of the budget:

  1. sleep() for everything except the last SPIN_MARGIN_NS
  2. spin on the high-resolution counter, yielding with sleep(0), for the
     remaining sub-millisecond margin

OS sleeps overshoot by tens to hundreds of microseconds; the margin must
cover that. A tick that already overran its budget does not wait and is
not paid back later.
"""

import time
from typing import Callable

SPIN_MARGIN_NS = 300_000   # 0.3 ms


class CycleClock:
    """Paces ticks to a fixed period.

    now_ns and sleep are injectable so tests can drive a fake clock.
    """

    def __init__(self, period_ns: int,
                 now_ns: Callable[[], int] = time.perf_counter_ns,
                 sleep: Callable[[float], None] = time.sleep,
                 spin_margin_ns: int = SPIN_MARGIN_NS):
        if period_ns <= 0:
            raise ValueError(f"period_ns must be positive, got {period_ns}")
        self.period_ns = period_ns
        self.spin_margin_ns = spin_margin_ns
        self._now_ns = now_ns
        self._sleep = sleep
        self._tick_start = None
        self.overruns = 0

    def now(self) -> int:
        return self._now_ns()

    def start_tick(self) -> int:
        """Mark the start of a tick and return the timestamp."""
        self._tick_start = self._now_ns()
        return self._tick_start

    def wait_for_tick_end(self):
        """Block until period_ns has elapsed since start_tick()."""
        if self._tick_start is None:
            return
        self.wait_until(self._tick_start + self.period_ns)

    def wait_until(self, deadline_ns: int):
        remaining = deadline_ns - self._now_ns()
        if remaining <= 0:
            self.overruns += 1
            return

        coarse = remaining - self.spin_margin_ns
        if coarse > 0:
            self._sleep(coarse / 1e9)

        while self._now_ns() < deadline_ns:
            self._sleep(0)
