"""
CHIP-8 Virtual Emulator - Machine Constants + Run Configuration

Memory map:
  $000-$04F  Built-in hex digit glyphs (16 sprites x 5 bytes)
  $050-$1FF  Reserved for the interpreter (unused here, left zeroed)
  $200-$FFF  Program area (ROM is copied here at load time)

Everything that is fixed by the architecture lives here as a module-level
constant. The only knob the running core consumes is the CPU clock rate,
carried by MachineConfig together with the shift-quirk switch and the
optional RNG seed.
"""

import math
from dataclasses import dataclass
from typing import Optional


# ──────────────────────────────────────────────
# Address space
# ──────────────────────────────────────────────

MEMORY_SIZE = 0x1000        # 4 KB
ADDRESS_MASK = 0x0FFF       # highest valid address
PROGRAM_START = 0x200       # ROM load origin, PC reset value
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START   # 3584 bytes

FONT_BASE = 0x000
FONT_GLYPH_SIZE = 5         # bytes per 4x5 digit glyph

STACK_DEPTH = 16            # call-stack slots

# ──────────────────────────────────────────────
# Registers
# ──────────────────────────────────────────────

NUM_REGISTERS = 16
VF = 0xF                    # carry / borrow / collision flag register

# ──────────────────────────────────────────────
# Display
# ──────────────────────────────────────────────

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32

# ──────────────────────────────────────────────
# Timing
# ──────────────────────────────────────────────

TIMER_HZ = 60               # DT/ST decay + screen refresh rate
DEFAULT_CPU_HZ = 500        # typical COSMAC VIP-era speed
NANOS_PER_SECOND = 1_000_000_000


@dataclass
class MachineConfig:
    """Per-session run configuration.

    cpu_hz:        instruction cycles per second (CPU clock), 1 Hz to 1 GHz.
    shift_uses_vy: 8xy6/8xyE quirk. False shifts Vx in place and ignores Vy
                   (modern interpreters); True stores Vy shifted into Vx
                   (original COSMAC VIP behaviour).
    seed:          RNG seed for Cxkk; None seeds from the OS.
    """
    cpu_hz: int = DEFAULT_CPU_HZ
    shift_uses_vy: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        if self.cpu_hz <= 0:
            raise ValueError(f"cpu_hz must be positive, got {self.cpu_hz}")
        if self.cpu_hz > NANOS_PER_SECOND:
            raise ValueError(f"cpu_hz must be at most {NANOS_PER_SECOND}, got {self.cpu_hz}")

    @property
    def cycles_per_frame(self) -> int:
        """CPU ticks between two 60 Hz timer/display updates."""
        return math.ceil(self.cpu_hz / TIMER_HZ)

    @property
    def period_ns(self) -> int:
        """Wall-clock budget of one CPU tick."""
        return NANOS_PER_SECOND // self.cpu_hz
