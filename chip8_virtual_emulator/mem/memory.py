"""
CHIP-8 Virtual Emulator - Address Space

Owns everything the interpreter addresses that is not a register:

  memory       4096 bytes, $000-$FFF
  stack        16 x 16-bit return addresses
  framebuffer  64 x 32 booleans, indexed [x][y], True = lit
  dirty        set when a draw/clear touches the framebuffer, cleared by
               the emulator after the display surface has been handed a frame

The hex digit glyphs are copied to $000-$04F at construction. Programs may
overwrite them; nothing here protects that region.

Out-of-range accesses ($1000 and above) never index past the array. They are
logged, recorded in ``faults`` and otherwise ignored: reads return 0, writes
are dropped.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Tuple

from ..config import (
    ADDRESS_MASK, FONT_BASE, MEMORY_SIZE, PROGRAM_START, SCREEN_HEIGHT,
    SCREEN_WIDTH, STACK_DEPTH,
)

log = logging.getLogger(__name__)


# 4x5 glyphs for 0-F; each row uses the high nibble of the byte.
FONT_SPRITES = (
    (0xF0, 0x90, 0x90, 0x90, 0xF0),  # 0
    (0x20, 0x60, 0x20, 0x20, 0x70),  # 1
    (0xF0, 0x10, 0xF0, 0x80, 0xF0),  # 2
    (0xF0, 0x10, 0xF0, 0x10, 0xF0),  # 3
    (0x90, 0x90, 0xF0, 0x10, 0x10),  # 4
    (0xF0, 0x80, 0xF0, 0x10, 0xF0),  # 5
    (0xF0, 0x80, 0xF0, 0x90, 0xF0),  # 6
    (0xF0, 0x10, 0x20, 0x40, 0x40),  # 7
    (0xF0, 0x90, 0xF0, 0x90, 0xF0),  # 8
    (0xF0, 0x90, 0xF0, 0x10, 0xF0),  # 9
    (0xF0, 0x90, 0xF0, 0x90, 0x90),  # A
    (0xE0, 0x90, 0xE0, 0x90, 0xE0),  # B
    (0xF0, 0x80, 0x80, 0x80, 0xF0),  # C
    (0xE0, 0x90, 0x90, 0x90, 0xE0),  # D
    (0xF0, 0x80, 0xF0, 0x80, 0xF0),  # E
    (0xF0, 0x80, 0xF0, 0x80, 0x80),  # F
)

FAULT_HISTORY = 256


@dataclass(frozen=True)
class OutOfRangeAccess:
    """One intercepted access outside $000-$FFF."""
    kind: str       # 'read' or 'write'
    address: int


Frame = Tuple[Tuple[bool, ...], ...]


class AddressSpace:
    """4 KB memory, call stack and framebuffer of one machine."""

    def __init__(self):
        self._mem = bytearray(MEMORY_SIZE)
        self.stack: List[int] = [0] * STACK_DEPTH
        self.framebuffer: List[List[bool]] = [
            [False] * SCREEN_HEIGHT for _ in range(SCREEN_WIDTH)
        ]
        self.dirty = False

        self.faults: Deque[OutOfRangeAccess] = deque(maxlen=FAULT_HISTORY)
        self.fault_count = 0

        self._load_font()

    def _load_font(self):
        addr = FONT_BASE
        for glyph in FONT_SPRITES:
            for row in glyph:
                self._mem[addr] = row
                addr += 1

    # --- Core read/write ---

    def read(self, addr: int) -> int:
        """Read one byte. Out-of-range reads yield 0."""
        if 0 <= addr <= ADDRESS_MASK:
            return self._mem[addr]
        self._out_of_range('read', addr)
        return 0

    def write(self, addr: int, value: int):
        """Write one byte. Out-of-range writes are dropped."""
        if 0 <= addr <= ADDRESS_MASK:
            self._mem[addr] = value & 0xFF
            return
        self._out_of_range('write', addr)

    def _out_of_range(self, kind: str, addr: int):
        self.fault_count += 1
        self.faults.append(OutOfRangeAccess(kind, addr))
        log.warning("Memory %s access out of range: $%04X", kind.upper(), addr)

    # --- Bulk load ---

    def load_binary(self, data: bytes, base_addr: int = PROGRAM_START) -> int:
        """Copy data into memory byte by byte starting at base_addr.

        Goes through write() so a ROM that runs past $FFF is reported rather
        than truncated silently. Returns the number of bytes offered.
        """
        for i, byte in enumerate(data):
            self.write(base_addr + i, byte)
        return len(data)

    # --- Call stack ---
    #
    # SP is an 8-bit register owned by the RegisterFile. CALL pre-increments
    # it and RET post-decrements it, both with 8-bit wraparound. The slot is
    # SP modulo the stack depth, so 16 nested calls use all 16 slots
    # (1..15 then 0) and deeper nesting overwrites the oldest return address
    # instead of faulting. Returning on an empty stack wraps SP to $FF.

    def push_call(self, regs, addr: int):
        """Increment SP, then store addr at the new top of stack."""
        regs.SP = (regs.SP + 1) & 0xFF
        self.stack[regs.SP % STACK_DEPTH] = addr & 0xFFFF

    def pop_call(self, regs) -> int:
        """Return the address at the top of stack, then decrement SP."""
        addr = self.stack[regs.SP % STACK_DEPTH]
        regs.SP = (regs.SP - 1) & 0xFF
        return addr

    # --- Framebuffer ---

    def get_pixel(self, x: int, y: int) -> bool:
        return self.framebuffer[x][y]

    def set_pixel(self, x: int, y: int, value: bool):
        """Set one pixel; callers have already wrapped x and y."""
        if self.framebuffer[x][y] != value:
            self.framebuffer[x][y] = value
            self.dirty = True

    def clear_screen(self):
        for column in self.framebuffer:
            for y in range(SCREEN_HEIGHT):
                column[y] = False
        self.dirty = True

    def frame(self) -> Frame:
        """Immutable copy of the framebuffer, indexed [x][y]."""
        return tuple(tuple(column) for column in self.framebuffer)

    def lit_pixels(self) -> int:
        return sum(sum(column) for column in self.framebuffer)

    # --- Debug output ---

    def render_text(self, on: str = '#', off: str = '.') -> str:
        """Framebuffer as text, one line per row."""
        return '\n'.join(
            ''.join(on if self.framebuffer[x][y] else off
                    for x in range(SCREEN_WIDTH))
            for y in range(SCREEN_HEIGHT)
        )

    def hexdump(self, start: int, length: int = 256) -> str:
        """Produce a hex dump of memory for debugging."""
        lines = []
        for offset in range(0, length, 16):
            addr = (start + offset) & ADDRESS_MASK
            row = [self._mem[(addr + i) & ADDRESS_MASK] for i in range(16)]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'{addr:03X}  {hex_bytes}  {ascii_bytes}')
        return '\n'.join(lines)
