"""
CHIP-8 Virtual Emulator - ALU Operations

Each function takes unsigned operands and returns a tuple
(result_byte, vf_bit). The instruction handler writes the result register
first and VF last, so when Vx is VF itself the flag wins.

Flag conventions:
  add8:  VF = 1 on carry out of bit 7 (unsigned sum > 255)
  sub8:  VF = 1 when minuend > subtrahend (NOT borrow; equal gives 0)
  shr8:  VF = bit 0 before the shift
  shl8:  VF = bit 7 before the shift
"""


def add8(a: int, b: int) -> tuple:
    """Vx + Vy with carry."""
    result = a + b
    return (result & 0xFF, 1 if result > 0xFF else 0)


def sub8(a: int, b: int) -> tuple:
    """a - b, VF = NOT borrow (strictly greater)."""
    return ((a - b) & 0xFF, 1 if a > b else 0)


def shr8(value: int) -> tuple:
    """Logical shift right by one, no sign propagation."""
    return ((value & 0xFF) >> 1, value & 0x01)


def shl8(value: int) -> tuple:
    """Shift left by one, low 8 bits kept."""
    return ((value << 1) & 0xFF, 1 if value & 0x80 else 0)


def add_wrap8(a: int, b: int) -> int:
    """7xkk: add immediate, no flag."""
    return (a + b) & 0xFF


def bcd(value: int) -> tuple:
    """Split an unsigned byte into (hundreds, tens, units)."""
    value &= 0xFF
    hundreds, rest = divmod(value, 100)
    tens, units = divmod(rest, 10)
    return (hundreds, tens, units)
