"""
CHIP-8 Virtual Emulator - Register File

Register model:
  V0-VF  16 x 8-bit general registers
         VF doubles as the carry / NOT-borrow / shifted-out bit / sprite
         collision flag and is overwritten by those instructions
  I      16-bit address register (not clamped; only memory accesses
         through it are range-checked)
  PC     16-bit program counter, reset to $200
  SP     8-bit call-stack index (wraps, see AddressSpace.push_call)
  DT     8-bit delay timer, decremented at 60 Hz
  ST     8-bit sound timer, decremented at 60 Hz, tone on while non-zero
"""

from ..config import NUM_REGISTERS, PROGRAM_START, VF


class RegisterFile:
    """CHIP-8 CPU register set.

    All values are held as plain unsigned ints and masked on write by the
    instruction handlers. ``cycles`` counts executed CPU ticks.
    """

    __slots__ = ('V', 'I', 'PC', 'SP', 'DT', 'ST', 'cycles')

    def __init__(self):
        self.V = bytearray(NUM_REGISTERS)   # V0-VF (bytearray enforces 0-255)
        self.I: int = 0x0000
        self.PC: int = PROGRAM_START
        self.SP: int = 0x00
        self.DT: int = 0x00
        self.ST: int = 0x00
        self.cycles: int = 0

    # --- Flag register ---

    @property
    def vf(self) -> int:
        return self.V[VF]

    @vf.setter
    def vf(self, value: int):
        self.V[VF] = value & 0x01

    # --- Display ---

    def display(self) -> str:
        """Format register state for traces."""
        regs = ' '.join(f"V{i:X}={v:02X}" for i, v in enumerate(self.V))
        return (f"PC={self.PC:04X} I={self.I:04X} SP={self.SP:02X} "
                f"DT={self.DT:02X} ST={self.ST:02X} {regs}")

    def reset(self):
        """Reset CPU to power-on state."""
        self.V = bytearray(NUM_REGISTERS)
        self.I = 0x0000
        self.PC = PROGRAM_START
        self.SP = 0x00
        self.DT = 0x00
        self.ST = 0x00
        self.cycles = 0
