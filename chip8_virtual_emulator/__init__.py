# CHIP-8 Virtual Emulator: pure-software CHIP-8 interpreter core
#
# Layout:
#   cpu/     register file, ALU helpers, decoder, instruction set
#   mem/     4 KB address space with call stack and framebuffer
#   periph/  60 Hz frame divider, keypad, display, buzzer, terminal input
#   tools/   disassembler
#   emu.py   scheduler tying the pieces together

from .config import MachineConfig
from .cpu.decoder import Instruction, Op, UnknownInstruction, decode
from .cpu.regs import RegisterFile
from .emu import Chip8Emulator
from .mem.memory import AddressSpace
from .periph.keypad import Keypad

__version__ = "1.0.0"

__all__ = [
    "AddressSpace",
    "Chip8Emulator",
    "Instruction",
    "Keypad",
    "MachineConfig",
    "Op",
    "RegisterFile",
    "UnknownInstruction",
    "decode",
]
