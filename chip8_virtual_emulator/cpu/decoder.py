"""
CHIP-8 Virtual Emulator - Instruction Decoder

Every instruction is one big-endian 16-bit word (high byte at PC, low byte
at PC+1). The word is split into fixed operand fields:

    F   X   Y   N
  +---+---+---+---+
  | op| x | y | n |      kk  = low byte      (bits 0-7)
  +---+---+---+---+      nnn = low 12 bits   (bits 0-11)

The top nibble selects the instruction family. Families 0, 8, E and F need
a second key (the full word, the low nibble, or the low byte) to pick the
operation; 5 and 9 additionally require the low nibble to be zero.

Decoding never mutates machine state. A word that matches no opcode raises
UnknownInstruction, which the emulator catches in exactly one place.
"""

from enum import Enum
from typing import NamedTuple


class Op(Enum):
    """The 35 CHIP-8 operations."""
    SYS = 'SYS'              # 0nnn  (ignored by modern interpreters)
    CLS = 'CLS'              # 00E0
    RET = 'RET'              # 00EE
    JP = 'JP'                # 1nnn
    CALL = 'CALL'            # 2nnn
    SE_BYTE = 'SE_BYTE'      # 3xkk
    SNE_BYTE = 'SNE_BYTE'    # 4xkk
    SE_REG = 'SE_REG'        # 5xy0
    LD_BYTE = 'LD_BYTE'      # 6xkk
    ADD_BYTE = 'ADD_BYTE'    # 7xkk
    LD_REG = 'LD_REG'        # 8xy0
    OR = 'OR'                # 8xy1
    AND = 'AND'              # 8xy2
    XOR = 'XOR'              # 8xy3
    ADD_REG = 'ADD_REG'      # 8xy4
    SUB = 'SUB'              # 8xy5
    SHR = 'SHR'              # 8xy6
    SUBN = 'SUBN'            # 8xy7
    SHL = 'SHL'              # 8xyE
    SNE_REG = 'SNE_REG'      # 9xy0
    LD_I = 'LD_I'            # Annn
    JP_V0 = 'JP_V0'          # Bnnn
    RND = 'RND'              # Cxkk
    DRW = 'DRW'              # Dxyn
    SKP = 'SKP'              # Ex9E
    SKNP = 'SKNP'            # ExA1
    LD_VX_DT = 'LD_VX_DT'    # Fx07
    LD_VX_K = 'LD_VX_K'      # Fx0A
    LD_DT_VX = 'LD_DT_VX'    # Fx15
    LD_ST_VX = 'LD_ST_VX'    # Fx18
    ADD_I = 'ADD_I'          # Fx1E
    LD_F = 'LD_F'            # Fx29
    LD_B = 'LD_B'            # Fx33
    LD_MEM_VX = 'LD_MEM_VX'  # Fx55
    LD_VX_MEM = 'LD_VX_MEM'  # Fx65


# ──────────────────────────────────────────────
# Assembly syntax per operation
# ──────────────────────────────────────────────
# Format: Op -> (mnemonic, operand template)
# Templates are str.format()-ed with the Instruction fields.

SYNTAX = {
    Op.SYS:       ('SYS',  '${nnn:03X}'),
    Op.CLS:       ('CLS',  ''),
    Op.RET:       ('RET',  ''),
    Op.JP:        ('JP',   '${nnn:03X}'),
    Op.CALL:      ('CALL', '${nnn:03X}'),
    Op.SE_BYTE:   ('SE',   'V{x:X}, #${kk:02X}'),
    Op.SNE_BYTE:  ('SNE',  'V{x:X}, #${kk:02X}'),
    Op.SE_REG:    ('SE',   'V{x:X}, V{y:X}'),
    Op.LD_BYTE:   ('LD',   'V{x:X}, #${kk:02X}'),
    Op.ADD_BYTE:  ('ADD',  'V{x:X}, #${kk:02X}'),
    Op.LD_REG:    ('LD',   'V{x:X}, V{y:X}'),
    Op.OR:        ('OR',   'V{x:X}, V{y:X}'),
    Op.AND:       ('AND',  'V{x:X}, V{y:X}'),
    Op.XOR:       ('XOR',  'V{x:X}, V{y:X}'),
    Op.ADD_REG:   ('ADD',  'V{x:X}, V{y:X}'),
    Op.SUB:       ('SUB',  'V{x:X}, V{y:X}'),
    Op.SHR:       ('SHR',  'V{x:X}, V{y:X}'),
    Op.SUBN:      ('SUBN', 'V{x:X}, V{y:X}'),
    Op.SHL:       ('SHL',  'V{x:X}, V{y:X}'),
    Op.SNE_REG:   ('SNE',  'V{x:X}, V{y:X}'),
    Op.LD_I:      ('LD',   'I, ${nnn:03X}'),
    Op.JP_V0:     ('JP',   'V0, ${nnn:03X}'),
    Op.RND:       ('RND',  'V{x:X}, #${kk:02X}'),
    Op.DRW:       ('DRW',  'V{x:X}, V{y:X}, {n}'),
    Op.SKP:       ('SKP',  'V{x:X}'),
    Op.SKNP:      ('SKNP', 'V{x:X}'),
    Op.LD_VX_DT:  ('LD',   'V{x:X}, DT'),
    Op.LD_VX_K:   ('LD',   'V{x:X}, K'),
    Op.LD_DT_VX:  ('LD',   'DT, V{x:X}'),
    Op.LD_ST_VX:  ('LD',   'ST, V{x:X}'),
    Op.ADD_I:     ('ADD',  'I, V{x:X}'),
    Op.LD_F:      ('LD',   'F, V{x:X}'),
    Op.LD_B:      ('LD',   'B, V{x:X}'),
    Op.LD_MEM_VX: ('LD',   '[I], V{x:X}'),
    Op.LD_VX_MEM: ('LD',   'V{x:X}, [I]'),
}


# ──────────────────────────────────────────────
# Dispatch keys
# ──────────────────────────────────────────────

# Families fully identified by the top nibble
_PRIMARY = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_BYTE,
    0x4: Op.SNE_BYTE,
    0x6: Op.LD_BYTE,
    0x7: Op.ADD_BYTE,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}

# 0xxx: keyed by the whole word, anything else is SYS nnn
_SYSTEM = {
    0x00E0: Op.CLS,
    0x00EE: Op.RET,
}

# 8xyN: keyed by the low nibble
_ALU = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# 5xy0 / 9xy0: low nibble must be zero
_REG_COMPARE = {
    0x5: Op.SE_REG,
    0x9: Op.SNE_REG,
}

# ExKK: keyed by the low byte
_KEYS = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

# FxKK: keyed by the low byte
_MISC = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I,
    0x29: Op.LD_F,
    0x33: Op.LD_B,
    0x55: Op.LD_MEM_VX,
    0x65: Op.LD_VX_MEM,
}


class UnknownInstruction(Exception):
    """Raised when a fetched word matches no opcode."""

    def __init__(self, word: int, address: int = None):
        self.word = word & 0xFFFF
        self.address = address
        where = f" at ${address:03X}" if address is not None else ""
        super().__init__(f"Unknown instruction ${self.word:04X}{where}")


class Instruction(NamedTuple):
    """A decoded instruction word with every operand field extracted."""
    op: Op
    word: int
    x: int
    y: int
    n: int
    kk: int
    nnn: int

    @property
    def mnemonic(self) -> str:
        return SYNTAX[self.op][0]

    @property
    def operands(self) -> str:
        return SYNTAX[self.op][1].format(
            x=self.x, y=self.y, n=self.n, kk=self.kk, nnn=self.nnn)

    def format(self) -> str:
        """Assembly text, e.g. 'DRW V1, V2, 5'."""
        return f"{self.mnemonic} {self.operands}".strip()


def fetch_word(memory, pc: int) -> int:
    """Read the big-endian instruction word at pc."""
    hi = memory.read(pc)
    lo = memory.read(pc + 1)
    return (hi << 8) | lo


def classify(word: int) -> Op:
    """Map an instruction word to its Op. Raises UnknownInstruction."""
    word &= 0xFFFF
    family = (word >> 12) & 0xF

    if family in _PRIMARY:
        return _PRIMARY[family]

    if family == 0x0:
        return _SYSTEM.get(word, Op.SYS)

    if family in _REG_COMPARE:
        if word & 0x000F == 0:
            return _REG_COMPARE[family]
        raise UnknownInstruction(word)

    if family == 0x8:
        table, key = _ALU, word & 0x000F
    elif family == 0xE:
        table, key = _KEYS, word & 0x00FF
    else:  # 0xF
        table, key = _MISC, word & 0x00FF

    op = table.get(key)
    if op is None:
        raise UnknownInstruction(word)
    return op


def decode(word: int, address: int = None) -> Instruction:
    """Decode a 16-bit word into an Instruction.

    address is only used to make the UnknownInstruction message useful.
    """
    word &= 0xFFFF
    try:
        op = classify(word)
    except UnknownInstruction:
        raise UnknownInstruction(word, address) from None
    return Instruction(
        op=op,
        word=word,
        x=(word >> 8) & 0xF,
        y=(word >> 4) & 0xF,
        n=word & 0xF,
        kk=word & 0xFF,
        nnn=word & 0xFFF,
    )
