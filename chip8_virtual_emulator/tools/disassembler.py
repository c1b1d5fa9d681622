"""
CHIP-8 Disassembler - Standalone API Module

Linear-sweep disassembler built on the emulator's own decoder, so the
listing always agrees with what the CPU would execute.

API Usage:
    from chip8_virtual_emulator.tools.disassembler import Chip8Disassembler

    dis = Chip8Disassembler()
    for r in dis.disassemble(rom_bytes, base_addr=0x200):
        print(r.format())     # "$200: 00E0  CLS"

    dis.disassemble_hex("00E0 A22A 600C")

Words that match no opcode are emitted as DW data; a trailing odd byte
is emitted as DB.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..config import PROGRAM_START
from ..cpu.decoder import Op, UnknownInstruction, decode

MNEMONIC_DATA_WORD = "DW"
MNEMONIC_DATA_BYTE = "DB"


@dataclass
class DisassembledInstruction:
    """One decoded instruction (or data item) with formatting data."""
    address: int
    raw_bytes: bytes
    mnemonic: str
    operand_str: str
    op: Optional[Op] = None     # None for DW/DB data
    comment: str = ""

    @property
    def length(self) -> int:
        return len(self.raw_bytes)

    @property
    def hex_str(self) -> str:
        return self.raw_bytes.hex().upper()

    @property
    def is_data(self) -> bool:
        return self.op is None

    def format(self) -> str:
        """Format as a single listing line."""
        asm = f"{self.mnemonic} {self.operand_str}".strip()
        line = f"${self.address:03X}: {self.hex_str:4s}  {asm}"
        if self.comment:
            line += f"  ; {self.comment}"
        return line


# Ops whose nnn operand is a code address worth labelling
_BRANCH_OPS = (Op.JP, Op.CALL)


class Chip8Disassembler:
    """
    CHIP-8 disassembler.

    Usage:
        dis = Chip8Disassembler()
        results = dis.disassemble(raw_bytes, base_addr=0x200)
        single  = dis.decode_one(raw_bytes, offset=0, base_addr=0x200)
    """

    def __init__(self, annotate: bool = True):
        self.annotate = annotate

    # ── public API ──

    def disassemble(self, data: bytes, base_addr: int = PROGRAM_START,
                    max_instructions: int = 0) -> List[DisassembledInstruction]:
        """Disassemble a block of bytes."""
        data = bytes(data)
        results: List[DisassembledInstruction] = []
        offset = 0
        while offset < len(data):
            inst = self.decode_one(data, offset, base_addr + offset)
            results.append(inst)
            offset += inst.length
            if max_instructions and len(results) >= max_instructions:
                break
        if self.annotate:
            self._mark_targets(results)
        return results

    def disassemble_hex(self, hex_string: str, base_addr: int = PROGRAM_START,
                        max_instructions: int = 0) -> List[DisassembledInstruction]:
        """Disassemble a hex string like '00E0 A22A' or '00E0A22A'."""
        return self.disassemble(self._parse_hex(hex_string), base_addr,
                                max_instructions)

    def decode_one(self, data: bytes, offset: int = 0,
                   base_addr: int = PROGRAM_START) -> DisassembledInstruction:
        """Decode exactly one word (or a trailing byte) at offset."""
        if offset + 1 >= len(data):
            raw = bytes(data[offset:offset + 1])
            return DisassembledInstruction(
                address=base_addr, raw_bytes=raw,
                mnemonic=MNEMONIC_DATA_BYTE, operand_str=f"${raw[0]:02X}")

        raw = bytes(data[offset:offset + 2])
        word = (raw[0] << 8) | raw[1]
        try:
            ins = decode(word, base_addr)
        except UnknownInstruction:
            return DisassembledInstruction(
                address=base_addr, raw_bytes=raw,
                mnemonic=MNEMONIC_DATA_WORD, operand_str=f"${word:04X}")

        return DisassembledInstruction(
            address=base_addr,
            raw_bytes=raw,
            mnemonic=ins.mnemonic,
            operand_str=ins.operands,
            op=ins.op,
        )

    @staticmethod
    def histogram(results: List[DisassembledInstruction]) -> Dict[str, int]:
        """Count of each mnemonic, most common first."""
        counts = Counter(r.mnemonic for r in results)
        return dict(counts.most_common())

    # ── helpers ──

    @staticmethod
    def _mark_targets(results: List[DisassembledInstruction]):
        """Comment every instruction that a JP/CALL in the listing targets."""
        by_addr = {r.address: r for r in results}
        for r in results:
            if r.op not in _BRANCH_OPS:
                continue
            target = ((r.raw_bytes[0] << 8) | r.raw_bytes[1]) & 0x0FFF
            dest = by_addr.get(target)
            if dest is None:
                continue
            tag = "sub" if r.op is Op.CALL else "label"
            note = f"{tag}_{target:03X}"
            if note not in dest.comment:
                dest.comment = f"{dest.comment}, {note}" if dest.comment else note

    @staticmethod
    def _parse_hex(hex_string: str) -> bytes:
        cleaned = hex_string.replace("0x", "").replace("$", "")
        cleaned = "".join(cleaned.split())
        return bytes.fromhex(cleaned)
