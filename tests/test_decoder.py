"""
CHIP-8 Virtual Emulator — Decoder and Disassembler Tests

One representative word per operation, the holes in the 5/8/9/E/F
families, and the listing format produced by the disassembler.
"""

import random
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chip8_virtual_emulator.cpu.decoder import (
    Op, SYNTAX, UnknownInstruction, classify, decode, fetch_word,
)
from chip8_virtual_emulator.cpu.instructions import InstructionSet
from chip8_virtual_emulator.mem.memory import AddressSpace
from chip8_virtual_emulator.periph.keypad import Keypad
from chip8_virtual_emulator.tools.disassembler import Chip8Disassembler


# word → (Op, assembly text)
KNOWN = [
    (0x0123, Op.SYS,       "SYS $123"),
    (0x00E0, Op.CLS,       "CLS"),
    (0x00EE, Op.RET,       "RET"),
    (0x1ABC, Op.JP,        "JP $ABC"),
    (0x2345, Op.CALL,      "CALL $345"),
    (0x3A42, Op.SE_BYTE,   "SE VA, #$42"),
    (0x4B07, Op.SNE_BYTE,  "SNE VB, #$07"),
    (0x5120, Op.SE_REG,    "SE V1, V2"),
    (0x6CFF, Op.LD_BYTE,   "LD VC, #$FF"),
    (0x7D01, Op.ADD_BYTE,  "ADD VD, #$01"),
    (0x8120, Op.LD_REG,    "LD V1, V2"),
    (0x8121, Op.OR,        "OR V1, V2"),
    (0x8122, Op.AND,       "AND V1, V2"),
    (0x8123, Op.XOR,       "XOR V1, V2"),
    (0x8124, Op.ADD_REG,   "ADD V1, V2"),
    (0x8125, Op.SUB,       "SUB V1, V2"),
    (0x8126, Op.SHR,       "SHR V1, V2"),
    (0x8127, Op.SUBN,      "SUBN V1, V2"),
    (0x812E, Op.SHL,       "SHL V1, V2"),
    (0x9340, Op.SNE_REG,   "SNE V3, V4"),
    (0xA2F0, Op.LD_I,      "LD I, $2F0"),
    (0xB300, Op.JP_V0,     "JP V0, $300"),
    (0xC50F, Op.RND,       "RND V5, #$0F"),
    (0xD125, Op.DRW,       "DRW V1, V2, 5"),
    (0xE39E, Op.SKP,       "SKP V3"),
    (0xE3A1, Op.SKNP,      "SKNP V3"),
    (0xF407, Op.LD_VX_DT,  "LD V4, DT"),
    (0xF40A, Op.LD_VX_K,   "LD V4, K"),
    (0xF415, Op.LD_DT_VX,  "LD DT, V4"),
    (0xF418, Op.LD_ST_VX,  "LD ST, V4"),
    (0xF41E, Op.ADD_I,     "ADD I, V4"),
    (0xF429, Op.LD_F,      "LD F, V4"),
    (0xF433, Op.LD_B,      "LD B, V4"),
    (0xF455, Op.LD_MEM_VX, "LD [I], V4"),
    (0xF465, Op.LD_VX_MEM, "LD V4, [I]"),
]

UNKNOWN = [0x5001, 0x5ABF, 0x8008, 0x800F, 0x9001, 0xE000, 0xE09F, 0xF000, 0xF0FF, 0xFF56]


class TestDecode:

    def test_thirty_five_operations(self):
        assert len(Op) == 35
        assert {op for _, op, _ in KNOWN} == set(Op)

    @pytest.mark.parametrize("word,op,text", KNOWN)
    def test_known_word(self, word, op, text):
        ins = decode(word)
        assert ins.op is op
        assert ins.word == word
        assert ins.format() == text

    def test_operand_fields(self):
        """DABC → x=A, y=B, n=C, kk=BC, nnn=ABC"""
        ins = decode(0xDABC)
        assert (ins.x, ins.y, ins.n, ins.kk, ins.nnn) == (0xA, 0xB, 0xC, 0xBC, 0xABC)

    @pytest.mark.parametrize("word", UNKNOWN)
    def test_unknown_word(self, word):
        with pytest.raises(UnknownInstruction) as exc:
            decode(word, 0x2A4)
        assert exc.value.word == word
        assert exc.value.address == 0x2A4
        assert str(exc.value) == f"Unknown instruction ${word:04X} at $2A4"

    def test_unknown_without_address(self):
        with pytest.raises(UnknownInstruction) as exc:
            classify(0x8009)
        assert str(exc.value) == "Unknown instruction $8009"

    def test_every_word_decodes_or_is_unknown(self):
        """Decoding is total: each word yields an Op or UnknownInstruction."""
        unknown = 0
        for word in range(0x10000):
            try:
                decode(word)
            except UnknownInstruction:
                unknown += 1
        # 5/9 with n != 0, 8 with 7 unused low nibbles, E and F unused low bytes
        assert unknown == 2 * 0x0F00 + 0x0700 + 0x0FE0 + 0x0F70

    def test_fetch_is_big_endian(self):
        mem = AddressSpace()
        mem.load_binary(bytes([0xA2, 0xF0]))
        assert fetch_word(mem, 0x200) == 0xA2F0

    def test_every_op_has_syntax_and_handler(self):
        isa = InstructionSet(Keypad(), rng=random.Random(0))
        assert set(SYNTAX) == set(Op)
        assert set(isa._dispatch) == set(Op)


class TestDisassembler:

    def test_listing_lines(self):
        dis = Chip8Disassembler(annotate=False)
        lines = [r.format() for r in dis.disassemble_hex("00E0 A22A 600C")]
        assert lines == [
            "$200: 00E0  CLS",
            "$202: A22A  LD I, $22A",
            "$204: 600C  LD V0, #$0C",
        ]

    def test_unknown_word_is_data(self):
        dis = Chip8Disassembler()
        (r,) = dis.disassemble(bytes([0x80, 0x0F]))
        assert r.is_data
        assert r.format() == "$200: 800F  DW $800F"

    def test_trailing_byte(self):
        dis = Chip8Disassembler()
        results = dis.disassemble(bytes([0x00, 0xE0, 0x12]))
        assert len(results) == 2
        assert results[1].format() == "$202: 12    DB $12"

    def test_base_address(self):
        dis = Chip8Disassembler()
        (r,) = dis.disassemble(bytes([0x00, 0xEE]), base_addr=0x600)
        assert r.address == 0x600

    def test_max_instructions(self):
        dis = Chip8Disassembler()
        assert len(dis.disassemble(bytes(20), max_instructions=3)) == 3

    def test_branch_targets_annotated(self):
        """CALL $204 / JP $200 → comments on their targets"""
        dis = Chip8Disassembler()
        results = dis.disassemble_hex("2204 1200 00EE")
        assert results[0].comment == "label_200"
        assert results[2].comment == "sub_204"
        assert results[2].format() == "$204: 00EE  RET  ; sub_204"

    def test_histogram(self):
        dis = Chip8Disassembler(annotate=False)
        results = dis.disassemble_hex("6001 6102 8014 FFFF")
        assert dis.histogram(results) == {"LD": 2, "ADD": 1, "DW": 1}
