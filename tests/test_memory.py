"""
CHIP-8 Virtual Emulator — Address Space and Register File Tests
"""

import logging
import pytest
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chip8_virtual_emulator.config import STACK_DEPTH
from chip8_virtual_emulator.cpu.regs import RegisterFile
from chip8_virtual_emulator.mem.memory import FONT_SPRITES, AddressSpace, OutOfRangeAccess


class TestReadWrite:

    def test_fresh_program_area_is_zero(self):
        mem = AddressSpace()
        assert mem.read(0x200) == 0
        assert mem.read(0xFFF) == 0

    def test_write_then_read(self):
        mem = AddressSpace()
        mem.write(0x345, 0xAB)
        assert mem.read(0x345) == 0xAB

    def test_write_masks_to_byte(self):
        mem = AddressSpace()
        mem.write(0x300, 0x1FF)
        assert mem.read(0x300) == 0xFF

    def test_read_out_of_range(self, caplog):
        mem = AddressSpace()
        with caplog.at_level(logging.WARNING):
            assert mem.read(0x1000) == 0
        assert mem.fault_count == 1
        assert mem.faults[-1] == OutOfRangeAccess('read', 0x1000)
        assert "READ access out of range: $1000" in caplog.text

    def test_write_out_of_range_is_dropped(self, caplog):
        mem = AddressSpace()
        with caplog.at_level(logging.WARNING):
            mem.write(0x1234, 0x55)
        assert mem.fault_count == 1
        assert mem.faults[-1] == OutOfRangeAccess('write', 0x1234)
        assert "WRITE access out of range: $1234" in caplog.text
        assert mem.read(0x234) == 0

    def test_negative_address_is_out_of_range(self):
        mem = AddressSpace()
        assert mem.read(-1) == 0
        assert mem.fault_count == 1

    def test_fault_history_is_bounded(self):
        mem = AddressSpace()
        for i in range(1000):
            mem.read(0x1000 + i)
        assert mem.fault_count == 1000
        assert len(mem.faults) == mem.faults.maxlen


class TestFont:

    def test_glyphs_at_zero(self):
        mem = AddressSpace()
        for digit, glyph in enumerate(FONT_SPRITES):
            base = digit * 5
            assert tuple(mem.read(base + i) for i in range(5)) == glyph

    def test_glyph_a(self):
        assert FONT_SPRITES[0xA] == (0xF0, 0x90, 0xF0, 0x90, 0x90)

    def test_font_region_is_writable(self):
        mem = AddressSpace()
        mem.write(0x000, 0x00)
        assert mem.read(0x000) == 0x00


class TestLoadBinary:

    def test_load_at_program_start(self):
        mem = AddressSpace()
        assert mem.load_binary(bytes([0x12, 0x34, 0x56])) == 3
        assert [mem.read(0x200 + i) for i in range(3)] == [0x12, 0x34, 0x56]

    def test_load_past_end_reports_overflow(self):
        mem = AddressSpace()
        count = mem.load_binary(bytes([1, 2, 3, 4]), 0xFFE)
        assert count == 4
        assert mem.read(0xFFE) == 1
        assert mem.read(0xFFF) == 2
        assert mem.fault_count == 2


class TestCallStack:

    def test_push_pop(self):
        mem, regs = AddressSpace(), RegisterFile()
        mem.push_call(regs, 0x202)
        assert regs.SP == 1
        assert mem.stack[1] == 0x202
        assert mem.pop_call(regs) == 0x202
        assert regs.SP == 0

    def test_sixteen_levels_use_every_slot(self):
        mem, regs = AddressSpace(), RegisterFile()
        for depth in range(STACK_DEPTH):
            mem.push_call(regs, 0x300 + depth)
        assert regs.SP == 16
        assert sorted(mem.stack) == [0x300 + d for d in range(16)]
        for depth in reversed(range(STACK_DEPTH)):
            assert mem.pop_call(regs) == 0x300 + depth
        assert regs.SP == 0

    def test_seventeenth_push_overwrites_oldest(self):
        mem, regs = AddressSpace(), RegisterFile()
        for depth in range(17):
            mem.push_call(regs, 0x400 + depth)
        assert regs.SP == 17
        assert mem.stack[1] == 0x400 + 16

    def test_sp_wraps_at_eight_bits(self):
        mem, regs = AddressSpace(), RegisterFile()
        regs.SP = 0xFF
        mem.push_call(regs, 0x222)
        assert regs.SP == 0x00
        assert mem.pop_call(regs) == 0x222
        assert regs.SP == 0xFF


class TestFramebuffer:

    def test_starts_blank_and_clean(self):
        mem = AddressSpace()
        assert mem.lit_pixels() == 0
        assert not mem.dirty

    def test_set_pixel_marks_dirty_only_on_change(self):
        mem = AddressSpace()
        mem.set_pixel(3, 4, False)
        assert not mem.dirty
        mem.set_pixel(3, 4, True)
        assert mem.dirty
        assert mem.get_pixel(3, 4)

    def test_clear_screen(self):
        mem = AddressSpace()
        mem.set_pixel(63, 31, True)
        mem.dirty = False
        mem.clear_screen()
        assert mem.lit_pixels() == 0
        assert mem.dirty

    def test_frame_is_a_snapshot(self):
        mem = AddressSpace()
        frame = mem.frame()
        mem.set_pixel(0, 0, True)
        assert frame[0][0] is False
        assert len(frame) == 64
        assert len(frame[0]) == 32

    def test_render_text(self):
        mem = AddressSpace()
        mem.set_pixel(1, 0, True)
        lines = mem.render_text().split('\n')
        assert len(lines) == 32
        assert all(len(line) == 64 for line in lines)
        assert lines[0].startswith('.#.')


class TestHexdump:

    def test_hexdump_font_row(self):
        mem = AddressSpace()
        line = mem.hexdump(0x000, 16).split('\n')[0]
        assert line.startswith('000  F0 90 90 90 F0 20 60 20')

    def test_hexdump_ascii_column(self):
        mem = AddressSpace()
        mem.load_binary(b'CHIP-8')
        line = mem.hexdump(0x200, 16)
        assert line.startswith('200  43 48 49 50 2D 38')
        assert line.endswith('CHIP-8..........')


class TestRegisterFile:

    def test_power_on(self):
        regs = RegisterFile()
        assert regs.PC == 0x200
        assert regs.SP == 0
        assert regs.I == 0
        assert regs.DT == 0 and regs.ST == 0
        assert list(regs.V) == [0] * 16

    def test_vf_property(self):
        regs = RegisterFile()
        regs.vf = 3
        assert regs.V[0xF] == 1
        assert regs.vf == 1

    def test_display(self):
        regs = RegisterFile()
        regs.V[0xA] = 0x5C
        text = regs.display()
        assert text.startswith("PC=0200 I=0000 SP=00 DT=00 ST=00")
        assert "VA=5C" in text

    def test_reset(self):
        regs = RegisterFile()
        regs.PC, regs.I, regs.SP, regs.cycles = 0x300, 0x123, 4, 99
        regs.V[2] = 7
        regs.reset()
        assert regs.PC == 0x200
        assert regs.I == 0 and regs.SP == 0 and regs.cycles == 0
        assert regs.V[2] == 0

    def test_slots(self):
        regs = RegisterFile()
        with pytest.raises(AttributeError):
            regs.X = 1
