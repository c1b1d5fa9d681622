"""
CHIP-8 Virtual Emulator - Instruction Set

One handler per Op. Handlers take (regs, mem, ins) and mutate the register
file and address space in place. The scheduler has already advanced PC past
the instruction, so skips add 2 more and jumps overwrite PC outright.

Register arithmetic wraps at 8 bits, I at 16 bits. I itself is never
clamped; only the memory accesses made through it are range-checked by
the AddressSpace.
"""

import logging
import random
from typing import Callable, Dict, Optional

from ..config import FONT_BASE, FONT_GLYPH_SIZE, SCREEN_HEIGHT, SCREEN_WIDTH, VF
from . import alu
from .decoder import Instruction, Op

log = logging.getLogger(__name__)

Handler = Callable[..., None]


class InstructionSet:
    """The 35 state transitions of the CHIP-8 CPU.

    keypad:        Keypad read by SKP/SKNP/LD Vx,K.
    rng:           random.Random used by RND; pass a seeded one for tests.
    shift_uses_vy: 8xy6/8xyE quirk, see MachineConfig.
    """

    def __init__(self, keypad, rng: Optional[random.Random] = None,
                 shift_uses_vy: bool = False):
        self.keypad = keypad
        self.rng = rng if rng is not None else random.Random()
        self.shift_uses_vy = shift_uses_vy
        self._dispatch = self._build_dispatch()

    def execute(self, regs, mem, ins: Instruction):
        self._dispatch[ins.op](regs, mem, ins)

    def _build_dispatch(self) -> Dict[Op, Handler]:
        """Build Op -> handler dispatch table."""
        return {
            # ── System / flow ──
            Op.SYS:       self._op_sys,
            Op.CLS:       self._op_cls,
            Op.RET:       self._op_ret,
            Op.JP:        self._op_jp,
            Op.CALL:      self._op_call,
            Op.JP_V0:     self._op_jp_v0,

            # ── Conditional skips ──
            Op.SE_BYTE:   self._op_se_byte,
            Op.SNE_BYTE:  self._op_sne_byte,
            Op.SE_REG:    self._op_se_reg,
            Op.SNE_REG:   self._op_sne_reg,
            Op.SKP:       self._op_skp,
            Op.SKNP:      self._op_sknp,

            # ── Load / arithmetic ──
            Op.LD_BYTE:   self._op_ld_byte,
            Op.ADD_BYTE:  self._op_add_byte,
            Op.LD_REG:    self._op_ld_reg,
            Op.OR:        self._op_or,
            Op.AND:       self._op_and,
            Op.XOR:       self._op_xor,
            Op.ADD_REG:   self._op_add_reg,
            Op.SUB:       self._op_sub,
            Op.SHR:       self._op_shr,
            Op.SUBN:      self._op_subn,
            Op.SHL:       self._op_shl,
            Op.RND:       self._op_rnd,

            # ── Address register / memory ──
            Op.LD_I:      self._op_ld_i,
            Op.ADD_I:     self._op_add_i,
            Op.LD_F:      self._op_ld_f,
            Op.LD_B:      self._op_ld_b,
            Op.LD_MEM_VX: self._op_ld_mem_vx,
            Op.LD_VX_MEM: self._op_ld_vx_mem,

            # ── Display ──
            Op.DRW:       self._op_drw,

            # ── Timers / input ──
            Op.LD_VX_DT:  self._op_ld_vx_dt,
            Op.LD_DT_VX:  self._op_ld_dt_vx,
            Op.LD_ST_VX:  self._op_ld_st_vx,
            Op.LD_VX_K:   self._op_ld_vx_k,
        }

    # ── System / flow ──

    def _op_sys(self, regs, mem, ins):
        """0nnn: machine-code call on the original hardware; ignored."""
        log.debug("SYS $%03X ignored at $%03X", ins.nnn, (regs.PC - 2) & 0xFFFF)

    def _op_cls(self, regs, mem, ins):
        mem.clear_screen()

    def _op_ret(self, regs, mem, ins):
        regs.PC = mem.pop_call(regs)

    def _op_jp(self, regs, mem, ins):
        regs.PC = ins.nnn & 0x0FFF

    def _op_call(self, regs, mem, ins):
        mem.push_call(regs, regs.PC)
        regs.PC = ins.nnn

    def _op_jp_v0(self, regs, mem, ins):
        regs.PC = regs.V[0] + (ins.nnn & 0x0FFF)

    # ── Conditional skips ──

    @staticmethod
    def _skip_if(regs, condition: bool):
        if condition:
            regs.PC = (regs.PC + 2) & 0xFFFF

    def _op_se_byte(self, regs, mem, ins):
        self._skip_if(regs, regs.V[ins.x] == ins.kk)

    def _op_sne_byte(self, regs, mem, ins):
        self._skip_if(regs, regs.V[ins.x] != ins.kk)

    def _op_se_reg(self, regs, mem, ins):
        self._skip_if(regs, regs.V[ins.x] == regs.V[ins.y])

    def _op_sne_reg(self, regs, mem, ins):
        self._skip_if(regs, regs.V[ins.x] != regs.V[ins.y])

    def _op_skp(self, regs, mem, ins):
        self._skip_if(regs, self.keypad.is_pressed(regs.V[ins.x] & 0xF))

    def _op_sknp(self, regs, mem, ins):
        self._skip_if(regs, not self.keypad.is_pressed(regs.V[ins.x] & 0xF))

    # ── Load / arithmetic ──

    def _op_ld_byte(self, regs, mem, ins):
        regs.V[ins.x] = ins.kk

    def _op_add_byte(self, regs, mem, ins):
        regs.V[ins.x] = alu.add_wrap8(regs.V[ins.x], ins.kk)

    def _op_ld_reg(self, regs, mem, ins):
        regs.V[ins.x] = regs.V[ins.y]

    def _op_or(self, regs, mem, ins):
        regs.V[ins.x] = regs.V[ins.x] | regs.V[ins.y]

    def _op_and(self, regs, mem, ins):
        regs.V[ins.x] = regs.V[ins.x] & regs.V[ins.y]

    def _op_xor(self, regs, mem, ins):
        regs.V[ins.x] = regs.V[ins.x] ^ regs.V[ins.y]

    def _op_add_reg(self, regs, mem, ins):
        result, carry = alu.add8(regs.V[ins.x], regs.V[ins.y])
        regs.V[ins.x] = result
        regs.V[VF] = carry

    def _op_sub(self, regs, mem, ins):
        result, not_borrow = alu.sub8(regs.V[ins.x], regs.V[ins.y])
        regs.V[ins.x] = result
        regs.V[VF] = not_borrow

    def _op_subn(self, regs, mem, ins):
        result, not_borrow = alu.sub8(regs.V[ins.y], regs.V[ins.x])
        regs.V[ins.x] = result
        regs.V[VF] = not_borrow

    def _shift_source(self, regs, ins) -> int:
        return regs.V[ins.y] if self.shift_uses_vy else regs.V[ins.x]

    def _op_shr(self, regs, mem, ins):
        result, bit = alu.shr8(self._shift_source(regs, ins))
        regs.V[ins.x] = result
        regs.V[VF] = bit

    def _op_shl(self, regs, mem, ins):
        result, bit = alu.shl8(self._shift_source(regs, ins))
        regs.V[ins.x] = result
        regs.V[VF] = bit

    def _op_rnd(self, regs, mem, ins):
        regs.V[ins.x] = self.rng.randrange(256) & ins.kk

    # ── Address register / memory ──

    def _op_ld_i(self, regs, mem, ins):
        regs.I = ins.nnn

    def _op_add_i(self, regs, mem, ins):
        regs.I = (regs.I + regs.V[ins.x]) & 0xFFFF

    def _op_ld_f(self, regs, mem, ins):
        regs.I = FONT_BASE + FONT_GLYPH_SIZE * (regs.V[ins.x] & 0xF)

    def _op_ld_b(self, regs, mem, ins):
        hundreds, tens, units = alu.bcd(regs.V[ins.x])
        mem.write(regs.I, hundreds)
        mem.write(regs.I + 1, tens)
        mem.write(regs.I + 2, units)

    def _op_ld_mem_vx(self, regs, mem, ins):
        """Fx55: store V0..Vx (inclusive) at I.. ; I is left unchanged."""
        for reg in range(ins.x + 1):
            mem.write(regs.I + reg, regs.V[reg])

    def _op_ld_vx_mem(self, regs, mem, ins):
        """Fx65: load V0..Vx (inclusive) from I.. ; I is left unchanged."""
        for reg in range(ins.x + 1):
            regs.V[reg] = mem.read(regs.I + reg)

    # ── Display ──

    def _op_drw(self, regs, mem, ins):
        """Dxyn: XOR an n-row sprite from [I] onto the screen at (Vx, Vy).

        Coordinates wrap on both axes. VF = 1 if any lit pixel was turned
        off anywhere in the sprite, else 0.
        """
        origin_x = regs.V[ins.x]
        origin_y = regs.V[ins.y]
        collision = 0
        for row in range(ins.n):
            sprite_byte = mem.read(regs.I + row)
            y = (origin_y + row) % SCREEN_HEIGHT
            for col in range(8):
                if not sprite_byte & (0x80 >> col):
                    continue
                x = (origin_x + col) % SCREEN_WIDTH
                if mem.get_pixel(x, y):
                    collision = 1
                    mem.set_pixel(x, y, False)
                else:
                    mem.set_pixel(x, y, True)
        regs.V[VF] = collision
        mem.dirty = True

    # ── Timers / input ──

    def _op_ld_vx_dt(self, regs, mem, ins):
        regs.V[ins.x] = regs.DT

    def _op_ld_dt_vx(self, regs, mem, ins):
        regs.DT = regs.V[ins.x]

    def _op_ld_st_vx(self, regs, mem, ins):
        regs.ST = regs.V[ins.x]

    def _op_ld_vx_k(self, regs, mem, ins):
        """Fx0A: blocks the interpreter until a key is down."""
        log.debug("Waiting for key into V%X", ins.x)
        regs.V[ins.x] = self.keypad.wait_for_key() & 0xF
