"""
CHIP-8 Virtual Emulator - Main Emulator Class (scheduler)

Integrates:
  - Register file (cpu/regs.py)
  - Address space: memory, stack, framebuffer (mem/memory.py)
  - Decoder + instruction set (cpu/decoder.py, cpu/instructions.py)
  - 60 Hz frame divider (periph/timer.py)
  - Collaborators: keypad, display surface, tone generator

Execution model, one tick:
  1. Drain pending keypad events
  2. Fetch the word at PC
  3. Advance PC by 2 (before execute, so jumps/calls are not overwritten)
  4. Decode and execute
  5. On every ceil(cpu_hz/60)-th tick:
       - hand the frame to the display if the framebuffer is dirty
       - decrement DT if non-zero
       - decrement ST if non-zero, bracketed by start/stop tone signals
  6. (run() only) wait out the remainder of the tick's time budget

There is no halted state. Unknown instructions are logged and skipped,
out-of-range memory accesses are logged by the AddressSpace, and the
machine keeps running until the host stops calling step()/run().
"""

import logging
import random
from pathlib import Path
from typing import Callable, List, Optional

from .clock import CycleClock
from .config import PROGRAM_START, MachineConfig
from .cpu.decoder import Instruction, UnknownInstruction, decode, fetch_word
from .cpu.instructions import InstructionSet
from .cpu.regs import RegisterFile
from .mem.memory import AddressSpace
from .periph.display import DisplaySurface, NullDisplay
from .periph.keypad import Keypad
from .periph.sound import NullTone, ToneGenerator
from .periph.timer import FrameTimer

log = logging.getLogger(__name__)


class Chip8Emulator:
    """CHIP-8 virtual machine.

    Usage:
        emu = Chip8Emulator(MachineConfig(cpu_hz=500))
        emu.load_rom('roms/PONG')
        emu.run()                 # paced, until the process is stopped
        emu.run(max_cycles=100)   # or a bounded burst
    """

    def __init__(self, config: Optional[MachineConfig] = None,
                 display: Optional[DisplaySurface] = None,
                 tone: Optional[ToneGenerator] = None,
                 keypad: Optional[Keypad] = None,
                 rng: Optional[random.Random] = None,
                 clock: Optional[CycleClock] = None):
        self.config = config or MachineConfig()

        # Core state
        self.regs = RegisterFile()
        self.mem = AddressSpace()

        # Collaborators
        self.keypad = keypad or Keypad()
        self.display = display or NullDisplay()
        self.tone = tone or NullTone()

        if rng is None:
            rng = random.Random(self.config.seed)
        self.isa = InstructionSet(self.keypad, rng=rng,
                                  shift_uses_vy=self.config.shift_uses_vy)

        # Timing
        self.frame_timer = FrameTimer(self.config.cycles_per_frame)
        self.clock = clock or CycleClock(self.config.period_ns)

        # Diagnostics
        self.unknown_count = 0
        self._trace = False
        self._trace_output: List[str] = []
        self._report_cycles = 0
        self._report_nanos = 0

        log.info("CHIP-8 system initialized (%d Hz, %d ticks/frame)",
                 self.config.cpu_hz, self.config.cycles_per_frame)

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_rom(self, path_or_data, base_addr: int = PROGRAM_START) -> int:
        """Copy a ROM file or byte string into memory at base_addr."""
        if isinstance(path_or_data, (str, Path)):
            name = str(path_or_data)
            data = Path(path_or_data).read_bytes()
        else:
            name = "<bytes>"
            data = bytes(path_or_data)
        count = self.mem.load_binary(data, base_addr)
        log.info("ROM %s loaded at $%03X (%d bytes)", name, base_addr, count)
        return count

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[Instruction]:
        """Execute one tick. Returns the executed instruction, or None if
        the fetched word was not a valid opcode.
        """
        self.keypad.poll()

        pc = self.regs.PC
        word = fetch_word(self.mem, pc)
        self.regs.PC = (pc + 2) & 0xFFFF

        ins = None
        try:
            ins = decode(word, pc)
        except UnknownInstruction as e:
            self.unknown_count += 1
            log.warning("%s", e)
        else:
            if self._trace:
                self._trace_output.append(
                    f"${pc:03X}: {word:04X}  {ins.format():18s} {self.regs.display()}"
                )
            self.isa.execute(self.regs, self.mem, ins)

        self.regs.cycles += 1
        for _ in range(self.frame_timer.update(1)):
            self._frame()

        return ins

    def _frame(self):
        """60 Hz work: screen refresh, timer decay, buzzer."""
        if self.mem.dirty:
            self.display.present(self.mem.frame())
            self.mem.dirty = False

        if self.regs.DT > 0:
            self.regs.DT -= 1

        if self.regs.ST > 0:
            self.tone.start_tone()
            self.regs.ST -= 1
            if self.regs.ST == 0:
                self.tone.stop_tone()

    def run(self, max_cycles: Optional[int] = None,
            until: Optional[Callable[[], bool]] = None,
            paced: bool = True) -> int:
        """Run ticks back to back.

        Args:
            max_cycles: stop after this many ticks (None = no limit)
            until:      host-side predicate checked before every tick
            paced:      hold each tick to the configured clock period

        Returns:
            number of ticks executed
        """
        executed = 0
        while max_cycles is None or executed < max_cycles:
            if until is not None and until():
                break
            start = self.clock.start_tick()
            self.step()
            executed += 1
            if paced:
                self.clock.wait_for_tick_end()
            self._account(self.clock.now() - start)
        return executed

    def _account(self, elapsed_ns: int):
        """Log how long one emulated second actually took."""
        self._report_cycles += 1
        self._report_nanos += elapsed_ns
        if self._report_cycles >= self.config.cpu_hz:
            log.debug("Time to emulate %d Hz: %.3f ms",
                      self.config.cpu_hz, self._report_nanos / 1e6)
            self._report_cycles = 0
            self._report_nanos = 0

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Enable per-instruction trace capture."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """Registers, timers and screen back to power-on; memory is kept."""
        self.regs.reset()
        self.mem.clear_screen()
        self.keypad.reset()
        self.tone.stop_tone()
        self.frame_timer.reset()
        self.unknown_count = 0
        self._trace_output.clear()
