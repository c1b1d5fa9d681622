#!/usr/bin/env python3
"""
chip8kit — CHIP-8 Virtual Machine Toolkit
=========================================

One CLI for everything:
    chip8kit run     — Run a ROM in the terminal (or headless)
    chip8kit disasm  — Disassemble a ROM to CHIP-8 mnemonics
    chip8kit info    — ROM summary and opcode histogram

Usage:
    python chip8kit.py <command> [options]
    python chip8kit.py --help
    python chip8kit.py <command> --help

Examples:
    python chip8kit.py run roms/PONG
    python chip8kit.py run roms/PONG --hz 700 --shift-vy
    python chip8kit.py run roms/TEST --headless --cycles 5000 -v
    python chip8kit.py disasm roms/PONG -o pong.lst
    python chip8kit.py info roms/PONG

Keys (run):
    1 2 3 4        1 2 3 C
    Q W E R   ->   4 5 6 D
    A S D F        7 8 9 E
    Z X C V        A 0 B F        Esc quits

Esc is only checked between instructions. While a ROM waits for a key
(LD Vx, K) the machine is stalled and only Ctrl-C exits.
"""

import argparse
import logging
import sys
import os

__version__ = "1.0.0"

# Ensure our package is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from chip8_virtual_emulator.config import DEFAULT_CPU_HZ, MAX_ROM_SIZE, PROGRAM_START, MachineConfig
from chip8_virtual_emulator.log_setup import setup_logging


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="chip8kit",
        description="CHIP-8 Toolkit — run, disassemble, inspect ROMs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  run        Run a ROM (terminal display + keyboard, or headless)
  disasm     Disassemble a ROM to CHIP-8 mnemonics
  info       Summarize a ROM file
""",
    )
    parser.add_argument("--version", action="version", version=f"chip8kit {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Run a ROM")
    p_run.add_argument("input", help="ROM file")
    p_run.add_argument("--hz", type=int, default=DEFAULT_CPU_HZ,
                       help=f"CPU clock in instructions/second (default {DEFAULT_CPU_HZ})")
    p_run.add_argument("--cycles", type=int, default=None,
                       help="Stop after N instructions (default: run until Esc; "
                            "Esc is ignored during a key wait, use Ctrl-C)")
    p_run.add_argument("--headless", action="store_true",
                       help="No terminal display, keyboard or bell")
    p_run.add_argument("--shift-vy", action="store_true",
                       help="SHR/SHL shift Vy into Vx (COSMAC VIP behaviour)")
    p_run.add_argument("--seed", type=int, default=None, help="Seed for RND")
    p_run.add_argument("--log-dir", default=None, help="Also write a debug log file here")
    p_run.add_argument("--verbose", "-v", action="store_true",
                       help="Show INFO messages and a final register dump")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble a ROM")
    p_dis.add_argument("input", help="ROM file")
    p_dis.add_argument("--base", default=None,
                       help=f"Load address (hex, default ${PROGRAM_START:03X})")
    p_dis.add_argument("-o", "--output", help="Output file (default: stdout)")

    # ── info ─────────────────────────────────────────────────────────────
    p_info = sub.add_parser("info", help="Summarize a ROM file")
    p_info.add_argument("input", help="ROM file")

    # ── Parse and dispatch ───────────────────────────────────────────────
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(0)

    try:
        handler = COMMANDS[args.command]
        return handler(args)
    except KeyError:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError:
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def _parse_hex(s):
    """Parse hex string with optional 0x or $ prefix."""
    if s is None:
        return None
    s = s.strip()
    if s.startswith("0x") or s.startswith("0X"):
        return int(s, 16)
    if s.startswith("$"):
        return int(s[1:], 16)
    return int(s, 16)


def _read_rom(path):
    with open(path, "rb") as f:
        return f.read()


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args):
    from chip8_virtual_emulator.emu import Chip8Emulator
    from chip8_virtual_emulator.periph.display import NullDisplay, TerminalDisplay
    from chip8_virtual_emulator.periph.keypad import Keypad
    from chip8_virtual_emulator.periph.sound import BellTone, NullTone
    from chip8_virtual_emulator.periph.terminal_input import TerminalKeySource

    setup_logging(
        console_level=logging.INFO if args.verbose else logging.WARNING,
        log_dir=args.log_dir,
    )
    config = MachineConfig(cpu_hz=args.hz, shift_uses_vy=args.shift_vy, seed=args.seed)
    rom = _read_rom(args.input)

    keypad = Keypad()
    if args.headless:
        display, tone, keys = NullDisplay(), NullTone(), None
    else:
        display, tone = TerminalDisplay(title=os.path.basename(args.input)), BellTone()
        keys = TerminalKeySource(keypad)

    emu = Chip8Emulator(config, display=display, tone=tone, keypad=keypad)
    emu.load_rom(rom)

    until = None
    if keys is not None:
        keys.start()
        until = keys.quit_requested.is_set
    try:
        executed = emu.run(max_cycles=args.cycles, until=until)
    except KeyboardInterrupt:
        executed = emu.regs.cycles
    finally:
        if keys is not None:
            keys.stop()
        tone.close()
        display.close()

    if args.verbose or args.headless:
        print(f"Executed {executed:,} instructions "
              f"({emu.unknown_count} unknown, {emu.mem.fault_count} out-of-range)")
        print(emu.regs.display())
    if args.headless and args.verbose:
        print(emu.mem.render_text())


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args):
    from chip8_virtual_emulator.tools.disassembler import Chip8Disassembler

    data = _read_rom(args.input)
    base = _parse_hex(args.base)
    if base is None:
        base = PROGRAM_START

    lines = [r.format() for r in Chip8Disassembler().disassemble(data, base)]

    output = "\n".join(lines)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        print(f"Disassembled {len(data)} bytes -> {args.output}")
    else:
        print(output)


# ── info ─────────────────────────────────────────────────────────────────
def cmd_info(args):
    import hashlib
    from chip8_virtual_emulator.tools.disassembler import Chip8Disassembler

    data = _read_rom(args.input)
    md5 = hashlib.md5(data).hexdigest()
    size = len(data)

    print(f"File:     {args.input}")
    print(f"Size:     {size} bytes")
    print(f"MD5:      {md5}")
    if size > MAX_ROM_SIZE:
        print(f"Fit:      TOO LARGE by {size - MAX_ROM_SIZE} bytes "
              f"(program area ${PROGRAM_START:03X}-$FFF holds {MAX_ROM_SIZE})")
    else:
        print(f"Fit:      OK ({MAX_ROM_SIZE - size} bytes free)")
    if size % 2:
        print("Note:     odd length, last byte is data")

    dis = Chip8Disassembler(annotate=False)
    results = dis.disassemble(data)
    words = [r for r in results if r.length == 2]
    data_words = sum(1 for r in words if r.is_data)
    print(f"Words:    {len(words)} ({data_words} not decodable as instructions)")
    print("Opcodes:")
    for mnemonic, count in dis.histogram(results).items():
        print(f"  {mnemonic:5s} {count:5d}")


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND DISPATCH TABLE
# ═════════════════════════════════════════════════════════════════════════════

COMMANDS = {
    "run": cmd_run,
    "disasm": cmd_disasm,
    "info": cmd_info,
}


if __name__ == "__main__":
    main()
