# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Emulation correctness validation for gbemu.

Two suites drive external reference tools over canonical test corpora:
  - cpu_instrs: Blargg's cpu_instrs ROMs, with the emulator's CPU trace
    compared line by line by gameboy-doctor
  - sm83: the SingleStepTests SM83 vectors, one JSON file per opcode

Both go through the same harness loop and produce a TestRunSummary.
"""
