# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
gbemu-release: build, ship, and verify the gbemu emulator.

Two independent halves live here:
  - release: version resolution, nightly change detection, cleanup of the
    previous nightly, the per-platform build matrix, and publication
  - validation: the reference-corpus harness (gameboy-doctor trace logs and
    SM83 single-step vectors)

Nothing in this package knows how the emulator works. It only drives cargo,
git, GitHub, and the doctor binaries, and reports what happened.
"""

__version__ = "0.1.0"
