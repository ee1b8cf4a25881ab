# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release subsystem for gbemu.

Subsystems:
  - versioning: tagged and nightly version resolution
  - changes: "is there anything new since the last nightly?"
  - cleanup: removing the previous nightly release and tag
  - build: cargo builds per platform and the parallel build matrix
  - packaging: archive staging and compression
  - publishing: the per-run artifact store and release publication
  - hosting: git and GitHub adapters
  - pipeline: the stage graph and the nightly / tagged flows

Every stable release must trace back to an exact, reviewed package version.
Nightly releases are synthetic and there is only ever one of them.
"""
