# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The fixed set of platforms gbemu ships for.

Each member carries everything derived from it, computed once: the
executable suffix, the archive format, the runner class it was built for.
Nothing downstream re-derives those from string matches on the triple.
"""

from enum import Enum


class ArchiveFormat(str, Enum):
    """Compressed archive flavours. The value is the file suffix."""

    TAR_GZ = ".tar.gz"
    ZIP = ".zip"

    @property
    def suffix(self) -> str:
        return self.value


class PlatformTarget(Enum):
    """
    One OS/architecture build configuration.

    Value tuple: (name, runner OS class, target triple). The name ends up in
    archive file names, so it must never change for an existing platform.
    """

    LINUX_X86_64_GNU = ("linux-x86_64-gnu", "ubuntu-22.04", "x86_64-unknown-linux-gnu")
    WINDOWS_X86_64_MSVC = ("windows-x86_64-msvc", "windows-latest", "x86_64-pc-windows-msvc")
    MACOS_X86_64 = ("macOS-x86_64", "macOS-latest", "x86_64-apple-darwin")
    MACOS_AARCH64 = ("macOS-aarch64", "macOS-latest", "aarch64-apple-darwin")

    def __init__(self, platform_name: str, runner: str, triple: str) -> None:
        self.platform_name = platform_name
        self.runner = runner
        self.triple = triple
        self.exe_suffix = ".exe" if "-pc-windows-" in triple else ""
        self.archive_format = (
            ArchiveFormat.TAR_GZ if "linux" in platform_name else ArchiveFormat.ZIP
        )

    @property
    def archive_suffix(self) -> str:
        return self.archive_format.suffix

    def binary_filename(self, binary: str) -> str:
        """The on-disk file name of a binary built for this target."""
        return f"{binary}{self.exe_suffix}"

    @classmethod
    def from_name(cls, name: str) -> "PlatformTarget":
        """
        Look a target up by its platform name.

        Raises:
            ValueError: If the name isn't one of the supported platforms.
        """
        for target in cls:
            if target.platform_name == name:
                return target
        known = ", ".join(t.platform_name for t in cls)
        raise ValueError(f"Unknown platform target '{name}'. Known targets: {known}")


ALL_TARGETS: tuple[PlatformTarget, ...] = tuple(PlatformTarget)
