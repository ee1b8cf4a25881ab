# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Cross-compilation of the gbemu workspace for one platform target.

Every unit runs the same two steps:

    rustup target add <triple>                                (optional)
    cargo build --locked --release --all-targets --target <triple>

cargo serialises concurrent builds on the shared target directory lock, so
several units may be in flight but only one compiles at a time on a single
host. That's fine; on CI each unit gets its own runner anyway.
"""

from dataclasses import dataclass
from pathlib import Path

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.exceptions import BuildError
from gbemu_release.release.platforms import PlatformTarget
from gbemu_release.utils.process import run_command

logger = get_logger(__name__)


@dataclass(frozen=True)
class BuildOutput:
    """Where the compiled binaries for one target ended up."""

    target: PlatformTarget
    release_dir: Path
    gui_binary: Path
    terminal_binary: Path


class CargoBuilder:
    def __init__(
        self,
        workspace: Path,
        gui_binary: str = "gbemu-iced",
        terminal_binary: str = "gbemu-term",
        timeout_seconds: float = 3600,
        locked: bool = True,
        install_targets: bool = True,
    ) -> None:
        self.workspace = workspace
        self.gui_binary = gui_binary
        self.terminal_binary = terminal_binary
        self.timeout_seconds = timeout_seconds
        self.locked = locked
        self.install_targets = install_targets

    def build_command(self, target: PlatformTarget) -> list[str]:
        command = ["cargo", "build"]
        if self.locked:
            command.append("--locked")
        command += ["--release", "--all-targets", "--target", target.triple]
        return command

    def output_for(self, target: PlatformTarget) -> BuildOutput:
        release_dir = self.workspace / "target" / target.triple / "release"
        return BuildOutput(
            target=target,
            release_dir=release_dir,
            gui_binary=release_dir / target.binary_filename(self.gui_binary),
            terminal_binary=release_dir / target.binary_filename(self.terminal_binary),
        )

    def build(self, target: PlatformTarget) -> BuildOutput:
        """
        Compile the workspace for a target.

        Raises:
            BuildError: If rustup or cargo fails, times out, or isn't installed.
        """
        if self.install_targets:
            result = run_command(
                ["rustup", "target", "add", target.triple],
                timeout_seconds=self.timeout_seconds,
                cwd=self.workspace,
            )
            if not result.success:
                raise BuildError(
                    f"rustup target add {target.triple} failed "
                    f"(exit {result.exit_code}): {result.stderr.strip()}"
                )

        logger.info(
            "Building target",
            extra={"target": target.platform_name, "triple": target.triple},
        )
        result = run_command(
            self.build_command(target),
            timeout_seconds=self.timeout_seconds,
            cwd=self.workspace,
        )
        if not result.success:
            # cargo prints the useful part of a compile error at the end
            tail = "\n".join(result.stderr.strip().splitlines()[-20:])
            raise BuildError(
                f"cargo build for {target.triple} failed (exit {result.exit_code}): {tail}"
            )

        logger.info(
            "Build finished",
            extra={
                "target": target.platform_name,
                "elapsed_seconds": round(result.elapsed_seconds, 1),
            },
        )
        return self.output_for(target)
