# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subprocess runner shared by every component that shells out.

cargo, rustup, git, 7z, and the doctor binaries all go through run_command.
It runs the process under a timeout and captures its output. No shell=True
and no string commands: the argv is always a list, so nothing gets re-parsed
by a shell.

A timeout or a missing executable is never raised. Both come back as a
failed CommandResult with exit_code -1, so callers that aggregate results
(the build matrix, the validation harness) treat them exactly like a
nonzero exit. Callers that need a hard failure check `.success` and raise
their own typed error.

Output is decoded as UTF-8 with replacement characters, so a child that
prints stray bytes still yields a CommandResult.
"""

import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from gbemu_release.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """What came back from running one external command."""

    success: bool
    exit_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float


def run_command(
    argv: Sequence[str],
    timeout_seconds: float,
    cwd: Path | None = None,
    stdout_path: Path | None = None,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """
    Run an external command and capture the result.

    When stdout_path is given, standard output is streamed straight into that
    file instead of being captured. The gameboy-doctor trace for a single
    cpu_instrs ROM runs to millions of lines, which we don't want in memory.

    Args:
        argv: The command and its arguments.
        timeout_seconds: Hard limit before the process is killed.
        cwd: Working directory for the process.
        stdout_path: Optional file that receives standard output.
        env: Extra environment variables layered over os.environ.
    """
    start = time.monotonic()
    command = [str(part) for part in argv]
    process_env = dict(os.environ)
    if env:
        process_env.update(env)

    try:
        if stdout_path is not None:
            stdout_path.parent.mkdir(parents=True, exist_ok=True)
            with open(stdout_path, "w", encoding="utf-8") as stdout_file:
                result = subprocess.run(
                    command,
                    stdout=stdout_file,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    timeout=timeout_seconds,
                    cwd=str(cwd) if cwd else None,
                    env=process_env,
                )
            stdout = ""
        else:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout_seconds,
                cwd=str(cwd) if cwd else None,
                env=process_env,
            )
            stdout = result.stdout

        elapsed = time.monotonic() - start
        success = result.returncode == 0

        logger.debug(
            "Command finished",
            extra={
                "command": command[0],
                "success": success,
                "exit_code": result.returncode,
                "elapsed_seconds": round(elapsed, 3),
            },
        )

        return CommandResult(
            success=success,
            exit_code=result.returncode,
            stdout=stdout,
            stderr=result.stderr or "",
            elapsed_seconds=elapsed,
        )

    except subprocess.TimeoutExpired:
        elapsed = time.monotonic() - start
        logger.warning(
            "Command timed out",
            extra={"command": command[0], "timeout_seconds": timeout_seconds},
        )
        return CommandResult(
            success=False,
            exit_code=-1,
            stdout="",
            stderr=f"{command[0]} timed out after {timeout_seconds}s",
            elapsed_seconds=elapsed,
        )

    except FileNotFoundError:
        elapsed = time.monotonic() - start
        logger.error(
            "Executable not found",
            extra={"command": command[0]},
        )
        return CommandResult(
            success=False,
            exit_code=-1,
            stdout="",
            stderr=f"{command[0]} executable not found",
            elapsed_seconds=elapsed,
        )
