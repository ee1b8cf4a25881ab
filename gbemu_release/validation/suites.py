# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The two validation suites: case enumeration and how one case is run.

cpu_instrs (trace-log comparison)
    ids 01..11. The emulator runs the ROM and writes its CPU trace to
    <logs>/doctor_<id>.log, then gameboy-doctor checks that log against
    its reference trace for the same ROM:

        <trace command> <rom>               > <logs>/doctor_<id>.log
        <gameboy-doctor> <logs>/doctor_<id>.log cpu_instrs <id>

sm83 (single-step vectors)
    ids 00..ff. Each present <tools>/sm83/v1/<id>.json is fed to the step
    command. Opcodes without a vector file (the illegal ones and the CB
    prefix) are simply not enumerated.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Sequence

from gbemu_release.config.schema import ValidationConfig
from gbemu_release.logging.logger import get_logger
from gbemu_release.utils.paths import ensure_directory, resolve_path
from gbemu_release.utils.process import run_command
from gbemu_release.validation.models import TestCase, TestResult

logger = get_logger(__name__)

CPU_INSTRS_SUITE = "cpu_instrs"
SM83_SUITE = "sm83"

CPU_INSTRS_IDS: tuple[str, ...] = tuple(f"{i:02d}" for i in range(1, 12))
SM83_IDS: tuple[str, ...] = tuple(f"{i:02x}" for i in range(256))


@dataclass(frozen=True)
class ValidationPaths:
    root: Path
    roms: Path
    logs: Path
    tools: Path

    @classmethod
    def from_config(cls, config: ValidationConfig, workspace: Path) -> "ValidationPaths":
        root = resolve_path(workspace, config.root_directory)
        return cls(
            root=root,
            roms=resolve_path(root, config.roms_directory),
            logs=resolve_path(root, config.logs_directory),
            tools=resolve_path(root, config.tools_directory),
        )

    @property
    def cpu_instrs_roms(self) -> Path:
        return self.roms / "blargg" / "cpu_instrs" / "individual"

    @property
    def sm83_vectors(self) -> Path:
        return self.tools / "sm83" / "v1"

    @property
    def gameboy_doctor_repo(self) -> Path:
        return self.tools / "gameboy-doctor"

    @property
    def sm83_repo(self) -> Path:
        return self.tools / "sm83"


def resolve_doctor_command(command: Sequence[str], root: Path) -> list[str]:
    """
    Resolve a relative executable path (anything with a separator) under root.

    Bare program names like `python3` are left for PATH lookup.
    """
    executable, *rest = command
    if ("/" in executable or "\\" in executable) and not Path(executable).is_absolute():
        executable = str(root / executable)
    return [executable, *rest]


def find_cpu_instrs_rom(roms_dir: Path, case_id: str) -> Optional[Path]:
    """The `<id>-*.gb` ROM for a case, or None. First match by name if several."""
    matches = sorted(roms_dir.glob(f"{case_id}-*.gb"))
    return matches[0] if matches else None


def cpu_instrs_cases(roms_dir: Path) -> Iterator[TestCase]:
    """
    Cases 01..11. A missing ROM is still enumerated (input_path None) so that
    it shows up as a failure instead of silently shrinking the suite.
    """
    for case_id in CPU_INSTRS_IDS:
        yield TestCase(id=case_id, input_path=find_cpu_instrs_rom(roms_dir, case_id))


def sm83_cases(vectors_dir: Path) -> Iterator[TestCase]:
    """Cases 00..ff for which a vector file exists."""
    for case_id in SM83_IDS:
        vector = vectors_dir / f"{case_id}.json"
        if not vector.is_file():
            logger.debug("No vector file, skipping", extra={"case": case_id})
            continue
        yield TestCase(id=case_id, input_path=vector)


class TraceLogComparison:
    """Runs one cpu_instrs case: emit the trace log, then have gameboy-doctor check it."""

    def __init__(
        self,
        trace_command: Sequence[str],
        doctor_command: Sequence[str],
        logs_dir: Path,
        timeout_seconds: float = 600,
        cwd: Optional[Path] = None,
    ) -> None:
        self.trace_command = list(trace_command)
        self.doctor_command = list(doctor_command)
        self.logs_dir = logs_dir
        self.timeout_seconds = timeout_seconds
        self.cwd = cwd

    def log_path(self, case_id: str) -> Path:
        return self.logs_dir / f"doctor_{case_id}.log"

    def __call__(self, case: TestCase) -> TestResult:
        if case.input_path is None:
            logger.error("ROM not found", extra={"case": case.id})
            return TestResult(case_id=case.id, passed=False, exit_code=-1, detail="rom not found")

        ensure_directory(self.logs_dir)
        log_path = self.log_path(case.id)

        trace = run_command(
            [*self.trace_command, str(case.input_path)],
            timeout_seconds=self.timeout_seconds,
            cwd=self.cwd,
            stdout_path=log_path,
        )
        if not trace.success:
            # A crashed or timed-out trace still leaves a partial log, which
            # gameboy-doctor would report as the first diverging line.
            logger.warning(
                "Trace command failed, checking partial log",
                extra={"case": case.id, "exit_code": trace.exit_code},
            )

        check = run_command(
            [*self.doctor_command, str(log_path), CPU_INSTRS_SUITE, case.id],
            timeout_seconds=self.timeout_seconds,
            cwd=self.cwd,
        )
        detail = (check.stdout.strip() or check.stderr.strip()).splitlines()
        return TestResult(
            case_id=case.id,
            passed=check.success,
            exit_code=check.exit_code,
            detail=detail[-1] if detail else "",
        )


class SingleStepComparison:
    """Runs one SM83 vector file through the step command."""

    def __init__(
        self,
        step_command: Sequence[str],
        timeout_seconds: float = 600,
        cwd: Optional[Path] = None,
    ) -> None:
        self.step_command = list(step_command)
        self.timeout_seconds = timeout_seconds
        self.cwd = cwd

    def __call__(self, case: TestCase) -> TestResult:
        result = run_command(
            [*self.step_command, str(case.input_path)],
            timeout_seconds=self.timeout_seconds,
            cwd=self.cwd,
        )
        stderr = result.stderr.strip().splitlines()
        return TestResult(
            case_id=case.id,
            passed=result.success,
            exit_code=result.exit_code,
            detail=stderr[-1] if stderr and not result.success else "",
        )
