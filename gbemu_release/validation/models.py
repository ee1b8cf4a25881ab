# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Data models for validation runs.

The Test* names would be collected by pytest when imported into a test
module, hence the __test__ markers.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class TestCase:
    """One enumerated case: an id and the file it runs on, if any."""

    __test__ = False

    id: str
    input_path: Optional[Path] = None


@dataclass(frozen=True)
class TestResult:
    __test__ = False

    case_id: str
    passed: bool
    exit_code: int
    detail: str = ""


@dataclass(frozen=True)
class TestRunSummary:
    """
    Every result of one suite run, in enumeration order.

    stopped_early is set when fail-fast cut the run short, so a reader can
    tell "10 passed, 1 failed" from "1 failed, 10 never ran".
    """

    __test__ = False

    suite: str
    results: list[TestResult] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def failing_ids(self) -> list[str]:
        return [result.case_id for result in self.results if not result.passed]

    @property
    def passed(self) -> bool:
        return not self.failing_ids

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1
