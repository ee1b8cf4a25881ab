# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The suite loop shared by every validation mode.

Cases run strictly one after another in enumeration order. Without
fail-fast every case runs and the summary lists every failure; with it the
loop stops right after the first failing case.
"""

import logging
import os
from typing import Callable, Iterable, Mapping, Optional

from gbemu_release.logging.logger import get_logger
from gbemu_release.validation.models import TestCase, TestResult, TestRunSummary

_logger: logging.Logger = get_logger(__name__)

EXIT_ON_FIRST_FAILED_ENV = "EXIT_ON_FIRST_FAILED"

_FALSE_VALUES = frozenset({"", "0", "false", "no", "off"})


def resolve_exit_on_first_failed(
    flag: Optional[bool],
    config_value: bool,
    environ: Optional[Mapping[str, str]] = None,
) -> bool:
    """
    Decide the fail-fast setting. The CLI flag wins, then the environment
    variable, then the config file.
    """
    if flag is not None:
        return flag
    env = os.environ if environ is None else environ
    raw = env.get(EXIT_ON_FIRST_FAILED_ENV)
    if raw is not None:
        return raw.strip().lower() not in _FALSE_VALUES
    return config_value


def run_suite(
    name: str,
    cases: Iterable[TestCase],
    run_case: Callable[[TestCase], TestResult],
    exit_on_first_failed: bool = False,
) -> TestRunSummary:
    """
    Run cases in order and aggregate the results.

    Args:
        name: Suite name for logs and the summary.
        cases: The enumerated cases.
        run_case: Runs one case. Expected not to raise; an exception is
            recorded as a failure of that case anyway.
        exit_on_first_failed: Stop after the first failing case.
    """
    results: list[TestResult] = []
    stopped_early = False

    _logger.info(
        "Validation suite started",
        extra={"suite": name, "exit_on_first_failed": exit_on_first_failed},
    )

    for case in cases:
        try:
            result = run_case(case)
        except Exception as err:
            _logger.error(
                "Case raised",
                extra={"suite": name, "case": case.id, "error": str(err)},
            )
            result = TestResult(case_id=case.id, passed=False, exit_code=-1, detail=str(err))

        results.append(result)
        _logger.info(
            "Case finished",
            extra={"suite": name, "case": case.id, "passed": result.passed},
        )

        if not result.passed and exit_on_first_failed:
            stopped_early = True
            break

    summary = TestRunSummary(suite=name, results=results, stopped_early=stopped_early)
    _logger.info(
        "Validation suite finished",
        extra={
            "suite": name,
            "cases_run": len(results),
            "failing": summary.failing_ids,
            "stopped_early": stopped_early,
        },
    )
    return summary
