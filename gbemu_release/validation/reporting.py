# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Validation output: the console verdict and the optional JSON summary.

The console format is what CI log scrapers look for, so it stays exactly:

    (blank)
    ----------
    (blank)
    FAILED: 03 07        or        SUCCESS!!
"""

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from gbemu_release.logging.logger import get_logger
from gbemu_release.utils.filesystem import atomic_write
from gbemu_release.validation.models import TestRunSummary

logger = get_logger(__name__)

SEPARATOR = "----------"


def format_verdict(summary: TestRunSummary) -> str:
    if summary.passed:
        return "SUCCESS!!"
    return f"FAILED: {' '.join(summary.failing_ids)}"


def format_summary(summary: TestRunSummary) -> str:
    return f"\n{SEPARATOR}\n\n{format_verdict(summary)}"


def summary_to_dict(summary: TestRunSummary) -> dict[str, object]:
    return {
        "suite": summary.suite,
        "passed": summary.passed,
        "failing_ids": summary.failing_ids,
        "stopped_early": summary.stopped_early,
        "cases_run": len(summary.results),
        "results": [asdict(result) for result in summary.results],
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }


def write_summary_json(summary: TestRunSummary, path: Path) -> Path:
    """Write the summary as JSON, atomically."""
    atomic_write(path, json.dumps(summary_to_dict(summary), indent=2, sort_keys=True) + "\n")
    logger.info("Validation report written", extra={"path": str(path)})
    return path
