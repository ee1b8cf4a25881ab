# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the suite loop and the fail-fast setting.
"""

import pytest

from gbemu_release.validation.harness import resolve_exit_on_first_failed, run_suite
from gbemu_release.validation.models import TestCase, TestResult


def _cases(*ids: str) -> list[TestCase]:
    return [TestCase(id=case_id) for case_id in ids]


def _failing(*ids: str):  # type: ignore[no-untyped-def]
    ran: list[str] = []

    def run_case(case: TestCase) -> TestResult:
        ran.append(case.id)
        passed = case.id not in ids
        return TestResult(case_id=case.id, passed=passed, exit_code=0 if passed else 1)

    return run_case, ran


class TestRunSuite:
    def test_all_cases_run_without_fail_fast(self) -> None:
        run_case, ran = _failing("03", "07")

        summary = run_suite("cpu_instrs", _cases("01", "03", "05", "07", "09"), run_case)

        assert ran == ["01", "03", "05", "07", "09"]
        assert summary.failing_ids == ["03", "07"]
        assert summary.exit_code == 1
        assert not summary.stopped_early

    def test_fail_fast_stops_after_first_failure(self) -> None:
        run_case, ran = _failing("03", "07")

        summary = run_suite(
            "cpu_instrs", _cases("01", "03", "05", "07"), run_case, exit_on_first_failed=True
        )

        assert ran == ["01", "03"]
        assert summary.failing_ids == ["03"]
        assert summary.stopped_early

    def test_fail_fast_without_failures_runs_everything(self) -> None:
        run_case, ran = _failing()

        summary = run_suite("sm83", _cases("00", "01"), run_case, exit_on_first_failed=True)

        assert ran == ["00", "01"]
        assert summary.passed
        assert summary.exit_code == 0
        assert not summary.stopped_early

    def test_raising_case_is_recorded_as_failure(self) -> None:
        def run_case(case: TestCase) -> TestResult:
            if case.id == "02":
                raise OSError("emulator vanished")
            return TestResult(case_id=case.id, passed=True, exit_code=0)

        summary = run_suite("sm83", _cases("01", "02", "03"), run_case)

        assert summary.failing_ids == ["02"]
        failed = summary.results[1]
        assert failed.exit_code == -1
        assert failed.detail == "emulator vanished"
        assert len(summary.results) == 3

    def test_empty_suite_passes(self) -> None:
        summary = run_suite("sm83", [], lambda case: TestResult(case.id, True, 0))
        assert summary.passed
        assert summary.results == []


class TestFailFastResolution:
    def test_flag_wins(self) -> None:
        assert resolve_exit_on_first_failed(False, True, {"EXIT_ON_FIRST_FAILED": "1"}) is False
        assert resolve_exit_on_first_failed(True, False, {}) is True

    @pytest.mark.parametrize("raw", ["1", "true", "YES", "on", "anything"])
    def test_env_truthy(self, raw: str) -> None:
        assert resolve_exit_on_first_failed(None, False, {"EXIT_ON_FIRST_FAILED": raw}) is True

    @pytest.mark.parametrize("raw", ["", "0", "false", "No", " off "])
    def test_env_falsy(self, raw: str) -> None:
        assert resolve_exit_on_first_failed(None, True, {"EXIT_ON_FIRST_FAILED": raw}) is False

    def test_config_when_unset(self) -> None:
        assert resolve_exit_on_first_failed(None, True, {}) is True
        assert resolve_exit_on_first_failed(None, False, {}) is False

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXIT_ON_FIRST_FAILED", "1")
        assert resolve_exit_on_first_failed(None, False) is True
