# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI smoke tests.

CLI tests must verify:
  - commands execute
  - exit codes are correct
  - help text exists

We use subprocess to test the actual CLI entrypoint the way a user would.
This catches issues that unit tests miss, like broken imports or entrypoint
registration.
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _run_cli(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    """Run `gbemu-release` with the given arguments and capture output."""
    process_env = {k: v for k, v in os.environ.items() if not k.startswith("GITHUB_")}
    process_env.pop("EXIT_ON_FIRST_FAILED", None)
    if env:
        process_env.update(env)
    return subprocess.run(
        [sys.executable, "-m", "gbemu_release.cli.main", *args],
        capture_output=True,
        text=True,
        timeout=60,
        cwd=PROJECT_ROOT,
        env=process_env,
    )


def _outputs(stdout: str) -> dict[str, str]:
    pairs = {}
    for line in stdout.splitlines():
        key, _, value = line.partition("=")
        pairs[key] = value
    return pairs


class TestHelpTexts:
    """Every subcommand must have working --help output."""

    @pytest.mark.parametrize(
        "subcommand",
        [
            "version", "changes", "cleanup", "build", "publish",
            "nightly", "release", "doctor", "sm83", "setup",
        ],
    )
    def test_subcommand_help_exits_zero(self, subcommand: str) -> None:
        result = _run_cli(subcommand, "--help")
        assert result.returncode == 0
        assert subcommand in result.stdout.lower() or "usage" in result.stdout.lower()

    def test_root_help_exits_with_user_error(self) -> None:
        """Running gbemu-release with no args should show help and exit with USER_ERROR (1)."""
        result = _run_cli()
        assert result.returncode == 1


class TestConfigLoading:
    """Subcommands should handle config loading failures gracefully."""

    def test_nonexistent_config_returns_config_error(self) -> None:
        result = _run_cli("version", "--nightly", "--config", "/nonexistent/path.yaml")
        assert result.returncode == 2  # CONFIG_ERROR

    def test_schema_violation_returns_config_error(self, invalid_config_file) -> None:  # type: ignore[no-untyped-def]
        result = _run_cli("version", "--nightly", "--config", str(invalid_config_file))
        assert result.returncode == 2

    def test_broken_yaml_returns_config_error(self, broken_yaml_file) -> None:  # type: ignore[no-untyped-def]
        result = _run_cli("setup", "--dry-run", "--config", str(broken_yaml_file))
        assert result.returncode == 2

    def test_valid_config_is_accepted(self, tmp_config_file) -> None:  # type: ignore[no-untyped-def]
        result = _run_cli("version", "--nightly", "--config", str(tmp_config_file))
        assert result.returncode == 0


class TestVersion:
    def test_nightly_outputs(self) -> None:
        result = _run_cli("version", "--nightly")

        assert result.returncode == 0
        outputs = _outputs(result.stdout)
        assert outputs["version"].startswith("nightly-")
        assert len(outputs["version"]) == len("nightly-20240115")
        assert outputs["release_name"].startswith("Nightly Build ")
        assert outputs["prerelease"] == "true"

    def test_stdout_holds_only_outputs_and_logs_go_to_stderr(self) -> None:
        result = _run_cli("version", "--nightly", "--log-level", "DEBUG")

        assert result.returncode == 0
        assert all("=" in line and not line.startswith("{") for line in result.stdout.splitlines())
        log_lines = [json.loads(line) for line in result.stderr.splitlines() if line.startswith("{")]
        assert log_lines
        assert all({"ts", "level", "module", "msg"} <= set(entry) for entry in log_lines)

    def test_unreadable_metadata_is_a_runtime_error(self, tmp_path: Path) -> None:
        result = _run_cli(
            "version", "--trigger", "tag", "--tag", "1.2.0", "--workspace", str(tmp_path)
        )
        assert result.returncode == 3  # RUNTIME_ERROR
        assert "version=" not in result.stdout


class TestReleaseCommands:
    def test_cleanup_without_repository_is_a_user_error(self, tmp_path: Path) -> None:
        result = _run_cli("cleanup", "--workspace", str(tmp_path))
        assert result.returncode == 1

    def test_build_dry_run(self, tmp_path: Path) -> None:
        result = _run_cli(
            "build", "--dry-run", "--version", "1.2.0", "--target", "macOS-aarch64",
            "--workspace", str(tmp_path),
        )
        assert result.returncode == 0
        assert "Dry run: would build targets" in result.stderr
        assert not (tmp_path / "dist").exists()

    def test_unknown_target_rejected(self) -> None:
        result = _run_cli("build", "--version", "1.2.0", "--target", "amiga-68k")
        assert result.returncode != 0
        assert "invalid choice" in result.stderr

    def test_nightly_dry_run_prints_plan(self, tmp_path: Path) -> None:
        result = _run_cli(
            "nightly", "--dry-run", "--repository", "owner/gbemu", "--workspace", str(tmp_path)
        )
        assert result.returncode == 0
        assert '"plan": ["prepare", "check_changes", "cleanup_previous", "build", "publish"]' in result.stderr

    def test_release_dry_run_prints_plan(self, tmp_path: Path) -> None:
        result = _run_cli(
            "release", "--dry-run", "--repository", "owner/gbemu",
            "--trigger", "tag", "--tag", "1.2.0", "--workspace", str(tmp_path),
        )
        assert result.returncode == 0
        assert '"plan": ["metadata", "build", "publish"]' in result.stderr

    def test_publish_dry_run_with_empty_store(self, tmp_path: Path) -> None:
        result = _run_cli(
            "publish", "--dry-run", "--repository", "owner/gbemu", "--version", "1.2.0",
            "--run-id", "5", "--workspace", str(tmp_path),
        )
        assert result.returncode == 0
        assert "No artifacts found for run" in result.stderr

    def test_setup_dry_run_touches_nothing(self, tmp_path: Path) -> None:
        result = _run_cli("setup", "--dry-run", "--workspace", str(tmp_path))
        assert result.returncode == 0
        assert list(tmp_path.iterdir()) == []
