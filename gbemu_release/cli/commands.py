# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the gbemu-release CLI.

Each function here corresponds to one CLI subcommand and returns an exit
code. Progress goes through the structured logger. The only plain stdout
output is what CI consumes: `key=value` lines from `version` and `changes`
(suitable for $GITHUB_OUTPUT) and the validation verdict.
"""

import argparse
import logging
import os
from pathlib import Path
from typing import Optional

from gbemu_release.cli.exit_codes import (
    CONFIG_ERROR,
    RUNTIME_ERROR,
    SUCCESS,
    TESTS_FAILED,
    USER_ERROR,
    VALIDATION_ERROR,
)
from gbemu_release.config.exceptions import ConfigError
from gbemu_release.config.loader import default_config, load_config
from gbemu_release.config.schema import GbemuReleaseConfig
from gbemu_release.logging.logger import get_logger
from gbemu_release.release.exceptions import MetadataError, VersionMismatchError
from gbemu_release.release.platforms import PlatformTarget
from gbemu_release.release.versioning.resolver import ResolvedVersion, TriggerKind
from gbemu_release.utils.paths import resolve_path


def _load_config_and_logger(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[GbemuReleaseConfig], logging.Logger]:
    """
    The shared setup that every command needs: load config, create the logger.

    Returns a tuple of (exit_code, config, logger). If exit_code is not SUCCESS,
    the caller should return it immediately.
    """
    logger = get_logger(f"gbemu_release.cli.{command_name}", log_level=args.log_level or "INFO")

    try:
        config = load_config(Path(args.config)) if args.config is not None else default_config()
    except ConfigError as err:
        logger.error(
            "Configuration error",
            extra={"command": command_name, "error": str(err)},
        )
        return CONFIG_ERROR, None, logger

    if args.config is None:
        logger.debug("No config provided, running with defaults", extra={"command": command_name})

    log_level = args.log_level or config.global_config.log_level
    log_file = None
    if config.global_config.log_file:
        log_file = resolve_path(_workspace(args, config), config.global_config.log_file)
    try:
        logger = get_logger(
            f"gbemu_release.cli.{command_name}", log_level=log_level, log_file=log_file
        )
    except ValueError as err:
        logger.error(
            "Configuration error",
            extra={"command": command_name, "error": str(err)},
        )
        return CONFIG_ERROR, None, logger

    return SUCCESS, config, logger


def _workspace(args: argparse.Namespace, config: GbemuReleaseConfig) -> Path:
    if getattr(args, "workspace", None):
        return Path(args.workspace)
    return Path(config.project.workspace_directory)


def _run_id(args: argparse.Namespace) -> str:
    return getattr(args, "run_id", None) or os.environ.get("GITHUB_RUN_ID") or "local"


def _selected_targets(args: argparse.Namespace, config: GbemuReleaseConfig) -> list[PlatformTarget]:
    names = getattr(args, "targets", None) or config.build.targets
    return [PlatformTarget.from_name(name) for name in names]


def _trigger(args: argparse.Namespace) -> tuple[TriggerKind, Optional[str]]:
    """
    Trigger and tag from the command line, falling back to what GitHub Actions
    exports (GITHUB_REF_TYPE / GITHUB_REF_NAME).
    """
    if args.trigger is not None:
        trigger = TriggerKind(args.trigger)
    elif os.environ.get("GITHUB_REF_TYPE") == "tag":
        trigger = TriggerKind.TAG
    else:
        trigger = TriggerKind.MANUAL

    tag = args.tag
    if tag is None and trigger is TriggerKind.TAG:
        tag = os.environ.get("GITHUB_REF_NAME")
    return trigger, tag


def _artifact_store(config: GbemuReleaseConfig, workspace: Path):
    from gbemu_release.release.publishing.store import ArtifactStore

    return ArtifactStore(
        resolve_path(workspace, config.release.artifact_store_directory),
        prefix=config.release.artifact_prefix,
    )


def _release_host(args: argparse.Namespace, config: GbemuReleaseConfig):
    from gbemu_release.release.hosting.github import GitHubReleaseHost

    repository = getattr(args, "repository", None) or config.release.repository
    repository = repository or os.environ.get("GITHUB_REPOSITORY")
    if not repository:
        raise ValueError(
            "No repository configured. Set release.repository, pass --repository, "
            "or export GITHUB_REPOSITORY."
        )
    return GitHubReleaseHost(
        repository,
        token=os.environ.get(config.release.token_env),
        target_commitish=config.release.target_commitish,
    )


def _build_matrix(args: argparse.Namespace, config: GbemuReleaseConfig, workspace: Path):
    from gbemu_release.release.build.compiler import CargoBuilder
    from gbemu_release.release.build.matrix import BuildMatrixCoordinator

    builder = CargoBuilder(
        workspace,
        gui_binary=config.project.gui_binary,
        terminal_binary=config.project.terminal_binary,
        timeout_seconds=config.build.timeout_seconds,
        locked=config.build.locked,
        install_targets=config.build.install_targets,
    )
    return BuildMatrixCoordinator(
        builder,
        _artifact_store(config, workspace),
        output_dir=resolve_path(workspace, config.build.output_directory),
        app_name=config.project.app_name,
        targets=_selected_targets(args, config),
        max_workers=config.build.max_workers,
        zip_backend=config.build.zip_backend,
    )


def _print_outputs(**outputs: object) -> None:
    for key, value in outputs.items():
        if isinstance(value, bool):
            value = str(value).lower()
        print(f"{key}={value}")


def _print_version(resolved: ResolvedVersion) -> None:
    _print_outputs(
        version=resolved.version,
        release_name=resolved.release_name,
        prerelease=resolved.prerelease,
    )


def handle_version(args: argparse.Namespace) -> int:
    """Resolve the version a run ships under."""
    exit_code, config, logger = _load_config_and_logger(args, "version")
    if exit_code != SUCCESS:
        return exit_code

    from gbemu_release.release.versioning.resolver import (
        read_metadata_version,
        resolve_nightly_version,
        resolve_tagged_version,
    )

    try:
        if args.nightly:
            resolved = resolve_nightly_version(prefix=config.release.nightly_prefix)
        else:
            trigger, tag = _trigger(args)
            metadata_version = read_metadata_version(
                _workspace(args, config), config.project.metadata_package
            )
            resolved = resolve_tagged_version(metadata_version, trigger, tag)
        _print_version(resolved)
        return SUCCESS

    except VersionMismatchError as err:
        logger.error("Version check failed", extra={"error": str(err)})
        return VALIDATION_ERROR
    except MetadataError as err:
        logger.error("Could not read package metadata", extra={"error": str(err)})
        return RUNTIME_ERROR
    except Exception as err:
        logger.error("Version resolution failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_changes(args: argparse.Namespace) -> int:
    """Report whether there are commits since the last nightly tag."""
    exit_code, config, logger = _load_config_and_logger(args, "changes")
    if exit_code != SUCCESS:
        return exit_code

    from gbemu_release.release.changes.detector import detect_changes
    from gbemu_release.release.hosting.git import GitRepository

    try:
        prefix = config.release.nightly_prefix
        repository = GitRepository(
            _workspace(args, config), timeout_seconds=config.release.git_timeout_seconds
        )
        report = detect_changes(
            repository.list_tags(f"{prefix}*"), repository.count_commits_since, prefix
        )
        _print_outputs(has_changes=report.has_changes)
        return SUCCESS
    except Exception as err:
        logger.error("Change detection failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_cleanup(args: argparse.Namespace) -> int:
    """Delete previous nightly releases and tags. Never fails on host errors."""
    exit_code, config, logger = _load_config_and_logger(args, "cleanup")
    if exit_code != SUCCESS:
        return exit_code

    from gbemu_release.release.cleanup.cleaner import ReleaseCleaner

    try:
        host = _release_host(args, config)
    except ValueError as err:
        logger.error("Cleanup not configured", extra={"error": str(err)})
        return USER_ERROR

    try:
        cleaner = ReleaseCleaner(host, prefix=config.release.nightly_prefix, dry_run=args.dry_run)
        result = cleaner.clean()
        logger.info(
            "Cleanup finished",
            extra={
                "deleted_releases": result.deleted_releases,
                "deleted_tags": result.deleted_tags,
                "errors": len(result.errors),
            },
        )
        return SUCCESS
    except Exception as err:
        logger.error("Cleanup failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_build(args: argparse.Namespace) -> int:
    """Run the build matrix for a version and upload artifacts to the run's store."""
    exit_code, config, logger = _load_config_and_logger(args, "build")
    if exit_code != SUCCESS:
        return exit_code

    try:
        targets = _selected_targets(args, config)
    except ValueError as err:
        logger.error("Unknown target", extra={"error": str(err)})
        return USER_ERROR

    if args.dry_run:
        logger.info(
            "Dry run: would build targets",
            extra={
                "version": args.version,
                "run_id": _run_id(args),
                "targets": [target.platform_name for target in targets],
            },
        )
        return SUCCESS

    try:
        matrix = _build_matrix(args, config, _workspace(args, config))
        result = matrix.run(args.version, _run_id(args))
        logger.info(
            "Build finished",
            extra={
                "artifacts": [artifact.name for artifact in result.artifacts],
                "failed_targets": [unit.target.platform_name for unit in result.failures],
            },
        )
        return SUCCESS
    except Exception as err:
        logger.error("Build failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_publish(args: argparse.Namespace) -> int:
    """Publish every artifact stored for a run under one release."""
    exit_code, config, logger = _load_config_and_logger(args, "publish")
    if exit_code != SUCCESS:
        return exit_code

    from gbemu_release.release.publishing.publisher import ReleasePublisher

    try:
        host = _release_host(args, config)
    except ValueError as err:
        logger.error("Publish not configured", extra={"error": str(err)})
        return USER_ERROR

    try:
        workspace = _workspace(args, config)
        publisher = ReleasePublisher(
            host,
            _artifact_store(config, workspace),
            dry_run=args.dry_run,
            app_name=config.project.app_name,
        )
        result = publisher.publish(
            run_id=_run_id(args),
            version=args.version,
            prerelease=args.prerelease,
            release_name=args.release_name or f"Release {args.version}",
        )
        logger.info("Publish finished", extra={"tag": result.tag, "assets": result.assets})
        return SUCCESS
    except Exception as err:
        logger.error("Publish failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def _report_pipeline(logger: logging.Logger, run) -> int:
    from gbemu_release.release.pipeline.graph import StageStatus

    for result in run.results:
        logger.info(
            "Stage result",
            extra={"stage": result.name, "status": result.status.value, "error": result.error},
        )
    if run.succeeded:
        return SUCCESS
    for result in run.results:
        if result.status is StageStatus.FAILURE and isinstance(result.exception, VersionMismatchError):
            return VALIDATION_ERROR
    return RUNTIME_ERROR


def _print_plan(logger: logging.Logger, graph) -> int:
    logger.info("Dry run: would execute pipeline", extra={"pipeline": graph.name, "plan": graph.plan()})
    return SUCCESS


def handle_nightly(args: argparse.Namespace) -> int:
    """The full nightly flow: prepare, check changes, clean up, build, publish."""
    exit_code, config, logger = _load_config_and_logger(args, "nightly")
    if exit_code != SUCCESS:
        return exit_code

    from gbemu_release.release.cleanup.cleaner import ReleaseCleaner
    from gbemu_release.release.hosting.git import GitRepository
    from gbemu_release.release.pipeline.flows import nightly_pipeline
    from gbemu_release.release.publishing.publisher import ReleasePublisher

    try:
        host = _release_host(args, config)
        targets = _selected_targets(args, config)
    except ValueError as err:
        logger.error("Nightly not configured", extra={"error": str(err)})
        return USER_ERROR

    try:
        workspace = _workspace(args, config)
        prefix = config.release.nightly_prefix
        graph = nightly_pipeline(
            run_id=_run_id(args),
            repository=GitRepository(workspace, timeout_seconds=config.release.git_timeout_seconds),
            cleaner=ReleaseCleaner(host, prefix=prefix, dry_run=args.dry_run),
            matrix=_build_matrix(args, config, workspace),
            publisher=ReleasePublisher(
                host,
                _artifact_store(config, workspace),
                dry_run=args.dry_run,
                app_name=config.project.app_name,
            ),
            prefix=prefix,
        )
        if args.dry_run:
            logger.info(
                "Dry run: would build targets",
                extra={"targets": [target.platform_name for target in targets]},
            )
            return _print_plan(logger, graph)
        return _report_pipeline(logger, graph.run())
    except Exception as err:
        logger.error("Nightly failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_release(args: argparse.Namespace) -> int:
    """The tagged release flow: metadata gate, build, publish."""
    exit_code, config, logger = _load_config_and_logger(args, "release")
    if exit_code != SUCCESS:
        return exit_code

    from gbemu_release.release.pipeline.flows import tagged_pipeline
    from gbemu_release.release.publishing.publisher import ReleasePublisher
    from gbemu_release.release.versioning.resolver import read_metadata_version

    try:
        host = _release_host(args, config)
        _selected_targets(args, config)
    except ValueError as err:
        logger.error("Release not configured", extra={"error": str(err)})
        return USER_ERROR

    try:
        workspace = _workspace(args, config)
        trigger, tag = _trigger(args)
        graph = tagged_pipeline(
            run_id=_run_id(args),
            metadata_version=lambda: read_metadata_version(
                workspace, config.project.metadata_package
            ),
            trigger=trigger,
            tag_name=tag,
            matrix=_build_matrix(args, config, workspace),
            publisher=ReleasePublisher(
                host,
                _artifact_store(config, workspace),
                dry_run=args.dry_run,
                app_name=config.project.app_name,
            ),
        )
        if args.dry_run:
            return _print_plan(logger, graph)
        return _report_pipeline(logger, graph.run())
    except Exception as err:
        logger.error("Release failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def _run_validation(args: argparse.Namespace, command_name: str) -> int:
    exit_code, config, logger = _load_config_and_logger(args, command_name)
    if exit_code != SUCCESS:
        return exit_code

    from gbemu_release.validation.harness import resolve_exit_on_first_failed, run_suite
    from gbemu_release.validation.reporting import format_summary, write_summary_json
    from gbemu_release.validation.suites import (
        CPU_INSTRS_SUITE,
        SM83_SUITE,
        SingleStepComparison,
        TraceLogComparison,
        ValidationPaths,
        cpu_instrs_cases,
        resolve_doctor_command,
        sm83_cases,
    )

    try:
        validation = config.validation
        workspace = _workspace(args, config)
        paths = ValidationPaths.from_config(validation, workspace)
        exit_on_first_failed = resolve_exit_on_first_failed(
            args.exit_on_first_failed, validation.exit_on_first_failed
        )

        if command_name == "doctor":
            suite = CPU_INSTRS_SUITE
            cases = cpu_instrs_cases(paths.cpu_instrs_roms)
            run_case = TraceLogComparison(
                trace_command=validation.trace_command,
                doctor_command=resolve_doctor_command(validation.gameboy_doctor_command, paths.root),
                logs_dir=paths.logs,
                timeout_seconds=validation.timeout_seconds,
                cwd=workspace,
            )
        else:
            suite = SM83_SUITE
            cases = sm83_cases(paths.sm83_vectors)
            run_case = SingleStepComparison(
                step_command=validation.step_command,
                timeout_seconds=validation.timeout_seconds,
                cwd=workspace,
            )

        if args.dry_run:
            logger.info(
                "Dry run: would run validation suite",
                extra={"suite": suite, "cases": [case.id for case in cases]},
            )
            return SUCCESS

        summary = run_suite(suite, cases, run_case, exit_on_first_failed)
        if args.report:
            write_summary_json(summary, Path(args.report))

        print(format_summary(summary))
        return SUCCESS if summary.passed else TESTS_FAILED

    except Exception as err:
        logger.error("Validation run failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_doctor(args: argparse.Namespace) -> int:
    """Blargg cpu_instrs trace comparison with gameboy-doctor."""
    return _run_validation(args, "doctor")


def handle_sm83(args: argparse.Namespace) -> int:
    """SM83 single-step vectors."""
    return _run_validation(args, "sm83")


def handle_setup(args: argparse.Namespace) -> int:
    """Fetch or update the reference corpora used by `doctor` and `sm83`."""
    exit_code, config, logger = _load_config_and_logger(args, "setup")
    if exit_code != SUCCESS:
        return exit_code

    from gbemu_release.validation.corpora import setup_corpora
    from gbemu_release.validation.suites import ValidationPaths

    try:
        paths = ValidationPaths.from_config(config.validation, _workspace(args, config))
        if args.dry_run:
            logger.info(
                "Dry run: would fetch corpora",
                extra={"tools": str(paths.tools), "roms": str(paths.roms)},
            )
            return SUCCESS

        result = setup_corpora(config.validation, paths)
        logger.info(
            "Corpora ready",
            extra={
                "gameboy_doctor": result.gameboy_doctor,
                "sm83": result.sm83,
                "test_roms": result.test_roms,
            },
        )
        return SUCCESS
    except Exception as err:
        logger.error("Setup failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR
