# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for gbemu-release.

Every operation is a subcommand of `gbemu-release`. The global options
(--config, --log-level, --dry-run, --workspace) are inherited by every
subcommand through argparse's parent parser mechanism.

Usage:
    gbemu-release version --trigger tag --tag 1.2.0
    gbemu-release nightly --config release.yaml
    gbemu-release build --version 1.2.0 --run-id 42 --target macOS-aarch64
    gbemu-release doctor --exit-on-first-failed
"""

import argparse
import sys
from typing import Optional, Sequence

from gbemu_release.cli.commands import (
    handle_build,
    handle_changes,
    handle_cleanup,
    handle_doctor,
    handle_nightly,
    handle_publish,
    handle_release,
    handle_setup,
    handle_sm83,
    handle_version,
)
from gbemu_release.cli.exit_codes import USER_ERROR
from gbemu_release.release.platforms import PlatformTarget
from gbemu_release.release.versioning.resolver import TriggerKind


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Build the parent parser with global options.

    add_help=False so the help text doesn't collide between the parent and
    the subcommand parsers.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level (defaults to global.log_level).",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Log what would happen without building, deleting, or publishing anything.",
    )
    parent.add_argument(
        "--workspace",
        type=str,
        default=None,
        help="Path to the gbemu cargo workspace (overrides project.workspace_directory).",
    )
    return parent


def _add_run_id(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        dest="run_id",
        help="Artifact store run id (defaults to $GITHUB_RUN_ID, then 'local').",
    )


def _add_targets(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--target",
        action="append",
        default=None,
        dest="targets",
        choices=[target.platform_name for target in PlatformTarget],
        help="Platform to build; repeat for several. Defaults to build.targets.",
    )


def _add_repository(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--repository",
        type=str,
        default=None,
        help="GitHub repository as owner/name (overrides release.repository).",
    )


def _add_trigger(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--trigger",
        type=str,
        default=None,
        choices=[kind.value for kind in TriggerKind],
        help="What started the run (defaults to 'tag' when $GITHUB_REF_TYPE is tag, else 'manual').",
    )
    parser.add_argument(
        "--tag",
        type=str,
        default=None,
        help="The pushed tag (defaults to $GITHUB_REF_NAME on tag triggers).",
    )


def _add_validation_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--exit-on-first-failed",
        action=argparse.BooleanOptionalAction,
        default=None,
        dest="exit_on_first_failed",
        help="Stop at the first failing case (overrides $EXIT_ON_FIRST_FAILED and config).",
    )
    parser.add_argument(
        "--report",
        type=str,
        default=None,
        help="Write a JSON summary of the run to this path.",
    )


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    """
    Register all subcommands with their handler functions.

    Each subcommand gets the global options from the parent parser and sets
    its handler function via set_defaults(func=...).
    """
    commands = [
        ("version", "Resolve the release or nightly version.", handle_version),
        ("changes", "Check for commits since the last nightly.", handle_changes),
        ("cleanup", "Delete previous nightly releases and tags.", handle_cleanup),
        ("build", "Build and package every target, in parallel.", handle_build),
        ("publish", "Publish a run's artifacts as a release.", handle_publish),
        ("nightly", "Run the nightly flow end to end.", handle_nightly),
        ("release", "Run the tagged release flow end to end.", handle_release),
        ("doctor", "Validate the CPU against gameboy-doctor traces.", handle_doctor),
        ("sm83", "Validate the CPU against SM83 single-step vectors.", handle_sm83),
        ("setup", "Fetch the reference test corpora.", handle_setup),
    ]

    for name, help_text, handler in commands:
        parser = subparsers.add_parser(name, parents=[parent], help=help_text)
        parser.set_defaults(func=handler)

    version_parser = subparsers.choices["version"]
    version_parser.add_argument(
        "--nightly",
        action="store_true",
        default=False,
        help="Resolve the nightly version instead of the package version.",
    )
    _add_trigger(version_parser)

    for name in ("cleanup", "publish", "nightly", "release"):
        _add_repository(subparsers.choices[name])

    for name in ("build", "publish", "nightly", "release"):
        _add_run_id(subparsers.choices[name])

    for name in ("build", "nightly", "release"):
        _add_targets(subparsers.choices[name])

    _add_trigger(subparsers.choices["release"])

    build_parser = subparsers.choices["build"]
    build_parser.add_argument("--version", required=True, help="Version that goes into archive names.")

    publish_parser = subparsers.choices["publish"]
    publish_parser.add_argument("--version", required=True, help="Release tag.")
    publish_parser.add_argument(
        "--release-name",
        type=str,
        default=None,
        dest="release_name",
        help="Display name (defaults to 'Release <version>').",
    )
    publish_parser.add_argument(
        "--prerelease",
        action="store_true",
        default=False,
        help="Mark the release as a prerelease.",
    )

    for name in ("doctor", "sm83"):
        _add_validation_options(subparsers.choices[name])


def build_parser() -> argparse.ArgumentParser:
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="gbemu-release",
        description="gbemu-release: build, publish, and validate gbemu releases.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)
    return root_parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    If no subcommand is given, we show help and exit with USER_ERROR.
    """
    root_parser = build_parser()
    args = root_parser.parse_args(argv)

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
