# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Version resolution, the first stage of every release flow.

There are two kinds of version, and they are resolved very differently:

  tagged:  the version in the cargo metadata of the core package. When the
           run was triggered by pushing a tag, the tag name must equal that
           version exactly (case-sensitive string equality). A mismatch
           raises VersionMismatchError before any build work starts, because
           a stable release has to be traceable to a reviewed package version.

  nightly: `nightly-YYYYMMDD` from the current UTC date. No metadata, no
           comparison. Nightly releases are synthetic and always "new".

The resolver also picks the display name and the prerelease flag, so the
publish stage receives one frozen value instead of re-deriving them.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.exceptions import MetadataError, VersionMismatchError
from gbemu_release.utils.process import run_command

logger = get_logger(__name__)

DEFAULT_NIGHTLY_PREFIX = "nightly-"


class TriggerKind(str, Enum):
    """What started the run."""

    TAG = "tag"
    SCHEDULE = "schedule"
    MANUAL = "manual"


class VersionKind(str, Enum):
    TAGGED = "tagged"
    NIGHTLY = "nightly"


@dataclass(frozen=True)
class ResolvedVersion:
    """The version a run ships under, plus how the release should be presented."""

    version: str
    kind: VersionKind
    release_name: str
    prerelease: bool


def parse_metadata_version(payload: str | dict[str, Any], package: str) -> str:
    """
    Pull one package's version out of `cargo metadata` JSON output.

    Raises:
        MetadataError: If the payload isn't valid JSON or the package isn't listed.
    """
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as err:
            raise MetadataError(f"cargo metadata output is not valid JSON: {err}") from err
    else:
        data = payload

    for entry in data.get("packages", []):
        if entry.get("name") == package:
            version = entry.get("version")
            if not version:
                raise MetadataError(f"Package '{package}' has no version in cargo metadata")
            return str(version)

    raise MetadataError(f"Package '{package}' not found in cargo metadata")


def read_metadata_version(workspace: Path, package: str, timeout_seconds: float = 300) -> str:
    """
    Run `cargo metadata --format-version=1 --no-deps` in the workspace and
    return the version of the named package.

    Raises:
        MetadataError: If cargo fails or the package is missing.
    """
    result = run_command(
        ["cargo", "metadata", "--format-version=1", "--no-deps"],
        timeout_seconds=timeout_seconds,
        cwd=workspace,
    )
    if not result.success:
        raise MetadataError(
            f"cargo metadata failed (exit {result.exit_code}): {result.stderr.strip()}"
        )

    version = parse_metadata_version(result.stdout, package)
    logger.info("Metadata version read", extra={"package": package, "version": version})
    return version


def _utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(tz=timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def nightly_version(now: Optional[datetime] = None, prefix: str = DEFAULT_NIGHTLY_PREFIX) -> str:
    """`nightly-` plus the zero-padded UTC date, e.g. nightly-20240115."""
    return f"{prefix}{_utc(now).strftime('%Y%m%d')}"


def nightly_release_name(now: Optional[datetime] = None) -> str:
    return f"Nightly Build {_utc(now).strftime('%Y-%m-%d')}"


def resolve_nightly_version(
    now: Optional[datetime] = None,
    prefix: str = DEFAULT_NIGHTLY_PREFIX,
) -> ResolvedVersion:
    """Resolve the version of a scheduled run. Naive datetimes are taken as UTC."""
    moment = _utc(now)
    resolved = ResolvedVersion(
        version=nightly_version(moment, prefix),
        kind=VersionKind.NIGHTLY,
        release_name=nightly_release_name(moment),
        prerelease=True,
    )
    logger.info(
        "Nightly version resolved",
        extra={"version": resolved.version, "release_name": resolved.release_name},
    )
    return resolved


def resolve_tagged_version(
    metadata_version: str,
    trigger: TriggerKind,
    tag_name: Optional[str] = None,
) -> ResolvedVersion:
    """
    Resolve the version of a stable release run.

    The metadata version is always the output. Only tag-triggered runs are
    checked against the tag; a manual dispatch just reports the version.

    Raises:
        VersionMismatchError: On a tag trigger whose tag differs from the metadata version.
    """
    if trigger is TriggerKind.TAG and tag_name != metadata_version:
        logger.error(
            "Tag does not match metadata version",
            extra={"tag": tag_name, "metadata_version": metadata_version},
        )
        raise VersionMismatchError(
            f"tag: '{tag_name}' is not equal to metadata version: '{metadata_version}'"
        )

    resolved = ResolvedVersion(
        version=metadata_version,
        kind=VersionKind.TAGGED,
        release_name=f"Release {metadata_version}",
        prerelease=False,
    )
    logger.info(
        "Tagged version resolved",
        extra={"version": resolved.version, "trigger": trigger.value, "tag": tag_name},
    )
    return resolved
