# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Previous-nightly cleanup.

Before a new nightly is published, every release whose tag starts with the
nightly prefix is deleted, and then its tag. Afterwards at most one nightly
exists: the one about to be created.

This module is conservative about what it touches and forgiving about
what goes wrong:
  - Filtering is strictly by tag prefix. Stable releases are never deleted.
  - A tag that can't be deleted is logged and left behind. Stale tags may
    accumulate but never block the new nightly.
  - A release that can't be deleted is logged, its tag is kept (it still
    backs a release), and the loop moves on.
  - If the release list itself can't be fetched, nothing is deleted and the
    pipeline continues.

Nothing here ever raises. Cleanup is best-effort by contract.
"""

import logging
from dataclasses import dataclass, field

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.hosting.base import HostedRelease, ReleaseHost

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of a cleanup pass."""

    deleted_releases: list[str] = field(default_factory=list)
    deleted_tags: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False


def select_nightly_releases(releases: list[HostedRelease], prefix: str) -> list[HostedRelease]:
    """Releases whose tag starts with the nightly prefix, in host order."""
    return [release for release in releases if release.tag_name.startswith(prefix)]


class ReleaseCleaner:
    """Deletes previous nightly releases and their tags from a release host."""

    def __init__(self, host: ReleaseHost, prefix: str = "nightly-", dry_run: bool = False) -> None:
        if not prefix:
            raise ValueError("Nightly prefix must not be empty; it would match every release")
        self.host = host
        self.prefix = prefix
        self.dry_run = dry_run

    def clean(self) -> CleanupResult:
        """
        Delete every nightly release, then attempt to delete its tag.

        Returns:
            CleanupResult naming what was deleted and every error that was swallowed.
        """
        deleted_releases: list[str] = []
        deleted_tags: list[str] = []
        errors: list[str] = []

        try:
            releases = self.host.list_releases()
        except Exception as err:
            _logger.error("Error during cleanup", extra={"error": str(err)})
            return CleanupResult(errors=[str(err)], dry_run=self.dry_run)

        nightly = select_nightly_releases(releases, self.prefix)
        _logger.info(
            "Starting nightly cleanup",
            extra={
                "prefix": self.prefix,
                "release_count": len(releases),
                "nightly_count": len(nightly),
                "dry_run": self.dry_run,
            },
        )

        for release in nightly:
            if self.dry_run:
                _logger.info(
                    "Dry run: would delete nightly release and tag",
                    extra={"release": release.name, "tag": release.tag_name},
                )
                continue

            _logger.info(
                "Deleting previous nightly release",
                extra={"release": release.name, "tag": release.tag_name},
            )
            try:
                self.host.delete_release(release.id)
            except Exception as err:
                errors.append(str(err))
                _logger.error(
                    "Could not delete release",
                    extra={"tag": release.tag_name, "error": str(err)},
                )
                continue
            deleted_releases.append(release.tag_name)

            try:
                self.host.delete_tag(release.tag_name)
            except Exception as err:
                errors.append(str(err))
                _logger.warning(
                    "Could not delete tag",
                    extra={"tag": release.tag_name, "error": str(err)},
                )
                continue
            deleted_tags.append(release.tag_name)
            _logger.info("Deleted tag", extra={"tag": release.tag_name})

        _logger.info(
            "Cleanup complete",
            extra={
                "deleted_releases": len(deleted_releases),
                "deleted_tags": len(deleted_tags),
                "errors": len(errors),
            },
        )

        return CleanupResult(
            deleted_releases=deleted_releases,
            deleted_tags=deleted_tags,
            errors=errors,
            dry_run=self.dry_run,
        )
