# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Nightly change detection.

A nightly run is pointless if nothing was committed since the previous
nightly. This module answers that one question from the tag history; it
never stores a "last nightly" anywhere. The most recent marker is
recomputed from the authoritative tag list on every run.

Precondition: "most recent" is the lexicographically greatest tag with the
nightly prefix. That matches chronological order only while the suffix is
the fixed-width, zero-padded YYYYMMDD date that nightly_version produces.
If the nightly naming ever changes, this ordering silently breaks.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from gbemu_release.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChangeReport:
    """Whether a nightly should be built, and why."""

    has_changes: bool
    last_nightly: Optional[str]
    commit_count: Optional[int]


def latest_nightly_tag(tags: Iterable[str], prefix: str = "nightly-") -> Optional[str]:
    """The lexicographically greatest tag with the prefix, or None."""
    nightly_tags = sorted((tag for tag in tags if tag.startswith(prefix)), reverse=True)
    return nightly_tags[0] if nightly_tags else None


def detect_changes(
    tags: Iterable[str],
    count_commits_since: Callable[[str], int],
    prefix: str = "nightly-",
) -> ChangeReport:
    """
    Decide whether there is new work since the last nightly.

    No prior nightly tag means yes (bootstrap). Otherwise yes iff at least
    one commit exists strictly after that tag.

    Args:
        tags: Tag names from the repository.
        count_commits_since: Returns the number of commits in <ref>..HEAD.
        prefix: Nightly tag prefix.
    """
    last_nightly = latest_nightly_tag(tags, prefix)

    if last_nightly is None:
        logger.info("No previous nightly found, proceeding with build")
        return ChangeReport(has_changes=True, last_nightly=None, commit_count=None)

    commit_count = count_commits_since(last_nightly)
    has_changes = commit_count > 0

    if has_changes:
        logger.info(
            "Commits found since last nightly, proceeding with build",
            extra={"last_nightly": last_nightly, "commit_count": commit_count},
        )
    else:
        logger.info(
            "No new commits since last nightly, skipping build",
            extra={"last_nightly": last_nightly},
        )

    return ChangeReport(
        has_changes=has_changes,
        last_nightly=last_nightly,
        commit_count=commit_count,
    )
