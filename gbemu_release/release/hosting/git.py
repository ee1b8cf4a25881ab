# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The two git queries the release pipeline needs.

Both run against a local checkout with full history (a shallow clone has
no tags and the commit count would be wrong).
"""

from pathlib import Path

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.exceptions import HostingError
from gbemu_release.utils.process import run_command

logger = get_logger(__name__)


class GitRepository:
    """A local git checkout, queried through the git CLI."""

    def __init__(self, path: Path, timeout_seconds: float = 60) -> None:
        self.path = path
        self.timeout_seconds = timeout_seconds

    def _git(self, *args: str) -> str:
        result = run_command(
            ["git", "-C", str(self.path), *args],
            timeout_seconds=self.timeout_seconds,
        )
        if not result.success:
            raise HostingError(
                f"git {' '.join(args)} failed (exit {result.exit_code}): {result.stderr.strip()}"
            )
        return result.stdout

    def list_tags(self, pattern: str = "*") -> list[str]:
        """Tags matching a glob pattern, e.g. 'nightly-*'."""
        output = self._git("tag", "-l", pattern)
        tags = [line.strip() for line in output.splitlines() if line.strip()]
        logger.debug("Tags listed", extra={"pattern": pattern, "count": len(tags)})
        return tags

    def count_commits_since(self, ref: str) -> int:
        """Number of commits in ref..HEAD."""
        output = self._git("rev-list", "--count", f"{ref}..HEAD")
        try:
            return int(output.strip())
        except ValueError as err:
            raise HostingError(f"Unexpected git rev-list output: {output!r}") from err
