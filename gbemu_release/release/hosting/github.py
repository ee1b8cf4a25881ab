# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
GitHub release host, built on PyGithub.

Every PyGithub failure is re-raised as HostingError with the operation and
the object it was applied to in the message, so callers can decide whether
it's fatal (publishing) or just worth a log line (tag cleanup).
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from github import Auth, Github, GithubException, UnknownObjectException

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.exceptions import HostingError
from gbemu_release.release.hosting.base import HostedRelease


def _to_hosted(release, assets: tuple[str, ...] = ()) -> HostedRelease:
    # Asset names are only filled in when the caller already has them.
    return HostedRelease(
        id=release.id,
        tag_name=release.tag_name,
        name=release.title or "",
        prerelease=bool(release.prerelease),
        assets=assets,
    )


class GitHubReleaseHost:
    def __init__(
        self,
        repository: str,
        token: Optional[str] = None,
        target_commitish: Optional[str] = None,
        client: Optional[Github] = None,
    ) -> None:
        if client is None:
            client = Github(auth=Auth.Token(token)) if token else Github()
        self.github = client
        self.repository = repository
        self.target_commitish = target_commitish
        self.logger: logging.Logger = get_logger(__name__)
        self._repo = None

    def _get_repo(self):
        if self._repo is None:
            try:
                self._repo = self.github.get_repo(self.repository)
            except GithubException as e:
                raise HostingError(f"Failed to open repository {self.repository}: {e}") from e
        return self._repo

    def list_releases(self) -> list[HostedRelease]:
        try:
            return [_to_hosted(release) for release in self._get_repo().get_releases()]
        except GithubException as e:
            raise HostingError(f"Failed to list releases of {self.repository}: {e}") from e

    def delete_release(self, release_id: int) -> None:
        try:
            self._get_repo().get_release(release_id).delete_release()
        except GithubException as e:
            raise HostingError(f"Failed to delete release {release_id} on {self.repository}: {e}") from e

    def delete_tag(self, tag_name: str) -> None:
        try:
            self._get_repo().get_git_ref(f"tags/{tag_name}").delete()
        except GithubException as e:
            raise HostingError(f"Failed to delete tag {tag_name} on {self.repository}: {e}") from e

    def create_or_update_release(
        self,
        tag_name: str,
        name: str,
        prerelease: bool,
        files: Sequence[Path],
    ) -> HostedRelease:
        repo = self._get_repo()
        try:
            try:
                release = repo.get_release(tag_name)
                release = release.update_release(
                    name=name,
                    message=release.body or "",
                    prerelease=prerelease,
                )
                self.logger.info(f"Updated release {tag_name} on {self.repository}")
            except UnknownObjectException:
                kwargs = {}
                if self.target_commitish:
                    kwargs["target_commitish"] = self.target_commitish
                release = repo.create_git_release(
                    tag=tag_name,
                    name=name,
                    message="",
                    prerelease=prerelease,
                    **kwargs,
                )
                self.logger.info(f"Created release {tag_name} on {self.repository}")

            existing = {asset.name: asset for asset in release.get_assets()}
            for path in files:
                if path.name in existing:
                    existing[path.name].delete_asset()
                release.upload_asset(str(path), name=path.name)
                self.logger.info(f"Uploaded {path.name} to release {tag_name}")

            names = list(existing) + [path.name for path in files if path.name not in existing]
            return _to_hosted(release, assets=tuple(names))
        except GithubException as e:
            raise HostingError(f"Failed to publish release {tag_name} on {self.repository}: {e}") from e
