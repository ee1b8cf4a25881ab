# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release publisher.

Collects everything the build units uploaded for a run and attaches it to a
single release. The release is created when the tag has none yet, otherwise
its name and prerelease flag are updated and same-named assets replaced, so
re-running a publish for the same version is safe.

A run where some (or all) build units failed still publishes. Missing
platforms simply don't appear as assets.
"""

import logging
from dataclasses import dataclass, field

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.hosting.base import ReleaseHost
from gbemu_release.release.publishing.store import ArtifactStore

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class PublishResult:
    """What was (or, in a dry run, would have been) published."""

    tag: str
    name: str
    prerelease: bool
    assets: list[str] = field(default_factory=list)
    dry_run: bool = False


class ReleasePublisher:
    def __init__(
        self,
        host: ReleaseHost,
        store: ArtifactStore,
        dry_run: bool = False,
        app_name: str = "gbemu",
    ) -> None:
        self.host = host
        self.store = store
        self.dry_run = dry_run
        self.app_name = app_name

    def publish(self, run_id: str, version: str, prerelease: bool, release_name: str) -> PublishResult:
        """
        Publish the run's `<app_name>-<version>-*` artifacts under the `version` tag.

        Raises:
            HostingError: If the host rejects creating the release or an upload.
        """
        files = self.store.download(run_id, name_prefix=f"{self.app_name}-{version}-")
        asset_names = [path.name for path in files]

        if not files:
            _logger.warning(
                "No artifacts found for run, publishing an empty release",
                extra={"run_id": run_id, "tag": version},
            )

        if self.dry_run:
            _logger.info(
                "Dry run: would publish release",
                extra={
                    "tag": version,
                    "release_name": release_name,
                    "prerelease": prerelease,
                    "assets": asset_names,
                },
            )
            return PublishResult(
                tag=version,
                name=release_name,
                prerelease=prerelease,
                assets=asset_names,
                dry_run=True,
            )

        _logger.info(
            "Publishing release",
            extra={
                "tag": version,
                "release_name": release_name,
                "prerelease": prerelease,
                "asset_count": len(files),
            },
        )
        hosted = self.host.create_or_update_release(
            tag_name=version,
            name=release_name,
            prerelease=prerelease,
            files=files,
        )
        _logger.info("Release published", extra={"tag": hosted.tag_name, "id": hosted.id})

        return PublishResult(
            tag=version,
            name=release_name,
            prerelease=prerelease,
            assets=asset_names,
        )
