# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The two release flows, expressed as stage graphs.

Nightly:

    prepare
    check_changes     needs prepare
    cleanup_previous  needs prepare, check_changes   if has_changes
    build             needs prepare, check_changes,  if has_changes
                            cleanup_previous
    publish           needs prepare, build

    cleanup_previous and build only run when check_changes found new
    commits. publish needs build, so a day without changes publishes nothing.

Tagged:

    metadata ──► build ──► publish

    build only runs for tag triggers. A tag that doesn't match the package
    metadata version fails the metadata stage and nothing is built.
"""

from datetime import datetime
from typing import Callable, Optional, Protocol

from gbemu_release.release.build.matrix import BuildMatrixCoordinator
from gbemu_release.release.changes.detector import detect_changes
from gbemu_release.release.cleanup.cleaner import ReleaseCleaner
from gbemu_release.release.pipeline.graph import PipelineGraph, Stage, StageOutputs
from gbemu_release.release.publishing.publisher import ReleasePublisher
from gbemu_release.release.versioning.resolver import (
    DEFAULT_NIGHTLY_PREFIX,
    ResolvedVersion,
    TriggerKind,
    resolve_nightly_version,
    resolve_tagged_version,
)


class TagHistory(Protocol):
    def list_tags(self, pattern: str = "*") -> list[str]: ...

    def count_commits_since(self, ref: str) -> int: ...


def _build_stage(version_stage: str, matrix: BuildMatrixCoordinator, run_id: str):
    def build(outputs: StageOutputs):
        version: ResolvedVersion = outputs[version_stage]
        return matrix.run(version.version, run_id)

    return build


def _publish_stage(version_stage: str, publisher: ReleasePublisher, run_id: str):
    def publish(outputs: StageOutputs):
        version: ResolvedVersion = outputs[version_stage]
        return publisher.publish(
            run_id=run_id,
            version=version.version,
            prerelease=version.prerelease,
            release_name=version.release_name,
        )

    return publish


def nightly_pipeline(
    run_id: str,
    repository: TagHistory,
    cleaner: ReleaseCleaner,
    matrix: BuildMatrixCoordinator,
    publisher: ReleasePublisher,
    prefix: str = DEFAULT_NIGHTLY_PREFIX,
    now: Optional[datetime] = None,
) -> PipelineGraph:
    def has_changes(outputs: StageOutputs) -> bool:
        return outputs["check_changes"].has_changes

    return PipelineGraph(
        "nightly",
        [
            Stage("prepare", lambda _: resolve_nightly_version(now, prefix)),
            Stage(
                "check_changes",
                lambda _: detect_changes(
                    repository.list_tags(f"{prefix}*"),
                    repository.count_commits_since,
                    prefix,
                ),
                needs=("prepare",),
            ),
            Stage(
                "cleanup_previous",
                lambda _: cleaner.clean(),
                needs=("prepare", "check_changes"),
                condition=has_changes,
            ),
            Stage(
                "build",
                _build_stage("prepare", matrix, run_id),
                needs=("prepare", "check_changes", "cleanup_previous"),
                condition=has_changes,
            ),
            Stage(
                "publish",
                _publish_stage("prepare", publisher, run_id),
                needs=("prepare", "build"),
            ),
        ],
    )


def tagged_pipeline(
    run_id: str,
    metadata_version: Callable[[], str],
    trigger: TriggerKind,
    tag_name: Optional[str],
    matrix: BuildMatrixCoordinator,
    publisher: ReleasePublisher,
) -> PipelineGraph:
    """
    Args:
        metadata_version: Reads the package version, typically via cargo metadata.
        trigger: What started the run. Only TAG builds and publishes.
        tag_name: The pushed tag, required for TAG triggers.
    """
    return PipelineGraph(
        "release",
        [
            Stage(
                "metadata",
                lambda _: resolve_tagged_version(metadata_version(), trigger, tag_name),
            ),
            Stage(
                "build",
                _build_stage("metadata", matrix, run_id),
                needs=("metadata",),
                condition=lambda _: trigger is TriggerKind.TAG,
            ),
            Stage(
                "publish",
                _publish_stage("metadata", publisher, run_id),
                needs=("metadata", "build"),
            ),
        ],
    )
