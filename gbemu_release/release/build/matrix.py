# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build matrix: one independent unit per platform target.

A unit is build → package → upload. Units share nothing but the artifact
store (each writes its own slot) and never see each other's failures. The
coordinator waits for all of them, then reports artifacts in the order the
targets were given, regardless of which finished first.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.build.compiler import BuildOutput
from gbemu_release.release.packaging.packager import Artifact, package_artifact
from gbemu_release.release.platforms import ALL_TARGETS, PlatformTarget
from gbemu_release.release.publishing.store import ArtifactStore
from gbemu_release.utils.paths import ensure_directory

_logger: logging.Logger = get_logger(__name__)


class Builder(Protocol):
    def build(self, target: PlatformTarget) -> BuildOutput: ...


@dataclass(frozen=True)
class UnitResult:
    target: PlatformTarget
    artifact: Optional[Artifact] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.artifact is not None


@dataclass(frozen=True)
class MatrixResult:
    units: list[UnitResult]

    @property
    def artifacts(self) -> list[Artifact]:
        return [unit.artifact for unit in self.units if unit.artifact is not None]

    @property
    def failures(self) -> list[UnitResult]:
        return [unit for unit in self.units if unit.artifact is None]


class BuildMatrixCoordinator:
    def __init__(
        self,
        builder: Builder,
        store: ArtifactStore,
        output_dir: Path,
        app_name: str = "gbemu",
        targets: Sequence[PlatformTarget] = ALL_TARGETS,
        max_workers: int = 4,
        zip_backend: str = "auto",
    ) -> None:
        self.builder = builder
        self.store = store
        self.output_dir = output_dir
        self.app_name = app_name
        self.targets = list(targets)
        self.max_workers = max_workers
        self.zip_backend = zip_backend

    def _run_unit(self, target: PlatformTarget, version: str, run_id: str) -> UnitResult:
        try:
            # Each unit packages into its own directory so staging never collides.
            unit_dir = ensure_directory(self.output_dir / target.platform_name)
            build_output = self.builder.build(target)
            artifact = package_artifact(
                build_output,
                version=version,
                target=target,
                output_dir=unit_dir,
                app_name=self.app_name,
                zip_backend=self.zip_backend,
            )
            self.store.upload(run_id, artifact.path, sha256=artifact.sha256)
        except Exception as err:
            _logger.error(
                "Build unit failed",
                extra={"target": target.platform_name, "error": str(err)},
            )
            return UnitResult(target=target, error=str(err))

        return UnitResult(target=target, artifact=artifact)

    def run(self, version: str, run_id: str) -> MatrixResult:
        """
        Run every unit and wait for all of them.

        Anything a previous build left under run_id is cleared first, so the
        store only ever holds this run's archives. Never raises for a unit
        failure; failures are in MatrixResult.failures.
        """
        _logger.info(
            "Starting build matrix",
            extra={
                "version": version,
                "run_id": run_id,
                "targets": [target.platform_name for target in self.targets],
                "max_workers": self.max_workers,
            },
        )

        self.store.reset(run_id)

        if not self.targets:
            return MatrixResult(units=[])

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(self._run_unit, target, version, run_id) for target in self.targets
            ]
            units = [future.result() for future in futures]

        result = MatrixResult(units=units)
        _logger.info(
            "Build matrix finished",
            extra={
                "succeeded": [a.target.platform_name for a in result.artifacts],
                "failed": [u.target.platform_name for u in result.failures],
            },
        )
        return result
