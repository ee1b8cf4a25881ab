# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Artifact packager: turns one target's build output into one release archive.

Layout on disk while packaging:

    <output_dir>/
    ├─ gbemu-1.2.0-macOS-aarch64/        (staging, removed afterwards)
    │  ├─ gbemu-iced
    │  └─ gbemu-term
    └─ gbemu-1.2.0-macOS-aarch64.zip

The archive name is a pure function of app, version, and target, so a rerun
for the same version produces the same file name.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.build.compiler import BuildOutput
from gbemu_release.release.exceptions import PackagingError
from gbemu_release.release.packaging.compressors import select_compressor
from gbemu_release.release.platforms import PlatformTarget
from gbemu_release.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class Artifact:
    """A finished, compressed release archive for one target."""

    name: str
    path: Path
    target: PlatformTarget
    version: str
    sha256: str = ""


def artifact_basename(app_name: str, version: str, target: PlatformTarget) -> str:
    return f"{app_name}-{version}-{target.platform_name}"


def artifact_filename(app_name: str, version: str, target: PlatformTarget) -> str:
    return f"{artifact_basename(app_name, version, target)}{target.archive_suffix}"


def package_artifact(
    build_output: BuildOutput,
    version: str,
    target: PlatformTarget,
    output_dir: Path,
    app_name: str = "gbemu",
    zip_backend: str = "auto",
) -> Artifact:
    """
    Stage both binaries and compress them into the target's archive format.

    Args:
        build_output: Where the compiled binaries are.
        version: Version string that goes into the archive name.
        target: The platform the binaries were built for.
        output_dir: Directory that receives the archive.
        app_name: Archive name prefix.
        zip_backend: Zip writer selection, see select_zip_compressor.

    Returns:
        The packaged Artifact.

    Raises:
        PackagingError: If a binary is missing or compression fails.
    """
    basename = artifact_basename(app_name, version, target)
    staging_dir = output_dir / basename
    archive_path = output_dir / artifact_filename(app_name, version, target)

    binaries = [build_output.gui_binary, build_output.terminal_binary]
    for binary in binaries:
        if not binary.is_file():
            raise PackagingError(f"Binary not found for {target.platform_name}: {binary}")

    _logger.info(
        "Packaging artifact",
        extra={"artifact": archive_path.name, "target": target.platform_name},
    )

    if staging_dir.exists():
        shutil.rmtree(staging_dir)
    staging_dir.mkdir(parents=True)

    try:
        for binary in binaries:
            shutil.copy2(binary, staging_dir / binary.name)

        compressor = select_compressor(target.archive_format, zip_backend)
        if archive_path.exists():
            archive_path.unlink()
        compressor.compress(staging_dir, archive_path)
    except PackagingError:
        archive_path.unlink(missing_ok=True)
        raise
    except OSError as err:
        archive_path.unlink(missing_ok=True)
        raise PackagingError(f"Failed to package {archive_path.name}: {err}") from err
    finally:
        shutil.rmtree(staging_dir, ignore_errors=True)

    artifact = Artifact(
        name=archive_path.name,
        path=archive_path,
        target=target,
        version=version,
        sha256=compute_sha256(archive_path),
    )

    _logger.info(
        "Artifact packaged",
        extra={
            "artifact": artifact.name,
            "compressor": compressor.name,
            "size_bytes": archive_path.stat().st_size,
            "sha256": artifact.sha256,
        },
    )
    return artifact
