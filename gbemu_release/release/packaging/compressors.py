# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Archive writers.

Linux artifacts are gzipped tarballs; everything else is a zip. For zips
the compressor follows the host: 7-Zip on Windows, Info-ZIP `zip` on macOS
and Linux. When the expected tool isn't on PATH (or the config asks for
it) the in-process zipfile writer is used instead, which produces an
equivalent archive.

Every writer roots entries at the staging directory's name, so extracting
`gbemu-1.2.0-macOS-aarch64.zip` yields a `gbemu-1.2.0-macOS-aarch64/` folder
rather than spraying binaries into the current directory.
"""

import platform
import shutil
import tarfile
import zipfile
from pathlib import Path
from typing import Optional, Protocol

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.exceptions import PackagingError
from gbemu_release.release.platforms import ArchiveFormat
from gbemu_release.utils.process import run_command

logger = get_logger(__name__)

_EXTERNAL_TIMEOUT_SECONDS = 600


class Compressor(Protocol):
    name: str

    def compress(self, source_dir: Path, archive_path: Path) -> None: ...


class TarGzCompressor:
    name = "tar.gz"

    def compress(self, source_dir: Path, archive_path: Path) -> None:
        with tarfile.open(archive_path, "w:gz") as tar:
            tar.add(str(source_dir), arcname=source_dir.name)


class PythonZipCompressor:
    """zipfile-based writer. Keeps the unix mode bits, so binaries stay executable."""

    name = "python"

    def compress(self, source_dir: Path, archive_path: Path) -> None:
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.write(source_dir, arcname=source_dir.name)
            for path in sorted(source_dir.rglob("*")):
                archive.write(path, arcname=str(path.relative_to(source_dir.parent)))


class _ExternalZipCompressor:
    name = ""
    _argv_prefix: tuple[str, ...] = ()

    def compress(self, source_dir: Path, archive_path: Path) -> None:
        result = run_command(
            [*self._argv_prefix, str(archive_path.resolve()), source_dir.name],
            timeout_seconds=_EXTERNAL_TIMEOUT_SECONDS,
            cwd=source_dir.parent,
        )
        if not result.success:
            raise PackagingError(
                f"{self.name} failed to create {archive_path.name} "
                f"(exit {result.exit_code}): {result.stderr.strip()}"
            )


class SevenZipCompressor(_ExternalZipCompressor):
    name = "7z"
    _argv_prefix = ("7z", "a", "-tzip")


class ZipCliCompressor(_ExternalZipCompressor):
    name = "zip"
    _argv_prefix = ("zip", "-r", "-q")


def select_zip_compressor(backend: str = "auto", host_system: Optional[str] = None) -> Compressor:
    """
    Pick the zip writer.

    Args:
        backend: 'auto', 'python', '7z', or 'zip'.
        host_system: platform.system() of the packaging host; detected when None.
    """
    if backend == "python":
        return PythonZipCompressor()
    if backend == "7z":
        return SevenZipCompressor()
    if backend == "zip":
        return ZipCliCompressor()
    if backend != "auto":
        raise ValueError(f"Unknown zip backend '{backend}'")

    system = host_system if host_system is not None else platform.system()
    preferred: Compressor = SevenZipCompressor() if system == "Windows" else ZipCliCompressor()
    if shutil.which(preferred.name) is not None:
        return preferred

    logger.debug(
        "Preferred zip tool not on PATH, using zipfile",
        extra={"preferred": preferred.name, "host_system": system},
    )
    return PythonZipCompressor()


def select_compressor(
    archive_format: ArchiveFormat,
    zip_backend: str = "auto",
    host_system: Optional[str] = None,
) -> Compressor:
    if archive_format is ArchiveFormat.TAR_GZ:
        return TarGzCompressor()
    return select_zip_compressor(zip_backend, host_system)
