# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Fetching the reference corpora the validation suites run against.

    <tools>/gameboy-doctor   git, shallow clone, pulled on every setup
    <tools>/sm83             git, shallow clone, pulled on every setup
    <roms>/                  c-sp game-boy-test-roms release zip, extracted once

The ROM zip is large and versioned, so it is only fetched when the `.ok`
marker is missing. Extraction never overwrites a file that is already there,
which keeps local edits to individual ROMs (or a partially populated
directory from an earlier interrupted run) intact.
"""

import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from urllib.error import URLError
from urllib.request import Request, urlopen

from gbemu_release.config.schema import ValidationConfig
from gbemu_release.logging.logger import get_logger
from gbemu_release.utils.paths import ensure_directory, validate_path_within
from gbemu_release.utils.process import run_command
from gbemu_release.validation.suites import ValidationPaths

logger = get_logger(__name__)

ROMS_MARKER = ".ok"
_HTTP_TIMEOUT_SECONDS = 120
_STREAM_CHUNK_SIZE = 1 << 20
_GIT_TIMEOUT_SECONDS = 600


class CorporaError(Exception):
    """A corpus could not be cloned, downloaded, or extracted."""


@dataclass(frozen=True)
class CorporaResult:
    gameboy_doctor: str
    sm83: str
    test_roms: str


def sync_git_repository(url: str, destination: Path, timeout_seconds: float = _GIT_TIMEOUT_SECONDS) -> str:
    """
    `git pull` an existing checkout, or shallow-clone it when that fails.

    Returns:
        "pulled" or "cloned".

    Raises:
        CorporaError: If both the pull and the clone fail.
    """
    if destination.is_dir():
        pull = run_command(
            ["git", "-C", str(destination), "pull"],
            timeout_seconds=timeout_seconds,
        )
        if pull.success:
            logger.info("Repository updated", extra={"url": url, "path": str(destination)})
            return "pulled"
        logger.warning(
            "git pull failed, cloning instead",
            extra={"path": str(destination), "error": pull.stderr.strip()},
        )

    ensure_directory(destination.parent)
    clone = run_command(
        ["git", "clone", url, "--depth", "1", str(destination)],
        timeout_seconds=timeout_seconds,
    )
    if not clone.success:
        raise CorporaError(f"git clone {url} failed (exit {clone.exit_code}): {clone.stderr.strip()}")

    logger.info("Repository cloned", extra={"url": url, "path": str(destination)})
    return "cloned"


def download_file(url: str, target_path: Path) -> Path:
    """Stream a URL into target_path through a temp file in the same directory."""
    ensure_directory(target_path.parent)
    tmp_fd = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(target_path.parent),
        prefix=".gbemu_dl_",
        suffix=".tmp",
        delete=False,
    )
    tmp_path = Path(tmp_fd.name)

    try:
        req = Request(url, headers={"User-Agent": "gbemu-release"}, method="GET")
        with urlopen(req, timeout=_HTTP_TIMEOUT_SECONDS) as resp:
            while True:
                chunk = resp.read(_STREAM_CHUNK_SIZE)
                if not chunk:
                    break
                tmp_fd.write(chunk)
        tmp_fd.flush()
        tmp_fd.close()
        tmp_path.replace(target_path)
    except BaseException:
        tmp_fd.close()
        if tmp_path.exists():
            tmp_path.unlink()
        raise

    logger.info("Downloaded", extra={"url": url, "path": str(target_path)})
    return target_path


def extract_zip_no_overwrite(archive_path: Path, destination: Path) -> int:
    """
    Extract a zip, skipping files that already exist.

    Returns:
        Number of files written.

    Raises:
        CorporaError: If an entry would land outside destination.
    """
    written = 0
    with zipfile.ZipFile(archive_path) as archive:
        for member in archive.infolist():
            target = destination / member.filename
            try:
                validate_path_within(target, destination)
            except ValueError as err:
                raise CorporaError(f"Unsafe entry in {archive_path.name}: {member.filename}") from err

            if member.is_dir():
                ensure_directory(target)
                continue
            if target.exists():
                continue
            archive.extract(member, destination)
            written += 1
    return written


def fetch_test_roms(url: str, roms_dir: Path) -> str:
    """
    Download and extract the test ROM zip unless the marker says it's done.

    Returns:
        "present" or "extracted".
    """
    ensure_directory(roms_dir)
    marker = roms_dir / ROMS_MARKER
    if marker.exists():
        logger.info("Test ROMs already present", extra={"path": str(roms_dir)})
        return "present"

    with tempfile.TemporaryDirectory(prefix="gbemu_roms_") as tmp:
        archive_path = Path(tmp) / url.rsplit("/", 1)[-1]
        try:
            download_file(url, archive_path)
        except (URLError, OSError) as err:
            raise CorporaError(f"Failed to download {url}: {err}") from err
        try:
            written = extract_zip_no_overwrite(archive_path, roms_dir)
        except zipfile.BadZipFile as err:
            raise CorporaError(f"{archive_path.name} is not a valid zip: {err}") from err

    marker.touch()
    logger.info("Test ROMs extracted", extra={"path": str(roms_dir), "files": written})
    return "extracted"


def setup_corpora(config: ValidationConfig, paths: ValidationPaths) -> CorporaResult:
    """Bring every corpus up to date. The logs directory is created too."""
    ensure_directory(paths.logs)
    return CorporaResult(
        gameboy_doctor=sync_git_repository(config.gameboy_doctor_repository, paths.gameboy_doctor_repo),
        test_roms=fetch_test_roms(config.test_roms_url, paths.roms),
        sm83=sync_git_repository(config.sm83_repository, paths.sm83_repo),
    )
