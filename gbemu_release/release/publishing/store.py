# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Per-run artifact storage.

The build units and the publisher never share memory, they only share this
directory. Each artifact is uploaded into its own folder, named with the
artifact prefix so unrelated uploads for the same run are never picked up:

    <root>/<run_id>/tarball-gbemu-1.2.0-linux-x86_64-gnu.tar.gz/
                        gbemu-1.2.0-linux-x86_64-gnu.tar.gz
"""

import re
import shutil
from pathlib import Path
from typing import Optional

from gbemu_release.logging.logger import get_logger
from gbemu_release.release.exceptions import StoreError
from gbemu_release.utils.hashing import verify_checksum
from gbemu_release.utils.paths import ensure_directory, validate_path_within

logger = get_logger(__name__)


class ArtifactStore:
    def __init__(self, root: Path, prefix: str = "tarball-") -> None:
        self.root = root
        self.prefix = prefix
        self.pattern = re.compile(f"^{re.escape(prefix)}(.*)")

    def run_dir(self, run_id: str) -> Path:
        run_dir = self.root / run_id
        validate_path_within(run_dir, self.root)
        return run_dir

    def reset(self, run_id: str) -> None:
        """Drop everything uploaded for a run so a new build starts from an empty slot set."""
        run_dir = self.run_dir(run_id)
        if run_dir.exists():
            shutil.rmtree(run_dir)
            logger.info("Cleared artifacts from a previous build", extra={"run_id": run_id})

    def upload(self, run_id: str, source: Path, sha256: Optional[str] = None) -> Path:
        """
        Copy a file into the run's store under `<prefix><file name>/`.

        Uploading the same name twice replaces the earlier copy. When sha256
        is given the stored copy is checked against it.

        Raises:
            StoreError: If the stored copy doesn't match sha256.
        """
        slot = ensure_directory(self.run_dir(run_id) / f"{self.prefix}{source.name}")
        destination = slot / source.name
        shutil.copy2(source, destination)
        if sha256 and not verify_checksum(destination, sha256):
            destination.unlink()
            raise StoreError(f"Stored copy of {source.name} does not match its sha256")
        logger.info(
            "Artifact uploaded",
            extra={"run_id": run_id, "artifact": source.name, "sha256": sha256},
        )
        return destination

    def download(self, run_id: str, name_prefix: Optional[str] = None) -> list[Path]:
        """
        Every file uploaded for a run, from folders matching the prefix pattern.

        With name_prefix, only files whose names start with it are returned,
        e.g. `gbemu-1.2.0-` to skip archives of another version that share the
        run id. Returns an empty list when nothing matches. Sorted by file name.
        """
        run_dir = self.run_dir(run_id)
        if not run_dir.is_dir():
            return []

        files: list[Path] = []
        for slot in sorted(run_dir.iterdir()):
            if not slot.is_dir() or self.pattern.match(slot.name) is None:
                continue
            files.extend(
                path
                for path in sorted(slot.iterdir())
                if path.is_file() and (name_prefix is None or path.name.startswith(name_prefix))
            )
        return sorted(files, key=lambda path: path.name)
