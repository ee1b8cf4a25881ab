# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the per-run artifact store.
"""

from pathlib import Path

import pytest

from gbemu_release.release.exceptions import StoreError
from gbemu_release.release.publishing.store import ArtifactStore
from gbemu_release.utils.hashing import compute_sha256


def _file(tmp_path: Path, name: str, content: bytes = b"data") -> Path:
    path = tmp_path / "src" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


class TestUpload:
    def test_upload_uses_prefixed_slot(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        stored = store.upload("101", _file(tmp_path, "gbemu-1.0.0-macOS-x86_64.zip"))

        assert stored == (
            tmp_path / "store" / "101" / "tarball-gbemu-1.0.0-macOS-x86_64.zip" / "gbemu-1.0.0-macOS-x86_64.zip"
        )
        assert stored.read_bytes() == b"data"

    def test_upload_same_name_replaces(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        store.upload("101", _file(tmp_path, "a.zip", b"old"))
        store.upload("101", _file(tmp_path, "a.zip", b"new"))

        [only] = store.download("101")
        assert only.read_bytes() == b"new"

    def test_run_id_cannot_escape_root(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        with pytest.raises(ValueError, match="outside"):
            store.upload("../../elsewhere", _file(tmp_path, "a.zip"))


class TestDownload:
    def test_only_prefixed_slots_of_the_run_are_returned(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        store.upload("101", _file(tmp_path, "b.zip"))
        store.upload("101", _file(tmp_path, "a.tar.gz"))
        store.upload("202", _file(tmp_path, "other-run.zip"))
        stray = tmp_path / "store" / "101" / "coverage-report"
        stray.mkdir()
        (stray / "index.html").write_text("x")

        assert [p.name for p in store.download("101")] == ["a.tar.gz", "b.zip"]

    def test_unknown_run_is_empty(self, tmp_path: Path) -> None:
        assert ArtifactStore(tmp_path / "store").download("404") == []

    def test_custom_prefix(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store", prefix="dist-")
        store.upload("1", _file(tmp_path, "a.zip"))

        assert (tmp_path / "store" / "1" / "dist-a.zip").is_dir()
        assert [p.name for p in store.download("1")] == ["a.zip"]


class TestChecksum:
    def test_matching_digest_is_accepted(self, tmp_path: Path) -> None:
        source = _file(tmp_path, "a.zip", b"archive")
        store = ArtifactStore(tmp_path / "store")

        stored = store.upload("1", source, sha256=compute_sha256(source))

        assert stored.read_bytes() == b"archive"

    def test_mismatching_digest_removes_the_copy(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")

        with pytest.raises(StoreError, match="a.zip"):
            store.upload("1", _file(tmp_path, "a.zip"), sha256="0" * 64)
        assert store.download("1") == []

    def test_name_prefix_keeps_only_matching_files(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        store.upload("local", _file(tmp_path, "gbemu-nightly-20240114-macOS-x86_64.zip"))
        store.upload("local", _file(tmp_path, "gbemu-nightly-20240115-macOS-x86_64.zip"))
        store.upload("local", _file(tmp_path, "gbemu-nightly-20240115-linux-x86_64-gnu.tar.gz"))

        assert [p.name for p in store.download("local", name_prefix="gbemu-nightly-20240115-")] == [
            "gbemu-nightly-20240115-linux-x86_64-gnu.tar.gz",
            "gbemu-nightly-20240115-macOS-x86_64.zip",
        ]


class TestReset:
    def test_reset_drops_the_whole_run(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        store.upload("local", _file(tmp_path, "a.zip"))
        store.upload("other", _file(tmp_path, "b.zip"))

        store.reset("local")

        assert store.download("local") == []
        assert not (tmp_path / "store" / "local").exists()
        assert [p.name for p in store.download("other")] == ["b.zip"]

    def test_reset_of_unknown_run_is_a_no_op(self, tmp_path: Path) -> None:
        ArtifactStore(tmp_path / "store").reset("404")

    def test_reset_cannot_escape_root(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="outside"):
            ArtifactStore(tmp_path / "store").reset("../..")
