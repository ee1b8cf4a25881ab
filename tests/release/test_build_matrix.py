# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the parallel build matrix.

The builder is a fake that writes placeholder binaries, so no toolchain is
needed. One target can be told to fail to check isolation between units.
"""

import threading
from pathlib import Path

import pytest

from gbemu_release.release.build.compiler import BuildOutput
from gbemu_release.release.build.matrix import BuildMatrixCoordinator
from gbemu_release.release.exceptions import BuildError
from gbemu_release.release.platforms import ALL_TARGETS, PlatformTarget
from gbemu_release.release.publishing.publisher import ReleasePublisher
from gbemu_release.release.publishing.store import ArtifactStore


class FakeBuilder:
    def __init__(self, root: Path, failing: tuple[PlatformTarget, ...] = ()) -> None:
        self.root = root
        self.failing = failing
        self.built: list[PlatformTarget] = []
        self._lock = threading.Lock()

    def build(self, target: PlatformTarget) -> BuildOutput:
        with self._lock:
            self.built.append(target)
        if target in self.failing:
            raise BuildError(f"cargo build for {target.triple} failed (exit 101)")
        release_dir = self.root / "target" / target.triple / "release"
        release_dir.mkdir(parents=True, exist_ok=True)
        gui = release_dir / target.binary_filename("gbemu-iced")
        term = release_dir / target.binary_filename("gbemu-term")
        gui.write_bytes(b"gui")
        term.write_bytes(b"term")
        return BuildOutput(target=target, release_dir=release_dir, gui_binary=gui, terminal_binary=term)


@pytest.fixture()
def store(tmp_path: Path) -> ArtifactStore:
    return ArtifactStore(tmp_path / "artifacts")


def _coordinator(tmp_path: Path, builder: FakeBuilder, store: ArtifactStore, **kwargs) -> BuildMatrixCoordinator:  # type: ignore[no-untyped-def]
    return BuildMatrixCoordinator(
        builder,
        store,
        output_dir=tmp_path / "dist",
        zip_backend="python",
        **kwargs,
    )


class TestMatrix:
    def test_all_targets_succeed(self, tmp_path: Path, store: ArtifactStore) -> None:
        builder = FakeBuilder(tmp_path)

        result = _coordinator(tmp_path, builder, store).run("1.2.0", "11")

        assert [a.target for a in result.artifacts] == list(ALL_TARGETS)
        assert result.failures == []
        assert sorted(builder.built, key=lambda t: t.platform_name) == sorted(
            ALL_TARGETS, key=lambda t: t.platform_name
        )

    def test_one_failing_unit_leaves_exactly_three_artifacts(
        self, tmp_path: Path, store: ArtifactStore, fake_host
    ) -> None:  # type: ignore[no-untyped-def]
        builder = FakeBuilder(tmp_path, failing=(PlatformTarget.WINDOWS_X86_64_MSVC,))

        result = _coordinator(tmp_path, builder, store).run("1.2.0", "11")

        assert [a.name for a in result.artifacts] == [
            "gbemu-1.2.0-linux-x86_64-gnu.tar.gz",
            "gbemu-1.2.0-macOS-x86_64.zip",
            "gbemu-1.2.0-macOS-aarch64.zip",
        ]
        [failure] = result.failures
        assert failure.target is PlatformTarget.WINDOWS_X86_64_MSVC
        assert "exit 101" in failure.error

        published = ReleasePublisher(fake_host, store).publish("11", "1.2.0", False, "Release 1.2.0")
        assert sorted(published.assets) == sorted(a.name for a in result.artifacts)

    def test_every_unit_failing_is_not_an_exception(self, tmp_path: Path, store: ArtifactStore) -> None:
        builder = FakeBuilder(tmp_path, failing=ALL_TARGETS)

        result = _coordinator(tmp_path, builder, store).run("1.2.0", "11")

        assert result.artifacts == []
        assert len(result.failures) == 4
        assert store.download("11") == []

    def test_target_subset(self, tmp_path: Path, store: ArtifactStore) -> None:
        builder = FakeBuilder(tmp_path)

        result = _coordinator(
            tmp_path, builder, store, targets=[PlatformTarget.MACOS_AARCH64], max_workers=1
        ).run("nightly-20240101", "12")

        assert [a.name for a in result.artifacts] == ["gbemu-nightly-20240101-macOS-aarch64.zip"]
        assert [p.name for p in store.download("12")] == ["gbemu-nightly-20240101-macOS-aarch64.zip"]

    def test_no_targets(self, tmp_path: Path, store: ArtifactStore) -> None:
        result = _coordinator(tmp_path, FakeBuilder(tmp_path), store, targets=[]).run("1.2.0", "13")
        assert result.units == []

    def test_rebuild_under_the_same_run_id_publishes_only_the_new_archives(
        self, tmp_path: Path, store: ArtifactStore, fake_host
    ) -> None:  # type: ignore[no-untyped-def]
        _coordinator(tmp_path, FakeBuilder(tmp_path), store).run("nightly-20240114", "local")

        builder = FakeBuilder(tmp_path, failing=(PlatformTarget.WINDOWS_X86_64_MSVC,))
        result = _coordinator(tmp_path, builder, store).run("nightly-20240115", "local")
        published = ReleasePublisher(fake_host, store).publish(
            "local", "nightly-20240115", True, "Nightly Build 2024-01-15"
        )

        assert sorted(published.assets) == sorted(a.name for a in result.artifacts)
        assert published.assets == [
            "gbemu-nightly-20240115-linux-x86_64-gnu.tar.gz",
            "gbemu-nightly-20240115-macOS-aarch64.zip",
            "gbemu-nightly-20240115-macOS-x86_64.zip",
        ]
        assert [p.name for p in store.download("local")] == published.assets

    def test_unusable_output_directory_is_a_unit_failure(self, tmp_path: Path, store: ArtifactStore) -> None:
        (tmp_path / "dist").write_text("not a directory")

        result = _coordinator(tmp_path, FakeBuilder(tmp_path), store).run("1.2.0", "14")

        assert result.artifacts == []
        assert [u.target for u in result.failures] == list(ALL_TARGETS)
        assert store.download("14") == []
