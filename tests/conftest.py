# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for gbemu-release tests.

Fixtures here are available to every test file automatically. Besides the
config files there's an in-memory release host and a helper that turns a
snippet of Python into an executable command, which stands in for cargo,
gameboy-doctor, and the SM83 runner.
"""

import sys
import textwrap
from pathlib import Path
from typing import Callable, Sequence

import pytest

from gbemu_release.release.exceptions import HostingError
from gbemu_release.release.hosting.base import HostedRelease


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """The smallest config that passes schema validation."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "gbemu-test"
          log_level: "DEBUG"
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML that fails schema validation (missing config_version)."""
    config_content = textwrap.dedent("""\
        global:
          project_name: "gbemu-test"
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file


class FakeReleaseHost:
    """
    In-memory ReleaseHost.

    Releases and tags live in plain dicts. Failures are injected by listing
    the tag names whose release or tag deletion should raise HostingError.
    """

    def __init__(self, releases: Sequence[HostedRelease] = ()) -> None:
        self.releases: dict[int, HostedRelease] = {r.id: r for r in releases}
        self.tags: set[str] = {r.tag_name for r in releases}
        self.uploads: dict[str, list[str]] = {}
        self.fail_release_delete: set[str] = set()
        self.fail_tag_delete: set[str] = set()
        self.fail_list = False
        self.deleted_release_calls: list[int] = []
        self.deleted_tag_calls: list[str] = []

    def list_releases(self) -> list[HostedRelease]:
        if self.fail_list:
            raise HostingError("listing is broken")
        return list(self.releases.values())

    def delete_release(self, release_id: int) -> None:
        self.deleted_release_calls.append(release_id)
        release = self.releases[release_id]
        if release.tag_name in self.fail_release_delete:
            raise HostingError(f"cannot delete release {release.tag_name}")
        del self.releases[release_id]

    def delete_tag(self, tag_name: str) -> None:
        self.deleted_tag_calls.append(tag_name)
        if tag_name in self.fail_tag_delete:
            raise HostingError(f"cannot delete tag {tag_name}")
        self.tags.discard(tag_name)

    def create_or_update_release(self, tag_name, name, prerelease, files) -> HostedRelease:
        existing = next((r for r in self.releases.values() if r.tag_name == tag_name), None)
        release_id = existing.id if existing else max(self.releases, default=0) + 1
        assets = self.uploads.setdefault(tag_name, [])
        for path in files:
            if path.name not in assets:
                assets.append(path.name)
        release = HostedRelease(
            id=release_id,
            tag_name=tag_name,
            name=name,
            prerelease=prerelease,
            assets=tuple(assets),
        )
        self.releases[release_id] = release
        self.tags.add(tag_name)
        return release


@pytest.fixture()
def fake_host() -> FakeReleaseHost:
    return FakeReleaseHost()


@pytest.fixture()
def make_host() -> Callable[..., FakeReleaseHost]:
    return FakeReleaseHost


@pytest.fixture()
def python_command(tmp_path: Path) -> Callable[[str, str], list[str]]:
    """
    Write a Python script and return the argv that runs it.

    The script sees the remaining command-line arguments in sys.argv[1:].
    """
    scripts_dir = tmp_path / "bin"
    scripts_dir.mkdir(exist_ok=True)

    def _make(name: str, body: str) -> list[str]:
        script = scripts_dir / f"{name}.py"
        script.write_text(textwrap.dedent(body), encoding="utf-8")
        return [sys.executable, str(script)]

    return _make
