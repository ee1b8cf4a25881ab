# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The release host interface.

Cleanup and publishing talk to the host only through these four operations,
so tests can hand them a fake and nothing in the pipeline imports PyGithub
directly.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence


@dataclass(frozen=True)
class HostedRelease:
    """A release as the host lists it. assets is empty in listings."""

    id: int
    tag_name: str
    name: str
    prerelease: bool
    assets: tuple[str, ...] = ()


class ReleaseHost(Protocol):
    def list_releases(self) -> list[HostedRelease]: ...

    def delete_release(self, release_id: int) -> None: ...

    def delete_tag(self, tag_name: str) -> None: ...

    def create_or_update_release(
        self,
        tag_name: str,
        name: str,
        prerelease: bool,
        files: Sequence[Path],
    ) -> HostedRelease: ...
