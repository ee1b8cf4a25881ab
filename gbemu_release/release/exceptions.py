# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Exception hierarchy for the release pipeline.

Only VersionMismatchError is a pipeline-wide gate. Everything else is
contained by whoever catches it: a BuildError or PackagingError kills one
platform unit, a HostingError during cleanup is logged and swallowed.
"""


class ReleaseError(Exception):
    """Base for every release pipeline failure."""


class VersionMismatchError(ReleaseError):
    """The pushed tag does not equal the package metadata version."""


class MetadataError(ReleaseError):
    """Package metadata could not be read or the package is missing."""


class BuildError(ReleaseError):
    """cargo or rustup failed (or timed out) for one platform target."""


class PackagingError(ReleaseError):
    """An expected binary is missing or the archive could not be written."""


class HostingError(ReleaseError):
    """git or the release host rejected an operation."""


class StoreError(ReleaseError):
    """An artifact in the run store is not what was uploaded."""
