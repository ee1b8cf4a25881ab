# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path helpers.

Config values are stored as relative paths so the same YAML works on every
runner. They are resolved against the emulator workspace at the point of use,
never against the current working directory of some library call.
"""

from pathlib import Path


def resolve_path(base: Path, value: str | Path) -> Path:
    """Return value unchanged if absolute, otherwise joined onto base."""
    candidate = Path(value)
    if candidate.is_absolute():
        return candidate
    return base / candidate


def ensure_directory(path: Path) -> Path:
    """Create a directory (and parents) if it doesn't exist. Returns the path for chaining."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_path_within(target: Path, root: Path) -> Path:
    """
    Make sure a path doesn't escape a root directory.

    Run ids and artifact names end up as directory names in the artifact
    store. A run id like ../../etc would otherwise let an upload write
    anywhere on disk, so every store path goes through here first.

    Returns:
        The resolved absolute path if it's safe.

    Raises:
        ValueError: If the path resolves outside root.
    """
    resolved_target = target.resolve()
    resolved_root = root.resolve()

    if resolved_target != resolved_root and resolved_root not in resolved_target.parents:
        raise ValueError(
            f"Path '{target}' resolves to '{resolved_target}' which is outside "
            f"'{resolved_root}'. This is not allowed."
        )

    return resolved_target
