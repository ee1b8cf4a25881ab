# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Reads a gbemu-release YAML file into a frozen GbemuReleaseConfig.

Commands that get no --config run with default_config(), so this is only
reached for an explicit path, and any problem with that file is an error.
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from gbemu_release.config.exceptions import ConfigLoadError, ConfigValidationError
from gbemu_release.config.schema import GbemuReleaseConfig


def load_config(config_path: Path) -> GbemuReleaseConfig:
    """
    Raises:
        ConfigLoadError: Missing or unreadable file, bad YAML, or a top level that isn't a mapping.
        ConfigValidationError: Schema violations.
    """
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as err:
        raise ConfigLoadError(f"Config file not found: {config_path}") from err
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if not isinstance(raw, dict):
        raise ConfigLoadError(f"{config_path} must hold a YAML mapping, got {type(raw).__name__}")

    try:
        return GbemuReleaseConfig.model_validate(raw)
    except ValidationError as err:
        raise ConfigValidationError(f"Config validation failed for {config_path}:\n{err}") from err


def default_config() -> GbemuReleaseConfig:
    """The config every command runs with when --config isn't given."""
    return GbemuReleaseConfig.model_validate({"global": {"config_version": "1.0.0"}})
