# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for gbemu-release.

Every section is a frozen pydantic model with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure (a typo like
    `nighlty_prefix` must not silently fall back to a default)
  - validate_default=True: even defaults get type-checked

Unlike most config systems, every section except `global` has full defaults.
The defaults describe the real gbemu repository, so `gbemu-release nightly`
run from the emulator workspace does the right thing with no YAML at all.

A config file looks like:

    global:
      config_version: "1.0.0"
      log_level: "INFO"
    build:
      targets: [linux-x86_64-gnu, macOS-aarch64]
    release:
      repository: "owner/gbemu"
    validation:
      exit_on_first_failed: true
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gbemu_release.release.platforms import PlatformTarget

_ZIP_BACKENDS: frozenset[str] = frozenset({"auto", "python", "7z", "zip"})


class GlobalConfig(BaseModel):
    """Cross-cutting settings: schema version and observability."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        description="Schema version for compatibility tracking, e.g. '1.0.0'"
    )
    project_name: str = Field(
        default="gbemu", description="Human-readable project identifier"
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output, relative to the workspace",
    )


class ProjectConfig(BaseModel):
    """What is being built: the cargo workspace and the two frontend binaries."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    app_name: str = Field(
        default="gbemu",
        description="Leading component of every archive name",
    )
    metadata_package: str = Field(
        default="gbemu-core",
        description="Cargo package whose version is the release version",
    )
    workspace_directory: str = Field(
        default=".",
        description="Root of the cargo workspace, relative to the current directory",
    )
    gui_binary: str = Field(default="gbemu-iced", description="GUI frontend binary name")
    terminal_binary: str = Field(default="gbemu-term", description="Terminal frontend binary name")


class BuildConfig(BaseModel):
    """The build matrix: which targets, how many at once, how long each may take."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    targets: list[str] = Field(
        default_factory=lambda: [target.platform_name for target in PlatformTarget],
        description="Platform names to build; defaults to every supported target",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        le=16,
        description="How many build units run in parallel",
    )
    timeout_seconds: int = Field(
        default=3600,
        ge=1,
        description="Per-command limit for rustup/cargo before the unit counts as failed",
    )
    locked: bool = Field(
        default=True,
        description="Pass --locked to cargo so Cargo.lock must already be up to date",
    )
    install_targets: bool = Field(
        default=True,
        description="Run `rustup target add` before each build",
    )
    output_directory: str = Field(
        default="dist",
        description="Where staging directories and archives are written, relative to the workspace",
    )
    zip_backend: str = Field(
        default="auto",
        description="'auto', 'python', '7z', or 'zip'",
    )

    @field_validator("targets")
    @classmethod
    def _known_targets(cls, value: list[str]) -> list[str]:
        for name in value:
            PlatformTarget.from_name(name)
        if len(set(value)) != len(value):
            raise ValueError("build.targets contains duplicates")
        return value

    @field_validator("zip_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        if value not in _ZIP_BACKENDS:
            raise ValueError(
                f"zip_backend must be one of {', '.join(sorted(_ZIP_BACKENDS))}, got '{value}'"
            )
        return value


class ReleaseConfig(BaseModel):
    """Where releases go and how nightly releases are recognized."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    repository: Optional[str] = Field(
        default=None,
        description="GitHub repository as 'owner/name'; required for cleanup and publish",
    )
    token_env: str = Field(
        default="GITHUB_TOKEN",
        description="Environment variable holding the GitHub token",
    )
    nightly_prefix: str = Field(
        default="nightly-",
        min_length=1,
        description="Tag prefix that marks a nightly release",
    )
    artifact_store_directory: str = Field(
        default="artifacts",
        description="Per-run artifact storage, relative to the workspace",
    )
    artifact_prefix: str = Field(
        default="tarball-",
        min_length=1,
        description="Prefix of every artifact entry in the store",
    )
    target_commitish: Optional[str] = Field(
        default=None,
        description="Branch or commit a newly created release tag points at",
    )
    git_timeout_seconds: int = Field(default=60, ge=1)


class ValidationConfig(BaseModel):
    """Reference corpora locations and the commands the harness runs."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    root_directory: str = Field(
        default="doctor",
        description="Base for the other validation paths, relative to the workspace",
    )
    roms_directory: str = Field(default="roms")
    logs_directory: str = Field(default="logs")
    tools_directory: str = Field(default="tools")
    gameboy_doctor_command: list[str] = Field(
        default_factory=lambda: ["tools/gameboy-doctor/gameboy-doctor"],
        min_length=1,
        description="Command that checks a trace log; relative first element resolves under root",
    )
    trace_command: list[str] = Field(
        default_factory=lambda: ["cargo", "run", "--release", "--bin", "gameboy-doctor", "--"],
        min_length=1,
        description="Command that runs a ROM and prints the CPU trace; the ROM path is appended",
    )
    step_command: list[str] = Field(
        default_factory=lambda: ["cargo", "run", "--release", "--bin", "sm83-doctor", "--"],
        min_length=1,
        description="Command that runs one SM83 vector file; the file path is appended",
    )
    exit_on_first_failed: bool = Field(
        default=False,
        description="Stop the suite at the first failing case",
    )
    timeout_seconds: int = Field(default=600, ge=1)
    gameboy_doctor_repository: str = Field(default="https://github.com/robert/gameboy-doctor")
    sm83_repository: str = Field(default="https://github.com/SingleStepTests/sm83")
    test_roms_url: str = Field(
        default=(
            "https://github.com/c-sp/game-boy-test-roms/releases/download/"
            "v7.0/game-boy-test-roms-v7.0.zip"
        )
    )


class GbemuReleaseConfig(BaseModel):
    """
    Top-level config container. Each CLI command reads the sections it needs.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global")
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    release: ReleaseConfig = Field(default_factory=ReleaseConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
