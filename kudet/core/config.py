"""Typed configuration loading and access.

The releaser reads an optional ``.kudet.toml`` at the repository root. Every
key has a default matching the conventions of the repositories this tool was
written for, so most repositories need no config file at all.

Example:
    [release]
    remote = "origin"
    branch = "main"
    release_paths = ["docs/changelog.md", "api/"]

    [changelog]
    unreleased_header = '^#\\s*Unreleased\\s*$'
    placeholder = "# Unreleased"
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_str_list, get_table

__all__ = [
    "CONFIG_FILENAME",
    "ChangelogConfig",
    "ConfigError",
    "KudetConfig",
    "ReleaseConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = ".kudet.toml"

DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "master"
DEFAULT_CHANGELOG = "docs/changelog.md"
DEFAULT_PRE_RELEASE_SCRIPTS = ".pre-release-scripts.txt"
DEFAULT_RELEASE_PATHS: tuple[str, ...] = (
    DEFAULT_CHANGELOG,
    "api/",
    "typescript/package.json",
)
DEFAULT_FETCH_GRACE_SECONDS = 60
DEFAULT_LAST_FETCH_FILE = "last-fetch.txt"

DEFAULT_UNRELEASED_HEADER = r"^#\s*TBD\s*$"
DEFAULT_VERSION_HEADER = r"^#\s*[0-9]+\.[0-9]+\.[0-9]+\s*$"
DEFAULT_BREAKING_SUBHEADER = r"^#{2,}\s*[Bb]reak.*$"
DEFAULT_PLACEHOLDER = "# TBD"
DEFAULT_HEADER_PREFIX = "#"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Where and how a release is cut."""

    remote: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH
    changelog: str = DEFAULT_CHANGELOG
    pre_release_scripts: str = DEFAULT_PRE_RELEASE_SCRIPTS
    # Staged explicitly; never a wildcard add.
    release_paths: tuple[str, ...] = DEFAULT_RELEASE_PATHS
    fetch_grace_seconds: int = DEFAULT_FETCH_GRACE_SECONDS
    last_fetch_file: str = DEFAULT_LAST_FETCH_FILE

    @property
    def remote_branch(self) -> str:
        return f"{self.remote}/{self.branch}"


@dataclass(frozen=True, slots=True)
class ChangelogConfig:
    """Structural patterns of the changelog (regular expression sources)."""

    unreleased_header: str = DEFAULT_UNRELEASED_HEADER
    version_header: str = DEFAULT_VERSION_HEADER
    breaking_subheader: str = DEFAULT_BREAKING_SUBHEADER
    placeholder: str = DEFAULT_PLACEHOLDER
    header_prefix: str = DEFAULT_HEADER_PREFIX


@dataclass(frozen=True, slots=True)
class KudetConfig:
    """Main configuration container."""

    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    changelog: ChangelogConfig = field(default_factory=ChangelogConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> KudetConfig:
        """Create config from a mapping (parsed TOML).

        Raises:
            ValueError: If a pattern does not compile.
        """
        release: StrDict = get_table(data, "release") or {}
        changelog: StrDict = get_table(data, "changelog") or {}

        release_paths = get_str_list(release, "release_paths")
        fetch_grace = get_int(release, "fetch_grace_seconds")

        changelog_config = ChangelogConfig(
            unreleased_header=get_str(changelog, "unreleased_header") or DEFAULT_UNRELEASED_HEADER,
            version_header=get_str(changelog, "version_header") or DEFAULT_VERSION_HEADER,
            breaking_subheader=get_str(changelog, "breaking_subheader")
            or DEFAULT_BREAKING_SUBHEADER,
            placeholder=get_str(changelog, "placeholder") or DEFAULT_PLACEHOLDER,
            header_prefix=get_str(changelog, "header_prefix") or DEFAULT_HEADER_PREFIX,
        )
        for name in ("unreleased_header", "version_header", "breaking_subheader"):
            source: str = getattr(changelog_config, name)
            try:
                re.compile(source)
            except re.error as e:
                raise ValueError(f"changelog.{name} is not a valid pattern: {e}") from e

        return cls(
            release=ReleaseConfig(
                remote=get_str(release, "remote") or DEFAULT_REMOTE,
                branch=get_str(release, "branch") or DEFAULT_BRANCH,
                changelog=get_str(release, "changelog") or DEFAULT_CHANGELOG,
                pre_release_scripts=get_str(release, "pre_release_scripts")
                or DEFAULT_PRE_RELEASE_SCRIPTS,
                release_paths=tuple(release_paths)
                if release_paths is not None
                else DEFAULT_RELEASE_PATHS,
                fetch_grace_seconds=fetch_grace
                if fetch_grace is not None
                else DEFAULT_FETCH_GRACE_SECONDS,
                last_fetch_file=get_str(release, "last_fetch_file") or DEFAULT_LAST_FETCH_FILE,
            ),
            changelog=changelog_config,
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[KudetConfig, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to the ``.kudet.toml`` file

    Returns:
        Ok(KudetConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(KudetConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[KudetConfig, ConfigError]:
    """Load config from file, or return the defaults if the file doesn't exist.

    A file that exists but cannot be parsed is still an error.
    """
    if not path.exists():
        return Ok(KudetConfig())
    return load_config(path)
