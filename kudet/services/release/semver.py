from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

ReleaseBump = Literal["major", "minor", "patch"]

NO_PREVIOUS_VERSION = "0.0.0"

# Bare X.Y.Z only: "v1.2.3", "1.2.3-rc.1" and "01.2.3" are not release tags.
_STRICT_RE = re.compile(r"(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)")
_EMBEDDED_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def v_tag(self) -> str:
        return f"v{self}"

    def bump(self, kind: ReleaseBump) -> "SemVer":
        match kind:
            case "major":
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                return SemVer(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")


def parse_strict_version(tag: str) -> SemVer | None:
    m = _STRICT_RE.fullmatch(tag)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def find_version(text: str) -> SemVer | None:
    """First X.Y.Z embedded in ``text`` (e.g. a changelog header)."""
    m = _EMBEDDED_RE.search(text)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def latest_released(tags: Iterable[str], baseline: str = NO_PREVIOUS_VERSION) -> SemVer:
    """Highest strict X.Y.Z tag, or ``baseline`` when none qualifies.

    Raises:
        ValueError: If ``baseline`` itself is not a strict version.
    """
    versions = [v for v in (parse_strict_version(t) for t in tags) if v is not None]
    if versions:
        return max(versions)

    base = parse_strict_version(baseline)
    if base is None:
        raise ValueError(f"invalid baseline version: {baseline}")
    return base


def select_bump(*, has_breaking_change: bool, bump_major: bool) -> ReleaseBump:
    # An explicit major bump skips changelog inspection entirely.
    if bump_major:
        return "major"
    # Breaking changes bump minor, never major.
    if has_breaking_change:
        return "minor"
    return "patch"


def next_version(latest: SemVer, *, has_breaking_change: bool, bump_major: bool) -> SemVer:
    return latest.bump(select_bump(has_breaking_change=has_breaking_change, bump_major=bump_major))
