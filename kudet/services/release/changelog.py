"""Changelog parsing and validation.

The changelog is a plain text file whose sections are introduced by
single-``#`` headers. The first meaningful line must be the unreleased
placeholder (``# TBD``); released sections follow, newest first::

    # TBD
    ### Breaking Changes
    * Renamed the `foo` flag

    # 0.1.0
    * Initial release

Lines are classified one at a time (see ``classify_lines``) and the
resulting sequence is checked for the invariants a release relies on.
Parsing never guesses: every unmet precondition is a ``ChangelogError``
carrying the offending 1-based line number when there is one.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Literal

from kudet.core.config import ChangelogConfig
from kudet.core.result import Err, Ok, Result
from kudet.services.release.errors import ReleaseError
from kudet.services.release.semver import SemVer, find_version

__all__ = [
    "ChangelogDocument",
    "ChangelogError",
    "ChangelogPatterns",
    "ClassifiedLine",
    "LineKind",
    "ReleasedSection",
    "UnreleasedSection",
    "classify_lines",
    "parse_changelog",
    "read_changelog",
]

ChangelogErrorKind = Literal[
    "missing_unreleased_header",
    "duplicate_unreleased_header",
    "no_prior_releases",
    "empty_unreleased_section",
    "malformed_document",
]


@dataclass(frozen=True, slots=True)
class ChangelogError:
    kind: ChangelogErrorKind
    message: str
    line: int | None = None

    def pretty(self) -> str:
        if self.line is not None:
            return f"line {self.line}: {self.message}"
        return self.message


@dataclass(frozen=True, slots=True)
class ChangelogPatterns:
    """Compiled structural patterns, built once and passed to the parser."""

    unreleased_header: re.Pattern[str]
    version_header: re.Pattern[str]
    breaking_subheader: re.Pattern[str]
    placeholder: str
    header_prefix: str

    @classmethod
    def from_config(cls, config: ChangelogConfig) -> ChangelogPatterns:
        return cls(
            unreleased_header=re.compile(config.unreleased_header),
            version_header=re.compile(config.version_header),
            breaking_subheader=re.compile(config.breaking_subheader),
            placeholder=config.placeholder,
            header_prefix=config.header_prefix,
        )

    @classmethod
    def default(cls) -> ChangelogPatterns:
        return cls.from_config(ChangelogConfig())

    def version_header_for(self, version: SemVer) -> str:
        return f"{self.header_prefix} {version}"


class LineKind(Enum):
    UNRELEASED_HEADER = auto()
    VERSION_HEADER = auto()
    BREAKING_SUBHEADER = auto()
    COMMENT = auto()
    BLANK = auto()
    BODY = auto()


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    index: int
    text: str
    kind: LineKind

    @property
    def number(self) -> int:
        return self.index + 1

    @property
    def is_trivial(self) -> bool:
        """Blank lines and inert ``#`` remarks."""
        return self.kind in (LineKind.BLANK, LineKind.COMMENT)


def classify_lines(lines: Sequence[str], patterns: ChangelogPatterns) -> Iterator[ClassifiedLine]:
    """Classify each line, top to bottom.

    Each call starts a fresh scan over ``lines``.
    """
    for index, text in enumerate(lines):
        yield ClassifiedLine(index=index, text=text, kind=_classify(text, patterns))


def _classify(text: str, patterns: ChangelogPatterns) -> LineKind:
    if patterns.unreleased_header.search(text):
        return LineKind.UNRELEASED_HEADER
    if patterns.version_header.search(text):
        return LineKind.VERSION_HEADER
    if patterns.breaking_subheader.search(text):
        return LineKind.BREAKING_SUBHEADER
    stripped = text.strip()
    if not stripped:
        return LineKind.BLANK
    if stripped.startswith(patterns.header_prefix):
        return LineKind.COMMENT
    return LineKind.BODY


@dataclass(frozen=True, slots=True)
class UnreleasedSection:
    header_index: int
    body_lines: tuple[str, ...]
    has_breaking_change_marker: bool
    is_empty: bool


@dataclass(frozen=True, slots=True)
class ReleasedSection:
    header_index: int
    version: SemVer
    body_lines: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ChangelogDocument:
    """A parsed changelog. Only ``parse_changelog`` builds these."""

    lines: tuple[str, ...]
    unreleased: UnreleasedSection
    released: tuple[ReleasedSection, ...]

    @property
    def newest_release(self) -> ReleasedSection | None:
        return self.released[0] if self.released else None

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def parse_changelog(
    text: str,
    patterns: ChangelogPatterns,
    *,
    for_release: bool = True,
) -> Result[ChangelogDocument, ChangelogError]:
    """Parse and validate a changelog.

    Args:
        text: Full changelog content.
        patterns: Structural patterns.
        for_release: Also require at least one released section and a
            non-empty unreleased section. Structural checks (a single
            placeholder header, placed first) always apply.

    Returns:
        Ok(ChangelogDocument) or Err(ChangelogError)
    """
    lines = tuple(text.split("\n"))
    classified = list(classify_lines(lines, patterns))

    placeholders = [c for c in classified if c.kind is LineKind.UNRELEASED_HEADER]
    if len(placeholders) > 1:
        return Err(
            ChangelogError(
                kind="duplicate_unreleased_header",
                message=(
                    f"found {len(placeholders)} unreleased headers, expected exactly one "
                    f"(first at line {placeholders[0].number})"
                ),
                line=placeholders[1].number,
            )
        )

    first = next((c for c in classified if not c.is_trivial), None)
    if not placeholders or first is None or first.kind is not LineKind.UNRELEASED_HEADER:
        return Err(
            ChangelogError(
                kind="missing_unreleased_header",
                message=(
                    f"'{patterns.placeholder}' header is either missing or is not the first "
                    "non-empty line of the changelog"
                ),
                line=first.number if first is not None else None,
            )
        )

    header = placeholders[0]
    version_headers = [c for c in classified if c.kind is LineKind.VERSION_HEADER]
    if for_release and not version_headers:
        return Err(
            ChangelogError(
                kind="no_prior_releases",
                message=(
                    "no previous release versions were detected in the changelog; "
                    "is it in sync with the release tags on this branch?"
                ),
            )
        )

    span_end = next(
        (c.index for c in version_headers if c.index > header.index),
        len(classified),
    )
    span = classified[header.index + 1 : span_end]
    is_empty = not any(c.kind is LineKind.BODY for c in span)
    if for_release and is_empty:
        return Err(
            ChangelogError(
                kind="empty_unreleased_section",
                message="the changelog has no entries for the current release",
                line=header.number,
            )
        )

    unreleased = UnreleasedSection(
        header_index=header.index,
        body_lines=tuple(c.text for c in span),
        has_breaking_change_marker=any(c.kind is LineKind.BREAKING_SUBHEADER for c in span),
        is_empty=is_empty,
    )

    released_sections: list[ReleasedSection] = []
    for position, vh in enumerate(version_headers):
        version = find_version(vh.text)
        if version is None:
            return Err(
                ChangelogError(
                    kind="malformed_document",
                    message=f"version header has no X.Y.Z version: {vh.text.strip()!r}",
                    line=vh.number,
                )
            )
        end = (
            version_headers[position + 1].index
            if position + 1 < len(version_headers)
            else len(lines)
        )
        released_sections.append(
            ReleasedSection(
                header_index=vh.index,
                version=version,
                body_lines=lines[vh.index + 1 : end],
            )
        )

    return Ok(
        ChangelogDocument(
            lines=lines,
            unreleased=unreleased,
            released=tuple(released_sections),
        )
    )


def read_changelog(
    path: Path,
    patterns: ChangelogPatterns,
) -> Result[ChangelogDocument, ReleaseError]:
    """Read ``path`` and parse it for a release."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(
            ReleaseError(
                kind="io_failed",
                message=f"failed to read changelog: {path}",
                hint=str(e),
            )
        )
    except UnicodeDecodeError as e:
        return Err(
            ReleaseError(
                kind="changelog_invalid",
                message=f"changelog is not valid UTF-8: {path}",
                hint=str(e),
            )
        )

    parsed = parse_changelog(text, patterns)
    if isinstance(parsed, Err):
        e = parsed.error
        return Err(
            ReleaseError(
                kind="changelog_invalid",
                message=f"{path}: {e.pretty()}",
                hint=e.kind,
            )
        )
    return parsed
