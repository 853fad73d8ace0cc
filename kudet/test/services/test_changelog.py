from __future__ import annotations

from pathlib import Path

import pytest

from kudet.core.config import ChangelogConfig
from kudet.core.result import Err, Ok
from kudet.services.release.changelog import (
    ChangelogPatterns,
    LineKind,
    classify_lines,
    parse_changelog,
    read_changelog,
)
from kudet.services.release.semver import SemVer, latest_released, next_version

PATTERNS = ChangelogPatterns.default()

VALID = """\
# TBD
### Features
* Added `--bump-major`

# 0.2.0
### Breaking Changes
* Renamed `foo` to `bar`

# 0.1.0
* Initial release
"""


# =============================================================================
# Structural patterns
# =============================================================================


class TestDefaultPatterns:
    @pytest.mark.parametrize("line", ["# TBD", "# TBD  ", "#TBD"])
    def test_unreleased_header_matches(self, line: str) -> None:
        assert PATTERNS.unreleased_header.search(line)

    @pytest.mark.parametrize("line", ["## TBD", "# TD ", "TBD", "# TBD soon"])
    def test_unreleased_header_rejects(self, line: str) -> None:
        assert not PATTERNS.unreleased_header.search(line)

    @pytest.mark.parametrize("line", ["# 1.54.2", "#1.5.2", "# 0.0.1  "])
    def test_version_header_matches(self, line: str) -> None:
        assert PATTERNS.version_header.search(line)

    @pytest.mark.parametrize("line", ["## 1.54.2", "1.5.2", "# 1.52.", "# 1.52", "# v1.5.2"])
    def test_version_header_rejects(self, line: str) -> None:
        assert not PATTERNS.version_header.search(line)

    @pytest.mark.parametrize(
        "line",
        ["### Breaking Changes", "###BreakingChanges", "## Breaking Chages", "#### breaking"],
    )
    def test_breaking_subheader_matches(self, line: str) -> None:
        assert PATTERNS.breaking_subheader.search(line)

    @pytest.mark.parametrize("line", ["Breaking Changes", " ## Break", "# Breaking Changes"])
    def test_breaking_subheader_rejects(self, line: str) -> None:
        assert not PATTERNS.breaking_subheader.search(line)

    def test_version_header_for(self) -> None:
        assert PATTERNS.version_header_for(SemVer(1, 2, 3)) == "# 1.2.3"


class TestClassifyLines:
    def test_kinds(self) -> None:
        lines = ["# TBD", "### Breaking Changes", "* x", "", "### Fixes", "# 0.1.0"]

        kinds = [c.kind for c in classify_lines(lines, PATTERNS)]

        assert kinds == [
            LineKind.UNRELEASED_HEADER,
            LineKind.BREAKING_SUBHEADER,
            LineKind.BODY,
            LineKind.BLANK,
            LineKind.COMMENT,
            LineKind.VERSION_HEADER,
        ]

    def test_restartable(self) -> None:
        lines = ["# TBD", "* x"]
        assert list(classify_lines(lines, PATTERNS)) == list(classify_lines(lines, PATTERNS))

    def test_line_numbers_are_one_based(self) -> None:
        first = next(classify_lines(["# TBD"], PATTERNS))
        assert (first.index, first.number) == (0, 1)


# =============================================================================
# parse_changelog
# =============================================================================


class TestParseValid:
    def test_sections(self) -> None:
        result = parse_changelog(VALID, PATTERNS)

        assert isinstance(result, Ok)
        doc = result.value
        assert doc.unreleased.header_index == 0
        assert doc.unreleased.is_empty is False
        assert [s.version for s in doc.released] == [SemVer(0, 2, 0), SemVer(0, 1, 0)]
        assert doc.newest_release is not None
        assert doc.newest_release.version == SemVer(0, 2, 0)
        assert doc.text == VALID

    def test_breaking_marker_scoped_to_unreleased_section(self) -> None:
        """A breaking sub-header under an older version does not count."""
        result = parse_changelog(VALID, PATTERNS)

        assert isinstance(result, Ok)
        assert result.value.unreleased.has_breaking_change_marker is False

    def test_breaking_marker_in_unreleased_section(self) -> None:
        text = "# TBD\n### Breaking Changes\n* Dropped Python 3.11\n\n# 1.0.0\n* Stable\n"

        result = parse_changelog(text, PATTERNS)

        assert isinstance(result, Ok)
        assert result.value.unreleased.has_breaking_change_marker is True

    def test_leading_blank_lines_and_remarks_allowed(self) -> None:
        text = "\n\n# TBD\n* Something\n\n# 0.1.0\n"
        assert isinstance(parse_changelog(text, PATTERNS), Ok)

    def test_end_to_end_patch_release(self) -> None:
        text = "#TBD\n* Something\n\n#0.1.0\n## Breaking Changes"

        result = parse_changelog(text, PATTERNS)

        assert isinstance(result, Ok)
        doc = result.value
        assert doc.unreleased.has_breaking_change_marker is False

        latest = latest_released({"0.1.0"})
        assert latest == SemVer(0, 1, 0)
        version = next_version(
            latest,
            has_breaking_change=doc.unreleased.has_breaking_change_marker,
            bump_major=False,
        )
        assert version == SemVer(0, 1, 1)


class TestParseInvalid:
    def test_missing_unreleased_header(self) -> None:
        result = parse_changelog("# 0.1.0\n* Initial release\n", PATTERNS)

        assert isinstance(result, Err)
        assert result.error.kind == "missing_unreleased_header"
        assert result.error.line == 1

    def test_unreleased_header_not_first(self) -> None:
        result = parse_changelog("* stray entry\n# TBD\n* Something\n# 0.1.0\n", PATTERNS)

        assert isinstance(result, Err)
        assert result.error.kind == "missing_unreleased_header"
        assert result.error.line == 1

    def test_empty_document(self) -> None:
        result = parse_changelog("", PATTERNS)

        assert isinstance(result, Err)
        assert result.error.kind == "missing_unreleased_header"
        assert result.error.line is None

    def test_duplicate_unreleased_header(self) -> None:
        result = parse_changelog("# TBD\n* a\n\n# TBD\n* b\n# 0.1.0\n", PATTERNS)

        assert isinstance(result, Err)
        assert result.error.kind == "duplicate_unreleased_header"
        assert result.error.line == 4

    def test_no_prior_releases(self) -> None:
        result = parse_changelog("# TBD\n* Something\n", PATTERNS)

        assert isinstance(result, Err)
        assert result.error.kind == "no_prior_releases"

    @pytest.mark.parametrize(
        "text",
        [
            "# TBD\n# 0.1.0\n* Initial release\n",
            "# TBD\n\n\n# 0.1.0\n",
            "# TBD\n### Breaking Changes\n\n# 0.1.0\n",
        ],
    )
    def test_empty_unreleased_section(self, text: str) -> None:
        result = parse_changelog(text, PATTERNS)

        assert isinstance(result, Err)
        assert result.error.kind == "empty_unreleased_section"
        assert result.error.line == 1

    def test_structural_mode_allows_fresh_changelog(self) -> None:
        result = parse_changelog("# TBD\n", PATTERNS, for_release=False)

        assert isinstance(result, Ok)
        assert result.value.unreleased.is_empty is True
        assert result.value.released == ()

    def test_structural_mode_still_checks_placement(self) -> None:
        result = parse_changelog("# 0.1.0\n# TBD\n", PATTERNS, for_release=False)

        assert isinstance(result, Err)
        assert result.error.kind == "missing_unreleased_header"

    def test_pretty_includes_line(self) -> None:
        result = parse_changelog("# 0.1.0\n", PATTERNS)

        assert isinstance(result, Err)
        assert result.error.pretty().startswith("line 1: ")


class TestCustomPatterns:
    def test_unreleased_header_from_config(self) -> None:
        patterns = ChangelogPatterns.from_config(
            ChangelogConfig(unreleased_header=r"^#\s*Unreleased\s*$", placeholder="# Unreleased")
        )
        text = "# Unreleased\n* Something\n\n# 0.1.0\n"

        assert isinstance(parse_changelog(text, patterns), Ok)
        assert isinstance(parse_changelog(text, PATTERNS), Err)


# =============================================================================
# read_changelog
# =============================================================================


class TestReadChangelog:
    def test_reads_and_parses(self, tmp_path: Path) -> None:
        path = tmp_path / "changelog.md"
        path.write_text(VALID, encoding="utf-8")

        result = read_changelog(path, PATTERNS)

        assert isinstance(result, Ok)
        assert result.value.text == VALID

    def test_missing_file_is_io_error(self, tmp_path: Path) -> None:
        result = read_changelog(tmp_path / "missing.md", PATTERNS)

        assert isinstance(result, Err)
        assert result.error.kind == "io_failed"

    def test_invalid_changelog(self, tmp_path: Path) -> None:
        path = tmp_path / "changelog.md"
        path.write_text("# TBD\n# 0.1.0\n", encoding="utf-8")

        result = read_changelog(path, PATTERNS)

        assert isinstance(result, Err)
        assert result.error.kind == "changelog_invalid"
        assert result.error.hint == "empty_unreleased_section"
        assert "line 1" in result.error.message
