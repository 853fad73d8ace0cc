from __future__ import annotations

from dataclasses import replace

from kudet.core.result import Err, Ok
from kudet.services.release.changelog import ChangelogDocument, ChangelogPatterns, parse_changelog
from kudet.services.release.changelog_rewrite import rewrite_changelog
from kudet.services.release.semver import SemVer

PATTERNS = ChangelogPatterns.default()

ORIGINAL = """\
# TBD
### Breaking Changes
* Renamed `foo` to `bar`

# 0.1.1
* Fixed `baz`

# 0.1.0
* Initial release
"""


def _parse(text: str) -> ChangelogDocument:
    result = parse_changelog(text, PATTERNS)
    assert isinstance(result, Ok)
    return result.value


def test_rewrite_output() -> None:
    result = rewrite_changelog(_parse(ORIGINAL), SemVer(0, 2, 0), PATTERNS)

    assert result == Ok(
        "# TBD\n"
        "\n"
        "# 0.2.0\n"
        "### Breaking Changes\n"
        "* Renamed `foo` to `bar`\n"
        "\n"
        "# 0.1.1\n"
        "* Fixed `baz`\n"
        "\n"
        "# 0.1.0\n"
        "* Initial release\n"
    )


def test_rewrite_only_touches_header_line() -> None:
    text = "\n# TBD   \n*  odd   spacing  \r\n\n#0.1.0\n"

    result = rewrite_changelog(_parse(text), SemVer(0, 1, 1), PATTERNS)

    assert result == Ok("\n# TBD\n\n# 0.1.1\n*  odd   spacing  \r\n\n#0.1.0\n")


def test_round_trip() -> None:
    original = _parse(ORIGINAL)

    rewritten = rewrite_changelog(original, SemVer(0, 2, 0), PATTERNS)
    assert isinstance(rewritten, Ok)
    reparsed = parse_changelog(rewritten.value, PATTERNS, for_release=False)

    assert isinstance(reparsed, Ok)
    doc = reparsed.value
    assert doc.unreleased.is_empty is True
    assert doc.unreleased.has_breaking_change_marker is False
    assert doc.newest_release is not None
    assert doc.newest_release.version == SemVer(0, 2, 0)
    assert doc.newest_release.body_lines == original.unreleased.body_lines
    assert [(s.version, s.body_lines) for s in doc.released[1:]] == [
        (s.version, s.body_lines) for s in original.released
    ]


def test_rejects_unparsed_input() -> None:
    result = rewrite_changelog(ORIGINAL, SemVer(0, 2, 0), PATTERNS)  # type: ignore[arg-type]

    assert isinstance(result, Err)
    assert result.error.kind == "malformed_document"


def test_rejects_document_with_moved_header() -> None:
    doc = _parse(ORIGINAL)
    tampered = replace(doc, lines=("* not a header", *doc.lines[1:]))

    result = rewrite_changelog(tampered, SemVer(0, 2, 0), PATTERNS)

    assert isinstance(result, Err)
    assert result.error.kind == "malformed_document"
    assert result.error.line == 1
