from __future__ import annotations

from kudet.core.result import Err, Ok, Result
from kudet.services.release.changelog import ChangelogDocument, ChangelogError, ChangelogPatterns
from kudet.services.release.semver import SemVer


def rewrite_changelog(
    document: ChangelogDocument,
    version: SemVer,
    patterns: ChangelogPatterns,
) -> Result[str, ChangelogError]:
    """Retitle the unreleased section as ``version`` and open a fresh one.

    Only the placeholder header line changes; a new placeholder and one blank
    line are inserted in front of it. All other lines are kept as-is.

    Example (``# TBD`` released as 0.1.1)::

        # TBD                 # TBD
        * Something     ->
                              # 0.1.1
        # 0.1.0               * Something

                              # 0.1.0
    """
    if not isinstance(document, ChangelogDocument):
        return Err(
            ChangelogError(
                kind="malformed_document",
                message="changelog must be parsed before it can be rewritten",
            )
        )

    index = document.unreleased.header_index
    if index >= len(document.lines) or not patterns.unreleased_header.search(document.lines[index]):
        return Err(
            ChangelogError(
                kind="malformed_document",
                message="unreleased header is not where the parsed changelog recorded it",
                line=index + 1,
            )
        )

    lines = [
        *document.lines[:index],
        patterns.placeholder,
        "",
        patterns.version_header_for(version),
        *document.lines[index + 1 :],
    ]
    return Ok("\n".join(lines))
