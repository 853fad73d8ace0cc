"""Rewrite a version string embedded in an arbitrary text file.

The caller describes the line with a format string holding a single ``%s``
where the version goes, e.g. ``const Version = "%s"``. The ``%s`` becomes
``VERSION_PATTERN`` to find the line, and the new version to rewrite it.
"""

from __future__ import annotations

import re
from pathlib import Path

from kudet.core.result import Err, Ok, Result
from kudet.platform.files import atomic_write_text
from kudet.services.release.errors import ReleaseError

VERSION_PATTERN = "[0-9A-Za-z_./-]+"
PLACEHOLDER = "%s"
EXPECTED_MATCHING_LINES = 1

_VERSION_RE = re.compile(VERSION_PATTERN)


def is_valid_version(value: str) -> bool:
    return _VERSION_RE.search(value) is not None


def count_matching_lines(text: str, pattern: re.Pattern[str]) -> int:
    return sum(1 for line in text.split("\n") if pattern.search(line))


def update_version_in_file(path: Path, format_str: str, new_version: str) -> Result[None, ReleaseError]:
    """Replace the version on the single line of ``path`` matching ``format_str``.

    The file is left untouched unless exactly one line matches. Its
    permission bits are preserved.
    """
    if format_str.count(PLACEHOLDER) != 1:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"format string {format_str!r} must contain '{PLACEHOLDER}' exactly once",
            )
        )

    if not is_valid_version(new_version):
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"version {new_version!r} does not contain a match of '{VERSION_PATTERN}'",
            )
        )

    search = format_str.replace(PLACEHOLDER, VERSION_PATTERN)
    try:
        pattern = re.compile(search)
    except re.error as e:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"format string {format_str!r} is not a valid pattern",
                hint=str(e),
            )
        )

    try:
        mode = path.stat().st_mode & 0o777
        with path.open(encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        return Err(ReleaseError(kind="io_failed", message=f"failed to read {path}", hint=str(e)))

    found = count_matching_lines(text, pattern)
    if found != EXPECTED_MATCHING_LINES:
        return Err(
            ReleaseError(
                kind="match_count",
                message=(
                    f"found {found} lines matching '{search}' in {path}; "
                    f"expected exactly {EXPECTED_MATCHING_LINES}"
                ),
            )
        )

    replacement = format_str.replace(PLACEHOLDER, new_version)
    lines = [pattern.sub(lambda _: replacement, line) for line in text.split("\n")]

    try:
        atomic_write_text(path, "\n".join(lines), mode=mode)
    except OSError as e:
        return Err(ReleaseError(kind="io_failed", message=f"failed to write {path}", hint=str(e)))
    return Ok(None)
