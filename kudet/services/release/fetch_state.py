"""Last-fetch sidecar used to rate-limit remote fetches.

The sidecar lives in the git metadata directory and holds the Unix time (in
whole seconds, decimal text) of the last successful fetch.
"""

from __future__ import annotations

from pathlib import Path

from kudet.core.result import Err, Ok, Result
from kudet.platform.files import atomic_write_text
from kudet.services.release.errors import ReleaseError

_MAX_TIMESTAMP = 2**64 - 1


def read_last_fetch(path: Path) -> Result[int | None, ReleaseError]:
    """Timestamp of the last fetch, or None if none was ever recorded."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Ok(None)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="io_failed",
                message=f"failed to read last-fetch timestamp: {path}",
                hint=str(e),
            )
        )

    value = raw.strip()
    if not (value.isascii() and value.isdigit()) or int(value) > _MAX_TIMESTAMP:
        return Err(
            ReleaseError(
                kind="io_failed",
                message=f"invalid last-fetch timestamp {value!r} in {path}",
                hint=f"Delete {path} to force a fetch.",
            )
        )
    return Ok(int(value))


def should_fetch(path: Path, *, now: float, grace_seconds: int) -> Result[bool, ReleaseError]:
    last = read_last_fetch(path)
    if isinstance(last, Err):
        return last
    if last.value is None:
        return Ok(True)
    return Ok(now > last.value + grace_seconds)


def record_fetch(path: Path, *, now: float) -> Result[None, ReleaseError]:
    try:
        atomic_write_text(path, str(int(now)))
    except OSError as e:
        return Err(
            ReleaseError(
                kind="io_failed",
                message=f"failed to write last-fetch timestamp: {path}",
                hint=str(e),
            )
        )
    return Ok(None)
