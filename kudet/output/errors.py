"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kudet.core.errors import ErrorCode
from kudet.output.console import Style
from kudet.services.release.errors import ReleaseError, ReleaseErrorKind

if TYPE_CHECKING:
    from kudet.output.console import ConsoleProtocol

__all__ = ["print_release_error", "release_error_exit_code"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    """Print release error to console with appropriate formatting."""
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(kind: ReleaseErrorKind) -> int:
    match kind:
        case "changelog_invalid" | "invalid_input" | "match_count":
            return int(ErrorCode.USER_ERROR)
        case "missing_identity":
            return int(ErrorCode.ENV_ERROR)
        case "dirty_tree" | "branches_diverged" | "git_failed":
            return int(ErrorCode.GIT_ERROR)
        case "fetch_failed" | "push_failed":
            return int(ErrorCode.NETWORK_ERROR)
        case "io_failed":
            return int(ErrorCode.IO_ERROR)
        case "script_failed":
            return int(ErrorCode.SCRIPT_ERROR)
