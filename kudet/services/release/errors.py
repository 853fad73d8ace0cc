"""Error types for the release commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "dirty_tree",
    "branches_diverged",
    "changelog_invalid",
    "missing_identity",
    "git_failed",
    "fetch_failed",
    "push_failed",
    "script_failed",
    "io_failed",
    "invalid_input",
    "match_count",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Error payload surfaced to the operator.

    Attributes:
        kind: Stable machine-readable category (drives the exit code).
        message: What went wrong, naming the offending path/ref/pattern.
        hint: Extra detail such as captured stderr or the command to run.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
