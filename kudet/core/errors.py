"""Error codes for CLI exit status.

Every command maps its failure onto one of these codes so that CI jobs
invoking the releaser can tell a bad changelog apart from a failed push.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success (including a release declined at the confirmation prompt)
    - 1: User error (bad arguments, malformed changelog, bad config)
    - 2: Environment error (not a git repository, missing git identity)
    - 3: Git error (dirty tree, diverged branches, local git failure)
    - 4: Network error (fetch or push failed)
    - 5: I/O error (file unreadable or unwritable)
    - 6: Script error (a pre-release script exited non-zero)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    GIT_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    SCRIPT_ERROR = 6

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")
