"""Git operations module.

Usage:
    from kudet.git import Repository

    repo = Repository(Path.cwd())
    status = repo.status()
    if status.is_ok() and not status.unwrap().is_clean:
        print(status.unwrap().describe())
"""

from kudet.git.repository import (
    GitAuth,
    GitError,
    GitIdentity,
    GitStatus,
    Repository,
    StatusEntry,
)

__all__ = [
    "GitAuth",
    "GitError",
    "GitIdentity",
    "GitStatus",
    "Repository",
    "StatusEntry",
]
