"""Git repository abstraction.

This module provides the Repository class used by the release and
docker-tag commands. It shells out to the ``git`` executable; every
operation returns a Result so that the release state machine can decide
whether a failure is fatal, rollback-worthy or merely a warning.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.status():
        case Ok(status):
            if status.is_clean:
                print("Working tree clean")
            else:
                print(status.describe())
        case Err(e):
            print(f"Error: {e.message}")

    auth = GitAuth(token=os.environ["KUDET_RELEASE_TOKEN"])
    repo.push("origin", "refs/tags/1.2.3:refs/tags/1.2.3", auth=auth)
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path

from kudet.core.result import Err, Ok, Result
from kudet.platform.process import ProcessError
from kudet.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

__all__ = [
    "GitAuth",
    "GitError",
    "GitIdentity",
    "GitStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class GitAuth:
    """Credentials for fetch and push.

    The token is sent as HTTP basic auth with a fixed ``git`` username; the
    username is ignored by the hosting services this is used with.
    """

    token: str | None = None

    def config_args(self) -> list[str]:
        if not self.token:
            return []
        basic = base64.b64encode(f"git:{self.token}".encode()).decode("ascii")
        return ["-c", f"http.extraHeader=Authorization: Basic {basic}"]

    def __repr__(self) -> str:
        return "GitAuth(token=***)" if self.token else "GitAuth(token=None)"


@dataclass(frozen=True, slots=True)
class GitIdentity:
    """Author identity used for the release commit."""

    name: str
    email: str

    @property
    def author(self) -> str:
        return f"{self.name} <{self.email}>"


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path
    """

    xy: str
    path: str

    def pretty_xy(self) -> str:
        """Format XY with dots for spaces (". M" instead of " M")."""
        return self.xy.replace(" ", ".")


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed ``git status --porcelain=v1`` output.

    Attributes:
        entries: All status entries (staged, unstaged, untracked)
    """

    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        """True if working tree has no changes (untracked files count)."""
        return len(self.entries) == 0

    def describe(self, limit: int = 10) -> str:
        """Short listing of changed paths for error messages."""
        shown = [f"{e.pretty_xy()} {e.path}" for e in self.entries[:limit]]
        rest = len(self.entries) - len(shown)
        if rest > 0:
            shown.append(f"... and {rest} more")
        return ", ".join(shown)


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        """Initialize repository.

        Args:
            path: Path to repository root (containing .git)
        """
        self.path = path

    def exists(self) -> bool:
        """Check if this is a valid git repository root."""
        return (self.path / ".git").exists()

    def git_dir(self) -> Result[Path, GitError]:
        """Absolute path of the git metadata directory."""
        return self._git("rev-parse", ["rev-parse", "--absolute-git-dir"]).map(
            lambda out: Path(out.strip())
        )

    def status(self) -> Result[GitStatus, GitError]:
        """Get repository status.

        Runs `git status --porcelain=v1` and parses the output.
        """
        return self._git("status", ["status", "--porcelain=v1"]).map(self._parse_status)

    def config_value(self, key: str) -> Result[str | None, GitError]:
        """Read a git config value; Ok(None) when the key is unset."""
        result = self._run(["config", "--get", key])
        match result:
            case Ok(stdout):
                return Ok(stdout.strip() or None)
            case Err(e):
                # `git config --get` exits 1 when the key is missing.
                if e.returncode == 1 and not e.stderr.strip():
                    return Ok(None)
                return Err(_to_git_error("config", e))

    def identity(self) -> Result[GitIdentity | None, GitError]:
        """Configured ``user.name`` / ``user.email``, or None if either is unset."""
        name = self.config_value("user.name")
        if isinstance(name, Err):
            return name
        email = self.config_value("user.email")
        if isinstance(email, Err):
            return email
        if name.value is None or email.value is None:
            return Ok(None)
        return Ok(GitIdentity(name=name.value, email=email.value))

    def rev_parse(self, rev: str) -> Result[str, GitError]:
        """Resolve a revision to a full commit hash."""
        return self._git("rev-parse", ["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"]).map(
            str.strip
        )

    def head_sha(self) -> Result[str, GitError]:
        return self.rev_parse("HEAD")

    def list_tags(self) -> Result[list[str], GitError]:
        """Names of all tags in the repository."""
        return self._git("tag", ["tag", "--list"]).map(_split_lines)

    def tags_pointing_at(self, rev: str) -> Result[list[str], GitError]:
        """Names of the tags whose target resolves to ``rev``."""
        return self._git("tag --points-at", ["tag", "--points-at", rev]).map(_split_lines)

    def checkout(self, branch: str) -> Result[None, GitError]:
        return self._git("checkout", ["checkout", branch]).map(lambda _: None)

    def fetch(self, remote: str, *, auth: GitAuth | None = None) -> Result[None, GitError]:
        return self._git("fetch", ["fetch", remote], auth=auth, network=True).map(lambda _: None)

    def add(self, path: str) -> Result[None, GitError]:
        """Stage a single path (file or directory)."""
        return self._git("add", ["add", "--", path]).map(lambda _: None)

    def commit(self, message: str, *, identity: GitIdentity) -> Result[None, GitError]:
        """Commit the index with ``identity`` as author and committer."""
        args = [
            "-c",
            f"user.name={identity.name}",
            "-c",
            f"user.email={identity.email}",
            "commit",
            "--author",
            identity.author,
            "-m",
            message,
        ]
        return self._git("commit", args).map(lambda _: None)

    def create_tag(self, name: str, target: str, *, message: str) -> Result[None, GitError]:
        """Create an annotated tag at ``target``."""
        return self._git("tag -a", ["tag", "-a", name, "-m", message, target]).map(lambda _: None)

    def delete_tag(self, name: str) -> Result[None, GitError]:
        return self._git("tag -d", ["tag", "-d", name]).map(lambda _: None)

    def push(
        self,
        remote: str,
        refspec: str,
        *,
        auth: GitAuth | None = None,
    ) -> Result[None, GitError]:
        """Push a single refspec (``src:dst`` or ``:dst`` to delete)."""
        return self._git("push", ["push", remote, refspec], auth=auth, network=True).map(
            lambda _: None
        )

    def reset_hard(self, rev: str) -> Result[None, GitError]:
        return self._git("reset --hard", ["reset", "--hard", rev]).map(lambda _: None)

    def _git(
        self,
        command: str,
        args: list[str],
        *,
        auth: GitAuth | None = None,
        network: bool = False,
    ) -> Result[str, GitError]:
        result = self._run(args, auth=auth, network=network)
        match result:
            case Err(e):
                return Err(_to_git_error(command, e))
            case Ok(stdout):
                return Ok(stdout)

    def _run(
        self,
        args: list[str],
        *,
        auth: GitAuth | None = None,
        network: bool = False,
    ) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        timeout = _GIT_NETWORK_TIMEOUT_SECONDS if network else _GIT_TIMEOUT_SECONDS
        auth_args = auth.config_args() if auth is not None else []
        return run_process(
            ["git", "-C", str(self.path), *auth_args, *args],
            cwd=self.path,
            timeout=timeout,
        )

    def _parse_status(self, output: str) -> GitStatus:
        """Parse git status --porcelain=v1 output."""
        entries = [self._parse_entry(ln) for ln in output.splitlines()]
        return GitStatus(entries=tuple(e for e in entries if e is not None))

    def _parse_entry(self, line: str) -> StatusEntry | None:
        if len(line) < 4:
            return None
        if line.startswith("?? "):
            return StatusEntry(xy="??", path=line[3:])
        return StatusEntry(xy=line[:2], path=line[3:])


def _to_git_error(command: str, error: ProcessError) -> GitError:
    return GitError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or f"git {command} failed",
        returncode=error.returncode,
    )


def _split_lines(output: str) -> list[str]:
    return [ln.strip() for ln in output.splitlines() if ln.strip()]
