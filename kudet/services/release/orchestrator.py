"""Release state machine.

Cuts a release from the tip of the tracked branch:

    clean tree -> fetch (throttled) -> in sync with remote -> checkout
    -> changelog valid -> next version -> operator confirms
    -> pre-release scripts -> changelog rewritten -> commit
    -> tag X.Y.Z -> tag vX.Y.Z -> push vX.Y.Z -> push branch -> push X.Y.Z

Everything up to the confirmation is read-only. The changelog is read again
after the pre-release scripts, so their edits survive the rewrite. From the
changelog rewrite on, each mutation arms a rollback guard. Pushes go from
most to least reversible: the ``v`` tag triggers nothing downstream, the
branch can still be reset, and the bare ``X.Y.Z`` tag starts the release
automation, so it goes last and only its success disarms the guards.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TypeVar

from kudet.core.config import KudetConfig
from kudet.core.result import Err, Ok, Result
from kudet.git.repository import GitAuth, GitError, GitIdentity, Repository
from kudet.output.console import ConsoleProtocol, Style
from kudet.platform.files import atomic_write_text
from kudet.services.release.changelog import ChangelogDocument, ChangelogPatterns, read_changelog
from kudet.services.release.changelog_rewrite import rewrite_changelog
from kudet.services.release.errors import ReleaseError, ReleaseErrorKind
from kudet.services.release.fetch_state import record_fetch, should_fetch
from kudet.services.release.fsm import FINISH, StepHandler, StepOutcome, advance, run_state_machine
from kudet.services.release.rollback import RollbackStack
from kudet.services.release.scripts import run_pre_release_scripts
from kudet.services.release.semver import SemVer, latest_released, next_version

__all__ = [
    "COMMIT_MESSAGE_TEMPLATE",
    "ReleaseOrchestrator",
    "ReleaseRequest",
    "ReleaseSession",
    "ReleaseStep",
    "ReleaseSummary",
]

COMMIT_MESSAGE_TEMPLATE = "Finalize changes for release version '{version}'"

_V = TypeVar("_V")

_UNDO_REMOTE_PUSH_INSTRUCTIONS = """\
ACTION REQUIRED: the release commit was pushed to '{remote}' but the release could not be \
completed. Undoing a pushed commit rewrites shared history, so it is not done automatically.
Follow these steps to undo the push:
  1. Run 'git fetch {remote}' to pull down the latest state of '{remote_branch}'
  2. Verify that '{remote_branch}' has no new commits beyond the release commit that a force \
push would destroy
  3. Verify that the local '{branch}' branch was reset to {tip} and has no leftover release changes
  4. Run 'git push -f {remote} {branch}' to restore '{remote_branch}'"""


class ReleaseStep(StrEnum):
    START = "start"
    CLEAN_TREE_VERIFIED = "clean_tree_verified"
    FETCHED = "fetched"
    SYNC_VERIFIED = "sync_verified"
    BRANCH_CHECKED_OUT = "branch_checked_out"
    CHANGELOG_VALIDATED = "changelog_validated"
    VERSION_COMPUTED = "version_computed"
    USER_CONFIRMED = "user_confirmed"
    SCRIPTS_RUN = "scripts_run"
    CHANGELOG_REWRITTEN = "changelog_rewritten"
    COMMITTED_LOCALLY = "committed_locally"
    TAGGED_BARE = "tagged_bare"
    TAGGED_V = "tagged_v"
    PUSHED_V_TAG = "pushed_v_tag"
    PUSHED_COMMITS = "pushed_commits"
    PUSHED_BARE_TAG = "pushed_bare_tag"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    bump_major: bool = False
    auth: GitAuth = field(default_factory=GitAuth)


@dataclass(frozen=True, slots=True)
class ReleaseSession:
    """What the release has learned so far; each step fills in more."""

    step: ReleaseStep
    identity: GitIdentity | None = None
    remote_tip: str | None = None
    document: ChangelogDocument | None = None
    latest: SemVer | None = None
    version: SemVer | None = None
    head: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseSummary:
    version: SemVer | None
    released: bool


ConfirmPrompt = Callable[[SemVer], bool]
Clock = Callable[[], float]


def _need(value: _V | None, what: str) -> _V:
    if value is None:
        raise AssertionError(f"release session is missing {what}")
    return value


def _git_failure(kind: ReleaseErrorKind, message: str, error: GitError) -> Err[ReleaseError]:
    return Err(ReleaseError(kind=kind, message=message, hint=error.message or None))


class ReleaseOrchestrator:
    def __init__(
        self,
        *,
        repo: Repository,
        config: KudetConfig,
        console: ConsoleProtocol,
        confirm: ConfirmPrompt,
        patterns: ChangelogPatterns | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._repo = repo
        self._release = config.release
        self._patterns = patterns or ChangelogPatterns.from_config(config.changelog)
        self._console = console
        self._confirm = confirm
        self._clock = clock
        self._guards = RollbackStack()
        self._request = ReleaseRequest()

    @property
    def guards(self) -> RollbackStack:
        return self._guards

    def run(self, request: ReleaseRequest) -> Result[ReleaseSummary, ReleaseError]:
        """Cut a release.

        Returns:
            Ok(summary) when released or declined at the prompt; Err after
            unwinding every armed rollback guard otherwise.
        """
        self._request = request
        self._guards = RollbackStack()

        try:
            result = run_state_machine(
                initial_state=ReleaseSession(step=ReleaseStep.START),
                get_step=lambda s: s.step.value,
                handlers=self._handlers(),
                on_checkpoint=self._checkpoint,
            )
        except BaseException:
            self._unwind()
            raise

        if isinstance(result, Err):
            self._unwind()
            return result

        final = result.value
        return Ok(ReleaseSummary(version=final.version, released=final.step is ReleaseStep.DONE))

    def _handlers(self) -> dict[str, StepHandler[ReleaseSession]]:
        return {
            ReleaseStep.START.value: self._verify_clean_tree,
            ReleaseStep.CLEAN_TREE_VERIFIED.value: self._fetch_if_stale,
            ReleaseStep.FETCHED.value: self._verify_sync,
            ReleaseStep.SYNC_VERIFIED.value: self._checkout_branch,
            ReleaseStep.BRANCH_CHECKED_OUT.value: self._validate_changelog,
            ReleaseStep.CHANGELOG_VALIDATED.value: self._compute_version,
            ReleaseStep.VERSION_COMPUTED.value: self._confirm_version,
            ReleaseStep.USER_CONFIRMED.value: self._run_scripts,
            ReleaseStep.SCRIPTS_RUN.value: self._rewrite_changelog,
            ReleaseStep.CHANGELOG_REWRITTEN.value: self._commit,
            ReleaseStep.COMMITTED_LOCALLY.value: self._tag_bare,
            ReleaseStep.TAGGED_BARE.value: self._tag_v,
            ReleaseStep.TAGGED_V.value: self._push_v_tag,
            ReleaseStep.PUSHED_V_TAG.value: self._push_commits,
            ReleaseStep.PUSHED_COMMITS.value: self._push_bare_tag,
            ReleaseStep.PUSHED_BARE_TAG.value: self._finalize,
            ReleaseStep.DONE.value: self._finish,
            ReleaseStep.CANCELLED.value: self._finish,
        }

    def _checkpoint(self, session: ReleaseSession) -> None:
        self._console.debug(f"release step: {session.step.value}")

    def _unwind(self) -> None:
        if not self._guards.armed:
            return
        self._console.warning("rolling back release changes...")
        failed = self._guards.unwind(self._console)
        if failed:
            self._console.error(f"rollback incomplete: {', '.join(failed)}")

    # -- read-only checks -------------------------------------------------

    def _verify_clean_tree(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        self._console.header("Pre-release checks")

        identity = self._repo.identity()
        if isinstance(identity, Err):
            return _git_failure("git_failed", "failed to read git config", identity.error)
        if identity.value is None:
            return Err(
                ReleaseError(
                    kind="missing_identity",
                    message="git user.name and user.email must be set to author the release commit",
                    hint="git config --global user.name '...' && git config --global user.email '...'",
                )
            )

        status = self._repo.status()
        if isinstance(status, Err):
            return _git_failure("git_failed", "failed to read working tree status", status.error)
        if not status.value.is_clean:
            return Err(
                ReleaseError(
                    kind="dirty_tree",
                    message="working tree has modifications; it must be clean to release",
                    hint=status.value.describe(),
                )
            )

        self._console.success("working tree clean")
        return Ok(advance(replace(s, step=ReleaseStep.CLEAN_TREE_VERIFIED, identity=identity.value)))

    def _fetch_if_stale(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        git_dir = self._repo.git_dir()
        if isinstance(git_dir, Err):
            return _git_failure("git_failed", "failed to locate git directory", git_dir.error)
        sidecar = git_dir.value / self._release.last_fetch_file

        now = self._clock()
        stale = should_fetch(sidecar, now=now, grace_seconds=self._release.fetch_grace_seconds)
        if isinstance(stale, Err):
            return stale

        if not stale.value:
            self._console.debug(
                f"fetched within the last {self._release.fetch_grace_seconds}s, skipping fetch"
            )
            return Ok(advance(replace(s, step=ReleaseStep.FETCHED)))

        self._console.info(f"fetching {self._release.remote}...")
        fetched = self._repo.fetch(self._release.remote, auth=self._request.auth)
        if isinstance(fetched, Err):
            return _git_failure(
                "fetch_failed", f"failed to fetch from '{self._release.remote}'", fetched.error
            )

        recorded = record_fetch(sidecar, now=now)
        if isinstance(recorded, Err):
            return recorded
        return Ok(advance(replace(s, step=ReleaseStep.FETCHED)))

    def _verify_sync(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        branch = self._release.branch
        remote_branch = self._release.remote_branch

        local = self._repo.rev_parse(branch)
        if isinstance(local, Err):
            return _git_failure("git_failed", f"failed to resolve '{branch}'", local.error)
        remote = self._repo.rev_parse(remote_branch)
        if isinstance(remote, Err):
            return _git_failure("git_failed", f"failed to resolve '{remote_branch}'", remote.error)

        if local.value != remote.value:
            return Err(
                ReleaseError(
                    kind="branches_diverged",
                    message=(
                        f"local '{branch}' ({local.value[:8]}) is not in sync with "
                        f"'{remote_branch}' ({remote.value[:8]})"
                    ),
                    hint=f"Bring '{branch}' level with '{remote_branch}', then retry.",
                )
            )

        self._console.success(f"'{branch}' is in sync with '{remote_branch}'")
        return Ok(advance(replace(s, step=ReleaseStep.SYNC_VERIFIED, remote_tip=remote.value)))

    def _checkout_branch(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        branch = self._release.branch
        checked_out = self._repo.checkout(branch)
        if isinstance(checked_out, Err):
            return Err(
                ReleaseError(
                    kind="git_failed",
                    message=f"failed to check out '{branch}'",
                    hint=checked_out.error.message or f"git checkout {branch}",
                )
            )
        return Ok(advance(replace(s, step=ReleaseStep.BRANCH_CHECKED_OUT)))

    def _validate_changelog(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        document = read_changelog(self._repo.path / self._release.changelog, self._patterns)
        if isinstance(document, Err):
            return document
        self._console.success(f"changelog valid: {self._release.changelog}")
        return Ok(advance(replace(s, step=ReleaseStep.CHANGELOG_VALIDATED, document=document.value)))

    def _compute_version(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        document = _need(s.document, "changelog")

        tags = self._repo.list_tags()
        if isinstance(tags, Err):
            return _git_failure("git_failed", "failed to list tags", tags.error)

        latest = latest_released(tags.value)
        has_breaking = document.unreleased.has_breaking_change_marker
        if self._request.bump_major:
            self._console.info("--bump-major set: skipping changelog breaking-change detection")
        elif has_breaking:
            self._console.info("breaking changes found in changelog: bumping minor version")

        version = next_version(
            latest,
            has_breaking_change=has_breaking,
            bump_major=self._request.bump_major,
        )
        self._console.print(f"latest release: {latest}", Style.DIM)
        return Ok(
            advance(replace(s, step=ReleaseStep.VERSION_COMPUTED, latest=latest, version=version))
        )

    def _confirm_version(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        version = _need(s.version, "version")
        if not self._confirm(version):
            self._console.warning(f"release of {version} cancelled; nothing was changed")
            return Ok(advance(replace(s, step=ReleaseStep.CANCELLED)))
        return Ok(advance(replace(s, step=ReleaseStep.USER_CONFIRMED)))

    # -- local mutations --------------------------------------------------

    def _run_scripts(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        version = _need(s.version, "version")
        self._console.header("Release")
        self._console.info("running pre-release scripts...")
        ran = run_pre_release_scripts(
            repo_root=self._repo.path,
            manifest=self._repo.path / self._release.pre_release_scripts,
            version=str(version),
            console=self._console,
        )
        if isinstance(ran, Err):
            return ran
        return Ok(advance(replace(s, step=ReleaseStep.SCRIPTS_RUN)))

    def _rewrite_changelog(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        version = _need(s.version, "version")
        tip = _need(s.remote_tip, "remote tip")

        self._guards.arm(
            f"reset local '{self._release.branch}' to {tip[:8]}",
            lambda: self._reset_to(tip),
            manual_command=f"git reset --hard {self._release.remote_branch}",
        )

        # Pre-release scripts may have edited the changelog.
        path = self._repo.path / self._release.changelog
        document = read_changelog(path, self._patterns)
        if isinstance(document, Err):
            return document

        rewritten = rewrite_changelog(document.value, version, self._patterns)
        if isinstance(rewritten, Err):
            return Err(
                ReleaseError(
                    kind="changelog_invalid",
                    message=f"failed to rewrite changelog: {rewritten.error.pretty()}",
                )
            )

        try:
            mode = path.stat().st_mode & 0o777
            atomic_write_text(path, rewritten.value, mode=mode)
        except OSError as e:
            return Err(
                ReleaseError(kind="io_failed", message=f"failed to write {path}", hint=str(e))
            )

        self._console.success(f"changelog updated for {version}")
        return Ok(advance(replace(s, step=ReleaseStep.CHANGELOG_REWRITTEN, document=document.value)))

    def _commit(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        version = _need(s.version, "version")
        identity = _need(s.identity, "identity")

        for rel in self._release.release_paths:
            added = self._repo.add(rel)
            if isinstance(added, Err):
                self._console.warning(f"could not stage '{rel}' (does it exist?): {added.error.message}")

        committed = self._repo.commit(
            COMMIT_MESSAGE_TEMPLATE.format(version=version), identity=identity
        )
        if isinstance(committed, Err):
            return _git_failure("git_failed", "failed to commit release changes", committed.error)

        head = self._repo.head_sha()
        if isinstance(head, Err):
            return _git_failure("git_failed", "failed to resolve HEAD", head.error)

        self._console.success(f"committed release {version} ({head.value[:8]})")
        return Ok(advance(replace(s, step=ReleaseStep.COMMITTED_LOCALLY, head=head.value)))

    def _tag_bare(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        tag = str(_need(s.version, "version"))
        created = self._create_local_tag(tag, _need(s.head, "head"))
        if isinstance(created, Err):
            return created
        return Ok(advance(replace(s, step=ReleaseStep.TAGGED_BARE)))

    def _tag_v(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        tag = _need(s.version, "version").v_tag
        created = self._create_local_tag(tag, _need(s.head, "head"))
        if isinstance(created, Err):
            return created
        return Ok(advance(replace(s, step=ReleaseStep.TAGGED_V)))

    # -- remote mutations -------------------------------------------------

    def _push_v_tag(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        remote = self._release.remote
        tag = _need(s.version, "version").v_tag

        pushed = self._repo.push(remote, f"refs/tags/{tag}:refs/tags/{tag}", auth=self._request.auth)
        if isinstance(pushed, Err):
            # Not fatal: the release continues without the v tag.
            self._console.error(
                f"failed to push tag '{tag}' to '{remote}': {pushed.error.message}"
            )
        else:
            self._guards.arm(
                f"delete tag '{tag}' from '{remote}'",
                lambda: self._delete_remote_tag(tag),
                manual_command=f"git push --delete {remote} {tag}",
            )
            self._console.success(f"pushed tag {tag}")
        return Ok(advance(replace(s, step=ReleaseStep.PUSHED_V_TAG)))

    def _push_commits(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        remote = self._release.remote
        branch = self._release.branch
        tip = _need(s.remote_tip, "remote tip")

        self._console.info(f"pushing release changes to '{self._release.remote_branch}'...")
        pushed = self._repo.push(
            remote, f"refs/heads/{branch}:refs/heads/{branch}", auth=self._request.auth
        )
        if isinstance(pushed, Err):
            return _git_failure(
                "push_failed",
                f"failed to push release changes to '{self._release.remote_branch}'",
                pushed.error,
            )

        self._guards.arm(
            f"undo push to '{self._release.remote_branch}'",
            lambda: self._explain_remote_push_recovery(tip),
            manual_command=f"git push -f {remote} {branch}",
        )
        return Ok(advance(replace(s, step=ReleaseStep.PUSHED_COMMITS)))

    def _push_bare_tag(
        self, s: ReleaseSession
    ) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        remote = self._release.remote
        tag = str(_need(s.version, "version"))

        self._console.info(f"pushing release tag '{tag}' to '{remote}'...")
        pushed = self._repo.push(remote, f"refs/tags/{tag}:refs/tags/{tag}", auth=self._request.auth)
        if isinstance(pushed, Err):
            return _git_failure(
                "push_failed", f"failed to push release tag '{tag}' to '{remote}'", pushed.error
            )
        return Ok(advance(replace(s, step=ReleaseStep.PUSHED_BARE_TAG)))

    def _finalize(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        self._guards.disarm_all()
        self._console.success(f"released {_need(s.version, 'version')}")
        return Ok(advance(replace(s, step=ReleaseStep.DONE)))

    def _finish(self, s: ReleaseSession) -> Result[StepOutcome[ReleaseSession], ReleaseError]:
        return Ok(FINISH)

    # -- helpers ----------------------------------------------------------

    def _create_local_tag(self, tag: str, head: str) -> Result[None, ReleaseError]:
        created = self._repo.create_tag(tag, head, message=tag)
        if isinstance(created, Err):
            return _git_failure("git_failed", f"failed to create tag '{tag}'", created.error)
        self._guards.arm(
            f"delete local tag '{tag}'",
            lambda: self._delete_local_tag(tag),
            manual_command=f"git tag -d {tag}",
        )
        self._console.success(f"tagged {tag}")
        return Ok(None)

    def _reset_to(self, tip: str) -> Result[None, ReleaseError]:
        reset = self._repo.reset_hard(tip)
        if isinstance(reset, Err):
            return _git_failure("git_failed", f"git reset --hard {tip[:8]} failed", reset.error)
        return Ok(None)

    def _delete_local_tag(self, tag: str) -> Result[None, ReleaseError]:
        deleted = self._repo.delete_tag(tag)
        if isinstance(deleted, Err):
            return _git_failure("git_failed", f"git tag -d {tag} failed", deleted.error)
        return Ok(None)

    def _delete_remote_tag(self, tag: str) -> Result[None, ReleaseError]:
        deleted = self._repo.push(self._release.remote, f":refs/tags/{tag}", auth=self._request.auth)
        if isinstance(deleted, Err):
            return _git_failure("push_failed", f"deleting remote tag '{tag}' failed", deleted.error)
        return Ok(None)

    def _explain_remote_push_recovery(self, tip: str) -> Result[None, ReleaseError]:
        self._console.error(
            _UNDO_REMOTE_PUSH_INSTRUCTIONS.format(
                remote=self._release.remote,
                remote_branch=self._release.remote_branch,
                branch=self._release.branch,
                tip=tip[:8],
            )
        )
        return Ok(None)
