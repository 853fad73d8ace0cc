from __future__ import annotations

import re

from kudet.core.result import Err, Ok, Result
from kudet.git.repository import Repository
from kudet.services.release.errors import ReleaseError
from kudet.services.release.semver import SemVer, parse_strict_version

DIRTY_SUFFIX = "-dirty"
ABBREV_HASH_LENGTH = 6

INVALID_DOCKER_TAG_CHARS = re.compile(r"^[.-]|[^a-zA-Z0-9._-]")


def sanitize_docker_tag(ref: str) -> str:
    """Make ``ref`` usable as a docker image tag.

    A leading ``.`` or ``-`` and every character outside ``[a-zA-Z0-9._-]``
    becomes ``_``.
    """
    return INVALID_DOCKER_TAG_CHARS.sub("_", ref)


def compute_docker_tag(repo: Repository) -> Result[str, ReleaseError]:
    """Docker tag for the current checkout.

    The highest release tag on HEAD if there is one, otherwise the
    abbreviated HEAD hash; ``-dirty`` is appended when the working tree has
    changes (untracked files included).
    """
    head = repo.head_sha()
    if isinstance(head, Err):
        return Err(ReleaseError(kind="git_failed", message="failed to resolve HEAD", hint=head.error.message))

    tags = repo.tags_pointing_at("HEAD")
    if isinstance(tags, Err):
        return Err(
            ReleaseError(kind="git_failed", message="failed to list tags on HEAD", hint=tags.error.message)
        )

    status = repo.status()
    if isinstance(status, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message="failed to read working tree status",
                hint=status.error.message,
            )
        )

    releases: list[SemVer] = []
    for tag in tags.value:
        version = parse_strict_version(tag)
        if version is not None:
            releases.append(version)

    ref = str(max(releases)) if releases else head.value[:ABBREV_HASH_LENGTH]
    if not status.value.is_clean:
        ref += DIRTY_SUFFIX
    return Ok(sanitize_docker_tag(ref))
