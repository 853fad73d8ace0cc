from __future__ import annotations

import typer

from kudet.cli.context import build_context
from kudet.core.errors import ErrorCode
from kudet.core.result import Err
from kudet.git.repository import GitAuth
from kudet.output.errors import print_release_error, release_error_exit_code
from kudet.services.release.orchestrator import ReleaseOrchestrator, ReleaseRequest
from kudet.services.release.semver import SemVer

TOKEN_ENV = "KUDET_RELEASE_TOKEN"


def confirm_release(version: SemVer) -> bool:
    """Ask before mutating anything; only a bare ENTER proceeds."""
    try:
        typed = typer.prompt(
            f"Release new version '{version}'? (ENTER to continue, any other input cancels)",
            default="",
            show_default=False,
        )
    except typer.Abort:
        return False
    return typed == ""


def release(
    token: str | None = typer.Argument(
        None,
        envvar=TOKEN_ENV,
        show_default=False,
        help=f"Token used to fetch and push (or set {TOKEN_ENV})",
    ),
    bump_major: bool = typer.Option(
        False,
        "--bump-major",
        help="Release the next major version regardless of the changelog.",
    ),
) -> None:
    """Cut a release from the tip of the release branch."""
    ctx = build_context()
    if not token:
        ctx.console.error(f"a release token is required (argument or {TOKEN_ENV})")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    orchestrator = ReleaseOrchestrator(
        repo=ctx.repo,
        config=ctx.config,
        console=ctx.console,
        confirm=confirm_release,
    )
    result = orchestrator.run(ReleaseRequest(bump_major=bump_major, auth=GitAuth(token=token)))
    if isinstance(result, Err):
        print_release_error(result.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(result.error.kind))
