from __future__ import annotations

import typer

from kudet.cli.context import build_context
from kudet.core.result import Err
from kudet.output.errors import print_release_error, release_error_exit_code
from kudet.services.release.docker_tag import compute_docker_tag


def get_docker_tag() -> None:
    """Print the docker image tag for the current state of the repository."""
    ctx = build_context()
    ctx.console.debug("retrieving git information...")

    result = compute_docker_tag(ctx.repo)
    if isinstance(result, Err):
        print_release_error(result.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(result.error.kind))

    typer.echo(result.value)
