from __future__ import annotations

from pathlib import Path

import typer

from kudet.cli.context import build_console
from kudet.core.result import Err
from kudet.output.errors import print_release_error, release_error_exit_code
from kudet.services.release.version_file import update_version_in_file as update_file


def update_version_in_file(
    filepath: Path = typer.Argument(..., help="File holding the version string"),
    format_str: str = typer.Argument(
        ...,
        metavar="FORMAT",
        help="Pattern of the version line with '%s' where the version goes",
    ),
    new_version: str = typer.Argument(..., help="Version to write"),
) -> None:
    """Replace the version on the single line of FILEPATH matching FORMAT."""
    console = build_console()

    result = update_file(filepath, format_str, new_version)
    if isinstance(result, Err):
        print_release_error(result.error, console)
        raise typer.Exit(code=release_error_exit_code(result.error.kind))

    console.success(f"updated {filepath} to {new_version}")
