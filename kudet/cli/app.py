from __future__ import annotations

import os

import typer

from kudet import __version__
from kudet.cli.commands.docker_tag_cmd import get_docker_tag
from kudet.cli.commands.release_cmd import release
from kudet.cli.commands.version_file_cmd import update_version_in_file
from kudet.cli.context import LOG_LEVEL_ENV
from kudet.core.errors import ErrorCode
from kudet.output.console import LogLevel


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Release tooling for changelog-driven repositories.",
)


# Commands
app.command()(release)
app.command("get-docker-tag")(get_docker_tag)
app.command("update-version-in-file")(update_version_in_file)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    cli_log_level: str = typer.Option(
        "info",
        "--cli-log-level",
        help=f"Level the CLI logs at ({'|'.join(LogLevel.choices())})",
    ),
) -> None:
    level = LogLevel.parse(cli_log_level)
    if level is None:
        typer.echo(
            f"error: invalid --cli-log-level '{cli_log_level}' "
            f"(expected one of: {', '.join(LogLevel.choices())})",
            err=True,
        )
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    os.environ[LOG_LEVEL_ENV] = level.name.lower()


def main() -> None:
    app()
