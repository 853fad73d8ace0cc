from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from kudet.core.config import CONFIG_FILENAME, KudetConfig, load_config_or_default
from kudet.core.errors import ErrorCode
from kudet.core.result import Err
from kudet.git.repository import Repository
from kudet.output.console import ConsoleProtocol, LogLevel, RichConsole

LOG_LEVEL_ENV = "KUDET_LOG_LEVEL"


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo: Repository
    config: KudetConfig
    console: ConsoleProtocol


def build_console() -> ConsoleProtocol:
    level = LogLevel.parse(os.environ.get(LOG_LEVEL_ENV, "")) or LogLevel.INFO
    return RichConsole(level=level)


def build_context() -> CLIContext:
    """Context for commands that operate on the repository in the cwd."""
    console = build_console()

    root = Path.cwd()
    repo = Repository(root)
    if not repo.exists():
        console.error(f"{root} is not the root of a git repository (no .git found)")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    config_path = root / CONFIG_FILENAME
    config_result = load_config_or_default(config_path)
    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(repo=repo, config=config_result.value, console=console)
