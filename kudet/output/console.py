"""Console output abstraction.

Services report progress through ``ConsoleProtocol`` rather than printing
directly. ``RichConsole`` is the production backend (styled, on stderr, with
a log-level threshold set from ``--cli-log-level``); ``MockConsole`` captures
everything for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from typing import Protocol

__all__ = [
    "LogLevel",
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DEBUG = auto()
    DIM = auto()
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class LogLevel(IntEnum):
    """Verbosity threshold; messages below the threshold are dropped."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40

    @classmethod
    def parse(cls, value: str) -> LogLevel | None:
        try:
            return cls[value.strip().upper()]
        except KeyError:
            return None

    @classmethod
    def choices(cls) -> list[str]:
        return [level.name.lower() for level in cls]


class ConsoleProtocol(Protocol):
    """Protocol for console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling (info level)."""
        ...

    def debug(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Console implementation using Rich, writing to stderr.

    Standard output is left free for machine-readable results such as the
    docker tag.
    """

    def __init__(self, level: LogLevel = LogLevel.INFO) -> None:
        from rich.console import Console

        self._console = Console(stderr=True, highlight=False)
        self._level = level
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DEBUG: "dim",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    @property
    def level(self) -> LogLevel:
        return self._level

    def _enabled(self, level: LogLevel) -> bool:
        return level >= self._level

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        if not self._enabled(LogLevel.INFO):
            return
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def _labelled(self, label: str, label_style: str, message: str) -> None:
        # Messages carry git output and file content; never parse them as markup.
        from rich.text import Text

        self._console.print(Text.assemble((label, label_style), " ", message))

    def debug(self, message: str) -> None:
        if self._enabled(LogLevel.DEBUG):
            self._labelled("debug:", "dim", message)

    def info(self, message: str) -> None:
        if self._enabled(LogLevel.INFO):
            self._labelled("info:", "cyan", message)

    def success(self, message: str) -> None:
        if self._enabled(LogLevel.INFO):
            self._labelled("OK", "green", message)

    def warning(self, message: str) -> None:
        if self._enabled(LogLevel.WARNING):
            self._labelled("warning:", "yellow", message)

    def error(self, message: str) -> None:
        self._labelled("error:", "red bold", message)

    def header(self, message: str) -> None:
        if self._enabled(LogLevel.INFO):
            self._console.print()
            self._console.print(message, style="blue bold", markup=False)

    def newline(self) -> None:
        if self._enabled(LogLevel.INFO):
            self._console.print()


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def debug(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"debug: {message}", Style.DEBUG))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    # Test helper methods

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
