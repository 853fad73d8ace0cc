"""Tests for kudet.output.console module."""

from __future__ import annotations

import pytest

from kudet.output.console import (
    ConsoleProtocol,
    LogLevel,
    MockConsole,
    RichConsole,
    Style,
)


class TestStyle:
    """Test Style enum."""

    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.DEBUG) == "debug"
        assert str(Style.DEFAULT) == "default"


class TestLogLevel:
    def test_parse_is_case_insensitive(self) -> None:
        assert LogLevel.parse("DEBUG") is LogLevel.DEBUG
        assert LogLevel.parse(" warning ") is LogLevel.WARNING

    def test_parse_unknown(self) -> None:
        assert LogLevel.parse("trace") is None
        assert LogLevel.parse("") is None

    def test_choices(self) -> None:
        assert LogLevel.choices() == ["debug", "info", "warning", "error"]

    def test_ordering(self) -> None:
        assert LogLevel.DEBUG < LogLevel.INFO < LogLevel.WARNING < LogLevel.ERROR


class TestMockConsole:
    """Test MockConsole for testing purposes."""

    def test_print_captures_message(self) -> None:
        console = MockConsole()
        console.print("hello")
        assert len(console.outputs) == 1
        assert console.outputs[0].message == "hello"
        assert console.outputs[0].style == Style.DEFAULT

    def test_level_prefixes(self) -> None:
        console = MockConsole()
        console.debug("a")
        console.info("b")
        console.success("c")
        console.warning("d")
        console.error("e")

        assert console.messages == ["debug: a", "info: b", "OK c", "warning: d", "error: e"]

    def test_helpers(self) -> None:
        console = MockConsole()
        console.warning("careful")
        console.error("failed to push")
        console.error("failed to delete tag")

        assert console.has_error()
        assert console.count(Style.ERROR) == 2
        assert len(console.find("failed")) == 2
        assert "careful" in console.text

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.header("Release")
        console.newline()


class TestRichConsole:
    def test_writes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().info("fetching origin...")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "info: fetching origin..." in captured.err

    def test_threshold_filters_lower_levels(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(level=LogLevel.WARNING)
        console.debug("hidden debug")
        console.info("hidden info")
        console.print("hidden print")
        console.warning("shown warning")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown warning" in err

    def test_debug_shown_at_debug_level(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole(level=LogLevel.DEBUG).debug("release step: fetched")
        assert "release step: fetched" in capsys.readouterr().err

    def test_errors_always_shown(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole(level=LogLevel.ERROR).error("push failed")
        assert "error: push failed" in capsys.readouterr().err

    def test_messages_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.error("! [rejected] master -> master")
        console.print("[bold]literal[/bold]")

        err = capsys.readouterr().err
        assert "[rejected]" in err
        assert "[bold]literal[/bold]" in err
