from __future__ import annotations

from pathlib import Path

import pytest

from kudet.core.result import Err, Ok
from kudet.services.release.fetch_state import read_last_fetch, record_fetch, should_fetch


class TestReadLastFetch:
    def test_missing_sidecar(self, tmp_path: Path) -> None:
        assert read_last_fetch(tmp_path / "last-fetch.txt") == Ok(None)

    def test_reads_decimal_timestamp(self, tmp_path: Path) -> None:
        path = tmp_path / "last-fetch.txt"
        path.write_text("1700000000\n", encoding="utf-8")

        assert read_last_fetch(path) == Ok(1700000000)

    @pytest.mark.parametrize("content", ["yesterday", "\u00b2", "\u0661\u0667\u0660\u0660", "-5", ""])
    def test_garbage_is_an_error(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "last-fetch.txt"
        path.write_text(content, encoding="utf-8")

        result = read_last_fetch(path)

        assert isinstance(result, Err)
        assert result.error.kind == "io_failed"
        assert result.error.hint is not None
        assert "Delete" in result.error.hint

    def test_out_of_range(self, tmp_path: Path) -> None:
        path = tmp_path / "last-fetch.txt"
        path.write_text(str(2**64), encoding="utf-8")

        assert isinstance(read_last_fetch(path), Err)


class TestShouldFetch:
    def test_never_fetched(self, tmp_path: Path) -> None:
        assert should_fetch(tmp_path / "x", now=1000.0, grace_seconds=60) == Ok(True)

    def test_within_grace_period(self, tmp_path: Path) -> None:
        path = tmp_path / "last-fetch.txt"
        path.write_text("1000", encoding="utf-8")

        assert should_fetch(path, now=1060.0, grace_seconds=60) == Ok(False)

    def test_after_grace_period(self, tmp_path: Path) -> None:
        path = tmp_path / "last-fetch.txt"
        path.write_text("1000", encoding="utf-8")

        assert should_fetch(path, now=1061.0, grace_seconds=60) == Ok(True)

    def test_corrupt_sidecar_is_reported(self, tmp_path: Path) -> None:
        path = tmp_path / "last-fetch.txt"
        path.write_text("\u00b2", encoding="utf-8")

        result = should_fetch(path, now=100.0, grace_seconds=60)

        assert isinstance(result, Err)
        assert result.error.kind == "io_failed"


def test_record_then_read(tmp_path: Path) -> None:
    path = tmp_path / "last-fetch.txt"

    assert record_fetch(path, now=1234.9) == Ok(None)

    assert path.read_text(encoding="utf-8") == "1234"
    assert should_fetch(path, now=1250.0, grace_seconds=60) == Ok(False)
