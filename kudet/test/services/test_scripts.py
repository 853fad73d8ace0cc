from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from kudet.core.result import Err, Ok
from kudet.output.console import MockConsole
from kudet.platform.process import ProcessError
from kudet.services.release.scripts import read_manifest, run_pre_release_scripts


def _write_script(path: Path, body: str) -> None:
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    os.chmod(path, 0o755)


class TestReadManifest:
    def test_skips_blank_lines(self, tmp_path: Path) -> None:
        manifest = tmp_path / ".pre-release-scripts.txt"
        manifest.write_text("scripts/a.sh\n\n  scripts/b.sh  \n", encoding="utf-8")

        assert read_manifest(manifest) == Ok(["scripts/a.sh", "scripts/b.sh"])

    def test_missing_manifest_is_an_error(self, tmp_path: Path) -> None:
        result = read_manifest(tmp_path / ".pre-release-scripts.txt")

        assert isinstance(result, Err)
        assert result.error.kind == "io_failed"


class TestRunPreReleaseScripts:
    @patch("kudet.services.release.scripts.run_process")
    def test_runs_each_script_with_version(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = Ok("")
        manifest = tmp_path / "manifest.txt"
        manifest.write_text("a.sh\nb.sh\n", encoding="utf-8")

        result = run_pre_release_scripts(
            repo_root=tmp_path, manifest=manifest, version="1.2.3", console=MockConsole()
        )

        assert result == Ok(None)
        calls = [c.args[0] for c in mock_run.call_args_list]
        assert calls == [[str(tmp_path / "a.sh"), "1.2.3"], [str(tmp_path / "b.sh"), "1.2.3"]]
        assert all(c.kwargs["cwd"] == tmp_path for c in mock_run.call_args_list)

    @patch("kudet.services.release.scripts.run_process")
    def test_stops_at_first_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            Err(ProcessError(("a.sh", "1.2.3"), 2, "", "version constant not found\n")),
            Ok(""),
        ]
        manifest = tmp_path / "manifest.txt"
        manifest.write_text("a.sh\nb.sh\n", encoding="utf-8")

        result = run_pre_release_scripts(
            repo_root=tmp_path, manifest=manifest, version="1.2.3", console=MockConsole()
        )

        assert isinstance(result, Err)
        assert result.error.kind == "script_failed"
        assert "exit 2" in result.error.message
        assert result.error.hint == "version constant not found"
        assert mock_run.call_count == 1

    def test_empty_manifest_runs_nothing(self, tmp_path: Path) -> None:
        manifest = tmp_path / "manifest.txt"
        manifest.write_text("\n", encoding="utf-8")

        result = run_pre_release_scripts(
            repo_root=tmp_path, manifest=manifest, version="1.2.3", console=MockConsole()
        )

        assert result == Ok(None)

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script")
    def test_real_script_receives_version(self, tmp_path: Path) -> None:
        _write_script(tmp_path / "bump.sh", 'printf "%s" "$1" > version.txt')
        manifest = tmp_path / "manifest.txt"
        manifest.write_text("bump.sh\n", encoding="utf-8")

        result = run_pre_release_scripts(
            repo_root=tmp_path, manifest=manifest, version="0.4.0", console=MockConsole()
        )

        assert result == Ok(None)
        assert (tmp_path / "version.txt").read_text(encoding="utf-8") == "0.4.0"
