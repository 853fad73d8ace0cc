"""Pre-release scripts.

A manifest at the repository root lists scripts to run before the release
commit, one path (relative to the root) per line. Each script receives the
version being released as its only argument, e.g. to bump a version constant
in generated code. Anything the scripts change on disk is the operator's
responsibility; only the configured release paths get committed.
"""

from __future__ import annotations

from pathlib import Path

from kudet.core.result import Err, Ok, Result
from kudet.output.console import ConsoleProtocol, Style
from kudet.platform.process import run as run_process
from kudet.services.release.errors import ReleaseError


def read_manifest(path: Path) -> Result[list[str], ReleaseError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(
            ReleaseError(
                kind="io_failed",
                message=f"failed to read pre-release scripts manifest: {path}",
                hint=str(e),
            )
        )
    return Ok([line.strip() for line in text.split("\n") if line.strip()])


def run_pre_release_scripts(
    *,
    repo_root: Path,
    manifest: Path,
    version: str,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Run each manifest script in order; stop at the first failure."""
    scripts = read_manifest(manifest)
    if isinstance(scripts, Err):
        return scripts

    for rel in scripts.value:
        script = repo_root / rel
        console.print(f"{rel} {version}", Style.DIM)
        result = run_process([str(script), version], cwd=repo_root)
        if isinstance(result, Err):
            e = result.error
            return Err(
                ReleaseError(
                    kind="script_failed",
                    message=f"pre-release script '{script} {version}' failed (exit {e.returncode})",
                    hint=e.stderr.strip() or None,
                )
            )
        if result.value.strip():
            console.debug(result.value.strip())

    return Ok(None)
