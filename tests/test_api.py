"""Tests for the high-level API."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from shellpipe import ShellPipe, run, run_output
from shellpipe.config.settings import Settings
from shellpipe.errors import EmptyCommandError, PipelineFailedError


def _runner(tmp_path: Path) -> ShellPipe:
    return ShellPipe(settings=Settings(metrics_file=tmp_path / "metrics.csv"))


def test_output_returns_captured_bytes(tmp_path: Path) -> None:
    runner = _runner(tmp_path)

    assert runner.output(["printf 'x y'", "tr ' ' _"]) == b"x_y"
    assert runner.output("printf single") == b"single"


def test_output_check_raises_on_failure(tmp_path: Path) -> None:
    runner = _runner(tmp_path)

    with pytest.raises(PipelineFailedError) as excinfo:
        runner.output(["printf a", "false"], check=True)

    assert excinfo.value.result.exit_code == 1


def test_build_rejects_empty_input(tmp_path: Path) -> None:
    runner = _runner(tmp_path)

    with pytest.raises(EmptyCommandError):
        runner.build([])
    with pytest.raises(EmptyCommandError):
        runner.build(["ls", "  "])


def test_pending_uses_runner_executor(tmp_path: Path) -> None:
    runner = _runner(tmp_path)
    out = io.BytesIO()

    pending = runner.pending(["cat"], input=b"pending", stdout=out)
    assert out.getvalue() == b""

    pending.run()
    assert out.getvalue() == b"pending"


def test_module_level_helpers() -> None:
    err = io.BytesIO()

    result = run(["sh -c 'echo warn 1>&2; exit 4'"], stderr=err)

    assert result.exit_code == 4
    assert err.getvalue() == b"warn\n"
    assert run_output(["cat"], input="text") == b"text"
