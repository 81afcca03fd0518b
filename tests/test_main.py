"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from shellpipe.main import main


def test_tokenize_prints_arguments(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["--tokenize", "grep -n 'foo bar'", "wc -l"])

    lines = capsys.readouterr().out.splitlines()
    assert code == 0
    assert [json.loads(line) for line in lines] == [["grep", "-n", "foo bar"], ["wc", "-l"]]


def test_runs_pipeline_into_files(tmp_path: Path) -> None:
    source = tmp_path / "in.txt"
    source.write_bytes(b"b\na\n")
    output = tmp_path / "out.txt"

    code = main(["sort", "tr a-z A-Z", "--input", str(source), "--output", str(output)])

    assert code == 0
    assert output.read_bytes() == b"A\nB\n"


def test_exit_code_of_last_stage_is_returned() -> None:
    assert main(["true", "false"]) == 1


def test_syntax_error_exits_2(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["echo 'unterminated"])

    assert code == 2
    assert "Unclosed single quote" in capsys.readouterr().err
