"""Tests for Stage and Pipeline construction."""

from __future__ import annotations

import pytest

from shellpipe.errors import CommandSyntaxError, EmptyCommandError
from shellpipe.pipeline import Pipeline, Stage


def test_parse_sets_program_and_argv() -> None:
    stage = Stage.parse("grep -n 'foo bar'")

    assert stage.program == "grep"
    assert stage.arguments == ("grep", "-n", "foo bar")
    assert stage.argv == ["grep", "-n", "foo bar"]


@pytest.mark.parametrize("command", ["", "   ", "\t\n"])
def test_parse_rejects_empty_command(command: str) -> None:
    with pytest.raises(EmptyCommandError):
        Stage.parse(command)


def test_parse_propagates_syntax_errors() -> None:
    with pytest.raises(CommandSyntaxError):
        Stage.parse("echo 'unterminated")


def test_stage_requires_program() -> None:
    with pytest.raises(EmptyCommandError):
        Stage(program="")
    with pytest.raises(EmptyCommandError):
        Stage.from_argv([])


def test_stage_defaults_argv_to_program() -> None:
    assert Stage(program="true").arguments == ("true",)


def test_stage_is_immutable() -> None:
    stage = Stage.parse("ls -l")

    with pytest.raises(AttributeError):
        stage.program = "rm"  # type: ignore[misc]


def test_pipeline_from_mixed_commands() -> None:
    pipeline = Pipeline.from_commands(
        ["printf 'a b'", ["tr", "a-z", "A-Z"], Stage.parse("cat")]
    )

    assert [stage.program for stage in pipeline.stages] == ["printf", "tr", "cat"]
    assert len(pipeline) == 3
    assert pipeline.display() == "printf 'a b' | tr a-z A-Z | cat"


def test_then_returns_new_pipeline() -> None:
    first = Pipeline.from_commands(["ls"])
    second = first.then("wc -l")

    assert len(first) == 1
    assert len(second) == 2
    assert second.stages[1].arguments == ("wc", "-l")


def test_empty_pipeline_is_not_runnable() -> None:
    with pytest.raises(EmptyCommandError):
        Pipeline().validate()
