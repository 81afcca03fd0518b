"""Tests for deferred pipelines and the sink front-end."""

from __future__ import annotations

import io
from typing import Any, Iterator

import pytest
from loguru import logger

from shellpipe.errors import CommandSyntaxError, LaunchError, PendingStateError
from shellpipe.pipeline import CONSOLE, PendingPipeline, Pipeline, Sinks, sh


@pytest.fixture
def log_records() -> Iterator[list[tuple[str, str]]]:
    records: list[tuple[str, str]] = []
    logger.enable("shellpipe")
    handler_id = logger.add(
        lambda message: records.append((message.record["level"].name, message.record["message"])),
        level="WARNING",
    )
    yield records
    logger.remove(handler_id)
    logger.disable("shellpipe")


def test_explicit_run_disarms() -> None:
    out = io.BytesIO()
    pending = sh("printf hi", stdout=out)

    result = pending.run()

    assert result.exit_code == 0
    assert pending.result is result
    assert not pending.armed
    assert out.getvalue() == b"hi"

    with pytest.raises(PendingStateError):
        pending.run()

    del pending
    assert out.getvalue() == b"hi"


def test_runs_when_released_without_run() -> None:
    out = io.BytesIO()
    pending = sh("printf auto", stdout=out)

    del pending

    assert out.getvalue() == b"auto"


def test_pipe_operator_transfers_ownership() -> None:
    out = io.BytesIO()
    first = sh("printf abc", stdout=out)

    second = first | "tr a-z A-Z"

    assert not first.armed
    assert second.armed
    del first
    assert out.getvalue() == b""

    second.run()
    del second
    assert out.getvalue() == b"ABC"


def test_chained_temporaries_run_exactly_once() -> None:
    out = io.BytesIO()

    sh("printf abc", stdout=out) | "cat" | "tr a-z A-Z"

    assert out.getvalue() == b"ABC"


def test_cannot_extend_after_run() -> None:
    pending = sh("true")
    pending.run()

    with pytest.raises(PendingStateError):
        pending | "cat"


def test_syntax_error_while_extending_disarms() -> None:
    out = io.BytesIO()
    pending = sh("printf a", stdout=out)

    with pytest.raises(CommandSyntaxError):
        pending | "echo 'oops"

    assert not pending.armed
    del pending
    assert out.getvalue() == b""


def test_context_manager_runs_on_exit() -> None:
    out = io.BytesIO()

    with sh("printf ctx", stdout=out) as pending:
        assert out.getvalue() == b""

    assert out.getvalue() == b"ctx"
    assert pending.result is not None
    assert not pending.armed


def test_context_manager_skips_run_on_error() -> None:
    out = io.BytesIO()

    with pytest.raises(RuntimeError):
        with sh("printf nope", stdout=out) as pending:
            raise RuntimeError("boom")

    assert not pending.armed
    assert out.getvalue() == b""


def test_disarm_drops_pipeline() -> None:
    out = io.BytesIO()
    pending = sh("printf x", stdout=out)

    pending.disarm()
    del pending

    assert out.getvalue() == b""


def test_sinks_operator_builds_pipeline() -> None:
    out = io.BytesIO()
    err = io.BytesIO()

    result = (Sinks.split(out, err) % "sh -c 'echo hello; echo oops 1>&2'" | "tr a-z A-Z").run()

    assert result.exit_code == 0
    assert out.getvalue() == b"HELLO\n"
    # Stderr of the first stage is inherited, not captured
    assert err.getvalue() == b""


def test_sinks_capture_last_stage_stderr() -> None:
    err = io.BytesIO()

    result = (Sinks(stderr=err) % "sh -c 'echo only-stderr 1>&2; exit 3'").run()

    assert result.exit_code == 3
    assert err.getvalue() == b"only-stderr\n"


def test_input_is_bound_to_pending() -> None:
    out = io.BytesIO()

    (sh("cat", input=b"fed", stdout=out) | "tr a-z A-Z").run()

    assert out.getvalue() == b"FED"


def test_console_sinks_inherit() -> None:
    assert CONSOLE == Sinks.console()
    assert CONSOLE.stdout is None
    assert CONSOLE.stderr is None


def test_failed_auto_run_is_logged_not_raised(log_records: list[tuple[str, str]]) -> None:
    class FailingExecutor:
        def execute(self, pipeline: Pipeline, **streams: Any) -> None:
            raise LaunchError("Could not start stage 0 (true): out of processes", stage_index=0)

    pending = PendingPipeline(Pipeline.from_commands(["true"]), executor=FailingExecutor())

    del pending

    levels = [level for level, _ in log_records]
    assert levels == ["WARNING", "ERROR"]
    assert "out of processes" in log_records[1][1]
