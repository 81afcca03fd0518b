"""Deferred pipelines that run once, either explicitly or when dropped.

Example:
    >>> import io
    >>> from shellpipe import Sinks, sh
    >>> sh("ls -l") | "grep py"          # runs as soon as the temporary is dropped
    >>> out = io.BytesIO()
    >>> result = (Sinks(stdout=out) % "printf hello" | "tr a-z A-Z").run()
    >>> out.getvalue()
    b'HELLO'
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any

from loguru import logger

from shellpipe.config import Settings
from shellpipe.errors import PendingStateError
from shellpipe.pipeline.executor import PipelineExecutor, Result
from shellpipe.pipeline.stage import Pipeline, StageLike


class PendingPipeline:
    """A pipeline bound to its input and sinks, not yet run.

    An armed pending pipeline runs exactly once: on ``run()``, at the end of
    a ``with`` block, or when it is garbage collected. Extending it with
    ``|`` hands ownership to the returned pipeline and disarms this one.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        input_source: Any = None,
        output_sink: Any = None,
        error_sink: Any = None,
        settings: Settings | None = None,
        executor: PipelineExecutor | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._input_source = input_source
        self._output_sink = output_sink
        self._error_sink = error_sink
        self._settings = settings
        self._executor = executor
        self._result: Result | None = None
        self._armed = True

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    @property
    def armed(self) -> bool:
        """True while this object still owns a pipeline that has not run."""
        return self._armed

    @property
    def result(self) -> Result | None:
        """Result of the run, once it happened through this object."""
        return self._result

    def __or__(self, command: StageLike) -> "PendingPipeline":
        self._ensure_armed("extend")
        try:
            pipeline = self._pipeline.then(command, settings=self._settings)
        except Exception:
            # A half-built pipeline must never run
            self._armed = False
            raise
        successor = PendingPipeline(
            pipeline,
            input_source=self._input_source,
            output_sink=self._output_sink,
            error_sink=self._error_sink,
            settings=self._settings,
            executor=self._executor,
        )
        self._armed = False
        return successor

    def run(self) -> Result:
        """Run the pipeline now and disarm the automatic run."""
        self._ensure_armed("run")
        self._armed = False
        executor = self._executor or PipelineExecutor(settings=self._settings)
        self._result = executor.execute(
            self._pipeline,
            input_source=self._input_source,
            output_sink=self._output_sink,
            error_sink=self._error_sink,
        )
        return self._result

    def disarm(self) -> None:
        """Drop the pipeline without running it."""
        self._armed = False

    def __enter__(self) -> "PendingPipeline":
        return self

    def __exit__(self, exc_type: Any, exc: Any, traceback: Any) -> None:
        if exc_type is not None:
            self.disarm()
            return
        if self._armed:
            self.run()

    def __del__(self) -> None:
        if not getattr(self, "_armed", False) or sys.is_finalizing():
            return
        logger.warning("Running pending pipeline on release: {}", self._pipeline.display())
        try:
            self.run()
        except Exception as exc:
            logger.error("Pending pipeline {} failed: {}", self._pipeline.display(), exc)

    def _ensure_armed(self, action: str) -> None:
        if not self._armed:
            raise PendingStateError(
                f"Cannot {action} pipeline {self._pipeline.display()!r}: "
                "it already ran or was handed over"
            )

    def __repr__(self) -> str:
        state = "armed" if self._armed else "disarmed"
        return f"PendingPipeline({self._pipeline.display()!r}, {state})"


@dataclass(frozen=True, slots=True)
class Sinks:
    """Where the last stage's output goes; None inherits the console stream."""

    stdout: Any = None
    stderr: Any = None

    @classmethod
    def console(cls) -> "Sinks":
        return cls()

    @classmethod
    def split(cls, stdout: Any, stderr: Any) -> "Sinks":
        return cls(stdout=stdout, stderr=stderr)

    def __mod__(self, command: StageLike) -> PendingPipeline:
        return sh(command, stdout=self.stdout, stderr=self.stderr)


CONSOLE = Sinks()


def sh(
    command: StageLike,
    *,
    input: Any = None,
    stdout: Any = None,
    stderr: Any = None,
    settings: Settings | None = None,
) -> PendingPipeline:
    """Start a pending pipeline from its first command."""
    return PendingPipeline(
        Pipeline.from_commands([command], settings=settings),
        input_source=input,
        output_sink=stdout,
        error_sink=stderr,
        settings=settings,
    )
