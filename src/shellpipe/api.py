"""Public API for running command pipelines."""

from __future__ import annotations

import io
from typing import Any, Iterable

from loguru import logger

from shellpipe.config import Settings, get_settings
from shellpipe.parsing import CommandTokenizer
from shellpipe.pipeline.executor import PipelineExecutor, Result
from shellpipe.pipeline.pending import PendingPipeline
from shellpipe.pipeline.stage import Pipeline, StageLike
from shellpipe.utils.metrics import MetricsTracker


class ShellPipe:
    """High-level entry point bundling settings, tokenizer and executor."""

    def __init__(
        self,
        settings: Settings | None = None,
        metrics_tracker: MetricsTracker | None = None,
    ) -> None:
        """Initialize runner.

        Args:
            settings: Configuration settings. If None, loads from environment.
            metrics_tracker: Run log writer. If None, one is built from settings.
        """
        self.settings = settings or get_settings()
        self.tokenizer = CommandTokenizer(settings=self.settings)
        self.executor = PipelineExecutor(
            settings=self.settings,
            metrics_tracker=metrics_tracker or MetricsTracker(settings=self.settings),
        )

    def tokenize(self, command: str) -> list[str]:
        """Split a command string into arguments."""
        return self.tokenizer.tokenize(command)

    def build(self, commands: Iterable[StageLike]) -> Pipeline:
        """Parse commands into a pipeline, failing before anything runs."""
        if isinstance(commands, str):
            commands = [commands]
        pipeline = Pipeline.from_commands(commands, settings=self.settings)
        pipeline.validate()
        return pipeline

    def run(
        self,
        commands: Iterable[StageLike],
        input: Any = None,
        stdout: Any = None,
        stderr: Any = None,
    ) -> Result:
        """Run commands as one pipeline.

        Args:
            commands: Command strings, argv lists or Stage objects.
            input: Data or readable stream for the first stage; None inherits.
            stdout: Sink for the last stage's stdout; None inherits.
            stderr: Sink for the last stage's stderr; None inherits.

        Returns:
            Result of the run. A failing command is not an exception.
        """
        pipeline = self.build(commands)
        logger.debug("Running pipeline: {}", pipeline.display())
        return self.executor.execute(
            pipeline,
            input_source=input,
            output_sink=stdout,
            error_sink=stderr,
        )

    def output(
        self,
        commands: Iterable[StageLike],
        input: Any = None,
        stderr: Any = None,
        check: bool = False,
    ) -> bytes:
        """Run commands and return the last stage's captured stdout.

        Args:
            commands: Command strings, argv lists or Stage objects.
            input: Data or readable stream for the first stage; None inherits.
            stderr: Sink for the last stage's stderr; None inherits.
            check: Raise PipelineFailedError if the last stage failed.
        """
        buffer = io.BytesIO()
        result = self.run(commands, input=input, stdout=buffer, stderr=stderr)
        if check:
            result.raise_for_status()
        return buffer.getvalue()

    def pending(
        self,
        commands: Iterable[StageLike],
        input: Any = None,
        stdout: Any = None,
        stderr: Any = None,
    ) -> PendingPipeline:
        """Bind commands to their streams without running them yet."""
        return PendingPipeline(
            self.build(commands),
            input_source=input,
            output_sink=stdout,
            error_sink=stderr,
            settings=self.settings,
            executor=self.executor,
        )


def run(
    commands: Iterable[StageLike],
    input: Any = None,
    stdout: Any = None,
    stderr: Any = None,
    settings: Settings | None = None,
) -> Result:
    """Run commands as one pipeline with default components."""
    return ShellPipe(settings=settings).run(commands, input=input, stdout=stdout, stderr=stderr)


def run_output(
    commands: Iterable[StageLike],
    input: Any = None,
    stderr: Any = None,
    check: bool = False,
    settings: Settings | None = None,
) -> bytes:
    """Run commands and return the captured stdout of the last stage."""
    return ShellPipe(settings=settings).output(commands, input=input, stderr=stderr, check=check)
