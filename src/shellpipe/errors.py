"""Exception hierarchy for shellpipe.

Only failures that prevent a pipeline from being attempted are raised.
A command that ran and failed is reported through ``Result`` instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shellpipe.pipeline.executor import Result


class ShellPipeError(Exception):
    """Base class for all shellpipe errors."""


class CommandSyntaxError(ShellPipeError, ValueError):
    """Command string has an unterminated quote or ``${...}`` expansion."""

    def __init__(self, message: str, command: str) -> None:
        super().__init__(message)
        self.command = command


class EmptyCommandError(ShellPipeError, ValueError):
    """Command string produced no arguments, or a pipeline has no stages."""


class LaunchError(ShellPipeError):
    """Pipe or process creation failed at the OS level."""

    def __init__(self, message: str, stage_index: int | None = None) -> None:
        super().__init__(message)
        self.stage_index = stage_index


class WaitError(ShellPipeError):
    """Retrieving a child's termination status failed."""

    def __init__(self, message: str, stage_index: int) -> None:
        super().__init__(message)
        self.stage_index = stage_index


class PendingStateError(ShellPipeError):
    """Pending pipeline was already run or handed over to another one."""


class PipelineFailedError(ShellPipeError):
    """Raised by ``Result.raise_for_status`` when the last stage failed."""

    def __init__(self, result: Result) -> None:
        self.result = result
        super().__init__(
            f"Pipeline failed with exit code {result.exit_code} "
            f"(stage exit codes: {result.stage_exit_codes})"
        )
