"""Shell-free command pipelines for Python.

This library tokenizes shell-like command strings and runs them as a chain
of processes connected by pipes, with optional input injection and output
capture.

Example:
    >>> import io
    >>> from shellpipe import run
    >>>
    >>> out = io.BytesIO()
    >>> result = run(["printf 'b\\na\\n'", "sort"], stdout=out)
    >>> result.exit_code
    0
    >>> out.getvalue()
    b'a\\nb\\n'
"""

__version__ = "0.1.0"

from loguru import logger

# Silent as a library; setup_logger() turns records back on
logger.disable("shellpipe")

# Public API exports
from shellpipe.api import ShellPipe, run, run_output
from shellpipe.config import Settings, get_settings
from shellpipe.errors import (
    CommandSyntaxError,
    EmptyCommandError,
    LaunchError,
    PendingStateError,
    PipelineFailedError,
    ShellPipeError,
    WaitError,
)
from shellpipe.parsing import CommandTokenizer, tokenize
from shellpipe.pipeline import (
    CONSOLE,
    PROGRAM_NOT_FOUND_EXIT_CODE,
    PendingPipeline,
    Pipeline,
    PipelineExecutor,
    Result,
    Sinks,
    Stage,
    execute,
    exit_code_from_status,
    sh,
)

__all__ = [
    # Main API
    "ShellPipe",
    "run",
    "run_output",
    "sh",
    "Sinks",
    "CONSOLE",
    "PendingPipeline",
    # Core
    "tokenize",
    "CommandTokenizer",
    "Stage",
    "Pipeline",
    "PipelineExecutor",
    "Result",
    "execute",
    "exit_code_from_status",
    "PROGRAM_NOT_FOUND_EXIT_CODE",
    # Errors
    "ShellPipeError",
    "CommandSyntaxError",
    "EmptyCommandError",
    "LaunchError",
    "WaitError",
    "PendingStateError",
    "PipelineFailedError",
    # Configuration
    "Settings",
    "get_settings",
    # Version
    "__version__",
]
