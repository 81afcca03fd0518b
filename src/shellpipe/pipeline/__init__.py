"""Pipeline records, executor and deferred execution."""

from .executor import (
    PROGRAM_NOT_FOUND_EXIT_CODE,
    PipelineExecutor,
    Result,
    execute,
    exit_code_from_status,
)
from .fd import OwnedFd, make_pipe
from .pending import CONSOLE, PendingPipeline, Sinks, sh
from .stage import Pipeline, Stage
from .streams import (
    NO_INPUT,
    BytesInput,
    InputSource,
    NoInput,
    SinkWriter,
    StreamInput,
    as_input_source,
)

__all__ = [
    "PROGRAM_NOT_FOUND_EXIT_CODE",
    "PipelineExecutor",
    "Result",
    "execute",
    "exit_code_from_status",
    "OwnedFd",
    "make_pipe",
    "CONSOLE",
    "PendingPipeline",
    "Sinks",
    "sh",
    "Pipeline",
    "Stage",
    "NO_INPUT",
    "BytesInput",
    "InputSource",
    "NoInput",
    "SinkWriter",
    "StreamInput",
    "as_input_source",
]
