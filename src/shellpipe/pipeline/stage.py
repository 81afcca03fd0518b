"""Stage and pipeline records."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import Iterable, Sequence, Union

from shellpipe.config import Settings
from shellpipe.errors import EmptyCommandError
from shellpipe.parsing import CommandTokenizer

StageLike = Union["Stage", str, Sequence[str]]


@dataclass(frozen=True, slots=True)
class Stage:
    """Single program invocation within a pipeline.

    ``arguments[0]`` is the program name, mirroring the OS argv convention.
    """

    program: str
    arguments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.program:
            raise EmptyCommandError("Stage program must not be empty")
        arguments = tuple(self.arguments) if self.arguments else (self.program,)
        object.__setattr__(self, "arguments", arguments)

    @classmethod
    def parse(cls, command: str, settings: Settings | None = None) -> "Stage":
        """Build a stage from a shell-like command string."""
        argv = CommandTokenizer(settings=settings).tokenize(command)
        if not argv:
            raise EmptyCommandError(f"Command {command!r} contains no program")
        return cls(program=argv[0], arguments=tuple(argv))

    @classmethod
    def from_argv(cls, argv: Sequence[str]) -> "Stage":
        """Build a stage from an already split argument list."""
        if not argv:
            raise EmptyCommandError("Argument list contains no program")
        return cls(program=str(argv[0]), arguments=tuple(str(item) for item in argv))

    @classmethod
    def coerce(cls, value: StageLike, settings: Settings | None = None) -> "Stage":
        """Accept a Stage, a command string, or an argv sequence."""
        if isinstance(value, Stage):
            return value
        if isinstance(value, str):
            return cls.parse(value, settings=settings)
        return cls.from_argv(value)

    @property
    def argv(self) -> list[str]:
        """Argument list handed to the program."""
        return list(self.arguments)

    def display(self) -> str:
        """Shell-quoted rendering for logs."""
        return shlex.join(self.arguments)


@dataclass(frozen=True, slots=True)
class Pipeline:
    """Ordered chain of stages; stage i's stdout feeds stage i+1's stdin."""

    stages: tuple[Stage, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "stages", tuple(self.stages))

    @classmethod
    def from_commands(
        cls,
        commands: Iterable[StageLike],
        settings: Settings | None = None,
    ) -> "Pipeline":
        """Build a pipeline from command strings, argv lists or stages."""
        return cls(stages=tuple(Stage.coerce(command, settings=settings) for command in commands))

    def then(self, stage: StageLike, settings: Settings | None = None) -> "Pipeline":
        """Return a new pipeline with ``stage`` appended."""
        return Pipeline(stages=(*self.stages, Stage.coerce(stage, settings=settings)))

    def validate(self) -> None:
        """Ensure the pipeline can run."""
        if not self.stages:
            raise EmptyCommandError("Pipeline has no stages")

    def display(self) -> str:
        return " | ".join(stage.display() for stage in self.stages)

    def __len__(self) -> int:
        return len(self.stages)
