"""Input sources and capture sinks consumed by the executor."""

from __future__ import annotations

import codecs
import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator


class InputSource(ABC):
    """Data fed into the first stage's standard input."""

    __slots__ = ()

    @property
    def attached(self) -> bool:
        """Whether the first stage needs an input pipe."""
        return True

    @abstractmethod
    def chunks(self, chunk_size: int) -> Iterator[bytes]:
        """Yield the input in chunks of at most ``chunk_size`` bytes."""


@dataclass(frozen=True, slots=True)
class NoInput(InputSource):
    """First stage inherits the parent's standard input."""

    @property
    def attached(self) -> bool:
        return False

    def chunks(self, chunk_size: int) -> Iterator[bytes]:
        return iter(())


@dataclass(frozen=True, slots=True)
class BytesInput(InputSource):
    """Literal byte buffer."""

    data: bytes

    def chunks(self, chunk_size: int) -> Iterator[bytes]:
        view = memoryview(self.data)
        for start in range(0, len(view), chunk_size):
            yield bytes(view[start : start + chunk_size])


@dataclass(frozen=True, slots=True)
class StreamInput(InputSource):
    """Readable stream drained until EOF."""

    stream: Any

    def chunks(self, chunk_size: int) -> Iterator[bytes]:
        while True:
            chunk = self.stream.read(chunk_size)
            if not chunk:
                return
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            yield bytes(chunk)


NO_INPUT = NoInput()


def as_input_source(value: Any) -> InputSource:
    """Coerce a caller-supplied value into an input source.

    Args:
        value: None, bytes-like, str (UTF-8 encoded), a readable object,
            or an existing InputSource.

    Raises:
        TypeError: If the value cannot serve as input.
    """
    if value is None:
        return NO_INPUT
    if isinstance(value, InputSource):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesInput(bytes(value))
    if isinstance(value, str):
        return BytesInput(value.encode("utf-8"))
    if callable(getattr(value, "read", None)):
        return StreamInput(value)
    raise TypeError(f"Unsupported input source: {type(value).__name__}")


class SinkWriter:
    """Adapts a caller-supplied sink to receive raw byte chunks.

    Text sinks get UTF-8 decoded text; sinks with ``flush`` are flushed after
    each chunk so output shows up while the pipeline is still running.
    """

    def __init__(self, sink: Any) -> None:
        if not callable(getattr(sink, "write", None)):
            raise TypeError(f"Sink {type(sink).__name__} has no write() method")
        self.sink = sink
        self._decoder = (
            codecs.getincrementaldecoder("utf-8")(errors="replace")
            if isinstance(sink, io.TextIOBase)
            else None
        )
        flush = getattr(sink, "flush", None)
        self._flush = flush if callable(flush) else None

    def write(self, chunk: bytes) -> None:
        if self._decoder is not None:
            text = self._decoder.decode(chunk)
            if text:
                self.sink.write(text)
        else:
            self.sink.write(chunk)
        if self._flush is not None:
            self._flush()

    def finish(self) -> None:
        """Emit any partially decoded character left at EOF."""
        if self._decoder is None:
            return
        tail = self._decoder.decode(b"", final=True)
        if tail:
            self.sink.write(tail)
            if self._flush is not None:
                self._flush()
