"""Pipeline executor: wires, spawns, pumps and reaps N child processes."""

from __future__ import annotations

import errno
import os
import selectors
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from typing import Any

from loguru import logger

from shellpipe.config import Settings, get_settings
from shellpipe.errors import LaunchError, PipelineFailedError, WaitError
from shellpipe.pipeline.fd import OwnedFd, make_pipe
from shellpipe.pipeline.stage import Pipeline, Stage
from shellpipe.pipeline.streams import InputSource, SinkWriter, as_input_source
from shellpipe.utils.metrics import MetricsTracker

PROGRAM_NOT_FOUND_EXIT_CODE = 127

# errno values raised by Popen when the child could not exec the program
EXEC_FAILURE_ERRNOS = frozenset(
    {
        errno.ENOENT,
        errno.EACCES,
        errno.ENOTDIR,
        errno.ENOEXEC,
        errno.ELOOP,
        errno.ENAMETOOLONG,
        errno.EISDIR,
    }
)


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of a pipeline run.

    ``stage_statuses`` holds the raw wait status of every stage in order;
    ``exit_code`` is derived from the last one only.
    """

    exit_code: int = 0
    stage_statuses: tuple[int, ...] = ()

    @property
    def ok(self) -> bool:
        """True if the last stage exited with code 0."""
        return self.exit_code == 0

    @property
    def stage_exit_codes(self) -> list[int]:
        """Exit code of every stage, mapped like ``exit_code``."""
        return [exit_code_from_status(status) for status in self.stage_statuses]

    def raise_for_status(self) -> "Result":
        """Raise PipelineFailedError unless the last stage succeeded."""
        if not self.ok:
            raise PipelineFailedError(self)
        return self


def exit_code_from_status(status: int) -> int:
    """Map a raw wait status to a shell-style exit code.

    Normal exit gives the exit value, death by signal S gives ``128 + S``,
    anything else gives ``-1``.
    """
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status)
    if os.WIFSIGNALED(status):
        return 128 + os.WTERMSIG(status)
    return -1


def exited_status(code: int) -> int:
    """Raw wait status of a process that exited normally with ``code``."""
    return (code & 0xFF) << 8


class PipelineExecutor:
    """Runs pipelines and optionally records each run in the run log."""

    def __init__(
        self,
        settings: Settings | None = None,
        metrics_tracker: MetricsTracker | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.metrics_tracker = metrics_tracker or MetricsTracker(settings=self.settings)

    def execute(
        self,
        pipeline: Pipeline,
        input_source: Any = None,
        output_sink: Any = None,
        error_sink: Any = None,
    ) -> Result:
        """Run ``pipeline`` to completion.

        Args:
            pipeline: Stages to run, connected stdout to stdin.
            input_source: Data for the first stage's stdin; None inherits.
            output_sink: Writable receiving the last stage's stdout; None inherits.
            error_sink: Writable receiving the last stage's stderr; None inherits.

        Returns:
            Result with per-stage statuses and the last stage's exit code.

        Raises:
            EmptyCommandError: If the pipeline has no stages.
            LaunchError: If a pipe or process could not be created.
            WaitError: If a child's status could not be retrieved.
        """
        pipeline.validate()
        run = _PipelineRun(
            pipeline=pipeline,
            source=as_input_source(input_source),
            out_writer=SinkWriter(output_sink) if output_sink is not None else None,
            err_writer=SinkWriter(error_sink) if error_sink is not None else None,
            settings=self.settings,
        )

        start = time.perf_counter()
        result = run.run()
        duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "Pipeline finished: stages={}, exit_code={}, duration_ms={:.1f}",
            len(pipeline),
            result.exit_code,
            duration_ms,
        )
        self.metrics_tracker.record_run(pipeline, result, duration_ms)
        return result


def execute(
    pipeline: Pipeline,
    input_source: Any = None,
    output_sink: Any = None,
    error_sink: Any = None,
    settings: Settings | None = None,
) -> Result:
    """Run ``pipeline`` with a default executor."""
    return PipelineExecutor(settings=settings).execute(
        pipeline,
        input_source=input_source,
        output_sink=output_sink,
        error_sink=error_sink,
    )


class _PipelineRun:
    """State of a single execution; every parent-held descriptor is owned here."""

    def __init__(
        self,
        pipeline: Pipeline,
        source: InputSource,
        out_writer: SinkWriter | None,
        err_writer: SinkWriter | None,
        settings: Settings,
    ) -> None:
        self.stages = pipeline.stages
        self.source = source
        self.out_writer = out_writer
        self.err_writer = err_writer
        self.settings = settings

        self.links: list[tuple[OwnedFd, OwnedFd]] = []
        self.input_pipe: tuple[OwnedFd, OwnedFd] | None = None
        self.out_pipe: tuple[OwnedFd, OwnedFd] | None = None
        self.err_pipe: tuple[OwnedFd, OwnedFd] | None = None

        # None marks a stage whose program could not be executed
        self.children: list[subprocess.Popen | None] = []
        self.statuses: list[int] = []
        self.threads: list[threading.Thread] = []
        self.stop = threading.Event()

    def run(self) -> Result:
        try:
            self._allocate_pipes()
            self._spawn_stages()
            self._start_pumps()
        except BaseException:
            self._abort()
            raise

        try:
            wait_error = self._reap_children()
        finally:
            self._close_parent_fds()
            self._stop_pumps()

        if wait_error is not None:
            raise wait_error

        return Result(
            exit_code=exit_code_from_status(self.statuses[-1]),
            stage_statuses=tuple(self.statuses),
        )

    # ----- wiring -----

    def _allocate_pipes(self) -> None:
        try:
            for _ in range(len(self.stages) - 1):
                self.links.append(make_pipe())
            if self.source.attached:
                self.input_pipe = make_pipe()
            if self.out_writer is not None:
                self.out_pipe = make_pipe()
            if self.err_writer is not None:
                self.err_pipe = make_pipe()
        except OSError as exc:
            raise LaunchError(f"Could not create pipe: {exc}") from exc

        logger.debug(
            "Allocated pipes: links={}, input={}, stdout_capture={}, stderr_capture={}",
            len(self.links),
            self.input_pipe is not None,
            self.out_pipe is not None,
            self.err_pipe is not None,
        )

    def _stage_fds(self, index: int) -> tuple[OwnedFd | None, OwnedFd | None, OwnedFd | None]:
        """Descriptors handed to stage ``index`` as stdin, stdout and stderr."""
        last = index == len(self.stages) - 1

        stdin = None
        if index > 0:
            stdin = self.links[index - 1][0]
        elif self.input_pipe is not None:
            stdin = self.input_pipe[0]

        stdout = None
        if not last:
            stdout = self.links[index][1]
        elif self.out_pipe is not None:
            stdout = self.out_pipe[1]

        # Only the last stage's stderr is ever captured
        stderr = self.err_pipe[1] if last and self.err_pipe is not None else None
        return stdin, stdout, stderr

    # ----- spawning -----

    def _spawn_stages(self) -> None:
        for index, stage in enumerate(self.stages):
            stdin, stdout, stderr = self._stage_fds(index)
            try:
                child = self._spawn(index, stage, stdin, stdout, stderr)
            finally:
                # These ends now belong to the child alone
                for handle in (stdin, stdout, stderr):
                    if handle is not None:
                        handle.close()
            self.children.append(child)

    def _spawn(
        self,
        index: int,
        stage: Stage,
        stdin: OwnedFd | None,
        stdout: OwnedFd | None,
        stderr: OwnedFd | None,
    ) -> subprocess.Popen | None:
        try:
            child = subprocess.Popen(
                stage.argv,
                executable=stage.program,
                stdin=stdin.fileno() if stdin is not None else None,
                stdout=stdout.fileno() if stdout is not None else None,
                stderr=stderr.fileno() if stderr is not None else None,
                close_fds=True,
            )
        except OSError as exc:
            if exc.errno not in EXEC_FAILURE_ERRNOS:
                raise LaunchError(
                    f"Could not start stage {index} ({stage.program}): {exc}",
                    stage_index=index,
                ) from exc
            self._report_not_found(index, stage, exc, stderr)
            return None

        logger.debug("Spawned stage {} pid={} argv={}", index, child.pid, stage.argv)
        return child

    def _report_not_found(
        self,
        index: int,
        stage: Stage,
        exc: OSError,
        stderr: OwnedFd | None,
    ) -> None:
        """Record the stage as exited with 127 and tell its error stream why."""
        message = f"{stage.program}: {exc.strerror or exc}\n"
        logger.warning("Stage {} could not execute {}: {}", index, stage.program, exc.strerror)
        if stderr is not None:
            try:
                os.write(stderr.fileno(), message.encode("utf-8", errors="replace"))
            except OSError:
                pass
        else:
            sys.stderr.write(message)
            sys.stderr.flush()
        # Statuses of spawned stages are filled in while reaping
        self.statuses.extend([0] * (index + 1 - len(self.statuses)))
        self.statuses[index] = exited_status(PROGRAM_NOT_FOUND_EXIT_CODE)

    # ----- pumping -----

    def _start_pumps(self) -> None:
        chunk_size = self.settings.chunk_size
        poll_interval = self.settings.pump_poll_interval
        try:
            if self.input_pipe is not None:
                self._start_thread(
                    "shellpipe-stdin",
                    _inject_input,
                    self.source,
                    self.input_pipe[1].transfer(),
                    self.stop,
                    chunk_size,
                    poll_interval,
                )
            if self.out_pipe is not None:
                self._start_thread(
                    "shellpipe-stdout",
                    _drain_capture,
                    self.out_pipe[0].transfer(),
                    self.out_writer,
                    self.stop,
                    chunk_size,
                    poll_interval,
                )
            if self.err_pipe is not None:
                self._start_thread(
                    "shellpipe-stderr",
                    _drain_capture,
                    self.err_pipe[0].transfer(),
                    self.err_writer,
                    self.stop,
                    chunk_size,
                    poll_interval,
                )
        except RuntimeError as exc:
            raise LaunchError(f"Could not start stream pump: {exc}") from exc

    def _start_thread(self, name: str, target: Any, *args: Any) -> None:
        thread = threading.Thread(target=target, args=args, name=name, daemon=True)
        thread.start()
        self.threads.append(thread)

    def _stop_pumps(self) -> None:
        self.stop.set()
        for thread in self.threads:
            thread.join()
        self.threads.clear()

    # ----- reaping -----

    def _reap_children(self) -> WaitError | None:
        """Wait for every spawned child in stage order.

        Returns:
            The first WaitError encountered, after all other children were reaped.
        """
        self.statuses.extend([0] * (len(self.children) - len(self.statuses)))
        first_error: WaitError | None = None
        for index, child in enumerate(self.children):
            if child is None:
                continue
            try:
                _, status = os.waitpid(child.pid, 0)
            except OSError as exc:
                logger.error("waitpid failed for stage {} (pid={}): {}", index, child.pid, exc)
                self.statuses[index] = -1
                if first_error is None:
                    first_error = WaitError(
                        f"Could not wait for stage {index} (pid={child.pid}): {exc}",
                        stage_index=index,
                    )
                    first_error.__cause__ = exc
                continue
            child.returncode = os.waitstatus_to_exitcode(status)
            self.statuses[index] = status
            logger.debug("Reaped stage {} pid={} status={}", index, child.pid, status)
        return first_error

    def _abort(self) -> None:
        """Release everything after a failed launch; no child is left unreaped."""
        self._close_parent_fds()
        self._reap_children()
        self._stop_pumps()

    def _close_parent_fds(self) -> None:
        pairs = [*self.links, self.input_pipe, self.out_pipe, self.err_pipe]
        for pair in pairs:
            if pair is None:
                continue
            for handle in pair:
                handle.close()


def _inject_input(
    source: InputSource,
    write_fd: OwnedFd,
    stop: threading.Event,
    chunk_size: int,
    poll_interval: float,
) -> None:
    """Feed ``source`` into the first stage, then close to signal EOF."""
    written = 0
    with write_fd, selectors.DefaultSelector() as selector:
        try:
            os.set_blocking(write_fd.fileno(), False)
            selector.register(write_fd.fileno(), selectors.EVENT_WRITE)
            for chunk in source.chunks(chunk_size):
                view = memoryview(chunk)
                while view:
                    if not selector.select(timeout=poll_interval):
                        if stop.is_set():
                            return
                        continue
                    try:
                        count = os.write(write_fd.fileno(), view)
                    except BlockingIOError:
                        continue
                    view = view[count:]
                    written += count
        except BrokenPipeError:
            logger.debug("Input pipe closed by reader after {} bytes", written)
        except Exception as exc:
            logger.debug("Input injection stopped after {} bytes: {}", written, exc)
        else:
            logger.debug("Injected {} bytes into first stage", written)


def _drain_capture(
    read_fd: OwnedFd,
    writer: SinkWriter,
    stop: threading.Event,
    chunk_size: int,
    poll_interval: float,
) -> None:
    """Copy a capture pipe into ``writer`` chunk by chunk until EOF.

    Once ``stop`` is set (all children reaped) only data already buffered in
    the pipe is drained, so a grandchild holding the write end cannot hang us.
    """
    received = 0
    with read_fd, selectors.DefaultSelector() as selector:
        try:
            selector.register(read_fd.fileno(), selectors.EVENT_READ)
            while True:
                timeout = 0 if stop.is_set() else poll_interval
                if not selector.select(timeout=timeout):
                    if stop.is_set():
                        break
                    continue
                chunk = os.read(read_fd.fileno(), chunk_size)
                if not chunk:
                    break
                received += len(chunk)
                writer.write(chunk)
            writer.finish()
        except Exception as exc:
            logger.debug("Capture pump stopped after {} bytes: {}", received, exc)
        else:
            logger.debug("Captured {} bytes", received)
