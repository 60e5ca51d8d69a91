"""Pipeline executor — N external commands chained through OS pipes.

Equivalent to ``a | b | c`` in a shell, without a shell:

    from osutils.pipeline import execute_piped
    from osutils.types import PipeCommand, PipeCommandList

    out = io.BytesIO()
    handle = execute_piped(PipeCommandList(
        pipe_commands=[
            PipeCommand(args=["sort"]),
            PipeCommand(args=["uniq"]),
            PipeCommand(args=["wc", "-l"]),
        ],
        stdin=b"hello\\nfoo\\nhello\\n",
        stdout=out,
    ))
    handle.wait()

Wiring: stage i writes into boundary i, stage i+1 reads from it. Stage 0
reads the pipeline's stdin, the last stage writes the pipeline's stdout,
and every stage shares the pipeline's stderr.

Join order: stages are waited on first to last. A boundary's read end is
closed in this process as soon as its reader has started, so a writer
whose reader exits early gets SIGPIPE instead of blocking on a full pipe.
A boundary's write end is closed once its writer has exited, which is
what lets the next stage see EOF. Whatever is still open when wait()
returns or raises is closed on the way out, so every endpoint is closed
exactly once.

An upstream stage killed by SIGPIPE is not a failure: its reader chose to
stop, as with ``yes | head -1`` in a shell.
"""

from __future__ import annotations

import logging
import os
import threading

from osutils.exceptions import EmptyError, NilError, NotMultipleCommandsError
from osutils.process import (
    ProcessDescriptor,
    ProcessHandle,
    RunningProcess,
    validate_args,
)
from osutils.streams import Attachment, attach_input, attach_output
from osutils.types import PipeCommand, PipeCommandList

_logger = logging.getLogger(__name__)


class _PipeEndpoints:
    """One OS pipe at a stage boundary. Each end closes at most once."""

    def __init__(self, boundary: int) -> None:
        self.boundary = boundary
        self.reader, self.writer = os.pipe()
        self._reader_open = True
        self._writer_open = True

    def close_reader(self) -> None:
        if self._reader_open:
            self._reader_open = False
            os.close(self.reader)
            _logger.debug("Closed read end of boundary %d", self.boundary)

    def close_writer(self) -> None:
        if self._writer_open:
            self._writer_open = False
            os.close(self.writer)
            _logger.debug("Closed write end of boundary %d", self.boundary)

    def close(self) -> None:
        try:
            self.close_writer()
        finally:
            self.close_reader()


def _validate(pipe_command_list: PipeCommandList) -> list[PipeCommand]:
    stages = pipe_command_list.pipe_commands
    if stages is None:
        raise NilError("stage list is required")
    if len(stages) == 0:
        raise EmptyError("stage list is empty")
    if len(stages) == 1:
        raise NotMultipleCommandsError("a pipeline needs at least two stages; use execute()")
    for stage in stages:
        validate_args(stage.args, stage.absolute_dir)
    return stages


def _release(pipes: list[_PipeEndpoints], failing: bool = False) -> None:
    """Close every endpoint still open.

    While another error is propagating, close errors are logged rather
    than raised so they do not replace it.
    """
    errors = []
    for pipe in pipes:
        try:
            pipe.close()
        except OSError as e:
            errors.append(e)
    if not errors:
        return
    if failing:
        for e in errors:
            _logger.warning("Failed to close pipe endpoint: %s", e)
        return
    raise errors[0]


class PipelineHandle(ProcessHandle):
    """Deferred wait for every stage of a pipeline."""

    def __init__(self, processes: list[RunningProcess], pipes: list[_PipeEndpoints]) -> None:
        super().__init__(processes)
        self._pipes = pipes

    def _join(self) -> None:
        """Wait for each stage in order, stopping at the first failure.

        Stages after a failed one are not waited on; their exit status is
        not observed.
        """
        last = len(self._processes) - 1
        try:
            for i in range(last):
                self._processes[i].wait(allow_sigpipe=True)
                if i != 0:
                    self._pipes[i - 1].close_reader()
                self._pipes[i].close_writer()
            self._processes[last].wait()
            self._pipes[last - 1].close_reader()
        except BaseException:
            _release(self._pipes, failing=True)
            raise
        _release(self._pipes)


def execute_piped(pipe_command_list: PipeCommandList) -> PipelineHandle:
    """Start every stage of the pipeline and return a handle to join them.

    Nothing is started if validation fails. If a stage fails to start, its
    OSError propagates and later stages are not started; stages already
    running are left alone and are the caller's to clean up.
    """
    stages = _validate(pipe_command_list)
    descriptors = [
        ProcessDescriptor.build(stage.args, stage.absolute_dir, stage.env) for stage in stages
    ]
    count = len(descriptors)

    stdin = attach_input(pipe_command_list.stdin)
    stdout = attach_output(pipe_command_list.stdout)
    stderr_lock = threading.Lock()

    pipes: list[_PipeEndpoints] = []
    running: list[RunningProcess] = []
    try:
        for boundary in range(count - 1):
            pipes.append(_PipeEndpoints(boundary))

        wiring: list[tuple[Attachment, Attachment, Attachment]] = []
        for i in range(count):
            stage_in = stdin if i == 0 else Attachment(pipes[i - 1].reader)
            stage_out = stdout if i == count - 1 else Attachment(pipes[i].writer)
            stage_err = attach_output(pipe_command_list.stderr, stderr_lock)
            wiring.append((stage_in, stage_out, stage_err))

        for i, (descriptor, (stage_in, stage_out, stage_err)) in enumerate(zip(descriptors, wiring)):
            running.append(descriptor.start(stage_in, stage_out, stage_err))
            if i != 0:
                # the child has its own copy; ours would keep the writer from getting SIGPIPE
                pipes[i - 1].close_reader()
    except BaseException:
        if running:
            _logger.warning(
                "Pipeline start failed after %d of %d stages started (pids %s)",
                len(running), count, [p.pid for p in running],
            )
        _release(pipes, failing=True)
        raise

    _logger.debug("Started pipeline of %d stages: %s", count, [d.name for d in descriptors])
    return PipelineHandle(running, pipes)
