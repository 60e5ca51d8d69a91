"""Single process runner — start one external command, join it later.

Usage:
    from osutils.process import execute
    from osutils.types import Command

    out = io.BytesIO()
    handle = execute(Command(args=["pwd", "-P"], absolute_dir="/tmp", stdout=out))
    handle.wait()  # raises CalledProcessError on non-zero exit
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import subprocess
from dataclasses import dataclass

from osutils.exceptions import EmptyError, HandleConsumedError, NilError, NotAbsolutePathError
from osutils.paths import is_absolute_path
from osutils.streams import Attachment, StreamCopier, attach_input, attach_output
from osutils.types import Command

_logger = logging.getLogger(__name__)

_SIGPIPE = getattr(signal, "SIGPIPE", None)


def validate_args(args: list[str] | None, absolute_dir: str | None) -> None:
    """Reject a command before anything is started."""
    if args is None:
        raise NilError("argument vector is required")
    if len(args) == 0:
        raise EmptyError("argument vector is empty")
    if absolute_dir and not is_absolute_path(absolute_dir):
        raise NotAbsolutePathError(f"working directory {absolute_dir!r} is not absolute")


def _resolve_executable(name: str, env: dict[str, str] | None) -> str | None:
    """Look up a bare command name on this process's PATH.

    Popen searches the child's PATH when an environment is given, so a
    replaced environment would otherwise hide tools the caller can see.
    """
    if env is None or os.sep in name or (os.altsep and os.altsep in name):
        return None
    return shutil.which(name)


def _env_dict(env: list[str] | None) -> dict[str, str] | None:
    if env is None:
        return None
    parsed: dict[str, str] = {}
    for entry in env:
        key, _, value = entry.partition("=")
        parsed[key] = value
    return parsed


@dataclass
class ProcessDescriptor:
    """Everything needed to start a process except its streams."""

    args: list[str]
    cwd: str | None = None
    env: dict[str, str] | None = None

    @classmethod
    def build(
        cls, args: list[str], absolute_dir: str | None = None, env: list[str] | None = None
    ) -> ProcessDescriptor:
        return cls(args=list(args), cwd=absolute_dir or None, env=_env_dict(env))

    @property
    def name(self) -> str:
        return self.args[0]

    def start(self, stdin: Attachment, stdout: Attachment, stderr: Attachment) -> RunningProcess:
        """Spawn the process. OSError propagates if it cannot be started."""
        proc = subprocess.Popen(
            self.args,
            executable=_resolve_executable(self.name, self.env),
            cwd=self.cwd,
            env=self.env,
            stdin=stdin.target,
            stdout=stdout.target,
            stderr=stderr.target,
        )
        _logger.debug("Started %s (pid %d) in %s", self.name, proc.pid, self.cwd or ".")
        copier = StreamCopier(name=f"{self.name}[{proc.pid}]")
        copier.start(proc, stdin, stdout, stderr)
        return RunningProcess(proc=proc, copier=copier)


@dataclass
class RunningProcess:
    """A started process and the threads copying its in-memory streams."""

    proc: subprocess.Popen
    copier: StreamCopier

    @property
    def pid(self) -> int:
        return self.proc.pid

    def wait(self, allow_sigpipe: bool = False) -> None:
        """Block until exit and every copy thread is done.

        A non-zero exit is reported as CalledProcessError and takes
        precedence over a copy error. With ``allow_sigpipe`` a death by
        SIGPIPE counts as a clean exit.
        """
        returncode = self.proc.wait()
        if allow_sigpipe and _SIGPIPE is not None and returncode == -_SIGPIPE:
            _logger.debug("Process %s (pid %d) stopped by SIGPIPE", self.proc.args[0], self.pid)
            returncode = 0
        try:
            self.copier.join()
        except Exception as e:
            if returncode == 0:
                raise
            _logger.debug("Copy error for pid %d ignored after exit %d: %s", self.pid, returncode, e)
        _logger.debug("Process %s (pid %d) exited with %d", self.proc.args[0], self.pid, returncode)
        if returncode != 0:
            raise subprocess.CalledProcessError(returncode, self.proc.args)


class ProcessHandle:
    """Deferred wait for launched process(es).

    ``wait()`` may be called exactly once; a second call raises
    HandleConsumedError. Subclasses override ``_join``.
    """

    def __init__(self, processes: list[RunningProcess]) -> None:
        self._processes = processes
        self._consumed = False

    @property
    def pids(self) -> list[int]:
        return [p.pid for p in self._processes]

    def _consume(self) -> None:
        if self._consumed:
            raise HandleConsumedError("wait() was already called on this handle")
        self._consumed = True

    def wait(self) -> None:
        self._consume()
        self._join()

    def _join(self) -> None:
        for process in self._processes:
            process.wait()

    def __call__(self) -> None:
        self.wait()

    async def wait_async(self) -> None:
        """Run the blocking wait() on a worker thread."""
        await asyncio.to_thread(self.wait)


def execute(command: Command) -> ProcessHandle:
    """Start ``command`` and return a handle to wait on it."""
    validate_args(command.args, command.absolute_dir)
    descriptor = ProcessDescriptor.build(command.args, command.absolute_dir, command.env)
    running = descriptor.start(
        attach_input(command.stdin),
        attach_output(command.stdout),
        attach_output(command.stderr),
    )
    return ProcessHandle([running])

