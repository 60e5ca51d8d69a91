"""Stream attachment — wiring caller streams onto a child's stdio.

subprocess can only hand real file descriptors to a child. Anything else
(``bytes``, ``io.BytesIO``, a wrapped stdout under a test runner) is
attached through a pipe and copied by a background thread:

  - None: the null device
  - int or object with a working ``fileno()``: passed to the child as-is
  - bytes: fed to the child's stdin, then stdin is closed
  - object with ``read()``: copied into the child's stdin until EOF
  - object with ``write()``: receives everything the child writes

Copy threads belong to one process; ``StreamCopier.join()`` waits for them
and re-raises the first copy error.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from osutils.config import settings

_logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    """What Popen receives for one stdio slot, and what to copy if anything."""

    target: Any  # DEVNULL, PIPE or a file descriptor
    stream: Any = None  # in-memory peer of the pipe when target is PIPE
    lock: threading.Lock | None = None  # serializes writes into a shared sink

    @property
    def copies(self) -> bool:
        return self.target is subprocess.PIPE


def _fileno(stream: Any) -> int | None:
    if isinstance(stream, int):
        return stream
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        # io.UnsupportedOperation is both an OSError and a ValueError
        return None


def attach_input(stream: Any) -> Attachment:
    if stream is None:
        return Attachment(subprocess.DEVNULL)
    if isinstance(stream, (bytes, bytearray, memoryview)):
        return Attachment(subprocess.PIPE, bytes(stream))
    fd = _fileno(stream)
    if fd is not None:
        return Attachment(fd)
    if not hasattr(stream, "read"):
        raise TypeError(f"cannot read from stream of type {type(stream).__name__}")
    return Attachment(subprocess.PIPE, stream)


def attach_output(stream: Any, lock: threading.Lock | None = None) -> Attachment:
    if stream is None:
        return Attachment(subprocess.DEVNULL)
    fd = _fileno(stream)
    if fd is not None:
        return Attachment(fd)
    if not hasattr(stream, "write"):
        raise TypeError(f"cannot write to stream of type {type(stream).__name__}")
    return Attachment(subprocess.PIPE, stream, lock or threading.Lock())


@dataclass
class StreamCopier:
    """Copy threads for a single child process."""

    name: str
    chunk_size: int = field(default_factory=lambda: settings.copy_chunk_size)
    _threads: list[threading.Thread] = field(default_factory=list, init=False, repr=False)
    _errors: list[BaseException] = field(default_factory=list, init=False, repr=False)

    def start(
        self,
        proc: subprocess.Popen,
        stdin: Attachment,
        stdout: Attachment,
        stderr: Attachment,
    ) -> None:
        """Spawn a thread for every slot that Popen opened as a pipe."""
        if stdin.copies:
            self._spawn("stdin", self._feed, proc.stdin, stdin.stream)
        if stdout.copies:
            self._spawn("stdout", self._drain, proc.stdout, stdout)
        if stderr.copies:
            self._spawn("stderr", self._drain, proc.stderr, stderr)

    def join(self) -> None:
        """Wait for every copy to finish; raise the first copy error."""
        for thread in self._threads:
            thread.join()
        if self._errors:
            raise self._errors[0]

    def _spawn(self, slot: str, target, *args) -> None:
        thread = threading.Thread(
            target=self._guard,
            args=(target, *args),
            name=f"{self.name}-{slot}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def _guard(self, target, *args) -> None:
        try:
            target(*args)
        except Exception as e:
            _logger.debug("Copy thread %s failed: %s", threading.current_thread().name, e)
            self._errors.append(e)

    def _feed(self, pipe: BinaryIO, source: Any) -> None:
        try:
            if isinstance(source, bytes):
                pipe.write(source)
            else:
                while True:
                    chunk = source.read(self.chunk_size)
                    if not chunk:
                        break
                    pipe.write(chunk)
        except BrokenPipeError:
            pass  # child exited without reading all of its input
        finally:
            try:
                pipe.close()
            except BrokenPipeError:
                pass

    def _drain(self, pipe: BinaryIO, sink: Attachment) -> None:
        try:
            while True:
                chunk = pipe.read1(self.chunk_size)
                if not chunk:
                    break
                with sink.lock:
                    sink.stream.write(chunk)
        finally:
            pipe.close()
