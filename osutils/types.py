"""Core types shared across osutils — what to run and where its I/O goes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Command(BaseModel):
    """A single external command with its own streams.

    ``args[0]`` is the executable; no shell is involved. ``env=None``
    inherits the parent environment, a list replaces it. A ``None``
    stream is attached to the null device.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    args: list[str] | None = None
    absolute_dir: str | None = None
    env: list[str] | None = None
    stdin: Any = None
    stdout: Any = None
    stderr: Any = None


class PipeCommand(BaseModel):
    """One stage of a pipeline. Streams belong to the enclosing list."""

    args: list[str] | None = None
    absolute_dir: str | None = None
    env: list[str] | None = None


class PipeCommandList(BaseModel):
    """Stages chained stdout-to-stdin, like ``a | b | c`` in a shell."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    pipe_commands: list[PipeCommand] | None = Field(default=None)
    stdin: Any = None
    stdout: Any = None
    stderr: Any = None  # shared by every stage
