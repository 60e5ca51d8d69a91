"""osutils — process pipelines and absolute-path filesystem helpers."""

from importlib.metadata import version, PackageNotFoundError

from osutils.exceptions import (
    EmptyError,
    FileDoesNotExistError,
    HandleConsumedError,
    NilError,
    NotAbsolutePathError,
    NotDirError,
    NotMultipleCommandsError,
    NotRegularFileError,
    OsUtilsError,
    ResolutionError,
)
from osutils.fs import FileSystem
from osutils.paths import clean_path, is_absolute_path
from osutils.pipeline import PipelineHandle, execute_piped
from osutils.process import ProcessHandle, execute
from osutils.types import Command, PipeCommand, PipeCommandList

try:
    __version__ = version("osutils")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development

__all__ = [
    "Command",
    "EmptyError",
    "FileDoesNotExistError",
    "FileSystem",
    "HandleConsumedError",
    "NilError",
    "NotAbsolutePathError",
    "NotDirError",
    "NotMultipleCommandsError",
    "NotRegularFileError",
    "OsUtilsError",
    "PipeCommand",
    "PipeCommandList",
    "PipelineHandle",
    "ProcessHandle",
    "ResolutionError",
    "clean_path",
    "execute",
    "execute_piped",
    "is_absolute_path",
]
