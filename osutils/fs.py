"""Filesystem utilities — absolute-path-only wrappers over os calls.

Every operation rejects a relative path with NotAbsolutePathError before
touching the filesystem. A missing entry is reported as False by the
existence checks; any other stat failure propagates as OSError.

The module-level functions are bound to a default FileSystem built from
``osutils.config.settings``. Construct your own FileSystem to change the
temp-dir prefix, temp root or identifier source.
"""

from __future__ import annotations

import io
import logging
import os
import shutil
import stat
import tempfile
import uuid
from pathlib import Path
from typing import BinaryIO, Callable

from osutils.config import settings
from osutils.exceptions import (
    FileDoesNotExistError,
    NotAbsolutePathError,
    NotDirError,
    NotRegularFileError,
)
from osutils.paths import clean_path, is_absolute_path

_logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def _new_uuid() -> str:
    return str(uuid.uuid4())


def _require_absolute(path: str) -> None:
    if not is_absolute_path(path):
        raise NotAbsolutePathError(f"{path!r} is not an absolute path")


def _stat(path: str) -> os.stat_result | None:
    try:
        return os.stat(path)
    except FileNotFoundError:
        return None


class FileSystem:
    """Filesystem helpers with an injected temp-dir prefix and id source."""

    def __init__(
        self,
        temp_dir_prefix: str | None = None,
        temp_root: str | Path | None = None,
        id_factory: IdFactory | None = None,
        dir_mode: int | None = None,
    ) -> None:
        self.temp_dir_prefix = settings.temp_dir_prefix if temp_dir_prefix is None else temp_dir_prefix
        root = settings.temp_root if temp_root is None else temp_root
        self.temp_root = str(root) if root is not None else None
        self.id_factory = id_factory or _new_uuid
        self.dir_mode = settings.dir_mode if dir_mode is None else dir_mode

    # ── Existence ────────────────────────────────────────────────

    def is_file_exists(self, path: str) -> bool:
        _require_absolute(path)
        return _stat(path) is not None

    def is_regular_file_exists(self, path: str) -> bool:
        """True if a regular file is at ``path``, False if nothing is.

        Raises NotRegularFileError if something else (e.g. a directory) is.
        """
        _require_absolute(path)
        info = _stat(path)
        if info is None:
            return False
        if not stat.S_ISREG(info.st_mode):
            raise NotRegularFileError(f"{path!r} is not a regular file")
        return True

    def is_dir_exists(self, path: str) -> bool:
        _require_absolute(path)
        info = _stat(path)
        if info is None:
            return False
        if not stat.S_ISDIR(info.st_mode):
            raise NotDirError(f"{path!r} is not a directory")
        return True

    # ── Files ────────────────────────────────────────────────────

    def open(self, path: str) -> BinaryIO:
        """Open an existing file for binary reading."""
        _require_absolute(path)
        if not self.is_file_exists(path):
            raise FileDoesNotExistError(f"{path!r} does not exist")
        return io.open(path, "rb")

    def create(self, path: str) -> BinaryIO:
        """Create or truncate a file, opened for binary read/write."""
        _require_absolute(path)
        return io.open(path, "w+b")

    def rename(self, old_path: str, new_path: str) -> None:
        _require_absolute(old_path)
        _require_absolute(new_path)
        os.rename(old_path, new_path)

    def remove_all(self, path: str) -> None:
        """Remove ``path`` and everything below it. A missing path is fine."""
        _require_absolute(path)
        try:
            info = os.lstat(path)
        except FileNotFoundError:
            return
        if stat.S_ISDIR(info.st_mode):
            shutil.rmtree(path)
        else:
            os.remove(path)

    # ── Directories ──────────────────────────────────────────────

    def mkdir(self, path: str, mode: int | None = None) -> None:
        _require_absolute(path)
        os.mkdir(path, self.dir_mode if mode is None else mode)

    def mkdir_all(self, path: str, mode: int | None = None) -> None:
        _require_absolute(path)
        os.makedirs(path, self.dir_mode if mode is None else mode, exist_ok=True)

    def list_regular_files(self, root: str) -> list[str]:
        """All regular files under ``root``, depth first, sorted per directory.

        Symlinks are not followed and are never reported. Any directory
        that cannot be read raises.
        """
        _require_absolute(root)
        files: list[str] = []
        info = os.lstat(root)
        if stat.S_ISREG(info.st_mode):
            files.append(root)
        elif stat.S_ISDIR(info.st_mode):
            self._walk(root, files)
        return files

    def _walk(self, directory: str, files: list[str]) -> None:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            path = os.path.join(directory, entry.name)
            if entry.is_dir(follow_symlinks=False):
                self._walk(path, files)
            elif entry.is_file(follow_symlinks=False):
                files.append(path)

    # ── Temp & working directories ───────────────────────────────

    def new_temp_dir(self) -> str:
        """Create a uniquely named directory under the temp root."""
        created = tempfile.mkdtemp(prefix=self.temp_dir_prefix, dir=self.temp_root)
        _logger.debug("Created temp dir %s", created)
        return clean_path(created)

    def new_temp_sub_dir(self, base_dir: str) -> str:
        """Create ``base_dir/<fresh id>`` and return its canonical path."""
        _require_absolute(base_dir)
        sub_dir = os.path.join(base_dir, self.id_factory())
        os.mkdir(sub_dir, self.dir_mode)
        return clean_path(sub_dir)

    def getwd(self) -> str:
        return clean_path(os.path.abspath(os.getcwd()))


default_filesystem = FileSystem()

is_file_exists = default_filesystem.is_file_exists
is_regular_file_exists = default_filesystem.is_regular_file_exists
is_dir_exists = default_filesystem.is_dir_exists
open = default_filesystem.open
create = default_filesystem.create
rename = default_filesystem.rename
remove_all = default_filesystem.remove_all
mkdir = default_filesystem.mkdir
mkdir_all = default_filesystem.mkdir_all
list_regular_files = default_filesystem.list_regular_files
new_temp_dir = default_filesystem.new_temp_dir
new_temp_sub_dir = default_filesystem.new_temp_sub_dir
getwd = default_filesystem.getwd
