"""Path utilities — absolute-path checks and canonicalization."""

from __future__ import annotations

import os

from osutils.exceptions import ResolutionError


def is_absolute_path(path: str) -> bool:
    return os.path.isabs(path)


def clean_path(path: str) -> str:
    """Normalize ``path`` lexically and resolve every symlink in it.

    Raises ResolutionError if a component does not exist or a symlink
    loop is found.
    """
    try:
        return os.path.realpath(os.path.normpath(path), strict=True)
    except OSError as e:
        raise ResolutionError(f"cannot resolve {path!r}: {e}") from e
