"""Shared test fixtures — scratch directories built with osutils itself."""

from __future__ import annotations

import pytest

from osutils import fs
from osutils.fs import FileSystem


@pytest.fixture
def temp_dir():
    """A fresh canonical temp dir, removed after the test."""
    path = fs.new_temp_dir()
    yield path
    fs.remove_all(path)


@pytest.fixture
def filesystem(tmp_path):
    """FileSystem rooted in pytest's tmp_path with deterministic ids."""
    counter = iter(range(1000))
    return FileSystem(
        temp_dir_prefix="osutils-test",
        temp_root=tmp_path,
        id_factory=lambda: f"id-{next(counter)}",
    )

