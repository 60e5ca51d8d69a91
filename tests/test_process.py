"""Tests for the single process runner."""

from __future__ import annotations

import io
import os
import subprocess

import pytest

from osutils.exceptions import EmptyError, HandleConsumedError, NilError, NotAbsolutePathError
from osutils.process import execute
from osutils.types import Command


def _run(args, cwd, env=None, stdin=None) -> tuple[str, str]:
    stdout = io.BytesIO()
    stderr = io.BytesIO()
    handle = execute(Command(
        args=args,
        absolute_dir=cwd,
        env=env,
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
    ))
    handle.wait()
    return stdout.getvalue().decode().strip(), stderr.getvalue().decode().strip()


@pytest.fixture
def no_spawn(monkeypatch):
    """Fail the test if anything reaches subprocess.Popen."""
    calls = []

    def _popen(*args, **kwargs):
        calls.append(args)
        raise AssertionError("process should not have been started")

    monkeypatch.setattr(subprocess, "Popen", _popen)
    return calls


# ── Validation ──────────────────────────────────────────────────


def test_nil_args(no_spawn):
    with pytest.raises(NilError):
        execute(Command(args=None))
    assert no_spawn == []


def test_empty_args(no_spawn):
    with pytest.raises(EmptyError):
        execute(Command(args=[]))
    assert no_spawn == []


def test_relative_dir(no_spawn):
    with pytest.raises(NotAbsolutePathError):
        execute(Command(args=["pwd"], absolute_dir="relative/dir"))
    assert no_spawn == []


# ── Execution ───────────────────────────────────────────────────


def test_pwd(temp_dir):
    stdout, _ = _run(["pwd", "-P"], temp_dir)
    assert stdout == temp_dir


def test_env(temp_dir):
    script = os.path.join(temp_dir, "echo_foo.sh")
    with open(script, "w") as f:
        f.write("#!/bin/sh\necho $FOO\n")
    os.chmod(script, 0o777)

    stdout, _ = _run(["sh", script], temp_dir, env=["FOO=foo"])
    assert stdout == "foo"


def test_replaced_env_still_finds_callers_tools(temp_dir, monkeypatch):
    bin_dir = os.path.join(temp_dir, "bin")
    os.mkdir(bin_dir)
    tool = os.path.join(bin_dir, "osutils-test-tool")
    with open(tool, "w") as f:
        f.write("#!/bin/sh\necho $FOO\n")
    os.chmod(tool, 0o755)
    monkeypatch.setenv("PATH", bin_dir + os.pathsep + os.environ.get("PATH", ""))

    stdout, _ = _run(["osutils-test-tool"], temp_dir, env=["FOO=foo"])
    assert stdout == "foo"


def test_env_list_replaces_parent_env(temp_dir, monkeypatch):
    monkeypatch.setenv("OSUTILS_PARENT_ONLY", "leaked")
    stdout, _ = _run(["sh", "-c", "echo ${OSUTILS_PARENT_ONLY:-unset}"], temp_dir, env=[])
    assert stdout == "unset"


def test_env_none_inherits(temp_dir, monkeypatch):
    monkeypatch.setenv("OSUTILS_PARENT_ONLY", "inherited")
    stdout, _ = _run(["sh", "-c", "echo $OSUTILS_PARENT_ONLY"], temp_dir)
    assert stdout == "inherited"


def test_stdin_bytes(temp_dir):
    stdout, _ = _run(["cat"], temp_dir, stdin=b"from bytes\n")
    assert stdout == "from bytes"


def test_stdin_reader(temp_dir):
    stdout, _ = _run(["cat"], temp_dir, stdin=io.BytesIO(b"from reader\n"))
    assert stdout == "from reader"


def test_stderr_captured(temp_dir):
    stdout, stderr = _run(["sh", "-c", "echo out; echo err >&2"], temp_dir)
    assert stdout == "out"
    assert stderr == "err"


def test_unread_stdin_is_not_an_error(temp_dir):
    stdout, _ = _run(["true"], temp_dir, stdin=b"x" * (1 << 20))
    assert stdout == ""


def test_stdout_to_real_file(temp_dir):
    path = os.path.join(temp_dir, "out.txt")
    with open(path, "wb") as f:
        execute(Command(args=["echo", "to file"], stdout=f)).wait()
    with open(path) as f:
        assert f.read() == "to file\n"


def test_non_zero_exit(temp_dir):
    handle = execute(Command(args=["sh", "-c", "exit 7"], absolute_dir=temp_dir))
    with pytest.raises(subprocess.CalledProcessError) as exc_info:
        handle.wait()
    assert exc_info.value.returncode == 7


def test_missing_executable(temp_dir):
    with pytest.raises(FileNotFoundError):
        execute(Command(args=["osutils-no-such-binary"], absolute_dir=temp_dir))


def test_missing_working_dir(temp_dir):
    with pytest.raises(FileNotFoundError):
        execute(Command(args=["true"], absolute_dir=os.path.join(temp_dir, "gone")))


# ── Handle ──────────────────────────────────────────────────────


def test_wait_only_once(temp_dir):
    handle = execute(Command(args=["true"], absolute_dir=temp_dir))
    assert len(handle.pids) == 1
    handle.wait()
    with pytest.raises(HandleConsumedError):
        handle.wait()


def test_handle_is_callable(temp_dir):
    wait = execute(Command(args=["true"], absolute_dir=temp_dir))
    wait()


@pytest.mark.asyncio
async def test_wait_async(temp_dir):
    out = io.BytesIO()
    handle = execute(Command(args=["echo", "async"], absolute_dir=temp_dir, stdout=out))
    await handle.wait_async()
    assert out.getvalue() == b"async\n"
