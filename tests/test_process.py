"""Tests for external process execution."""

import sys

import pytest

from boltrun.process import ORIGINAL_PATH_VARIABLE, SubprocessExecutor, build_env, stream_process

SCRIPT = (
    "import sys\n"
    "print('first')\n"
    "print('problem', file=sys.stderr)\n"
    "print('second')\n"
    "sys.exit(3)\n"
)


class TestBuildEnv:
    """Tests for build_env."""

    def test_original_path(self, monkeypatch):
        """Test that an explicit original PATH replaces the current one."""
        monkeypatch.setenv("PATH", "/ruby/bin:/usr/bin")
        env = build_env("/usr/bin")
        assert env["PATH"] == "/usr/bin"

    def test_original_path_from_environment(self, monkeypatch):
        monkeypatch.setenv("PATH", "/ruby/bin:/usr/bin")
        monkeypatch.setenv(ORIGINAL_PATH_VARIABLE, "/usr/local/bin:/usr/bin")
        assert build_env()["PATH"] == "/usr/local/bin:/usr/bin"

    def test_current_path_kept(self, monkeypatch):
        monkeypatch.setenv("PATH", "/ruby/bin:/usr/bin")
        monkeypatch.delenv(ORIGINAL_PATH_VARIABLE, raising=False)
        assert build_env()["PATH"] == "/ruby/bin:/usr/bin"

    def test_other_variables_kept(self, monkeypatch):
        monkeypatch.setenv("BOLT_PROJECT", "/root/path")
        assert build_env("/usr/bin")["BOLT_PROJECT"] == "/root/path"


class TestSubprocessExecutor:
    """Tests for SubprocessExecutor."""

    def test_streams_lines(self):
        """Test that output lines reach the callbacks and the exit code is kept."""
        stdout, stderr = [], []
        result = SubprocessExecutor().execute(
            [sys.executable, "-c", SCRIPT], None, stdout.append, stderr.append
        )

        assert stdout == ["first", "second"]
        assert stderr == ["problem"]
        assert result.exit_code == 3
        assert result.stderr == "problem\n"
        assert result.is_success is False

    def test_success(self):
        result = SubprocessExecutor().execute(
            [sys.executable, "-c", "pass"], None, print, print
        )
        assert result.is_success

    def test_arguments_not_interpreted_by_shell(self):
        """Test that arguments reach the process unchanged."""
        stdout = []
        SubprocessExecutor().execute(
            [sys.executable, "-c", "import sys; print(sys.argv[1])", "'$HOME'; echo hi"],
            None,
            stdout.append,
            lambda line: None,
        )
        assert stdout == ["'$HOME'; echo hi"]

    def test_long_lines(self):
        """Test that lines larger than one read chunk arrive whole."""
        stdout, stderr = [], []
        result = SubprocessExecutor().execute(
            [
                sys.executable,
                "-c",
                "import sys; sys.stdout.write('x' * 200000 + '\\nend'); "
                "sys.stderr.write('e' * 150000 + '\\n')",
            ],
            None,
            stdout.append,
            stderr.append,
        )

        assert result.exit_code == 0
        assert stdout == ["x" * 200000, "end"]
        assert stderr == ["e" * 150000]
        assert result.stderr == "e" * 150000 + "\n"

    def test_callback_error_kills_process(self):
        """Test that a failing callback stops the process instead of leaving it running."""

        def fail(line):
            raise RuntimeError(f"cannot handle {line}")

        with pytest.raises(RuntimeError, match="cannot handle started"):
            SubprocessExecutor().execute(
                [
                    sys.executable,
                    "-c",
                    "import time; print('started', flush=True); time.sleep(30)",
                ],
                None,
                fail,
                lambda line: None,
            )

    def test_missing_command(self):
        with pytest.raises(FileNotFoundError):
            SubprocessExecutor().execute(
                ["/nonexistent/bolt"], None, lambda line: None, lambda line: None
            )


@pytest.mark.asyncio
async def test_stream_process():
    """Test the coroutine directly."""
    lines = []
    result = await stream_process(
        [sys.executable, "-c", "print('hello')"], None, lines.append, lines.append
    )

    assert lines == ["hello"]
    assert result.exit_code == 0
    assert result.stderr == ""
