"""Tests for running stage programs through the shell."""

import subprocess
import time
from datetime import timedelta
from pathlib import Path

import pytest

from conveyor.errors import ProgramLaunchError
from conveyor.executor.shell import ShellProgram
from conveyor.executor.timeouts import TimeoutManager
from conveyor.models.stage import Stage


@pytest.fixture
def runner() -> ShellProgram:
    return ShellProgram()


class TestShellProgramBasic:
    """Basic program execution tests."""

    def test_simple_program(self, runner: ShellProgram, tmp_path: Path) -> None:
        outcome = runner.run("echo hello", cwd=tmp_path)

        assert outcome.succeeded
        assert outcome.exit_code == 0
        assert outcome.stdout == "hello\n"

    def test_pipe_and_and(self, runner: ShellProgram, tmp_path: Path) -> None:
        outcome = runner.run("echo hello | tr 'h' 'H' && echo done", cwd=tmp_path)
        assert outcome.stdout.splitlines() == ["Hello", "done"]

    def test_non_zero_exit_is_not_an_exception(self, runner: ShellProgram, tmp_path: Path) -> None:
        outcome = runner.run("echo oops >&2; exit 3", cwd=tmp_path)

        assert not outcome.succeeded
        assert outcome.exit_code == 3
        assert outcome.stderr == "oops\n"

    def test_runs_in_cwd(self, runner: ShellProgram, tmp_path: Path) -> None:
        outcome = runner.run("pwd && touch marker", cwd=tmp_path)

        assert Path(outcome.stdout.strip()).resolve() == tmp_path.resolve()
        assert (tmp_path / "marker").exists()

    def test_environment(self, runner: ShellProgram, tmp_path: Path) -> None:
        outcome = runner.run('echo "$GREETING"', cwd=tmp_path, env={"GREETING": "hi", "PATH": "/usr/bin:/bin"})
        assert outcome.stdout == "hi\n"

    def test_stdin_is_closed(self, runner: ShellProgram, tmp_path: Path) -> None:
        """A program reading stdin gets EOF instead of hanging."""
        outcome = runner.run("cat", cwd=tmp_path, timeout=5)
        assert outcome.succeeded
        assert outcome.stdout == ""

    def test_undecodable_output(self, runner: ShellProgram, tmp_path: Path) -> None:
        """Bytes that are not UTF-8 are replaced, not treated as a failure."""
        outcome = runner.run("printf '\\377\\376 ok'; exit 0", cwd=tmp_path)

        assert outcome.succeeded
        assert outcome.stdout == "\ufffd\ufffd ok"


class TestShellProgramTimeout:
    def test_timeout_kills_program(self, runner: ShellProgram, tmp_path: Path) -> None:
        started = time.monotonic()
        outcome = runner.run("sleep 10", cwd=tmp_path, timeout=0.5)

        assert outcome.timed_out
        assert not outcome.succeeded
        assert time.monotonic() - started < 5

    def test_timeout_kills_children(self, runner: ShellProgram, tmp_path: Path) -> None:
        """The whole process group is killed, not only the shell."""
        started = time.monotonic()
        outcome = runner.run("sleep 10 & sleep 10; wait", cwd=tmp_path, timeout=0.5)

        assert outcome.timed_out
        assert time.monotonic() - started < 5

    def test_unexpected_error_kills_and_reaps(
        self, runner: ShellProgram, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        killed: list[subprocess.Popen[str]] = []
        kill_group = ShellProgram._kill_group

        def record_kill(process: subprocess.Popen[str]) -> None:
            killed.append(process)
            kill_group(process)

        def broken_communicate(self: subprocess.Popen[str], *args: object, **kwargs: object) -> None:
            raise RuntimeError("reader failed")

        monkeypatch.setattr(ShellProgram, "_kill_group", staticmethod(record_kill))
        monkeypatch.setattr(subprocess.Popen, "communicate", broken_communicate)

        with pytest.raises(RuntimeError, match="reader failed"):
            runner.run("sleep 30", cwd=tmp_path)

        (process,) = killed
        assert process.returncode is not None


class TestShellProgramLaunch:
    def test_missing_cwd(self, runner: ShellProgram, tmp_path: Path) -> None:
        with pytest.raises(ProgramLaunchError):
            runner.run("true", cwd=tmp_path / "missing")

    def test_missing_shell(self, tmp_path: Path) -> None:
        with pytest.raises(ProgramLaunchError):
            ShellProgram(shell=str(tmp_path / "no-such-shell")).run("true", cwd=tmp_path)


class TestTimeoutManager:
    def test_stage_timeout_wins(self) -> None:
        manager = TimeoutManager(60.0)
        stage = Stage(name="Build", program="true", timeout_seconds=5.0)
        assert manager.get_stage_timeout(stage) == timedelta(seconds=5)

    def test_default_timeout(self) -> None:
        manager = TimeoutManager(60.0)
        assert manager.get_stage_timeout(Stage(name="Build", program="true")) == timedelta(seconds=60)

    def test_default_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            TimeoutManager(0)
