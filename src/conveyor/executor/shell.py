"""
Shell program runner.

Runs a stage's shell program in a working directory with an explicit
environment and an upper time bound. A program that outlives its timeout
is killed together with everything it started.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path

from conveyor.errors import ProgramLaunchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramOutcome:
    """
    What a finished (or killed) program left behind.

    Attributes:
        exit_code: Process exit status; negative for a signal
        stdout: Captured standard output
        stderr: Captured standard error
        timed_out: True if the program was killed at its timeout
    """

    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class ShellProgram:
    """
    Execute shell programs.

    Example:
        runner = ShellProgram()
        outcome = runner.run("npm ci && npm run build", cwd=workdir, env=env, timeout=900)
        if not outcome.succeeded:
            ...
    """

    def __init__(self, shell: str = "/bin/sh") -> None:
        self.shell = shell

    def run(
        self,
        program: str,
        cwd: Path,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProgramOutcome:
        """
        Run ``program`` and wait for it to finish.

        Args:
            program: Shell program text
            cwd: Working directory
            env: Complete environment for the program (None inherits ours)
            timeout: Seconds before the program is killed

        Returns:
            The ProgramOutcome; a non-zero exit is not an exception

        Raises:
            ProgramLaunchError: If the shell cannot be started (missing
                shell, missing working directory)
        """
        logger.debug("Running program in %s: %s", cwd, program)
        try:
            process = subprocess.Popen(
                program,
                shell=True,
                executable=self.shell,
                cwd=str(cwd),
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                # own process group so a timeout can kill the whole tree
                start_new_session=True,
            )
        except OSError as e:
            raise ProgramLaunchError(f"Cannot start program: {e}", cause=e) from e

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            self._kill_group(process)
            stdout, stderr = process.communicate()
            logger.warning("Program timed out after %ss: %s", timeout, program)
            return ProgramOutcome(
                exit_code=process.returncode,
                stdout=stdout or "",
                stderr=stderr or "",
                timed_out=True,
            )
        except Exception:
            self._kill_group(process)
            process.wait()
            raise

        return ProgramOutcome(exit_code=process.returncode, stdout=stdout, stderr=stderr)

    @staticmethod
    def _kill_group(process: subprocess.Popen[str]) -> None:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
