"""Stage execution."""

from conveyor.executor.shell import ProgramOutcome, ShellProgram
from conveyor.executor.stage import SKIP_FLAG_VARIABLE, StageExecutor
from conveyor.executor.timeouts import TimeoutManager

__all__ = [
    "SKIP_FLAG_VARIABLE",
    "ProgramOutcome",
    "ShellProgram",
    "StageExecutor",
    "TimeoutManager",
]
