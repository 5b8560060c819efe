"""Stage-level errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from conveyor.errors.base import ConveyorError

if TYPE_CHECKING:
    from conveyor.error_codes import ErrorCode


class StageError(ConveyorError):
    """Stage-level error.

    Raised for stage-level issues and carries which stage of which run
    failed.
    """

    code: int = 300

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        cause: Exception | None = None,
        stage: str | None = None,
        run_id: str | None = None,
    ) -> None:
        super().__init__(message, code=code, cause=cause)
        self.stage = stage
        self.run_id = run_id


class StageFailedError(StageError):
    """A stage program exited with a non-zero status."""

    code: int = 301

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stage: str | None = None,
        run_id: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage, run_id=run_id)
        self.exit_code = exit_code

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.STAGE_FAILED


class StageTimeoutError(StageFailedError):
    """A stage program exceeded its timeout. Treated as a stage failure."""

    code: int = 302

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.STAGE_TIMEOUT


class ProgramLaunchError(StageError):
    """The stage program could not be started at all."""

    code: int = 303

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.PROGRAM_LAUNCH_FAILED


class ChangeDetectionUnavailable(ConveyorError):  # noqa: N818 - named after the condition
    """Revision history could not be read.

    Never surfaced as a run failure: the change detector recovers by
    deciding not to skip.
    """

    code: int = 310

    def __init__(
        self,
        message: str,
        *,
        revision: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.revision = revision

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.CHANGE_DETECTION_UNAVAILABLE
