"""Run-level and collaborator errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from conveyor.errors.base import ConveyorError

if TYPE_CHECKING:
    from conveyor.error_codes import ErrorCode


class RunError(ConveyorError):
    """Pipeline run error.

    Contains the run ID for troubleshooting.
    """

    code: int = 400

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        cause: Exception | None = None,
        run_id: str | None = None,
    ) -> None:
        super().__init__(message, code=code, cause=cause)
        self.run_id = run_id


class RunNotFoundError(RunError):
    """No active or finished run with the given ID is known to the engine."""

    code: int = 401

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.RUN_NOT_FOUND


class TriggerRejectedError(RunError):
    """A trigger event did not match the pipeline's ref pattern."""

    code: int = 402

    def __init__(self, message: str, *, ref: str | None = None) -> None:
        super().__init__(message)
        self.ref = ref

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.TRIGGER_REJECTED


class InvalidStateTransitionError(RunError):
    """A run status change not allowed by the run state machine."""

    code: int = 403

    def __init__(self, message: str, *, current: object = None, target: object = None) -> None:
        super().__init__(message)
        self.current = current
        self.target = target

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.INVALID_TRANSITION


class InvalidationError(ConveyorError):
    """The deploy/invalidate collaborator reported a failure."""

    code: int = 500

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.INVALIDATION_FAILED
