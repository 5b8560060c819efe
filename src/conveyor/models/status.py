"""
Run and stage status enums.

RunStatus values carry a ``complete`` flag (the run reached a terminal
state). StageStatus only has terminal values: a StageResult is appended
once its stage has finished, been skipped, or failed.
"""

from __future__ import annotations

from enum import Enum

from conveyor.errors import InvalidStateTransitionError


class RunStatus(Enum):
    """
    Pipeline run status.

    Each value is a tuple of (name, complete).
    """

    # Trigger accepted, no stage started yet
    PENDING = ("PENDING", False)

    # A stage is executing or about to execute
    RUNNING = ("RUNNING", False)

    # Every stage succeeded or was skipped
    SUCCEEDED = ("SUCCEEDED", True)

    # A stage failed, timed out, or the run was canceled
    FAILED = ("FAILED", True)

    def __init__(self, label: str, complete: bool) -> None:
        self._label = label
        self._complete = complete

    @property
    def is_complete(self) -> bool:
        """Indicates the run is terminal. Returns True for SUCCEEDED and FAILED."""
        return self._complete

    def __str__(self) -> str:
        return self._label

    def __repr__(self) -> str:
        return f"RunStatus.{self.name}"


class StageStatus(Enum):
    """Outcome of a single stage."""

    SKIPPED = "SKIPPED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_continuable(self) -> bool:
        """Check if the next stage may start after this outcome."""
        return self in (StageStatus.SUCCEEDED, StageStatus.SKIPPED)

    def __str__(self) -> str:
        return self.value


class FailureReason(Enum):
    """Why a stage result is FAILED."""

    STAGE_FAILED = "STAGE_FAILED"
    TIMED_OUT = "TIMED_OUT"
    MISSING_ARTIFACT = "MISSING_ARTIFACT"
    DUPLICATE_ARTIFACT = "DUPLICATE_ARTIFACT"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    CANCELED = "CANCELED"

    def __str__(self) -> str:
        return self.value


VALID_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.PENDING: frozenset({RunStatus.RUNNING, RunStatus.FAILED}),
    RunStatus.RUNNING: frozenset({RunStatus.SUCCEEDED, RunStatus.FAILED}),
    RunStatus.SUCCEEDED: frozenset(),
    RunStatus.FAILED: frozenset(),
}


def can_transition(current: RunStatus, target: RunStatus) -> bool:
    """Check whether a run may move from ``current`` to ``target``.

    Same-state transitions are always allowed (idempotent).
    """
    if current == target:
        return True
    return target in VALID_TRANSITIONS[current]


def validate_transition(current: RunStatus, target: RunStatus) -> None:
    """Raise InvalidStateTransitionError if the transition is not allowed."""
    if not can_transition(current, target):
        raise InvalidStateTransitionError(
            f"Invalid run status transition {current} -> {target}",
            current=current,
            target=target,
        )
