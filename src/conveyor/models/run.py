"""
PipelineRun and StageResult models.

A PipelineRun is created when a trigger event is accepted and is mutated
only by the pipeline engine. Its results are append-only and always in
declared stage order; once the run status is SUCCEEDED or FAILED the run
is terminal.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from conveyor.models.artifact import ArtifactRef
from conveyor.models.decision import ChangeDecision
from conveyor.models.status import FailureReason, RunStatus, StageStatus, validate_transition
from conveyor.models.trigger import TriggerEvent


def _generate_run_id() -> str:
    """Generate a unique run ID using ULID."""
    import ulid

    return str(ulid.new())


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class StageResult:
    """
    Outcome of one stage within a run.

    Attributes:
        stage: Stage name
        status: SKIPPED, SUCCEEDED or FAILED
        exit_code: Program exit code; None when no process ran
        start_time: Epoch milliseconds when the stage started
        end_time: Epoch milliseconds when the stage finished
        stdout: Captured standard output (truncated)
        stderr: Captured standard error (truncated)
        failure_reason: Why the stage failed, if it did
        error: Error message for failed stages
        change_decision: Skip decision (conditional stage only)
        output_artifact: Reference to the artifact the stage produced
    """

    stage: str
    status: StageStatus
    exit_code: int | None = None
    start_time: int = 0
    end_time: int = 0
    stdout: str = ""
    stderr: str = ""
    failure_reason: FailureReason | None = None
    error: str | None = None
    change_decision: ChangeDecision | None = None
    output_artifact: ArtifactRef | None = None

    @property
    def duration_ms(self) -> int:
        return max(0, self.end_time - self.start_time)

    @property
    def is_failed(self) -> bool:
        return self.status == StageStatus.FAILED

    @classmethod
    def skipped(cls, stage: str, decision: ChangeDecision | None = None) -> StageResult:
        ts = now_ms()
        return cls(stage=stage, status=StageStatus.SKIPPED, start_time=ts, end_time=ts, change_decision=decision)

    @classmethod
    def failed(
        cls,
        stage: str,
        reason: FailureReason,
        error: str,
        start_time: int,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> StageResult:
        return cls(
            stage=stage,
            status=StageStatus.FAILED,
            exit_code=exit_code,
            start_time=start_time,
            end_time=now_ms(),
            stdout=stdout,
            stderr=stderr,
            failure_reason=reason,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "failure_reason": self.failure_reason.value if self.failure_reason else None,
            "error": self.error,
            "change_decision": self.change_decision.to_dict() if self.change_decision else None,
            "output_artifact": str(self.output_artifact) if self.output_artifact else None,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


@dataclass
class PipelineRun:
    """
    One execution of a pipeline definition for one trigger event.

    ``current_stage`` is the engine state machine position: -1 before the
    first stage starts (NotStarted), otherwise the ordinal of the stage
    running or last run.

    Attributes:
        id: Unique identifier (ULID)
        pipeline: Pipeline definition name
        trigger: The accepted trigger event
        status: Overall run status
        results: StageResults in declared stage order
        current_stage: State machine position
        skip_flags: Per-run skip predicate results keyed by stage name
        decisions: Change decisions behind the skip flags, keyed by stage name
        start_time: Epoch milliseconds when the first stage started
        end_time: Epoch milliseconds when the run became terminal
        is_canceled: Whether a cancel request was received
        cancellation_reason: Reason given with the cancel request
        invalidation_request_id: ID returned by the deploy collaborator
        invalidation_error: Error reported by the deploy collaborator
    """

    trigger: TriggerEvent
    pipeline: str = ""
    id: str = field(default_factory=_generate_run_id)
    status: RunStatus = RunStatus.PENDING
    results: list[StageResult] = field(default_factory=list)
    current_stage: int = -1
    skip_flags: dict[str, bool] = field(default_factory=dict)
    decisions: dict[str, ChangeDecision] = field(default_factory=dict)
    start_time: int | None = None
    end_time: int | None = None
    is_canceled: bool = False
    cancellation_reason: str | None = None
    invalidation_request_id: str | None = None
    invalidation_error: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.status.is_complete

    @property
    def first_failure(self) -> StageResult | None:
        """The first failed StageResult, which is also the last result of a failed run."""
        for result in self.results:
            if result.is_failed:
                return result
        return None

    @property
    def change_decision(self) -> ChangeDecision | None:
        """Decision for the conditional stage, once it has been made."""
        for decision in self.decisions.values():
            return decision
        return None

    def set_skip(self, stage: str, decision: ChangeDecision) -> None:
        """Record the per-run skip predicate result for ``stage``."""
        self.decisions[stage] = decision
        self.skip_flags[stage] = decision.skip

    def should_skip(self, stage: str) -> bool:
        return self.skip_flags.get(stage, False)

    def result_for(self, stage: str) -> StageResult | None:
        for result in self.results:
            if result.stage == stage:
                return result
        return None

    def transition(self, target: RunStatus) -> None:
        """Move the run to ``target``, enforcing the run state machine."""
        validate_transition(self.status, target)
        self.status = target
        if target == RunStatus.RUNNING and self.start_time is None:
            self.start_time = now_ms()
        if target.is_complete and self.end_time is None:
            self.end_time = now_ms()

    def append(self, result: StageResult) -> None:
        """Append a stage result. Results are never replaced or removed."""
        if self.is_complete:
            raise ValueError(f"Run {self.id} is {self.status}; results are closed")
        self.results.append(result)

    def to_dict(self) -> dict[str, Any]:
        first_failure = self.first_failure
        return {
            "id": self.id,
            "pipeline": self.pipeline,
            "status": self.status.name,
            "trigger": self.trigger.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "first_failure": first_failure.stage if first_failure else None,
            "change_decision": self.change_decision.to_dict() if self.change_decision else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_canceled": self.is_canceled,
            "cancellation_reason": self.cancellation_reason,
            "invalidation_request_id": self.invalidation_request_id,
            "invalidation_error": self.invalidation_error,
        }
