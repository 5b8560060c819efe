"""
Pipeline engine.

Owns the ordered stages of a pipeline definition and drives each run
through them:

    NotStarted -> Running(0) -> Running(1) -> ... -> Succeeded
                        \\            \\
                         +-> Failed    +-> Failed

Stages execute strictly in declared order, one at a time. Before the
conditional build stage the change detector decides whether it may be
skipped for this run. The first failed stage fails the run and nothing
after it executes. A run in which every stage succeeded or was skipped
succeeds and signals the deploy collaborator exactly once.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from conveyor import metrics
from conveyor.artifacts.store import ArtifactStore
from conveyor.changes.detector import ChangeDetector
from conveyor.definition.pipeline import PipelineDefinition
from conveyor.deploy.notifier import DeployNotifier
from conveyor.engine.locks import ResourceLocks
from conveyor.errors import (
    ArtifactNotFoundError,
    InvalidationError,
    RunNotFoundError,
    TriggerRejectedError,
)
from conveyor.executor.stage import StageExecutor
from conveyor.logging import run_logger
from conveyor.models.run import PipelineRun, StageResult, now_ms
from conveyor.models.stage import Stage
from conveyor.models.status import FailureReason, RunStatus
from conveyor.models.trigger import TriggerEvent
from conveyor.tracing import trace_run, trace_stage

logger = logging.getLogger(__name__)


@dataclass
class RunHandle:
    """A run submitted for background execution."""

    run: PipelineRun
    future: Future[PipelineRun]

    def result(self, timeout: float | None = None) -> PipelineRun:
        return self.future.result(timeout=timeout)


class PipelineEngine:
    """
    Runs a pipeline definition for trigger events.

    Example:
        store = InMemoryArtifactStore()
        engine = PipelineEngine(
            definition,
            executor=StageExecutor(store),
            detector=ChangeDetector(GitRevisionHistory(".")),
            notifier=RecordingNotifier(),
        )
        run = engine.run(TriggerEvent(revision="3f2c1e0", ref="refs/tags/v1.0.0"))
        assert run.status == RunStatus.SUCCEEDED
    """

    def __init__(
        self,
        definition: PipelineDefinition,
        executor: StageExecutor,
        detector: ChangeDetector,
        notifier: DeployNotifier | None = None,
        locks: ResourceLocks | None = None,
        retain_artifacts: bool = False,
        max_concurrent_runs: int = 4,
        max_finished_runs: int = 100,
    ) -> None:
        self.definition = definition
        self.executor = executor
        self.detector = detector
        self.notifier = notifier
        self.locks = locks or ResourceLocks()
        self.retain_artifacts = retain_artifacts
        self.max_concurrent_runs = max_concurrent_runs
        self.max_finished_runs = max_finished_runs
        self._runs: dict[str, PipelineRun] = {}
        # most recently finished last; oldest evicted beyond max_finished_runs
        self._finished: OrderedDict[str, PipelineRun] = OrderedDict()
        self._runs_lock = threading.Lock()
        self._pool: ThreadPoolExecutor | None = None

    @property
    def store(self) -> ArtifactStore:
        return self.executor.store

    # ========== Run lifecycle ==========

    def start(self, trigger: TriggerEvent) -> PipelineRun:
        """
        Accept a trigger event and create a PENDING run for it.

        Raises:
            TriggerRejectedError: If the trigger ref does not match the
                definition's ref pattern
        """
        if not self.definition.accepts(trigger.ref):
            raise TriggerRejectedError(
                f"Ref {trigger.ref} does not match {self.definition.ref_pattern}",
                ref=trigger.ref,
            )

        run = PipelineRun(trigger=trigger, pipeline=self.definition.name)
        with self._runs_lock:
            self._runs[run.id] = run
        run_logger(run.id, self.definition.name).info(
            "run_accepted",
            revision=trigger.revision,
            ref=trigger.ref,
            delivery=trigger.delivery.value,
        )
        return run

    def run(self, trigger: TriggerEvent) -> PipelineRun:
        """Accept ``trigger`` and execute the run to completion."""
        return self.execute(self.start(trigger))

    def submit(self, trigger: TriggerEvent) -> RunHandle:
        """Accept ``trigger`` and execute the run on a worker thread."""
        run = self.start(trigger)
        with self._runs_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_concurrent_runs,
                    thread_name_prefix="conveyor-run",
                )
            pool = self._pool
        return RunHandle(run=run, future=pool.submit(self.execute, run))

    def execute(self, run: PipelineRun) -> PipelineRun:
        """Drive a PENDING run through every stage until it is terminal."""
        log = run_logger(run.id, self.definition.name)

        with trace_run(run.id, self.definition.name, run.trigger.revision) as span:
            try:
                self._execute_stages(run, log)
            finally:
                if not self.retain_artifacts:
                    self.store.release(run.id)
                self._retire(run)
            span.set_attribute("run.status", run.status.name)

        metrics.increment("pipeline.runs", pipeline=self.definition.name, status=run.status.name.lower())
        if run.start_time is not None and run.end_time is not None:
            metrics.histogram(
                "pipeline.run_duration_seconds",
                (run.end_time - run.start_time) / 1000.0,
                pipeline=self.definition.name,
            )
        return run

    def _execute_stages(self, run: PipelineRun, log: Any) -> None:
        run.transition(RunStatus.RUNNING)
        log.info("run_started", stages=len(self.definition.stages))

        for stage in self.definition.stages:
            if run.is_canceled:
                self._fail_canceled(run, stage)
                log.warning("run_canceled", before_stage=stage.name, reason=run.cancellation_reason)
                return

            run.current_stage = stage.ordinal
            result = self._execute_stage(stage, run, log)
            run.append(result)

            if result.is_failed:
                run.transition(RunStatus.FAILED)
                log.error(
                    "run_failed",
                    stage=stage.name,
                    reason=result.failure_reason.value if result.failure_reason else None,
                    exit_code=result.exit_code,
                    error=result.error,
                )
                return

        if run.is_canceled:
            log.warning("cancel_after_last_stage", reason=run.cancellation_reason)
        run.transition(RunStatus.SUCCEEDED)
        log.info("run_succeeded", duration_ms=(run.end_time or 0) - (run.start_time or 0))
        self._notify_deploy(run, log)

    def _decide_skip(self, stage: Stage, run: PipelineRun, log: Any) -> None:
        assert stage.skip_predicate is not None
        decision = self.detector.decide(
            run.trigger.revision,
            stage.skip_predicate.watch_paths,
            prior_revision=run.trigger.prior_revision,
        )
        run.set_skip(stage.name, decision)
        log.info(
            "change_decision",
            stage=stage.name,
            skip=decision.skip,
            basis=decision.basis.value,
            prior_revision=decision.prior_revision,
            reason=decision.reason,
        )

    def _execute_stage(self, stage: Stage, run: PipelineRun, log: Any) -> StageResult:
        started = now_ms()
        with trace_stage(run.id, stage.name, stage.ordinal) as span:
            try:
                if stage.is_conditional:
                    self._decide_skip(stage, run, log)
                # A skipped stage writes nothing, so it needs no resource lock
                skipping = run.should_skip(stage.name)
                with self.locks.hold(None if skipping else stage.exclusive_resource):
                    result = self.executor.execute(stage, run)
            except Exception as e:
                logger.exception("Unexpected error executing stage %s of run %s", stage.name, run.id)
                result = StageResult.failed(stage.name, FailureReason.EXECUTION_ERROR, str(e), started)
            span.set_attribute("stage.status", result.status.value)

        # Sequential execution: never start before the previous stage ended
        if run.results and result.start_time < run.results[-1].end_time:
            result.start_time = run.results[-1].end_time
            result.end_time = max(result.end_time, result.start_time)
        return result

    def _fail_canceled(self, run: PipelineRun, stage: Stage) -> None:
        start = run.results[-1].end_time if run.results else now_ms()
        run.append(
            StageResult.failed(
                stage.name,
                FailureReason.CANCELED,
                f"Run canceled before stage '{stage.name}': {run.cancellation_reason or 'no reason given'}",
                max(start, now_ms()),
            )
        )
        run.transition(RunStatus.FAILED)

    def _notify_deploy(self, run: PipelineRun, log: Any) -> None:
        if self.notifier is None or self.definition.deploy_artifact is None:
            log.info("deploy_notification_skipped")
            return

        try:
            artifact_ref = self.store.get(run.id, self.definition.deploy_artifact).ref
        except ArtifactNotFoundError as e:
            run.invalidation_error = str(e)
            log.error("deploy_artifact_missing", error=str(e))
            return

        try:
            run.invalidation_request_id = self.notifier.notify_deploy_succeeded(
                artifact_ref,
                self.definition.distribution_id,
            )
        except InvalidationError as e:
            run.invalidation_error = str(e)
            metrics.increment("pipeline.invalidations", outcome="failed")
            log.error("invalidation_failed", artifact=str(artifact_ref), error=str(e))
            return
        except Exception as e:
            logger.exception("Unexpected error from deploy notifier for run %s", run.id)
            run.invalidation_error = f"{type(e).__name__}: {e}"
            metrics.increment("pipeline.invalidations", outcome="failed")
            return

        metrics.increment("pipeline.invalidations", outcome="requested")
        log.info(
            "invalidation_requested",
            artifact=str(artifact_ref),
            distribution_id=self.definition.distribution_id,
            request_id=run.invalidation_request_id,
        )

    # ========== Run registry ==========

    def cancel(self, run_id: str, reason: str | None = None) -> bool:
        """
        Request cancellation of a run.

        The in-flight stage is not interrupted; the run fails as soon as it
        completes (or times out), with a CANCELED result recorded for the
        stage that would have run next. A cancel that arrives while the last
        stage runs has no stage left to fail: the run succeeds and the deploy
        signal is sent, since a run with only succeeded or skipped results
        is a succeeded run. The engine logs ``cancel_after_last_stage`` and
        the run keeps ``is_canceled`` and its reason.

        Returns:
            False if the run is already terminal

        Raises:
            RunNotFoundError: If the engine does not know the run
        """
        run = self.get_run(run_id)
        if run.is_complete:
            return False
        run.cancellation_reason = reason
        run.is_canceled = True
        logger.info("Cancel requested for run %s: %s", run_id, reason)
        return True

    def get_run(self, run_id: str) -> PipelineRun:
        """
        Look up an active run or one of the last ``max_finished_runs``
        finished runs.

        Raises:
            RunNotFoundError: If the run is unknown or was evicted
        """
        with self._runs_lock:
            run = self._runs.get(run_id) or self._finished.get(run_id)
        if run is None:
            raise RunNotFoundError(f"Run {run_id} not found", run_id=run_id)
        return run

    def active_runs(self) -> list[PipelineRun]:
        with self._runs_lock:
            return [run for run in self._runs.values() if not run.is_complete]

    def finished_runs(self) -> list[PipelineRun]:
        """Retained finished runs, oldest first."""
        with self._runs_lock:
            return list(self._finished.values())

    def _retire(self, run: PipelineRun) -> None:
        with self._runs_lock:
            self._runs.pop(run.id, None)
            self._finished[run.id] = run
            while len(self._finished) > self.max_finished_runs:
                evicted, _ = self._finished.popitem(last=False)
                logger.debug("Evicted finished run %s", evicted)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool used by ``submit``."""
        with self._runs_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=wait)
