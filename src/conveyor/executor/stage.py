"""
Stage executor.

Runs a single stage of a pipeline run:

1. A stage whose skip predicate is set for this run is recorded as
   SKIPPED without starting a process or touching the artifact store.
2. The declared input artifact is resolved from the run's artifacts and
   unpacked into a fresh working directory.
3. The stage program runs there; on a zero exit the declared output is
   collected and written to the artifact store.

Runtime problems never propagate as exceptions: they become a FAILED
StageResult with a FailureReason, which stops the run.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

from conveyor import metrics
from conveyor.artifacts.archive import pack_directory, unpack
from conveyor.artifacts.store import ArtifactStore
from conveyor.errors import ArtifactNotFoundError, DuplicateArtifactError, ProgramLaunchError, truncate_error
from conveyor.executor.shell import ShellProgram
from conveyor.executor.timeouts import TimeoutManager
from conveyor.logging import stage_logger
from conveyor.models.run import PipelineRun, StageResult, now_ms
from conveyor.models.stage import Stage
from conveyor.models.status import FailureReason, StageStatus

# Captured stream size kept on a StageResult
MAX_CAPTURED_OUTPUT_BYTES = 64 * 1024

SKIP_FLAG_VARIABLE = "SKIP_BUILD"


class StageExecutor:
    """
    Executes stages against a run's artifacts.

    Example:
        executor = StageExecutor(InMemoryArtifactStore())
        result = executor.execute(stage, run)
        if result.is_failed:
            ...
    """

    def __init__(
        self,
        store: ArtifactStore,
        runner: ShellProgram | None = None,
        timeouts: TimeoutManager | None = None,
        workspace_root: str | Path | None = None,
        base_env: dict[str, str] | None = None,
    ) -> None:
        self.store = store
        self.runner = runner or ShellProgram()
        self.timeouts = timeouts or TimeoutManager()
        self.workspace_root = Path(workspace_root) if workspace_root else None
        self.base_env = dict(os.environ if base_env is None else base_env)

    def execute(self, stage: Stage, run: PipelineRun) -> StageResult:
        """
        Execute ``stage`` for ``run`` and return its result.

        The result is not appended to the run; the engine owns the run.
        """
        log = stage_logger(run.id, stage.name)
        decision = run.decisions.get(stage.name)

        if run.should_skip(stage.name):
            log.info("stage_skipped", reason=decision.reason if decision else None)
            metrics.increment("pipeline.stage_skipped", stage=stage.name)
            return StageResult.skipped(stage.name, decision)

        started = now_ms()
        artifacts = self.store.scope(run.id)

        input_payload: bytes | None = None
        if stage.input is not None:
            try:
                input_payload = artifacts.get(stage.input).payload
            except ArtifactNotFoundError as e:
                log.error("input_artifact_missing", artifact=stage.input)
                return StageResult.failed(stage.name, FailureReason.MISSING_ARTIFACT, str(e), started)

        if self.workspace_root is not None:
            self.workspace_root.mkdir(parents=True, exist_ok=True)

        with metrics.Timer("pipeline.stage_duration_seconds", stage=stage.name) as timer:
            with tempfile.TemporaryDirectory(
                prefix=f"conveyor-{stage.name.lower()}-",
                dir=self.workspace_root,
            ) as tmp:
                workdir = Path(tmp)
                result = self._run_in(stage, run, workdir, input_payload, started, log)
            timer.status = result.status.value.lower()

        result.change_decision = decision
        return result

    def _run_in(
        self,
        stage: Stage,
        run: PipelineRun,
        workdir: Path,
        input_payload: bytes | None,
        started: int,
        log: Any,
    ) -> StageResult:
        if input_payload is not None:
            try:
                unpack(input_payload, workdir)
            except ValueError as e:
                return StageResult.failed(stage.name, FailureReason.EXECUTION_ERROR, str(e), started)

        timeout = self.timeouts.get_stage_timeout(stage).total_seconds()
        log.info("stage_started", workdir=str(workdir), timeout=timeout)

        try:
            outcome = self.runner.run(stage.program, cwd=workdir, env=self._environment(stage, run), timeout=timeout)
        except ProgramLaunchError as e:
            log.error("stage_launch_failed", error=str(e))
            return StageResult.failed(stage.name, FailureReason.EXECUTION_ERROR, str(e), started)

        stdout = truncate_error(outcome.stdout, MAX_CAPTURED_OUTPUT_BYTES)
        stderr = truncate_error(outcome.stderr, MAX_CAPTURED_OUTPUT_BYTES)

        if outcome.timed_out:
            log.error("stage_timed_out", timeout=timeout)
            return StageResult.failed(
                stage.name,
                FailureReason.TIMED_OUT,
                f"Stage '{stage.name}' timed out after {timeout:g}s",
                started,
                exit_code=outcome.exit_code,
                stdout=stdout,
                stderr=stderr,
            )

        if outcome.exit_code != 0:
            log.error("stage_failed", exit_code=outcome.exit_code)
            return StageResult.failed(
                stage.name,
                FailureReason.STAGE_FAILED,
                f"Stage '{stage.name}' exited with code {outcome.exit_code}",
                started,
                exit_code=outcome.exit_code,
                stdout=stdout,
                stderr=stderr,
            )

        result = StageResult(
            stage=stage.name,
            status=StageStatus.SUCCEEDED,
            exit_code=0,
            start_time=started,
            stdout=stdout,
            stderr=stderr,
        )

        if stage.output is not None:
            failure = self._store_output(stage, run, workdir, result)
            if failure is not None:
                return failure

        result.end_time = now_ms()
        log.info("stage_succeeded", duration_ms=result.duration_ms)
        return result

    def _store_output(self, stage: Stage, run: PipelineRun, workdir: Path, result: StageResult) -> StageResult | None:
        assert stage.output is not None
        base = (workdir / stage.output.base_directory).resolve()
        if workdir.resolve() not in (base, *base.parents):
            error = f"Output base directory '{stage.output.base_directory}' escapes the working directory"
            return self._output_failure(stage, result, FailureReason.EXECUTION_ERROR, error)

        try:
            payload = pack_directory(base, stage.output.pattern)
        except FileNotFoundError as e:
            return self._output_failure(stage, result, FailureReason.MISSING_ARTIFACT, str(e))

        try:
            artifact = self.store.put(run.id, stage.output.name, stage.name, payload)
        except DuplicateArtifactError as e:
            return self._output_failure(stage, result, FailureReason.DUPLICATE_ARTIFACT, str(e))

        result.output_artifact = artifact.ref
        return None

    @staticmethod
    def _output_failure(stage: Stage, result: StageResult, reason: FailureReason, error: str) -> StageResult:
        return StageResult.failed(
            stage.name,
            reason,
            error,
            result.start_time,
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    def _environment(self, stage: Stage, run: PipelineRun) -> dict[str, str]:
        env = dict(self.base_env)
        env.update(stage.env)
        env["CONVEYOR_RUN_ID"] = run.id
        env["CONVEYOR_STAGE"] = stage.name
        env["CONVEYOR_REVISION"] = run.trigger.revision
        env["CONVEYOR_REF"] = run.trigger.ref
        if stage.is_conditional:
            env[SKIP_FLAG_VARIABLE] = "true" if run.should_skip(stage.name) else "false"
        return env
