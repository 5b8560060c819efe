"""Shared pytest fixtures: in-memory stores, recorded revision history and shell-driven pipelines."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from conveyor.artifacts.store import InMemoryArtifactStore
from conveyor.changes.detector import ChangeDetector
from conveyor.changes.history import StaticRevisionHistory
from conveyor.definition.pipeline import PipelineDefinition
from conveyor.deploy.notifier import RecordingNotifier
from conveyor.engine.engine import PipelineEngine
from conveyor.executor.stage import StageExecutor
from conveyor.executor.timeouts import TimeoutManager
from conveyor.logging import configure_logging
from conveyor.models.run import PipelineRun
from conveyor.models.stage import OutputSpec, SkipWhenUnchanged, Stage
from conveyor.models.trigger import TriggerEvent


@pytest.fixture(scope="session", autouse=True)
def structured_logging() -> None:
    """Configure logging once, before any test captures stderr."""
    configure_logging(level=logging.DEBUG)


# =============================================================================
# Revision history
# =============================================================================

# R1 is the first commit; R2 touches only sources; R3 bumps dependencies.
R1, R2, R3 = "r1" * 20, "r2" * 20, "r3" * 20


@pytest.fixture
def history() -> StaticRevisionHistory:
    """Three-commit history: R1 (root) <- R2 (sources) <- R3 (package.json)."""
    h = StaticRevisionHistory()
    h.add(R1)
    h.add(R2, parent=R1, changed={"src/main.ts", "README.md"})
    h.add(R3, parent=R2, changed={"package.json", "src/main.ts"})
    return h


@pytest.fixture
def detector(history: StaticRevisionHistory) -> ChangeDetector:
    return ChangeDetector(history)


# =============================================================================
# Stores and collaborators
# =============================================================================


@pytest.fixture
def store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def executor(store: InMemoryArtifactStore, tmp_path: Path) -> StageExecutor:
    return StageExecutor(store, timeouts=TimeoutManager(30.0), workspace_root=tmp_path / "work")


def tag_trigger(revision: str = R2, prior_revision: str | None = None, ref: str = "refs/tags/v1.0.0") -> TriggerEvent:
    return TriggerEvent(revision=revision, ref=ref, prior_revision=prior_revision)


def new_run(revision: str = R2) -> PipelineRun:
    return PipelineRun(trigger=tag_trigger(revision), pipeline="test")


# =============================================================================
# Shell-driven web application pipeline
# =============================================================================

VITE_PROGRAM = "mkdir -p dist/assets && cp src/main.ts dist/index.html && echo x > dist/assets/a.js"


@pytest.fixture
def sandbox(tmp_path: Path) -> dict[str, Path]:
    """Directories the stage programs write their side effects to."""
    dirs = {
        "deploy": tmp_path / "deploy",
        "docker_log": tmp_path / "docker.log",
    }
    dirs["deploy"].mkdir()
    return dirs


def web_app_stages(sandbox: dict[str, Path], vite_program: str | None = None) -> list[Stage]:
    """Source -> DockerBuild (conditional) -> ViteBuild -> Deploy, using only /bin/sh."""
    return [
        Stage(
            name="Source",
            program='mkdir -p src && echo "$CONVEYOR_REVISION" > src/main.ts && echo "{}" > package.json',
            output=OutputSpec("SourceOutput"),
        ),
        Stage(
            name="DockerBuild",
            program='test -f package.json && echo "$CONVEYOR_RUN_ID $SKIP_BUILD" >> "$DOCKER_LOG"',
            input="SourceOutput",
            skip_predicate=SkipWhenUnchanged(("package.json", "package-lock.json")),
            env={"DOCKER_LOG": str(sandbox["docker_log"])},
            exclusive_resource="vite-node-build:latest",
        ),
        Stage(
            name="ViteBuild",
            program=vite_program or VITE_PROGRAM,
            input="SourceOutput",
            output=OutputSpec("ViteBuildOutput", base_directory="dist", pattern="**/*"),
        ),
        Stage(
            name="Deploy",
            program='mkdir -p "$DEPLOY_DIR/$CONVEYOR_RUN_ID" && cp -R . "$DEPLOY_DIR/$CONVEYOR_RUN_ID/"',
            input="ViteBuildOutput",
            env={"DEPLOY_DIR": str(sandbox["deploy"])},
        ),
    ]


@pytest.fixture
def make_engine(
    executor: StageExecutor,
    detector: ChangeDetector,
    notifier: RecordingNotifier,
    sandbox: dict[str, Path],
) -> Callable[..., PipelineEngine]:
    """Build an engine around the shell web app pipeline; keyword overrides go to the engine."""

    def _make(vite_program: str | None = None, stages: list[Stage] | None = None, **kwargs: Any) -> PipelineEngine:
        definition = PipelineDefinition(
            name="web-app",
            stages=stages or web_app_stages(sandbox, vite_program),
            distribution_id="E2EXAMPLE",
        )
        kwargs.setdefault("notifier", notifier)
        return PipelineEngine(definition, executor=executor, detector=detector, **kwargs)

    return _make
