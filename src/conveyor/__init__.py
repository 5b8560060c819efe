"""
Conveyor - build and deploy pipeline runner.

This package runs a fixed, ordered pipeline of shell-driven stages for
each tagged source change, with support for:
- Strictly sequential, fail-fast stage execution
- A conditional build stage skipped when dependency manifests are unchanged
- Per-run artifact namespaces handed from stage to stage
- Poll or webhook trigger delivery chosen by environment
- Cache invalidation after a successful deploy
- YAML pipeline definitions validated before any run starts
"""

__version__ = "0.1.0"

from conveyor.models.artifact import Artifact, ArtifactRef
from conveyor.models.decision import ChangeDecision, ComparisonBasis
from conveyor.models.run import PipelineRun, StageResult
from conveyor.models.stage import OutputSpec, SkipWhenUnchanged, Stage
from conveyor.models.status import FailureReason, RunStatus, StageStatus
from conveyor.models.trigger import SecretResolution, TriggerConfig, TriggerEvent, TriggerMode

# Components
from conveyor.artifacts import ArtifactStore, InMemoryArtifactStore
from conveyor.changes import ChangeDetector, GitRevisionHistory, RevisionHistory, StaticRevisionHistory
from conveyor.definition import PipelineDefinition, load_definition, web_app_pipeline
from conveyor.deploy import CommandInvalidationNotifier, DeployNotifier, RecordingNotifier
from conveyor.engine import PipelineEngine, ResourceLocks
from conveyor.executor import ShellProgram, StageExecutor, TimeoutManager
from conveyor.settings import Settings
from conveyor.triggers import EnvironmentMode, TriggerSelector, resolve_trigger_config

# Errors
from conveyor.errors import (
    ArtifactError,
    ArtifactNotFoundError,
    ChangeDetectionUnavailable,
    ConfigurationError,
    ConveyorBaseException,
    ConveyorError,
    DuplicateArtifactError,
    InvalidationError,
    PipelineDefinitionError,
    StageError,
    TriggerRejectedError,
)

__all__ = [
    "__version__",
    # Models
    "Artifact",
    "ArtifactRef",
    "ChangeDecision",
    "ComparisonBasis",
    "FailureReason",
    "OutputSpec",
    "PipelineRun",
    "RunStatus",
    "SecretResolution",
    "SkipWhenUnchanged",
    "Stage",
    "StageResult",
    "StageStatus",
    "TriggerConfig",
    "TriggerEvent",
    "TriggerMode",
    # Components
    "ArtifactStore",
    "ChangeDetector",
    "CommandInvalidationNotifier",
    "DeployNotifier",
    "EnvironmentMode",
    "GitRevisionHistory",
    "InMemoryArtifactStore",
    "PipelineDefinition",
    "PipelineEngine",
    "RecordingNotifier",
    "ResourceLocks",
    "RevisionHistory",
    "Settings",
    "ShellProgram",
    "StageExecutor",
    "StaticRevisionHistory",
    "TimeoutManager",
    "TriggerSelector",
    "load_definition",
    "resolve_trigger_config",
    "web_app_pipeline",
    # Errors
    "ArtifactError",
    "ArtifactNotFoundError",
    "ChangeDetectionUnavailable",
    "ConfigurationError",
    "ConveyorBaseException",
    "ConveyorError",
    "DuplicateArtifactError",
    "InvalidationError",
    "PipelineDefinitionError",
    "StageError",
    "TriggerRejectedError",
]
