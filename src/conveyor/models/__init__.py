"""Pipeline data model."""

from conveyor.models.artifact import Artifact, ArtifactRef
from conveyor.models.decision import ChangeDecision, ComparisonBasis
from conveyor.models.run import PipelineRun, StageResult
from conveyor.models.stage import OutputSpec, SkipWhenUnchanged, Stage
from conveyor.models.status import (
    FailureReason,
    RunStatus,
    StageStatus,
    can_transition,
    validate_transition,
)
from conveyor.models.trigger import SecretResolution, TriggerConfig, TriggerEvent, TriggerMode

__all__ = [
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
    "can_transition",
    "validate_transition",
]
