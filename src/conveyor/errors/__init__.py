"""Conveyor error hierarchy.

All error classes are re-exported here. Import from ``conveyor.errors``.
"""

from conveyor.errors.artifact import (
    ArtifactError,
    ArtifactNotFoundError,
    DuplicateArtifactError,
    MissingArtifactError,
)
from conveyor.errors.base import ConveyorBaseException, ConveyorError
from conveyor.errors.configuration import ConfigurationError, PipelineDefinitionError
from conveyor.errors.run import (
    InvalidationError,
    InvalidStateTransitionError,
    RunError,
    RunNotFoundError,
    TriggerRejectedError,
)
from conveyor.errors.stage import (
    ChangeDetectionUnavailable,
    ProgramLaunchError,
    StageError,
    StageFailedError,
    StageTimeoutError,
)
from conveyor.errors.utils import truncate_error

__all__ = [
    "ArtifactError",
    "ArtifactNotFoundError",
    "ChangeDetectionUnavailable",
    "ConfigurationError",
    "ConveyorBaseException",
    "ConveyorError",
    "DuplicateArtifactError",
    "InvalidStateTransitionError",
    "InvalidationError",
    "MissingArtifactError",
    "PipelineDefinitionError",
    "ProgramLaunchError",
    "RunError",
    "RunNotFoundError",
    "StageError",
    "StageFailedError",
    "StageTimeoutError",
    "TriggerRejectedError",
    "truncate_error",
]
