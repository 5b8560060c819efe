"""
Pipeline definition.

A PipelineDefinition is the ordered, immutable list of stages plus the
settings that decide which trigger events it accepts and which artifact
is handed to the deploy collaborator. Configuration-shape errors are
found once, when the definition is built, and never during a run.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from fnmatch import fnmatchcase
from typing import Any

from conveyor.config_validation import ValidationError
from conveyor.errors import PipelineDefinitionError
from conveyor.models.stage import Stage

logger = logging.getLogger(__name__)

DEFAULT_REF_PATTERN = "refs/tags/*"


@dataclass(frozen=True)
class PipelineDefinition:
    """
    Ordered stages of a pipeline.

    Stage ordinals are assigned from list position. Construction validates
    the definition and raises PipelineDefinitionError listing every
    problem found.

    Attributes:
        name: Pipeline name
        stages: Stages in execution order
        ref_pattern: Glob a trigger ref must match (tags only by default)
        deploy_artifact: Artifact reported to the deploy collaborator;
            defaults to the input of the last stage
        distribution_id: Content-delivery distribution to invalidate
    """

    name: str
    stages: tuple[Stage, ...]
    ref_pattern: str = DEFAULT_REF_PATTERN
    deploy_artifact: str | None = None
    distribution_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def __init__(
        self,
        name: str,
        stages: Sequence[Stage],
        ref_pattern: str = DEFAULT_REF_PATTERN,
        deploy_artifact: str | None = None,
        distribution_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        numbered = tuple(replace(stage, ordinal=i) for i, stage in enumerate(stages))
        if deploy_artifact is None and numbered:
            deploy_artifact = numbered[-1].input
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "stages", numbered)
        object.__setattr__(self, "ref_pattern", ref_pattern)
        object.__setattr__(self, "deploy_artifact", deploy_artifact)
        object.__setattr__(self, "distribution_id", distribution_id)
        object.__setattr__(self, "metadata", dict(metadata or {}))

        errors = self.validate()
        if errors:
            raise PipelineDefinitionError(f"Invalid pipeline '{name}'", errors=errors, pipeline=name)
        logger.debug("Pipeline %s defined with %d stages", name, len(numbered))

    def validate(self) -> list[ValidationError]:
        """
        Check the definition for configuration-shape errors.

        Returns:
            Every problem found (empty if the definition is valid)
        """
        errors: list[ValidationError] = []

        if not self.stages:
            errors.append(ValidationError("stages", "must contain at least one stage"))
            return errors

        seen_names: set[str] = set()
        producers: dict[str, str] = {}
        conditional: list[str] = []

        for stage in self.stages:
            path = f"stages[{stage.ordinal}]"

            if stage.name in seen_names:
                errors.append(ValidationError(f"{path}.name", f"duplicate stage name '{stage.name}'", stage.name))
            seen_names.add(stage.name)

            if not stage.program.strip():
                errors.append(ValidationError(f"{path}.program", "must not be empty"))

            # Inputs must come from an earlier stage; stages run strictly in order
            if stage.input is not None and stage.input not in producers:
                later = any(s.output_name == stage.input for s in self.stages[stage.ordinal :])
                message = (
                    f"input '{stage.input}' is produced by a later stage"
                    if later
                    else f"input '{stage.input}' is never produced"
                )
                errors.append(ValidationError(f"{path}.input", message, stage.input, "MissingArtifact"))

            if stage.output is not None:
                if stage.output.name in producers:
                    errors.append(
                        ValidationError(
                            f"{path}.output.name",
                            f"artifact '{stage.output.name}' is already produced by "
                            f"stage '{producers[stage.output.name]}'",
                            stage.output.name,
                            "DuplicateArtifact",
                        )
                    )
                else:
                    producers[stage.output.name] = stage.name

            if stage.skip_predicate is not None:
                conditional.append(stage.name)
                if not stage.skip_predicate.watch_paths:
                    errors.append(ValidationError(f"{path}.watch", "must list at least one watched path"))
                if stage.output is not None:
                    errors.append(
                        ValidationError(
                            f"{path}.output",
                            "a conditional stage cannot produce an artifact; it is missing when the stage is skipped",
                        )
                    )

            if stage.timeout_seconds is not None and stage.timeout_seconds <= 0:
                errors.append(
                    ValidationError(f"{path}.timeout_seconds", "must be positive", stage.timeout_seconds)
                )

        if len(conditional) > 1:
            errors.append(
                ValidationError("stages", f"only one conditional stage is supported, found {conditional}")
            )

        if self.deploy_artifact is not None and self.deploy_artifact not in producers:
            errors.append(
                ValidationError("deploy_artifact", f"artifact '{self.deploy_artifact}' is never produced")
            )

        return errors

    @property
    def conditional_stage(self) -> Stage | None:
        """The stage carrying a skip predicate, if any."""
        for stage in self.stages:
            if stage.is_conditional:
                return stage
        return None

    def stage(self, name: str) -> Stage:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def accepts(self, ref: str) -> bool:
        """Check if a trigger ref matches the definition's ref pattern."""
        return fnmatchcase(ref, self.ref_pattern)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ref_pattern": self.ref_pattern,
            "deploy_artifact": self.deploy_artifact,
            "distribution_id": self.distribution_id,
            "stages": [s.to_dict() for s in self.stages],
        }
