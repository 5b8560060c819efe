"""
Stage model.

A Stage is immutable configuration: one named step of a pipeline with an
optional input artifact, an optional output artifact, the shell program to
run and, for the conditional build stage, a skip predicate. Stages are
defined once per pipeline definition and shared by every run of it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class OutputSpec:
    """
    Where a stage's output artifact is collected from after a zero exit.

    Attributes:
        name: Artifact name written to the store
        base_directory: Directory (relative to the stage working directory)
            that becomes the artifact root
        pattern: Glob, relative to base_directory, selecting the files
    """

    name: str
    base_directory: str = "."
    pattern: str = "**/*"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "base_directory": self.base_directory, "pattern": self.pattern}


@dataclass(frozen=True)
class SkipWhenUnchanged:
    """
    Skip predicate: bypass the stage when no watched path changed.

    The predicate is evaluated per run by the engine through the change
    detector; the stage itself only declares what to watch.
    """

    watch_paths: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"watch_paths": list(self.watch_paths)}


@dataclass(frozen=True)
class Stage:
    """
    One named step of a pipeline.

    Attributes:
        name: Stage name, unique within the pipeline
        program: Shell program run in the stage working directory
        ordinal: Position in the pipeline (assigned by the definition)
        input: Name of the artifact materialized into the working directory
        output: Output artifact collected after a successful run
        skip_predicate: Present only on the conditional build stage
        timeout_seconds: Per-stage timeout; None uses the engine default
        env: Extra environment variables for the program
        exclusive_resource: Key of an external resource (an image tag) that
            concurrent runs must not write at the same time
    """

    name: str
    program: str
    ordinal: int = 0
    input: str | None = None
    output: OutputSpec | None = None
    skip_predicate: SkipWhenUnchanged | None = None
    timeout_seconds: float | None = None
    env: dict[str, str] = field(default_factory=dict, hash=False)
    exclusive_resource: str | None = None

    @property
    def is_conditional(self) -> bool:
        """Check if the stage has a skip predicate."""
        return self.skip_predicate is not None

    @property
    def output_name(self) -> str | None:
        return self.output.name if self.output else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ordinal": self.ordinal,
            "program": self.program,
            "input": self.input,
            "output": self.output.to_dict() if self.output else None,
            "skip_predicate": self.skip_predicate.to_dict() if self.skip_predicate else None,
            "timeout_seconds": self.timeout_seconds,
            "env": dict(self.env),
            "exclusive_resource": self.exclusive_resource,
        }
