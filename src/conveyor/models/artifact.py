"""
Artifact model.

An artifact is a named, write-once byte payload passed from the stage that
produced it to later stages of the same run.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass, field
from typing import Any


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ArtifactRef:
    """Identifies an artifact without carrying its payload."""

    run_id: str
    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.run_id}/{self.name}@{self.version[:12]}"


@dataclass(frozen=True)
class Artifact:
    """
    A write-once artifact owned by one pipeline run.

    Attributes:
        run_id: Run that produced the artifact
        name: Artifact name, unique within the run
        producing_stage: Name of the stage that wrote it
        payload: Archived bytes (see conveyor.artifacts.archive)
        created_at: Epoch milliseconds when the artifact was stored
    """

    run_id: str
    name: str
    producing_stage: str
    payload: bytes = field(repr=False)
    created_at: int = field(default_factory=_now_ms)

    @property
    def version(self) -> str:
        """SHA-256 of the payload."""
        return hashlib.sha256(self.payload).hexdigest()

    @property
    def size(self) -> int:
        return len(self.payload)

    @property
    def ref(self) -> ArtifactRef:
        return ArtifactRef(run_id=self.run_id, name=self.name, version=self.version)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "name": self.name,
            "producing_stage": self.producing_stage,
            "version": self.version,
            "size": self.size,
            "created_at": self.created_at,
        }
