"""
Artifact store.

Holds the write-once artifacts of every active run, each run in its own
namespace keyed by run ID. There is no cross-run lookup: a run only ever
sees the artifacts it produced itself.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from conveyor.errors import ArtifactNotFoundError, DuplicateArtifactError
from conveyor.models.artifact import Artifact

logger = logging.getLogger(__name__)


class ArtifactStore(ABC):
    """Storage interface for run-scoped artifacts."""

    @abstractmethod
    def put(self, run_id: str, name: str, producing_stage: str, payload: bytes) -> Artifact:
        """
        Store an artifact.

        Raises:
            DuplicateArtifactError: If ``name`` was already written in the run
        """
        pass

    @abstractmethod
    def get(self, run_id: str, name: str) -> Artifact:
        """
        Retrieve an artifact written earlier in the same run.

        Raises:
            ArtifactNotFoundError: If ``name`` was never written in the run
        """
        pass

    @abstractmethod
    def names(self, run_id: str) -> list[str]:
        """Names written in the run, in write order."""
        pass

    @abstractmethod
    def release(self, run_id: str) -> None:
        """Drop every artifact of the run."""
        pass

    def exists(self, run_id: str, name: str) -> bool:
        return name in self.names(run_id)

    def scope(self, run_id: str) -> RunArtifacts:
        """Get a view of the store bound to one run."""
        return RunArtifacts(self, run_id)


class InMemoryArtifactStore(ArtifactStore):
    """
    In-memory implementation of ArtifactStore.

    Thread-safe storage for concurrent runs in a single process.
    """

    def __init__(self) -> None:
        self._runs: dict[str, dict[str, Artifact]] = {}
        self._lock = threading.Lock()

    def put(self, run_id: str, name: str, producing_stage: str, payload: bytes) -> Artifact:
        with self._lock:
            namespace = self._runs.setdefault(run_id, {})
            if name in namespace:
                existing = namespace[name]
                raise DuplicateArtifactError(
                    f"Artifact '{name}' already written in run {run_id} by stage '{existing.producing_stage}'",
                    run_id=run_id,
                    name=name,
                )
            artifact = Artifact(
                run_id=run_id,
                name=name,
                producing_stage=producing_stage,
                payload=bytes(payload),
            )
            namespace[name] = artifact

        logger.debug("Stored artifact %s (%d bytes) for run %s", name, artifact.size, run_id)
        return artifact

    def get(self, run_id: str, name: str) -> Artifact:
        with self._lock:
            artifact = self._runs.get(run_id, {}).get(name)
        if artifact is None:
            raise ArtifactNotFoundError(
                f"Artifact '{name}' not found in run {run_id}",
                run_id=run_id,
                name=name,
            )
        return artifact

    def names(self, run_id: str) -> list[str]:
        with self._lock:
            return list(self._runs.get(run_id, {}))

    def release(self, run_id: str) -> None:
        with self._lock:
            released = self._runs.pop(run_id, None)
        if released:
            logger.debug("Released %d artifacts of run %s", len(released), run_id)

    def run_ids(self) -> list[str]:
        """Runs that currently hold artifacts."""
        with self._lock:
            return list(self._runs)


class RunArtifacts:
    """An ArtifactStore bound to a single run."""

    def __init__(self, store: ArtifactStore, run_id: str) -> None:
        self.store = store
        self.run_id = run_id

    def put(self, name: str, producing_stage: str, payload: bytes) -> Artifact:
        return self.store.put(self.run_id, name, producing_stage, payload)

    def get(self, name: str) -> Artifact:
        return self.store.get(self.run_id, name)

    def exists(self, name: str) -> bool:
        return self.store.exists(self.run_id, name)

    def names(self) -> list[str]:
        return self.store.names(self.run_id)
