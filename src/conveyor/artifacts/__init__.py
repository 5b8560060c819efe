"""Run-scoped artifact storage and materialization."""

from conveyor.artifacts.archive import collect_files, list_members, pack_directory, unpack
from conveyor.artifacts.store import ArtifactStore, InMemoryArtifactStore, RunArtifacts

__all__ = [
    "ArtifactStore",
    "InMemoryArtifactStore",
    "RunArtifacts",
    "collect_files",
    "list_members",
    "pack_directory",
    "unpack",
]
