"""Pipeline engine."""

from conveyor.engine.engine import PipelineEngine, RunHandle
from conveyor.engine.locks import ResourceLocks

__all__ = ["PipelineEngine", "ResourceLocks", "RunHandle"]
