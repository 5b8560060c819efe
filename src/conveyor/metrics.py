"""
Run and stage metrics.

The engine reports two kinds of measurement: counters (runs finished,
stages skipped, invalidation requests) and durations. Where they go is
decided by the installed MetricsProvider; nothing is recorded by default.
Setting CONVEYOR_LOG_METRICS emits every measurement as a structured
``metric`` log event instead.

Names in use:
    pipeline.runs                    counter, tags pipeline and status
    pipeline.run_duration_seconds    duration, tag pipeline
    pipeline.stage_duration_seconds  duration, tags stage and status
    pipeline.stage_skipped           counter, tag stage
    pipeline.invalidations           counter, tag outcome
"""

from __future__ import annotations

import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any

from conveyor.logging import get_logger

logger = logging.getLogger(__name__)

Tags = dict[str, str]


class MetricsProvider(ABC):
    """Destination for counters and durations."""

    @abstractmethod
    def increment(self, name: str, value: float = 1.0, tags: Tags | None = None) -> None:
        """Add ``value`` to the counter ``name``."""

    @abstractmethod
    def histogram(self, name: str, value: float, tags: Tags | None = None) -> None:
        """Record one observation, in seconds for durations."""


class LogMetricsProvider(MetricsProvider):
    """Write each measurement as a structured ``metric`` event."""

    def __init__(self) -> None:
        self._log = get_logger("conveyor.metrics")

    def increment(self, name: str, value: float = 1.0, tags: Tags | None = None) -> None:
        self._log.info("metric", kind="counter", metric=name, value=value, **(tags or {}))

    def histogram(self, name: str, value: float, tags: Tags | None = None) -> None:
        self._log.info("metric", kind="duration", metric=name, value=round(value, 3), **(tags or {}))


class NoOpMetricsProvider(MetricsProvider):
    def increment(self, name: str, value: float = 1.0, tags: Tags | None = None) -> None:
        pass

    def histogram(self, name: str, value: float, tags: Tags | None = None) -> None:
        pass


_provider: MetricsProvider = NoOpMetricsProvider()


def get_metrics() -> MetricsProvider:
    return _provider


def set_metrics_provider(provider: MetricsProvider) -> None:
    """Install ``provider`` for every engine in the process."""
    global _provider
    _provider = provider


def configure_metrics() -> None:
    """Use the LogMetricsProvider when CONVEYOR_LOG_METRICS is set."""
    if os.environ.get("CONVEYOR_LOG_METRICS"):
        set_metrics_provider(LogMetricsProvider())
        logger.info("Reporting metrics as log events")


def _tags(tags: dict[str, Any]) -> Tags:
    return {k: str(v) for k, v in tags.items()}


def increment(name: str, value: float = 1.0, **tags: Any) -> None:
    _provider.increment(name, value, _tags(tags))


def histogram(name: str, value: float, **tags: Any) -> None:
    _provider.histogram(name, value, _tags(tags))


class Timer:
    """
    Time a block and record it as a duration.

    The ``status`` tag is whatever the block assigned to ``timer.status``;
    when it assigned nothing the tag is ``failed`` if the block raised and
    ``succeeded`` otherwise.

    Example:
        with Timer("pipeline.stage_duration_seconds", stage="Deploy") as timer:
            result = run_stage()
            timer.status = result.status.value.lower()
    """

    def __init__(self, name: str, **tags: Any) -> None:
        self.name = name
        self.tags = tags
        self.status: str | None = None
        self.start_time = 0.0

    def __enter__(self) -> Timer:
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        duration = time.perf_counter() - self.start_time
        status = self.status or ("failed" if exc_type else "succeeded")
        histogram(self.name, duration, **self.tags, status=status)
