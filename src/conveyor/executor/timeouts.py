"""
Centralized timeout management.

Provides consistent timeout calculation for stages.
"""

from __future__ import annotations

from datetime import timedelta

from conveyor.models.stage import Stage

DEFAULT_STAGE_TIMEOUT_SECONDS = 3600.0


class TimeoutManager:
    """Manages timeout calculations."""

    def __init__(self, default_stage_timeout_seconds: float = DEFAULT_STAGE_TIMEOUT_SECONDS) -> None:
        if default_stage_timeout_seconds <= 0:
            raise ValueError("default_stage_timeout_seconds must be positive")
        self.default_stage_timeout_seconds = default_stage_timeout_seconds

    def get_stage_timeout(self, stage: Stage) -> timedelta:
        """
        Get the effective timeout for a stage.

        Priority:
        1. Stage-level ``timeout_seconds``
        2. Global default
        """
        if stage.timeout_seconds is not None:
            return timedelta(seconds=stage.timeout_seconds)
        return timedelta(seconds=self.default_stage_timeout_seconds)
