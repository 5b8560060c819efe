"""
Deploy/invalidate collaborator.

After every stage of a run has succeeded or been skipped, the engine
reports the deployed artifact exactly once so the content-delivery
distribution in front of the deploy target can be invalidated. The engine
only observes the returned request ID or the failure.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

from conveyor.errors import InvalidationError
from conveyor.models.artifact import ArtifactRef

logger = logging.getLogger(__name__)


class DeployNotifier(ABC):
    """Receives the deploy-succeeded signal for a run."""

    @abstractmethod
    def notify_deploy_succeeded(self, artifact_ref: ArtifactRef, distribution_id: str | None = None) -> str:
        """
        Request invalidation for a deployed artifact.

        Returns:
            The invalidation request ID

        Raises:
            InvalidationError: If the request could not be made
        """
        pass


class CommandInvalidationNotifier(DeployNotifier):
    """
    Request invalidation by running a command.

    The command template may use ``{distribution_id}``, ``{artifact}``,
    ``{version}`` and ``{run_id}``; its stripped standard output is the
    request ID.

    Example:
        CommandInvalidationNotifier(
            "aws cloudfront create-invalidation --distribution-id {distribution_id} "
            "--paths '/*' --query Invalidation.Id --output text"
        )
    """

    def __init__(self, command_template: str, timeout: float = 120.0) -> None:
        self.command_template = command_template
        self.timeout = timeout

    def notify_deploy_succeeded(self, artifact_ref: ArtifactRef, distribution_id: str | None = None) -> str:
        command = self.command_template.format(
            distribution_id=distribution_id or "",
            artifact=artifact_ref.name,
            version=artifact_ref.version,
            run_id=artifact_ref.run_id,
        )
        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise InvalidationError(f"Invalidation command timed out after {self.timeout}s", cause=e) from e
        except OSError as e:
            raise InvalidationError(f"Cannot run invalidation command: {e}", cause=e) from e

        if result.returncode != 0:
            raise InvalidationError(
                f"Invalidation command failed with exit code {result.returncode}: {result.stderr.strip()}"
            )

        request_id = result.stdout.strip()
        if not request_id:
            raise InvalidationError("Invalidation command returned no request id")
        return request_id


@dataclass(frozen=True)
class NotifierCall:
    artifact_ref: ArtifactRef
    distribution_id: str | None


class RecordingNotifier(DeployNotifier):
    """
    In-memory notifier that records every call.

    Used for dry runs and tests. Set ``fail_with`` to make calls fail.
    """

    def __init__(self, fail_with: str | None = None) -> None:
        self.calls: list[NotifierCall] = []
        self.fail_with = fail_with
        self._lock = threading.Lock()

    def notify_deploy_succeeded(self, artifact_ref: ArtifactRef, distribution_id: str | None = None) -> str:
        with self._lock:
            self.calls.append(NotifierCall(artifact_ref, distribution_id))
            count = len(self.calls)
        if self.fail_with is not None:
            raise InvalidationError(self.fail_with)
        logger.info("Recorded invalidation for %s (distribution %s)", artifact_ref, distribution_id)
        return f"inv-{count}"

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)
