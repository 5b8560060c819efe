"""Deploy/invalidate collaborator interface."""

from conveyor.deploy.notifier import (
    CommandInvalidationNotifier,
    DeployNotifier,
    NotifierCall,
    RecordingNotifier,
)

__all__ = [
    "CommandInvalidationNotifier",
    "DeployNotifier",
    "NotifierCall",
    "RecordingNotifier",
]
