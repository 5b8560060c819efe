"""Change detection for the conditional build stage."""

from conveyor.changes.detector import ChangeDetector, matches_target
from conveyor.changes.history import GitRevisionHistory, RevisionHistory, StaticRevisionHistory

__all__ = [
    "ChangeDetector",
    "GitRevisionHistory",
    "RevisionHistory",
    "StaticRevisionHistory",
    "matches_target",
]
