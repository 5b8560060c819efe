"""
Change detector.

Decides whether the conditional build stage can be skipped by comparing
the current revision against the one immediately before it. The decision
is a heuristic over a single-commit diff: a watched path changed two
commits ago and untouched since is not detected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from fnmatch import fnmatchcase

from conveyor.changes.history import RevisionHistory
from conveyor.errors import ChangeDetectionUnavailable, ConfigurationError
from conveyor.models.decision import ChangeDecision

logger = logging.getLogger(__name__)


def matches_target(path: str, target: str) -> bool:
    """Check if a changed path matches a watched path or glob pattern."""
    path = path[2:] if path.startswith("./") else path
    target = target[2:] if target.startswith("./") else target
    return path == target or fnmatchcase(path, target)


class ChangeDetector:
    """
    Pure decision function over revision data supplied by a RevisionHistory.

    Example:
        detector = ChangeDetector(GitRevisionHistory("."))
        decision = detector.decide("3f2c1e0", {"package.json", "package-lock.json"})
        if decision.skip:
            ...
    """

    def __init__(self, history: RevisionHistory) -> None:
        self.history = history

    def decide(
        self,
        current_revision: str,
        comparison_targets: Iterable[str],
        prior_revision: str | None = None,
    ) -> ChangeDecision:
        """
        Decide whether files relevant to the build image changed.

        Args:
            current_revision: Revision being built
            comparison_targets: Watched paths or glob patterns
            prior_revision: Revision to compare against; looked up from
                history when None

        Returns:
            skip=True only when a prior revision is known and no watched
            path differs from it. Unknown history never skips.
        """
        targets = frozenset(comparison_targets)
        if not targets:
            raise ConfigurationError("Change detection requires at least one watched path")

        try:
            prior = prior_revision or self.history.parent_of(current_revision)
            if prior is None:
                logger.warning("No prior revision for %s; build will run", current_revision)
                return ChangeDecision.no_history()

            changed = self.history.changed_paths(prior, current_revision)
        except ChangeDetectionUnavailable as e:
            logger.warning("Change detection unavailable for %s: %s", current_revision, e)
            return ChangeDecision.no_history(reason=f"history unavailable: {e}")

        relevant = {path for path in changed if any(matches_target(path, t) for t in targets)}
        if relevant:
            logger.info("Watched paths changed in %s: %s", current_revision, sorted(relevant))
            return ChangeDecision.changed(prior, relevant)

        logger.info("No watched path changed between %s and %s", prior, current_revision)
        return ChangeDecision.unchanged(prior)
