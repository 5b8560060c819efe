"""
ChangeDecision model.

The typed outcome of the change detector: whether the conditional build
stage may be skipped for this run, and what it was compared against.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ComparisonBasis(Enum):
    """What the current revision was compared against."""

    PRIOR_REVISION = "PRIOR_REVISION"
    NO_PRIOR_REVISION = "NO_PRIOR_REVISION"


@dataclass(frozen=True)
class ChangeDecision:
    """
    Skip decision for the conditional build stage.

    Attributes:
        skip: True when none of the watched paths changed
        basis: Whether a prior revision was available to compare against
        prior_revision: The revision compared against, if any
        changed_paths: Watched paths that differ between the two revisions
        reason: Human-readable explanation, logged and shown in run summaries
    """

    skip: bool
    basis: ComparisonBasis
    prior_revision: str | None = None
    changed_paths: frozenset[str] = field(default_factory=frozenset)
    reason: str = ""

    @classmethod
    def unchanged(cls, prior_revision: str) -> ChangeDecision:
        return cls(
            skip=True,
            basis=ComparisonBasis.PRIOR_REVISION,
            prior_revision=prior_revision,
            reason=f"no watched path changed since {prior_revision}",
        )

    @classmethod
    def changed(cls, prior_revision: str, changed_paths: set[str] | frozenset[str]) -> ChangeDecision:
        return cls(
            skip=False,
            basis=ComparisonBasis.PRIOR_REVISION,
            prior_revision=prior_revision,
            changed_paths=frozenset(changed_paths),
            reason=f"watched paths changed since {prior_revision}: {', '.join(sorted(changed_paths))}",
        )

    @classmethod
    def no_history(cls, reason: str = "no prior revision available") -> ChangeDecision:
        """Unknown history never skips."""
        return cls(skip=False, basis=ComparisonBasis.NO_PRIOR_REVISION, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skip": self.skip,
            "basis": self.basis.value,
            "prior_revision": self.prior_revision,
            "changed_paths": sorted(self.changed_paths),
            "reason": self.reason,
        }
