"""
Trigger models.

A TriggerEvent is the external notification of a source change that starts
a pipeline run. TriggerConfig fixes how such events are delivered and how
the repository access secret is resolved.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _now_ms() -> int:
    return int(time.time() * 1000)


class TriggerMode(Enum):
    """How source-change events reach the pipeline."""

    POLL = "POLL"
    WEBHOOK = "WEBHOOK"


class SecretResolution(Enum):
    """How the repository access secret reference is turned into a value."""

    PLAINTEXT = "PLAINTEXT"
    MANAGED = "MANAGED"


@dataclass(frozen=True)
class TriggerConfig:
    """Delivery and secret-resolution modes for one environment."""

    mode: TriggerMode
    secret_resolution: SecretResolution

    def to_dict(self) -> dict[str, Any]:
        return {"mode": self.mode.value, "secret_resolution": self.secret_resolution.value}


@dataclass(frozen=True)
class TriggerEvent:
    """
    A source change event.

    Attributes:
        revision: Revision identifier (commit SHA) to build
        ref: Branch or tag ref, e.g. ``refs/tags/v1.2.0``
        delivery: How the event was delivered
        prior_revision: Revision preceding ``revision`` when the delivery
            carries it (a webhook ``before`` field); None lets the change
            detector look it up
        received_at: Epoch milliseconds when the event was accepted
    """

    revision: str
    ref: str
    delivery: TriggerMode = TriggerMode.WEBHOOK
    prior_revision: str | None = None
    received_at: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "revision": self.revision,
            "ref": self.ref,
            "delivery": self.delivery.value,
            "prior_revision": self.prior_revision,
            "received_at": self.received_at,
        }
