"""
Webhook delivery.

Converts a source host push notification into a TriggerEvent. The push
payload carries the revision before the push, which becomes the prior
revision for change detection.
"""

from __future__ import annotations

from typing import Any

from conveyor.errors import ConfigurationError
from conveyor.models.trigger import TriggerEvent, TriggerMode

# Sent as "before" for the first push of a new ref
NULL_REVISION = "0" * 40


def parse_push_event(payload: dict[str, Any]) -> TriggerEvent:
    """
    Build a TriggerEvent from a push payload.

    Expects ``ref`` and ``after``; ``before`` is optional. An all-zero
    ``before`` (new branch or tag) means there is no prior revision.

    Raises:
        ConfigurationError: If ``ref`` or ``after`` is missing
    """
    ref = payload.get("ref")
    revision = payload.get("after")
    if not ref or not revision:
        raise ConfigurationError("Push payload must contain 'ref' and 'after'")

    before = payload.get("before")
    if not before or set(before) == {"0"}:
        before = None

    return TriggerEvent(
        revision=revision,
        ref=ref,
        delivery=TriggerMode.WEBHOOK,
        prior_revision=before,
    )
