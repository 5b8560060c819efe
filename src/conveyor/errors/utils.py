"""Error utility functions."""

from __future__ import annotations


def truncate_error(message: str, max_bytes: int = 102_400) -> str:
    """Truncate a message to max_bytes, appending a '[TRUNCATED]' marker.

    Captured program output can be arbitrarily large; stage results keep
    only a bounded prefix of it.

    Args:
        message: The message to truncate
        max_bytes: Maximum size in bytes (default: 100KB)

    Returns:
        Original message if within limit, otherwise truncated with marker.
    """
    if not message:
        return message

    encoded = message.encode("utf-8", errors="replace")

    if len(encoded) <= max_bytes:
        return message

    marker = " [TRUNCATED]"
    target_bytes = max_bytes - len(marker.encode("utf-8"))

    if target_bytes <= 0:
        return marker.strip()

    # errors="ignore" drops a multi-byte character split by the cut
    truncated = encoded[:target_bytes].decode("utf-8", errors="ignore")
    return truncated + marker
