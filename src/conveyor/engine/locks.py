"""
Per-resource locks.

Stages that write a shared external resource (the build image tag) hold
the resource's lock for the duration of the stage, so overlapping runs in
one process do not push the same tag at the same time. Runs in other
processes are not covered.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class ResourceLocks:
    """Lazily created, process-wide locks keyed by resource name."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: str | None) -> Iterator[None]:
        """Hold the lock for ``key``; a None key holds nothing."""
        if key is None:
            yield
            return

        lock = self._lock_for(key)
        if not lock.acquire(blocking=False):
            logger.info("Waiting for resource %s held by another run", key)
            lock.acquire()
        try:
            yield
        finally:
            lock.release()

    def is_held(self, key: str) -> bool:
        return self._lock_for(key).locked()
