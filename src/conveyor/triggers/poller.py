"""
Poll delivery.

Used where the source host cannot reach the pipeline (local emulation):
the refs matching a pattern are listed periodically and a TriggerEvent is
produced for every ref that appeared or moved since the previous listing.
"""

from __future__ import annotations

import fnmatch
import logging
import subprocess
import threading
from collections.abc import Callable

from conveyor.errors import ChangeDetectionUnavailable
from conveyor.models.trigger import TriggerEvent, TriggerMode

logger = logging.getLogger(__name__)

# pattern -> {ref: revision}
FetchRefs = Callable[[str], dict[str, str]]

PEELED_SUFFIX = "^{}"


class RevisionPoller:
    """
    Detect new and moved refs matching a pattern.

    Example:
        poller = RevisionPoller(ls_remote("https://github.com/acme/site.git"), "refs/tags/*")
        poller.prime()
        for event in poller.poll_once():
            engine.run(event)
    """

    def __init__(
        self,
        fetch_refs: FetchRefs,
        pattern: str = "refs/tags/*",
        last_seen: dict[str, str] | None = None,
    ) -> None:
        self.fetch_refs = fetch_refs
        self.pattern = pattern
        self.last_seen: dict[str, str] = dict(last_seen or {})
        self._lock = threading.Lock()

    def prime(self) -> None:
        """Record the current refs without producing events for them."""
        listing = self._fetch()
        with self._lock:
            self.last_seen = listing
        logger.info("Watching %d refs matching %s", len(listing), self.pattern)

    def poll_once(self) -> list[TriggerEvent]:
        """
        List the refs once.

        Returns:
            One POLL TriggerEvent per ref that is new or points at a
            different revision than at the last poll, in ref order. A
            moved ref carries its previous revision as prior_revision.
        """
        listing = self._fetch()
        with self._lock:
            previous, self.last_seen = self.last_seen, listing

        events = []
        for ref in sorted(listing):
            revision = listing[ref]
            before = previous.get(ref)
            if revision == before:
                continue
            logger.info("New revision %s on %s (previously %s)", revision, ref, before)
            events.append(
                TriggerEvent(
                    revision=revision,
                    ref=ref,
                    delivery=TriggerMode.POLL,
                    prior_revision=before,
                )
            )
        return events

    def poll(self, interval: float, stop: threading.Event, on_event: Callable[[TriggerEvent], object]) -> None:
        """Poll every ``interval`` seconds until ``stop`` is set."""
        while not stop.is_set():
            try:
                events = self.poll_once()
            except ChangeDetectionUnavailable as e:
                logger.warning("Poll of %s failed: %s", self.pattern, e)
                events = []
            for event in events:
                on_event(event)
            stop.wait(interval)

    def _fetch(self) -> dict[str, str]:
        listing = self.fetch_refs(self.pattern)
        return {ref: rev for ref, rev in listing.items() if fnmatch.fnmatchcase(ref, self.pattern)}


def parse_ls_remote(output: str) -> dict[str, str]:
    """
    Parse ``git ls-remote`` output into ``{ref: revision}``.

    An annotated tag is listed twice; its peeled ``^{}`` line names the
    commit and wins over the tag object.
    """
    refs: dict[str, str] = {}
    peeled: dict[str, str] = {}
    for line in output.splitlines():
        sha, _, name = line.strip().partition("\t")
        if not sha or not name:
            continue
        if name.endswith(PEELED_SUFFIX):
            peeled[name[: -len(PEELED_SUFFIX)]] = sha
        else:
            refs[name] = sha
    refs.update({name: sha for name, sha in peeled.items() if name in refs})
    return refs


def ls_remote(remote: str, git: str = "git", timeout: float = 30.0) -> FetchRefs:
    """Build a fetch function that lists refs with ``git ls-remote``."""

    def fetch(pattern: str) -> dict[str, str]:
        try:
            result = subprocess.run(
                [git, "ls-remote", remote, pattern],
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ChangeDetectionUnavailable(f"Cannot list {pattern} on {remote}", cause=e) from e
        if result.returncode != 0:
            raise ChangeDetectionUnavailable(f"git ls-remote failed: {result.stderr.strip()}")
        return parse_ls_remote(result.stdout)

    return fetch
