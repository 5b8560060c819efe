"""
Revision history sources for the change detector.

A RevisionHistory answers two questions about a repository: which revision
immediately precedes a given one, and which files differ between two
revisions. Failures to read history raise ChangeDetectionUnavailable.
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from conveyor.errors import ChangeDetectionUnavailable

logger = logging.getLogger(__name__)


class RevisionHistory(ABC):
    """Read-only view of a repository's revision history."""

    @abstractmethod
    def parent_of(self, revision: str) -> str | None:
        """
        Get the revision immediately preceding ``revision``.

        Returns:
            The parent revision, or None for a root revision (first commit)

        Raises:
            ChangeDetectionUnavailable: If history cannot be read (unknown
                revision, shallow clone, no repository)
        """
        pass

    @abstractmethod
    def changed_paths(self, prior: str, current: str) -> set[str]:
        """
        Get repository-relative paths that differ between two revisions.

        Raises:
            ChangeDetectionUnavailable: If either revision cannot be read
        """
        pass


class GitRevisionHistory(RevisionHistory):
    """
    RevisionHistory backed by the ``git`` command line.

    Example:
        history = GitRevisionHistory("/srv/checkout")
        history.parent_of("3f2c1e0")       # "9ab47d2" or None
        history.changed_paths("9ab47d2", "3f2c1e0")  # {"package.json", ...}
    """

    def __init__(self, repo_path: str | Path = ".", git: str = "git", timeout: float = 30.0) -> None:
        self.repo_path = Path(repo_path)
        self.git = git
        self.timeout = timeout

    def _git(self, *args: str, revision: str | None = None) -> subprocess.CompletedProcess[str]:
        cmd = [self.git, "-C", str(self.repo_path), *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ChangeDetectionUnavailable(
                f"git unavailable for {self.repo_path}",
                revision=revision,
                cause=e,
            ) from e

    def parent_of(self, revision: str) -> str | None:
        # Distinguish "revision is a root commit" from "history unreadable"
        exists = self._git("rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}", revision=revision)
        if exists.returncode != 0:
            raise ChangeDetectionUnavailable(
                f"Revision {revision} not found in {self.repo_path}: {exists.stderr.strip()}",
                revision=revision,
            )

        parents = self._git("rev-list", "--parents", "-n", "1", revision, revision=revision)
        if parents.returncode != 0:
            raise ChangeDetectionUnavailable(
                f"Cannot read parents of {revision}: {parents.stderr.strip()}",
                revision=revision,
            )

        # "<rev> <parent1> [<parent2> ...]"; a root commit lists only itself
        fields = parents.stdout.split()
        if len(fields) < 2:
            return None

        # A shallow clone reports the parent SHA without having its objects
        parent = fields[1]
        present = self._git("cat-file", "-e", f"{parent}^{{commit}}", revision=revision)
        if present.returncode != 0:
            raise ChangeDetectionUnavailable(
                f"Parent {parent} of {revision} is missing (shallow history)",
                revision=revision,
            )
        return parent

    def changed_paths(self, prior: str, current: str) -> set[str]:
        result = self._git("diff", "--name-only", prior, current, revision=current)
        if result.returncode != 0:
            raise ChangeDetectionUnavailable(
                f"Cannot diff {prior}..{current}: {result.stderr.strip()}",
                revision=current,
            )
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}


class StaticRevisionHistory(RevisionHistory):
    """
    In-memory RevisionHistory.

    Useful for tests and for callers that already know the diff of a push.

    Example:
        history = StaticRevisionHistory()
        history.add("R1")
        history.add("R2", parent="R1", changed={"src/main.ts"})
    """

    def __init__(self) -> None:
        self._parents: dict[str, str | None] = {}
        self._changes: dict[tuple[str, str], set[str]] = {}

    def add(self, revision: str, parent: str | None = None, changed: set[str] | None = None) -> None:
        """Record a revision, its parent, and the paths changed relative to it."""
        self._parents[revision] = parent
        if parent is not None:
            self._changes[(parent, revision)] = set(changed or ())

    def parent_of(self, revision: str) -> str | None:
        if revision not in self._parents:
            raise ChangeDetectionUnavailable(f"Unknown revision {revision}", revision=revision)
        return self._parents[revision]

    def changed_paths(self, prior: str, current: str) -> set[str]:
        if (prior, current) in self._changes:
            return set(self._changes[(prior, current)])
        raise ChangeDetectionUnavailable(f"No diff recorded for {prior}..{current}", revision=current)
