"""Abstract collaborators the annotation engine depends on.

The engine never talks to GitHub or the filesystem directly. It depends on
these interfaces so the sources are swappable (GitHub, a fixture, a cached
dump) without touching the engine:

  CommentSource    — comment content (id, path, line, body, timestamp)
  ResolutionSource — review threads and their resolved flag
  FileStore        — read/write access scoped to one working directory
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from prconflict_core.models import Comment, ResolutionState, ReviewThread

logger = logging.getLogger(__name__)


class SourceError(RuntimeError):
    """Fetching comment or resolution data for a pull request failed."""

    def __init__(self, repo: str, pr_number: int, source: str, cause: Exception | None = None):
        self.repo = repo
        self.pr_number = pr_number
        self.source = source
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Could not fetch {source} for {repo}#{pr_number}{detail}")


class FileStoreError(Exception):
    """A path cannot be served by the file store (e.g. it escapes the working tree)."""


class CommentSource(ABC):
    @abstractmethod
    def fetch_comments(self, owner: str, repo: str, pr_number: int) -> list[Comment]:
        """Return every review comment on the PR. Order is not guaranteed."""


class ResolutionSource(ABC):
    """Yields review threads; the unresolved-id set and ResolutionState derive from them."""

    @abstractmethod
    def fetch_review_threads(self, owner: str, repo: str, pr_number: int) -> list[ReviewThread]:
        """Return every review thread on the PR with the ids of its comments."""

    def fetch_unresolved_ids(self, owner: str, repo: str, pr_number: int) -> set[int]:
        return self.fetch_resolution(owner, repo, pr_number).unresolved_ids()

    def fetch_resolution(self, owner: str, repo: str, pr_number: int) -> ResolutionState:
        return ResolutionState(self.fetch_review_threads(owner, repo, pr_number))


class FileStore(ABC):
    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """Return the raw bytes of a repo-relative path."""

    @abstractmethod
    def write_file(self, path: str, data: bytes) -> None:
        """Replace the content of a repo-relative path."""


class LocalFileStore(FileStore):
    """Reads and writes files under a working-copy root.

    Writes go through a temporary file in the target directory followed by
    ``os.replace``, so a file is either fully rewritten or left untouched.
    """

    def __init__(self, root: str | os.PathLike = "."):
        self.root = Path(root).resolve()

    def resolve(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if full != self.root and self.root not in full.parents:
            raise FileStoreError(f"{path} is outside the working directory {self.root}")
        return full

    def read_file(self, path: str) -> bytes:
        return self.resolve(path).read_bytes()

    def write_file(self, path: str, data: bytes) -> None:
        target = self.resolve(path)
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            if target.exists():
                os.chmod(tmp, target.stat().st_mode)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes to %s", len(data), target)
