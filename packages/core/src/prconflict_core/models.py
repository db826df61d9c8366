"""Data model shared by the annotation pipeline.

Plain dataclasses with no GitHub knowledge: the gh adapters map PyGithub
objects and GraphQL payloads onto these types, and everything downstream of
the sources works only with them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Comment:
    """A single review remark anchored to one line of the PR head revision."""

    id: int
    path: str
    line: int  # 1-based, current revision of ``path``
    body: str
    created_at: datetime


@dataclass(frozen=True)
class ReviewThread:
    """A review thread as exposed by the resolution source.

    Threads have their own identity (a GraphQL node id) that is unrelated to
    the REST ids of the comments they contain.
    """

    thread_id: str
    is_resolved: bool
    comment_ids: tuple[int, ...] = ()


class ResolutionState:
    """Answers "is this comment still unresolved?" by joining comment → thread → resolved.

    Resolution is a property of the thread, not the comment, so every comment
    of a resolved thread is resolved. A comment id the resolution source does
    not know about is never reported as unresolved.
    """

    def __init__(self, threads: list[ReviewThread] | None = None):
        self._thread_of: dict[int, str] = {}
        self._resolved: dict[str, bool] = {}
        for thread in threads or []:
            self._resolved[thread.thread_id] = thread.is_resolved
            for comment_id in thread.comment_ids:
                self._thread_of[comment_id] = thread.thread_id

    @classmethod
    def from_unresolved_ids(cls, ids) -> ResolutionState:
        """Build a state from a flat set of unresolved comment ids (one synthetic thread each)."""
        return cls([ReviewThread(thread_id=f"comment-{i}", is_resolved=False, comment_ids=(i,)) for i in ids])

    def thread_for(self, comment_id: int) -> str | None:
        return self._thread_of.get(comment_id)

    def is_unresolved(self, comment_id: int) -> bool:
        thread_id = self._thread_of.get(comment_id)
        if thread_id is None:
            return False
        return not self._resolved[thread_id]

    def unresolved_ids(self) -> set[int]:
        return {cid for cid, tid in self._thread_of.items() if not self._resolved[tid]}

    def __len__(self) -> int:
        return len(self._resolved)


@dataclass
class Thread:
    """Unresolved comments sharing one (path, line), oldest first. Never empty."""

    path: str
    line: int
    comments: list[Comment] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, int]:
        return (self.path, self.line)


@dataclass(frozen=True)
class MarkerBlock:
    """Rendered marker text for one thread, one entry per physical line."""

    count: int
    lines: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.lines)


@dataclass
class FileResult:
    """Outcome of annotating a single file."""

    path: str
    markers: int = 0
    lines: list[int] = field(default_factory=list)  # effective line of each opening delimiter
    skipped_lines: list[int] = field(default_factory=list)
    error: str | None = None
    excluded: bool = False
    changed: bool = False  # content differs from what is on disk (written unless dry run)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AnnotationSummary:
    """Result returned by run_annotation: enough for the CLI to render a report."""

    repo: str
    pr_number: int
    dry_run: bool = False
    files: list[FileResult] = field(default_factory=list)
    total_threads: int = 0
    total_comments: int = 0

    @property
    def total_markers(self) -> int:
        return sum(f.markers for f in self.files)

    @property
    def failed_files(self) -> list[FileResult]:
        return [f for f in self.files if f.error is not None]
