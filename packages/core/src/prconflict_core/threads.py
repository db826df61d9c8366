"""Group review comments into per-line threads of unresolved feedback."""

from __future__ import annotations

import logging

from prconflict_core.models import Comment, ResolutionState, Thread

logger = logging.getLogger(__name__)


def build_threads(comments: list[Comment], resolution: ResolutionState) -> dict[tuple[str, int], Thread]:
    """Return one Thread per (path, line) that still has unresolved comments.

    The grouping key is the literal (path, line) reported by the comment
    source. Resolution is looked up per comment through its owning review
    thread, so every comment of a resolved thread is dropped. Within a group
    comments are ordered by creation time; ties keep fetch order.
    """
    seen: set[int] = set()
    groups: dict[tuple[str, int], list[Comment]] = {}

    for comment in comments:
        if comment.id in seen:
            logger.debug("Dropping duplicate comment %d", comment.id)
            continue
        seen.add(comment.id)

        if not resolution.is_unresolved(comment.id):
            logger.debug("Skipping comment %d on %s:%d (resolved or unknown thread)", comment.id, comment.path, comment.line)
            continue

        groups.setdefault((comment.path, comment.line), []).append(comment)

    # sorted() is stable, so equal timestamps keep fetch order.
    return {
        key: Thread(path=key[0], line=key[1], comments=sorted(group, key=lambda c: c.created_at))
        for key, group in groups.items()
    }


def threads_by_file(threads: dict[tuple[str, int], Thread]) -> dict[str, list[Thread]]:
    """Split threads per file, each file's list ascending by line."""
    by_file: dict[str, list[Thread]] = {}
    for thread in threads.values():
        by_file.setdefault(thread.path, []).append(thread)
    for file_threads in by_file.values():
        file_threads.sort(key=lambda t: t.line)
    return dict(sorted(by_file.items()))
