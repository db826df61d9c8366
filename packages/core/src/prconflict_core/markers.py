"""Marker block rendering and removal.

A block looks like an unresolved merge conflict so editors highlight it and
linters refuse to let it slip into a commit:

    <<<<<<< REVIEW THREAD (2)
    first comment
    second comment
    =======
    >>>>>>> END REVIEW
"""

from __future__ import annotations

import re

from prconflict_core.models import MarkerBlock, Thread
from prconflict_core.sanitize import sanitize

OPEN_PREFIX = "<<<<<<< REVIEW THREAD"
SEPARATOR = "======="
CLOSE = ">>>>>>> END REVIEW"

_OPEN_RE = re.compile(r"^<<<<<<< REVIEW THREAD \((\d+)\)$")


def format_thread(thread: Thread) -> MarkerBlock:
    """Render one thread; the block is always ``len(thread.comments) + 3`` lines."""
    count = len(thread.comments)
    lines = [f"{OPEN_PREFIX} ({count})"]
    lines.extend(sanitize(c.body) for c in thread.comments)
    lines.append(SEPARATOR)
    lines.append(CLOSE)
    return MarkerBlock(count=count, lines=tuple(lines))


def _block_length(lines: list[str], start: int) -> int:
    """Length of the marker block opening at ``start``, or 0 if there is none."""
    match = _OPEN_RE.match(lines[start].rstrip("\r"))
    if not match:
        return 0
    count = int(match.group(1))
    sep, close = start + count + 1, start + count + 2
    if close >= len(lines):
        return 0
    if lines[sep].rstrip("\r") != SEPARATOR or lines[close].rstrip("\r") != CLOSE:
        return 0
    return count + 3


def has_markers(text: str) -> bool:
    lines = text.split("\n")
    return any(_block_length(lines, i) for i in range(len(lines)))


def strip_markers(text: str) -> str:
    """Remove every complete marker block from ``text``.

    Inverse of the patcher: annotating a file and stripping the result gives
    back the original bytes. Blocks are recognised by their declared count, so
    a comment body that happens to look like a delimiter does not confuse the
    scan. Malformed or unterminated blocks are left in place.
    """
    lines = text.split("\n")
    out: list[str] = []
    i = 0
    while i < len(lines):
        length = _block_length(lines, i)
        if length:
            end = i + length
            # A CRLF block appended after an unterminated last line ends
            # without "\r"; the line above it gave up its terminator for it.
            if end == len(lines) and out and out[-1].endswith("\r"):
                if lines[i].endswith("\r") and not lines[end - 1].endswith("\r"):
                    out[-1] = out[-1][:-1]
            i = end
            continue
        out.append(lines[i])
        i += 1
    return "\n".join(out)
