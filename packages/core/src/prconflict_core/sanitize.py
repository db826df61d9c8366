"""Comment body normalisation for embedding inside source files."""

from __future__ import annotations

import re

# One space per break: "\r\n" counts as a single break, runs are not compressed.
_VERTICAL_WS_RE = re.compile("\r\n|[\n\r\v\f\x85\u2028\u2029]")

# Markdown emphasis and path separators are dropped outright. Stripping "/"
# also mangles URLs ("https://a.b/c" -> "https:a.bc"); kept for compatibility
# with markers written by earlier releases.
_STRIPPED_CHARS = str.maketrans("", "", "*/")


def sanitize(raw: str) -> str:
    """Collapse ``raw`` onto a single line safe to place inside a marker block."""
    text = _VERTICAL_WS_RE.sub(" ", raw or "")
    return text.translate(_STRIPPED_CHARS).strip()
