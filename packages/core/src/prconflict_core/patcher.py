"""Offset-aware insertion of marker blocks into file content.

Line numbers reported by the comment source refer to the file as it was
before any block was inserted. Every block pushes the lines below it down,
so each later insertion is shifted by the total length of the blocks already
placed above it:

    effective_line = target_line + offset

The offset only ever grows, which is why targets must be applied in
ascending order.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from prconflict_core.models import MarkerBlock


@dataclass
class InsertionPlan:
    """Blocks to insert into one file, keyed by original 1-based line."""

    path: str
    entries: list[tuple[int, MarkerBlock]] = field(default_factory=list)

    def add(self, line: int, block: MarkerBlock) -> None:
        self.entries.append((line, block))

    def ordered(self) -> list[tuple[int, MarkerBlock]]:
        entries = sorted(self.entries, key=lambda e: e[0])
        for (prev, _), (cur, _) in zip(entries, entries[1:]):
            if prev == cur:
                raise ValueError(f"{self.path}: two marker blocks target line {cur}")
        return entries

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class PatchResult:
    text: str
    inserted_at: list[int] = field(default_factory=list)  # effective line of each opening delimiter
    skipped_lines: list[int] = field(default_factory=list)
    offset: int = 0


def _physical_line_count(lines: list[str]) -> int:
    # "a\nb\n".split("\n") == ["a", "b", ""]: the trailing empty segment is
    # not a line of its own.
    if lines and lines[-1] == "":
        return len(lines) - 1
    return len(lines)


def _uses_crlf(lines: list[str]) -> bool:
    terminated = lines[:-1]
    return bool(terminated) and all(line.endswith("\r") for line in terminated)


def apply_plan(text: str, plan: InsertionPlan) -> PatchResult:
    """Insert every block of ``plan`` into ``text`` and return the new content.

    A block for line N lands directly above the original line N. Line 1
    inserts at the top of the file, ``last line + 1`` appends after the final
    line. Targets outside that range are reported in ``skipped_lines`` and do
    not move the offset. Existing lines are never modified.
    """
    lines = text.split("\n")
    max_target = _physical_line_count(lines) + 1
    eol = "\r" if _uses_crlf(lines) else ""

    result = PatchResult(text=text)
    offset = 0
    for target, block in plan.ordered():
        if target < 1 or target > max_target:
            result.skipped_lines.append(target)
            continue
        effective = target + offset
        index = effective - 1
        new_lines = [line + eol for line in block.lines]
        if index == len(lines):
            # Appending after an unterminated last line: it takes the
            # terminator and the block becomes the unterminated tail.
            lines[-1] += eol
            new_lines[-1] = block.lines[-1]
        lines[index:index] = new_lines
        result.inserted_at.append(effective)
        offset += len(block)

    result.offset = offset
    result.text = "\n".join(lines)
    return result
