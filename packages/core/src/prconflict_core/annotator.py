"""Core annotation orchestration."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from rich.console import Console
from rich.markup import escape

from prconflict_core.config import is_excluded
from prconflict_core.gh.pull_request import GitHubReviewSource, split_repo
from prconflict_core.markers import format_thread, has_markers, strip_markers
from prconflict_core.models import AnnotationSummary, FileResult, Thread
from prconflict_core.patcher import InsertionPlan, apply_plan
from prconflict_core.sources import (
    CommentSource,
    FileStore,
    FileStoreError,
    LocalFileStore,
    ResolutionSource,
    SourceError,
)
from prconflict_core.threads import build_threads, threads_by_file

console = Console()
logger = logging.getLogger(__name__)

# Bytes that are not valid UTF-8 survive a decode/encode round trip unchanged.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def build_plan(path: str, threads: list[Thread]) -> InsertionPlan:
    plan = InsertionPlan(path)
    for thread in threads:
        plan.add(thread.line, format_thread(thread))
    return plan


def annotate_file(
    store: FileStore, path: str, threads: list[Thread], dry_run: bool = False, missing_ok: bool = False
) -> FileResult:
    """Insert one marker block per thread into ``path`` with a single write.

    Marker blocks left by a previous run are stripped first, so line numbers
    from the comment source line up with the file again and re-running on an
    annotated tree is stable. With no threads this only removes stale blocks.
    Read/write failures are returned in the result, never raised; a missing
    file yields an empty result when ``missing_ok`` is set.
    """
    try:
        current = store.read_file(path).decode(_ENCODING, _ERRORS)
        original = current
        if has_markers(current):
            logger.debug("Removing existing marker blocks from %s", path)
            original = strip_markers(current)

        patched = apply_plan(original, build_plan(path, threads))
        for line in patched.skipped_lines:
            logger.warning("%s: line %d is past the end of the file; comment not placed.", path, line)

        changed = patched.text != current
        if not dry_run and changed:
            store.write_file(path, patched.text.encode(_ENCODING, _ERRORS))
    except (OSError, FileStoreError) as e:
        if missing_ok and isinstance(e, FileNotFoundError):
            logger.debug("%s no longer exists; nothing to clean up.", path)
            return FileResult(path=path)
        logger.warning("Could not annotate %s: %s", path, e)
        return FileResult(path=path, error=str(e))

    return FileResult(
        path=path,
        markers=len(patched.inserted_at),
        lines=patched.inserted_at,
        skipped_lines=patched.skipped_lines,
        changed=changed,
    )


def print_plan(per_file: dict[str, list[Thread]], results: list[FileResult]) -> None:
    """Print the marker blocks a dry run would write, without touching any file."""
    by_path = {r.path: r for r in results}
    for result in results:
        if result.path not in per_file and result.changed:
            console.print(f"[bold cyan]{escape(result.path)}[/bold cyan]  old markers would be removed")
    if not per_file:
        console.print("[yellow]Dry run: no unresolved review threads.[/yellow]")
        return
    console.print(f"\n[bold]Dry run — {sum(len(t) for t in per_file.values())} thread(s) (not written)[/bold]\n")
    for path, threads in per_file.items():
        result = by_path.get(path)
        if result is None or result.excluded:
            continue
        if result.error:
            console.print(f"[bold cyan]{escape(path)}[/bold cyan]  [red]{escape(result.error)}[/red]")
            continue
        # result.lines follows the threads in ascending order, minus the skipped ones.
        placed = dict(zip([t.line for t in threads if t.line not in result.skipped_lines], result.lines))
        for thread in threads:
            where = placed.get(thread.line)
            location = f"line [bold]{thread.line}[/bold]" + (f" → {where}" if where else " [red](out of range)[/red]")
            console.print(f"[bold cyan]{escape(path)}[/bold cyan]  {location}")
            for line in format_thread(thread).lines:
                console.print(f"  {line}", markup=False, highlight=False)
        console.print()


def _fetch(source: str, repo: str, pr_number: int, fn, *args):
    try:
        return fn(*args)
    except SourceError:
        raise
    except Exception as e:
        raise SourceError(repo, pr_number, source, e) from e


def run_annotation(
    repo: str,
    pr_number: int,
    config: dict,
    comment_source: CommentSource | None = None,
    resolution_source: ResolutionSource | None = None,
    file_store: FileStore | None = None,
) -> AnnotationSummary:
    """Annotate the working copy with every unresolved review thread of a PR.

    Raises SourceError when comments or thread resolution cannot be fetched;
    nothing is written in that case. Per-file failures are reported in the
    returned summary and never stop the other files.
    """
    owner, name = split_repo(repo)
    dry_run = bool(config.get("dry_run", False))

    if comment_source is None or resolution_source is None:
        github_source = GitHubReviewSource.from_token(config["github_token"])
        comment_source = comment_source or github_source
        resolution_source = resolution_source or github_source
    if file_store is None:
        file_store = LocalFileStore(config.get("workdir", "."))

    # Content and resolution come from unrelated endpoints; fetch both at once.
    with ThreadPoolExecutor(max_workers=2) as pool:
        comments_future = pool.submit(
            _fetch, "comments", repo, pr_number, comment_source.fetch_comments, owner, name, pr_number
        )
        resolution_future = pool.submit(
            _fetch, "review threads", repo, pr_number, resolution_source.fetch_resolution, owner, name, pr_number
        )
        comments = comments_future.result()
        resolution = resolution_future.result()

    console.print(f"[dim]Fetched {len(comments)} review comment(s) across {len(resolution)} thread(s).[/dim]")

    threads = build_threads(comments, resolution)
    per_file = threads_by_file(threads)
    summary = AnnotationSummary(
        repo=repo,
        pr_number=pr_number,
        dry_run=dry_run,
        total_threads=len(threads),
        total_comments=sum(len(t.comments) for t in threads.values()),
    )

    exclude_patterns = config.get("exclude", [])
    to_patch = []
    for path, file_threads in per_file.items():
        if is_excluded(path, exclude_patterns):
            console.print(f"  Skipping: {escape(path)}")
            summary.files.append(FileResult(path=path, excluded=True))
            continue
        to_patch.append((path, file_threads))

    # Files whose threads are all resolved may still carry blocks from an
    # earlier run. They are visited with no threads so the blocks go away.
    stale = sorted({c.path for c in comments} - per_file.keys())
    to_patch.extend((path, []) for path in stale if not is_excluded(path, exclude_patterns))

    # One task per file: all of a file's blocks go in through one ascending pass.
    max_workers = max(1, int(config.get("max_workers", 4)))
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(
            pool.map(
                lambda item: annotate_file(file_store, item[0], item[1], dry_run, missing_ok=not item[1]),
                to_patch,
            )
        )
    summary.files.extend(r for r in results if r.path in per_file or r.changed or r.error)
    summary.files.sort(key=lambda r: r.path)

    if dry_run:
        print_plan(per_file, summary.files)

    return summary
