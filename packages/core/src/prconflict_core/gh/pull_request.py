from __future__ import annotations

import logging

from github import Github, GithubException

from prconflict_core.models import Comment, ReviewThread
from prconflict_core.sources import CommentSource, ResolutionSource, SourceError

logger = logging.getLogger(__name__)

# Review comments are matched to threads by databaseId, which is the same
# integer id the REST API reports for a pull request review comment.
REVIEW_THREADS_QUERY = """
query($owner: String!, $name: String!, $pr: Int!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    pullRequest(number: $pr) {
      reviewThreads(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          isResolved
          comments(first: 100) {
            pageInfo { hasNextPage endCursor }
            nodes { databaseId }
          }
        }
      }
    }
  }
}
"""

# Follow-up for threads with more comments than fit in the first page.
THREAD_COMMENTS_QUERY = """
query($id: ID!, $cursor: String) {
  node(id: $id) {
    ... on PullRequestReviewThread {
      comments(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes { databaseId }
      }
    }
  }
}
"""

RESOLVE_THREAD_MUTATION = """
mutation($threadId: ID!) {
  resolveReviewThread(input: {threadId: $threadId}) {
    thread { id isResolved }
  }
}
"""

UNRESOLVE_THREAD_MUTATION = """
mutation($threadId: ID!) {
  unresolveReviewThread(input: {threadId: $threadId}) {
    thread { id isResolved }
  }
}
"""


class ThreadNotFoundError(LookupError):
    """No review thread on the PR contains the given comment."""


def split_repo(repo_name: str) -> tuple[str, str]:
    owner, sep, name = repo_name.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValueError(f"Repository must be in owner/name format, got {repo_name!r}.")
    return owner, name


def get_client(token: str) -> Github:
    return Github(token)


def get_repo(repo_name: str, token: str):
    return get_client(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_pull_requests(repo, state: str = "open"):
    return repo.get_pulls(state=state)


def fetch_review_comments(pr) -> list[Comment]:
    """Return the PR's inline review comments that still map to a line of the head revision.

    GitHub reports ``line = None`` for outdated comments whose line no longer
    exists in the current diff; those cannot be placed in the working copy.
    """
    comments = []
    for c in pr.get_review_comments():
        if c.line is None:
            logger.debug("Skipping outdated comment %d on %s", c.id, c.path)
            continue
        comments.append(Comment(id=c.id, path=c.path, line=c.line, body=c.body or "", created_at=c.created_at))
    return comments


def _comment_ids(connection: dict) -> list[int]:
    return [c["databaseId"] for c in connection.get("nodes") or [] if c and c.get("databaseId")]


def _remaining_comment_ids(requester, thread_id: str, cursor: str | None) -> list[int]:
    """Comment ids of a thread past its first page, following GraphQL pagination."""
    ids: list[int] = []
    while True:
        _, response = requester.graphql_query(THREAD_COMMENTS_QUERY, {"id": thread_id, "cursor": cursor})
        connection = ((response.get("data") or {}).get("node") or {}).get("comments") or {}
        ids.extend(_comment_ids(connection))
        info = connection.get("pageInfo") or {}
        if not info.get("hasNextPage"):
            return ids
        cursor = info.get("endCursor")


def fetch_review_threads(requester, owner: str, name: str, pr_number: int) -> list[ReviewThread]:
    """Return every review thread of a PR, following GraphQL pagination."""
    threads: list[ReviewThread] = []
    cursor = None
    while True:
        variables = {"owner": owner, "name": name, "pr": pr_number, "cursor": cursor}
        _, response = requester.graphql_query(REVIEW_THREADS_QUERY, variables)
        pull = ((response.get("data") or {}).get("repository") or {}).get("pullRequest")
        if pull is None:
            raise GithubException(404, response, None)
        page = pull["reviewThreads"]
        for node in page.get("nodes") or []:
            if not node:
                continue
            comments = node.get("comments") or {}
            ids = _comment_ids(comments)
            comments_info = comments.get("pageInfo") or {}
            if comments_info.get("hasNextPage"):
                ids.extend(_remaining_comment_ids(requester, node["id"], comments_info.get("endCursor")))
            threads.append(
                ReviewThread(thread_id=node["id"], is_resolved=bool(node.get("isResolved")), comment_ids=tuple(ids))
            )
        info = page.get("pageInfo") or {}
        if not info.get("hasNextPage"):
            break
        cursor = info.get("endCursor")
    logger.debug("Fetched %d review thread(s) for %s/%s#%d", len(threads), owner, name, pr_number)
    return threads


def get_thread_id_for_comment(requester, owner: str, name: str, pr_number: int, comment_id: int) -> str:
    for thread in fetch_review_threads(requester, owner, name, pr_number):
        if comment_id in thread.comment_ids:
            return thread.thread_id
    raise ThreadNotFoundError(f"No review thread on {owner}/{name}#{pr_number} contains comment {comment_id}.")


def _set_thread_resolved(requester, thread_id: str, resolved: bool) -> bool:
    if resolved:
        mutation, field = RESOLVE_THREAD_MUTATION, "resolveReviewThread"
    else:
        mutation, field = UNRESOLVE_THREAD_MUTATION, "unresolveReviewThread"
    _, response = requester.graphql_query(mutation, {"threadId": thread_id})
    return bool(response["data"][field]["thread"]["isResolved"])


def resolve_thread(requester, thread_id: str) -> bool:
    """Mark a review thread resolved; returns the thread's new isResolved flag."""
    return _set_thread_resolved(requester, thread_id, True)


def unresolve_thread(requester, thread_id: str) -> bool:
    return _set_thread_resolved(requester, thread_id, False)


class GitHubReviewSource(CommentSource, ResolutionSource):
    """Comment content from the REST API, thread resolution from GraphQL.

    Both halves share one authenticated client. Any transport or API failure
    is surfaced as a SourceError naming the PR and the failing source.
    """

    def __init__(self, client: Github):
        self._gh = client

    @classmethod
    def from_token(cls, token: str) -> GitHubReviewSource:
        return cls(get_client(token))

    @property
    def requester(self):
        return self._gh.requester

    def fetch_comments(self, owner: str, repo: str, pr_number: int) -> list[Comment]:
        full_name = f"{owner}/{repo}"
        try:
            pr = get_pull(self._gh.get_repo(full_name), pr_number)
            return fetch_review_comments(pr)
        except GithubException as e:
            raise SourceError(full_name, pr_number, "comments", e) from e

    def fetch_review_threads(self, owner: str, repo: str, pr_number: int) -> list[ReviewThread]:
        try:
            return fetch_review_threads(self.requester, owner, repo, pr_number)
        except (GithubException, KeyError, TypeError) as e:
            raise SourceError(f"{owner}/{repo}", pr_number, "review threads", e) from e
