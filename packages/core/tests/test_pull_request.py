"""Tests for GitHub pull request helper functions."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from github import GithubException

from prconflict_core.gh.pull_request import (
    GitHubReviewSource,
    ThreadNotFoundError,
    fetch_review_comments,
    fetch_review_threads,
    get_thread_id_for_comment,
    resolve_thread,
    split_repo,
    unresolve_thread,
)
from prconflict_core.sources import SourceError

CREATED = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _rest_comment(cid, path="main.go", line=7, body="fix", original_line=None):
    c = MagicMock()
    c.id = cid
    c.path = path
    c.line = line
    c.original_line = original_line
    c.body = body
    c.created_at = CREATED
    return c


def _page(nodes, has_next=False, cursor=None):
    return (
        {},
        {
            "data": {
                "repository": {
                    "pullRequest": {
                        "reviewThreads": {
                            "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
                            "nodes": nodes,
                        }
                    }
                }
            }
        },
    )


def _node(thread_id, resolved, *ids):
    return {"id": thread_id, "isResolved": resolved, "comments": {"nodes": [{"databaseId": i} for i in ids]}}


def _thread_page(ids, has_next=False, cursor=None):
    comments = {
        "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
        "nodes": [{"databaseId": i} for i in ids],
    }
    return ({}, {"data": {"node": {"comments": comments}}})


class TestSplitRepo:
    def test_owner_and_name(self):
        assert split_repo("octo/widgets") == ("octo", "widgets")

    @pytest.mark.parametrize("bad", ["widgets", "/widgets", "octo/", "a/b/c", ""])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            split_repo(bad)


class TestFetchReviewComments:
    def test_maps_fields(self):
        pr = MagicMock()
        pr.get_review_comments.return_value = [_rest_comment(10, "a.go", 3, "needs docs")]
        [comment] = fetch_review_comments(pr)
        assert comment.id == 10
        assert comment.path == "a.go"
        assert comment.line == 3
        assert comment.body == "needs docs"
        assert comment.created_at == CREATED

    def test_outdated_comments_skipped(self):
        pr = MagicMock()
        pr.get_review_comments.return_value = [_rest_comment(1, line=None, original_line=4), _rest_comment(2)]
        assert [c.id for c in fetch_review_comments(pr)] == [2]

    def test_none_body_becomes_empty(self):
        pr = MagicMock()
        pr.get_review_comments.return_value = [_rest_comment(1, body=None)]
        assert fetch_review_comments(pr)[0].body == ""


class TestFetchReviewThreads:
    def test_single_page(self):
        requester = MagicMock()
        requester.graphql_query.return_value = _page([_node("T1", False, 1, 2), _node("T2", True, 3)])
        threads = fetch_review_threads(requester, "octo", "widgets", 5)
        assert [(t.thread_id, t.is_resolved, t.comment_ids) for t in threads] == [
            ("T1", False, (1, 2)),
            ("T2", True, (3,)),
        ]
        _, variables = requester.graphql_query.call_args.args
        assert variables == {"owner": "octo", "name": "widgets", "pr": 5, "cursor": None}

    def test_follows_pagination(self):
        requester = MagicMock()
        requester.graphql_query.side_effect = [
            _page([_node("T1", False, 1)], has_next=True, cursor="c1"),
            _page([_node("T2", False, 2)]),
        ]
        threads = fetch_review_threads(requester, "octo", "widgets", 5)
        assert [t.thread_id for t in threads] == ["T1", "T2"]
        second_vars = requester.graphql_query.call_args_list[1].args[1]
        assert second_vars["cursor"] == "c1"

    def test_follows_comment_pagination_within_a_thread(self):
        first_page = list(range(1, 101))
        node = _node("T1", False, *first_page)
        node["comments"]["pageInfo"] = {"hasNextPage": True, "endCursor": "k1"}

        requester = MagicMock()
        requester.graphql_query.side_effect = [
            _page([node]),
            _thread_page(range(101, 201), has_next=True, cursor="k2"),
            _thread_page([201]),
        ]
        [thread] = fetch_review_threads(requester, "octo", "widgets", 5)
        assert thread.comment_ids == tuple(range(1, 202))
        calls = requester.graphql_query.call_args_list
        assert calls[1].args[1] == {"id": "T1", "cursor": "k1"}
        assert calls[2].args[1] == {"id": "T1", "cursor": "k2"}

    def test_null_nodes_ignored(self):
        requester = MagicMock()
        requester.graphql_query.return_value = _page([None, _node("T1", False, 1)])
        assert [t.thread_id for t in fetch_review_threads(requester, "o", "r", 1)] == ["T1"]

    def test_missing_pull_request_raises(self):
        requester = MagicMock()
        requester.graphql_query.return_value = ({}, {"data": {"repository": {"pullRequest": None}}})
        with pytest.raises(GithubException):
            fetch_review_threads(requester, "o", "r", 1)


class TestThreadLookup:
    def test_finds_thread_containing_comment(self):
        requester = MagicMock()
        requester.graphql_query.return_value = _page([_node("T1", False, 1), _node("T2", True, 7, 8)])
        assert get_thread_id_for_comment(requester, "o", "r", 1, 8) == "T2"

    def test_raises_when_not_found(self):
        requester = MagicMock()
        requester.graphql_query.return_value = _page([_node("T1", False, 1)])
        with pytest.raises(ThreadNotFoundError):
            get_thread_id_for_comment(requester, "o", "r", 1, 99)

    def test_resolve_thread(self):
        requester = MagicMock()
        requester.graphql_query.return_value = (
            {},
            {"data": {"resolveReviewThread": {"thread": {"id": "T1", "isResolved": True}}}},
        )
        assert resolve_thread(requester, "T1") is True
        query, variables = requester.graphql_query.call_args.args
        assert "resolveReviewThread" in query
        assert variables == {"threadId": "T1"}

    def test_unresolve_thread(self):
        requester = MagicMock()
        requester.graphql_query.return_value = (
            {},
            {"data": {"unresolveReviewThread": {"thread": {"id": "T1", "isResolved": False}}}},
        )
        assert unresolve_thread(requester, "T1") is False
        assert "unresolveReviewThread" in requester.graphql_query.call_args.args[0]


class TestGitHubReviewSource:
    def test_fetch_comments(self):
        client = MagicMock()
        pr = client.get_repo.return_value.get_pull.return_value
        pr.get_review_comments.return_value = [_rest_comment(1)]
        comments = GitHubReviewSource(client).fetch_comments("octo", "widgets", 3)
        client.get_repo.assert_called_once_with("octo/widgets")
        client.get_repo.return_value.get_pull.assert_called_once_with(3)
        assert [c.id for c in comments] == [1]

    def test_comment_fetch_error_wrapped(self):
        client = MagicMock()
        client.get_repo.side_effect = GithubException(404, {"message": "Not Found"}, None)
        with pytest.raises(SourceError) as exc:
            GitHubReviewSource(client).fetch_comments("octo", "widgets", 3)
        assert exc.value.source == "comments"
        assert "octo/widgets#3" in str(exc.value)

    def test_fetch_resolution_joins_threads(self):
        client = MagicMock()
        client.requester.graphql_query.return_value = _page([_node("T1", True, 1), _node("T2", False, 2, 3)])
        source = GitHubReviewSource(client)
        assert source.fetch_unresolved_ids("octo", "widgets", 3) == {2, 3}
        state = source.fetch_resolution("octo", "widgets", 3)
        assert not state.is_unresolved(1)
        assert state.thread_for(3) == "T2"

    def test_thread_fetch_error_wrapped(self):
        client = MagicMock()
        client.requester.graphql_query.side_effect = GithubException(401, {"message": "Bad credentials"}, None)
        with pytest.raises(SourceError) as exc:
            GitHubReviewSource(client).fetch_review_threads("octo", "widgets", 3)
        assert exc.value.source == "review threads"
