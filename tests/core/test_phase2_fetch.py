"""Unit tests for Phase 2: Board item fetch"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from gh_burndown.core.phase2_fetch import (
    FetchError,
    fetch_board_data,
    parse_board,
    parse_item,
    parse_timestamp,
)
from gh_burndown.core.types import AuthContext, ContentType


def _board_node(items, total=None, title="Sprint Board"):
    return {
        "id": "PVT_1",
        "title": title,
        "items": {
            "totalCount": len(items) if total is None else total,
            "pageInfo": {"hasNextPage": False, "endCursor": None},
            "nodes": items,
        },
    }


class TestParseItem:
    """parse_item() のテスト"""

    def test_issue_with_estimate_and_labels(self, node_factory):
        raw = node_factory("a", points=5, closed_at="2024-01-05T10:00:00Z", labels=["sprint-1", "bug"], body="hi")
        item = parse_item(raw)

        assert item.id == "a"
        assert item.content_type is ContentType.ISSUE
        assert item.estimate_points == 5.0
        assert item.labels == frozenset({"sprint-1", "bug"})
        assert item.closed_at == datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)
        assert item.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert item.body_text == "hi"
        assert item.title == "a"

    def test_missing_estimate_is_zero(self, node_factory):
        item = parse_item(node_factory("a"))
        assert item.estimate_points == 0.0

    def test_custom_estimate_field(self, node_factory):
        raw = node_factory("a")
        raw["fieldValues"]["nodes"].append({"field": {"name": "Points"}, "number": 8})
        assert parse_item(raw, estimate_field="Points").estimate_points == 8.0
        assert parse_item(raw).estimate_points == 0.0

    def test_draft_issue_has_no_labels(self, node_factory):
        item = parse_item(node_factory("d", points=2, item_type="DRAFT_ISSUE", body="<closed-at>2024-01-05</closed-at>"))
        assert item.content_type is ContentType.DRAFT_ISSUE
        assert item.labels == frozenset()
        assert item.closed_at is None
        assert item.body_text == "<closed-at>2024-01-05</closed-at>"
        assert item.has_labels is False

    def test_pull_request(self, node_factory):
        item = parse_item(node_factory("p", points=1, labels=["sprint-1"], item_type="PULL_REQUEST"))
        assert item.content_type is ContentType.PULL_REQUEST
        assert "sprint-1" in item.labels

    def test_type_falls_back_to_typename(self, node_factory):
        raw = node_factory("a", labels=["x"])
        raw["type"] = "REDACTED"
        item = parse_item(raw)
        assert item.content_type is ContentType.ISSUE
        assert item.labels == frozenset({"x"})

    def test_empty_body_is_none(self, node_factory):
        assert parse_item(node_factory("a", body="")).body_text is None

    def test_redacted_content(self):
        item = parse_item({"id": "x", "type": "REDACTED", "content": None})
        assert item.content_type is ContentType.UNKNOWN
        assert item.labels == frozenset()
        assert item.estimate_points == 0.0


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-05T10:00:00Z", datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)),
        ("2024-01-05T10:00:00", datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)),
        ("not a time", None),
        (None, None),
    ],
)
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


class TestParseBoard:

    def test_truncated_board(self, node_factory):
        board = parse_board(_board_node([node_factory("a")], total=250), "PVT_1")
        assert board.title == "Sprint Board"
        assert len(board.items) == 1
        assert board.truncated is True
        assert board.to_dict()["totalCount"] == 250

    def test_complete_board(self, node_factory):
        board = parse_board(_board_node([node_factory("a"), node_factory("b")]), "PVT_1")
        assert board.truncated is False


class TestFetchBoardData:
    """fetch_board_data() のテスト"""

    def setup_method(self):
        self.auth = AuthContext(token="ghp_x")

    def test_success(self, node_factory):
        client = MagicMock()
        client.fetch_project_items.return_value = (200, _board_node([node_factory("a", points=3)]), "")

        board = fetch_board_data(self.auth, "PVT_1", max_pages=2, client=client, enable_logging=True)

        client.fetch_project_items.assert_called_once_with("PVT_1", max_pages=2)
        assert board.board_id == "PVT_1"
        assert board.items[0].estimate_points == 3.0

    def test_not_found_returns_none(self):
        client = MagicMock()
        client.fetch_project_items.return_value = (200, None, "")
        assert fetch_board_data(self.auth, "PVT_missing", client=client) is None

    def test_http_error(self):
        client = MagicMock()
        client.fetch_project_items.return_value = (401, None, "Bad credentials")
        with pytest.raises(FetchError, match="GitHub API error: Bad credentials"):
            fetch_board_data(self.auth, "PVT_1", client=client)

    def test_network_error(self):
        client = MagicMock()
        client.fetch_project_items.return_value = (0, None, "")
        with pytest.raises(FetchError, match="HTTP 0"):
            fetch_board_data(self.auth, "PVT_1", client=client)

    def test_graphql_error(self):
        client = MagicMock()
        client.fetch_project_items.return_value = (200, None, "GraphQL error: Something broke")
        with pytest.raises(FetchError, match="Something broke"):
            fetch_board_data(self.auth, "PVT_1", client=client)

    def test_builds_client_from_auth(self, mocker):
        client_cls = mocker.patch("gh_burndown.core.phase2_fetch.GitHubClient")
        client_cls.return_value.fetch_project_items.return_value = (200, None, "")
        auth = AuthContext(token="ghp_x", api_url="https://ghe.example/api/graphql", timeout=5)

        fetch_board_data(auth, "PVT_1")

        client_cls.assert_called_once_with("ghp_x", api_url="https://ghe.example/api/graphql", timeout=5)
