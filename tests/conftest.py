import shutil
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import pytest

from gh_burndown.core.types import BoardItem, ContentType, EnvironmentConfig


@pytest.fixture()
def temp_output_dir(monkeypatch):
    d = tempfile.mkdtemp(prefix="ghbtest-")
    monkeypatch.setenv("OUTPUT_DIR", d)
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture()
def fake_env(monkeypatch):
    # Keep host configuration out of the tests
    for key in (
        "ENV_GITHUB_TOKEN",
        "ENV_PROJECT_WHITE_LIST",
        "BURNDOWN_TZ",
        "BURNDOWN_LOOKBACK_DAYS",
        "STRICT_DATE_INPUT",
        "CHART_RETENTION_HOURS",
        "SLACK_BOT_TOKEN",
        "SLACK_SIGNING_SECRET",
        "IMAGE_FORMAT",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BURNDOWN_LOG", "0")
    return True


@pytest.fixture()
def config(temp_output_dir):
    return EnvironmentConfig(
        output_dir=str(temp_output_dir),
        github_token="server-token",
        project_whitelist=["PVT_public"],
        burndown_log=False,
    )


def make_item(
    item_id: str = "item",
    points: float = 0.0,
    closed: Optional[object] = None,
    labels: Iterable[str] = (),
    body: Optional[str] = None,
    content_type: ContentType = ContentType.ISSUE,
) -> BoardItem:
    """テスト用の BoardItem（closed は date か datetime）"""
    closed_at = None
    if isinstance(closed, datetime):
        closed_at = closed
    elif isinstance(closed, date):
        closed_at = datetime(closed.year, closed.month, closed.day, 12, 0, tzinfo=timezone.utc)
    return BoardItem(
        id=item_id,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        closed_at=closed_at,
        estimate_points=points,
        labels=frozenset(labels),
        body_text=body,
        content_type=content_type,
    )


def make_item_node(
    item_id: str,
    points: Optional[float] = None,
    closed_at: Optional[str] = None,
    labels: Iterable[str] = (),
    body: str = "",
    item_type: str = "ISSUE",
) -> dict:
    """GraphQL のアイテムノード"""
    field_values = []
    if points is not None:
        field_values.append({"field": {"name": "Estimate"}, "number": points})
    field_values.append({"field": {"name": "Status"}})
    if item_type == "DRAFT_ISSUE":
        content = {"__typename": "DraftIssue", "id": f"DI_{item_id}", "title": item_id, "body": body}
    else:
        content = {
            "__typename": "Issue" if item_type == "ISSUE" else "PullRequest",
            "id": f"I_{item_id}",
            "title": item_id,
            "body": body,
            "createdAt": "2024-01-01T00:00:00Z",
            "closedAt": closed_at,
            "labels": {"nodes": [{"name": n} for n in labels]},
        }
    return {
        "id": item_id,
        "createdAt": "2024-01-01T00:00:00Z",
        "type": item_type,
        "fieldValues": {"nodes": field_values},
        "content": content,
    }


@pytest.fixture()
def item_factory():
    return make_item


@pytest.fixture()
def node_factory():
    return make_item_node
