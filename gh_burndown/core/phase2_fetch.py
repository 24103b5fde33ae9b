"""
Phase 2: ボードアイテム取得
GitHub Projects (V2) のアイテムを取得し、BoardItem に変換する。
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..lib.github_client import GitHubClient
from .types import AuthContext, BoardData, BoardItem, ContentType

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """ボードデータ取得時のエラー"""
    pass


def fetch_board_data(
    auth: AuthContext,
    board_id: str,
    max_pages: int = 1,
    estimate_field: str = "Estimate",
    client: Optional[GitHubClient] = None,
    enable_logging: bool = False,
) -> Optional[BoardData]:
    """
    ボードのアイテムを取得する。

    既定では先頭 1 ページ（最大 100 件）のみ取得する。

    Args:
        auth: 認証コンテキスト
        board_id: ProjectV2 のノード ID
        max_pages: 取得する最大ページ数
        estimate_field: ポイントを保持する数値フィールド名
        client: テスト用の差し替えクライアント
        enable_logging: ログ出力を有効化するかどうか

    Returns:
        BoardData、ボードが見つからない場合は None

    Raises:
        FetchError: 通信・認可・GraphQL エラー
    """
    if enable_logging:
        logger.info(f"[Phase 2] Fetching items for board {board_id}")

    if client is None:
        client = GitHubClient(auth.token, api_url=auth.api_url, timeout=auth.timeout)

    code, node, err = client.fetch_project_items(board_id, max_pages=max_pages)
    if code != 200:
        reason = err or f"HTTP {code}"
        raise FetchError(f"GitHub API error: {reason}")
    if err:
        raise FetchError(err)
    if node is None:
        if enable_logging:
            logger.info(f"[Phase 2] Board {board_id} not found")
        return None

    board = parse_board(node, board_id, estimate_field=estimate_field)

    if enable_logging:
        logger.info(f"[Phase 2] Fetched {len(board.items)} items from '{board.title}'")
        if board.truncated:
            logger.warning(
                f"[Phase 2] Board has {board.total_count} items; only {len(board.items)} were fetched"
            )

    return board


def parse_board(node: Dict[str, Any], board_id: str, estimate_field: str = "Estimate") -> BoardData:
    items_conn = node.get("items") or {}
    raw_items = items_conn.get("nodes") or []
    items = [
        parse_item(raw, estimate_field=estimate_field)
        for raw in raw_items
        if isinstance(raw, dict)
    ]
    total = items_conn.get("totalCount")
    return BoardData(
        board_id=str(node.get("id") or board_id),
        title=str(node.get("title") or ""),
        items=items,
        total_count=int(total) if isinstance(total, int) else None,
    )


def parse_item(raw: Dict[str, Any], estimate_field: str = "Estimate") -> BoardItem:
    """GraphQL のアイテムノードを BoardItem に変換する（欠損値は 0 / 空）"""
    content = raw.get("content") or {}
    content_type = ContentType.parse(raw.get("type"))
    if content_type is ContentType.UNKNOWN and content.get("__typename"):
        content_type = _content_type_from_typename(content.get("__typename"))

    labels: frozenset = frozenset()
    if content_type in (ContentType.ISSUE, ContentType.PULL_REQUEST):
        label_nodes = (content.get("labels") or {}).get("nodes") or []
        labels = frozenset(
            str(n.get("name")) for n in label_nodes if isinstance(n, dict) and n.get("name")
        )

    return BoardItem(
        id=str(raw.get("id") or ""),
        created_at=parse_timestamp(raw.get("createdAt")),
        closed_at=parse_timestamp(content.get("closedAt")),
        estimate_points=_extract_estimate(raw, estimate_field),
        labels=labels,
        body_text=content.get("body") or None,
        content_type=content_type,
        title=content.get("title"),
    )


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _content_type_from_typename(typename: str) -> ContentType:
    return {
        "Issue": ContentType.ISSUE,
        "PullRequest": ContentType.PULL_REQUEST,
        "DraftIssue": ContentType.DRAFT_ISSUE,
    }.get(typename, ContentType.UNKNOWN)


def _extract_estimate(raw: Dict[str, Any], estimate_field: str) -> float:
    field_values = (raw.get("fieldValues") or {}).get("nodes") or []
    for fv in field_values:
        if not isinstance(fv, dict):
            continue
        name = (fv.get("field") or {}).get("name")
        if name != estimate_field:
            continue
        try:
            return float(fv.get("number") or 0.0)
        except (TypeError, ValueError):
            return 0.0
    return 0.0
