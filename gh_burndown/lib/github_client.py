import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from .queries import PROJECT_ITEMS_QUERY

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com/graphql"
ITEMS_PAGE_SIZE = 100


class GitHubClient:
    def __init__(self, token: str, api_url: str = DEFAULT_API_URL, timeout: float = 30) -> None:
        self.api_url = api_url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
        })

    def __repr__(self) -> str:
        return f"GitHubClient(api_url={self.api_url}, auth=***)"

    # --- HTTP helpers ---
    def api_post(self, body: Dict[str, Any]) -> Tuple[int, Optional[Dict[str, Any]], str]:
        try:
            r = self.session.post(self.api_url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            return 0, None, str(e)
        if r.status_code == 200:
            try:
                return 200, r.json(), ""
            except (json.JSONDecodeError, ValueError):
                return 200, None, "failed to decode JSON response"
        return r.status_code, None, r.text

    @staticmethod
    def _format_graphql_errors(errors: Any) -> str:
        if isinstance(errors, list) and errors:
            messages = [str((e or {}).get("message") or e) for e in errors]
            return "; ".join(m for m in messages if m)
        return json.dumps(errors)

    @staticmethod
    def _only_not_found(errors: Any) -> bool:
        if not isinstance(errors, list) or not errors:
            return False
        return all(isinstance(e, dict) and e.get("type") == "NOT_FOUND" for e in errors)

    def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Tuple[int, Optional[Dict[str, Any]], str]:
        """Run a GraphQL document and return ``(status, data, error)``.

        GraphQL-level errors are reported with the HTTP status GitHub sent
        (200) but no data, so callers only need to check ``data``.
        """
        code, payload, err = self.api_post({"query": query, "variables": variables or {}})
        if code != 200 or payload is None:
            return code, None, err or "empty response"
        errors = payload.get("errors")
        if errors and self._only_not_found(errors):
            # Unknown node ids come back as NOT_FOUND errors with a null node
            return code, payload.get("data") or {"node": None}, ""
        if errors:
            return code, None, f"GraphQL error: {self._format_graphql_errors(payload['errors'])}"
        return code, payload.get("data") or {}, ""

    # --- Project items ---
    def fetch_project_page(
        self,
        project_id: str,
        cursor: Optional[str] = None,
        page_size: int = ITEMS_PAGE_SIZE,
    ) -> Tuple[int, Optional[Dict[str, Any]], str]:
        variables = {
            "projectId": project_id,
            "itemsCursor": cursor,
            "pageSize": max(1, min(page_size, ITEMS_PAGE_SIZE)),
        }
        code, data, err = self.graphql(PROJECT_ITEMS_QUERY, variables)
        if data is None:
            return code, None, err
        return code, data.get("node"), ""

    def fetch_project_items(self, project_id: str, max_pages: int = 1) -> Tuple[int, Optional[Dict[str, Any]], str]:
        """Fetch a ProjectV2 node with up to ``max_pages`` pages of items.

        The returned node has the shape of a single page: all fetched item
        nodes are merged into ``node["items"]["nodes"]`` and ``pageInfo`` is
        taken from the last page read. A ``None`` node with status 200 means
        the id did not resolve to a project.
        """
        code, node, err = self.fetch_project_page(project_id)
        if node is None or "items" not in node:
            return code, None, err

        items = node.get("items") or {}
        nodes: List[Dict[str, Any]] = list(items.get("nodes") or [])
        page_info = items.get("pageInfo") or {}
        seen_cursors: set[str] = set()
        pages = 1
        while pages < max_pages and page_info.get("hasNextPage"):
            cursor = page_info.get("endCursor")
            if not cursor or cursor in seen_cursors:
                break
            seen_cursors.add(cursor)
            code, page, err = self.fetch_project_page(project_id, cursor)
            if page is None:
                return code, None, err
            page_items = page.get("items") or {}
            nodes.extend(page_items.get("nodes") or [])
            page_info = page_items.get("pageInfo") or {}
            pages += 1

        if page_info.get("hasNextPage"):
            logger.warning(
                f"Project {project_id} has more items than fetched "
                f"({len(nodes)}/{items.get('totalCount')}); remaining pages are ignored"
            )
        node["items"] = {
            "totalCount": items.get("totalCount"),
            "pageInfo": page_info,
            "nodes": nodes,
        }
        return 200, node, ""
