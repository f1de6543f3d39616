"""Monday.com GraphQL client: lowest level, sends request only. No validation; errors come back as {"error": ...}."""
import json
from typing import Any

import httpx

from artist_dispatch.services.monday.config import MondayConfig

_COLUMN_FIELDS = "id text value type"
_ITEM_FIELDS = f"id name board {{ id }} column_values {{ {_COLUMN_FIELDS} }}"


class MondayClient:
    """Items, board pages, updates (notes) and column writes."""

    def __init__(self, config: MondayConfig | None = None, *, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config or MondayConfig()
        self._transport = transport

    @property
    def config(self) -> MondayConfig:
        return self._config

    def _credentials_error(self) -> dict[str, Any]:
        return {"error": "Monday credentials not configured. Add MONDAY_API_TOKEN to .env."}

    def _post(self, query: str, variables: dict[str, Any] | None = None, *, timeout: float = 20.0) -> dict[str, Any]:
        if not self._config.is_configured():
            return self._credentials_error()
        body = {"query": query, "variables": variables or {}}
        try:
            with httpx.Client(timeout=timeout, transport=self._transport) as c:
                r = c.post(self._config.api_url, json=body, headers=self._config.headers())
        except Exception as e:
            return {"error": str(e)}
        if not r.is_success:
            return {"error": f"Monday API error: {r.status_code}", "detail": (r.text[:500] if r.text else None)}
        try:
            payload = r.json() if r.content else {}
        except Exception:
            return {"error": "Monday API returned non-JSON body", "detail": (r.text[:500] if r.text else None)}
        if payload.get("errors") or payload.get("error_message"):
            return {
                "error": "Monday API returned errors",
                "detail": payload.get("errors") or payload.get("error_message"),
            }
        return payload.get("data") or {}

    def get_item(self, item_id: str) -> dict[str, Any]:
        query = f"query ($ids: [ID!]) {{ items(ids: $ids) {{ {_ITEM_FIELDS} }} }}"
        return self._post(query, {"ids": [str(item_id)]})

    def get_board_items_page(self, board_id: str, *, cursor: str | None = None, limit: int = 100) -> dict[str, Any]:
        """First page via boards.items_page; following pages via next_items_page(cursor)."""
        if cursor:
            query = (
                "query ($cursor: String!, $limit: Int!) { next_items_page(cursor: $cursor, limit: $limit) "
                f"{{ cursor items {{ {_ITEM_FIELDS} }} }} }}"
            )
            return self._post(query, {"cursor": cursor, "limit": limit})
        query = (
            "query ($board: [ID!], $limit: Int!) { boards(ids: $board) { items_page(limit: $limit) "
            f"{{ cursor items {{ {_ITEM_FIELDS} }} }} }} }}"
        )
        return self._post(query, {"board": [str(board_id)], "limit": limit})

    def get_item_updates(self, item_id: str, *, limit: int = 50) -> dict[str, Any]:
        query = (
            "query ($ids: [ID!], $limit: Int!) { items(ids: $ids) "
            "{ id updates(limit: $limit) { id body text_body created_at } } }"
        )
        return self._post(query, {"ids": [str(item_id)], "limit": limit})

    def change_multiple_column_values(self, item_id: str, board_id: str, values: dict[str, Any]) -> dict[str, Any]:
        query = (
            "mutation ($item: ID!, $board: ID!, $values: JSON!) "
            "{ change_multiple_column_values(item_id: $item, board_id: $board, column_values: $values) { id } }"
        )
        return self._post(query, {"item": str(item_id), "board": str(board_id), "values": json.dumps(values)})

    def create_update(self, item_id: str, body: str) -> dict[str, Any]:
        query = "mutation ($item: ID!, $body: String!) { create_update(item_id: $item, body: $body) { id } }"
        return self._post(query, {"item": str(item_id), "body": body})
