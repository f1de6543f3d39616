"""
Typed shapes for Monday.com items.

The API returns items as {id, name, board: {id}, column_values: [{id, text, value, type}]}
where value is a JSON string (status: {"index": 1, "label": ...}, date: {"date": "2026-06-14"},
board relation: {"linkedPulseIds": [{"linkedPulseId": 123}]}). We wrap them so callers
never touch the raw JSON.
"""
import json
from datetime import date, datetime
from typing import Any


class ColumnValue:
    """One column of an item."""

    __slots__ = ("id", "text", "value", "type")

    def __init__(self, *, id: str, text: str | None = None, value: Any = None, type: str | None = None):
        self.id = id
        self.text = text
        self.value = value
        self.type = type

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "ColumnValue":
        value = raw.get("value")
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                pass
        return cls(id=str(raw.get("id") or ""), text=raw.get("text"), value=value, type=raw.get("type"))

    def as_text(self) -> str:
        """Display text; status columns fall back to value.label."""
        if self.text:
            return str(self.text).strip()
        if isinstance(self.value, dict):
            label = self.value.get("label")
            if isinstance(label, dict):
                label = label.get("text")
            if label:
                return str(label).strip()
        return ""

    def as_date(self) -> date | None:
        raw = None
        if isinstance(self.value, dict):
            raw = self.value.get("date")
        raw = raw or self.text
        if not raw:
            return None
        s = str(raw).strip()[:10]
        try:
            return date.fromisoformat(s)
        except ValueError:
            pass
        for fmt in ("%d/%m/%Y", "%m/%d/%Y"):
            try:
                return datetime.strptime(s, fmt).date()
            except ValueError:
                continue
        return None

    def linked_item_ids(self) -> list[str]:
        """Item ids of a connect-boards column."""
        if not isinstance(self.value, dict):
            return []
        out = []
        for entry in self.value.get("linkedPulseIds") or []:
            pid = entry.get("linkedPulseId") if isinstance(entry, dict) else entry
            if pid is not None:
                out.append(str(pid))
        return out


class BoardItem:
    """One item (row) on a board."""

    __slots__ = ("id", "name", "board_id", "columns")

    def __init__(self, *, id: str, name: str = "", board_id: str | None = None, columns: dict[str, ColumnValue] | None = None):
        self.id = id
        self.name = name
        self.board_id = board_id
        self.columns = columns or {}

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "BoardItem":
        cols = [ColumnValue.from_api(c) for c in raw.get("column_values") or []]
        board = raw.get("board") or {}
        return cls(
            id=str(raw.get("id") or ""),
            name=(raw.get("name") or "").strip(),
            board_id=str(board["id"]) if board.get("id") is not None else None,
            columns={c.id: c for c in cols},
        )

    def column(self, column_id: str | None) -> ColumnValue | None:
        if not column_id:
            return None
        return self.columns.get(column_id)

    def text(self, column_id: str | None) -> str:
        col = self.column(column_id)
        return col.as_text() if col else ""


class BoardPage:
    """One page of board items plus the cursor for the next (None when exhausted)."""

    __slots__ = ("items", "cursor")

    def __init__(self, items: list[BoardItem], cursor: str | None = None):
        self.items = items
        self.cursor = cursor


class ItemNote:
    """An update (free-text note) on an item, newest first as the API returns them."""

    __slots__ = ("id", "text", "created_at")

    def __init__(self, *, id: str, text: str, created_at: str | None = None):
        self.id = id
        self.text = text
        self.created_at = created_at


class ClientBooking:
    """Client fields for one category, read from a board item."""

    __slots__ = ("item_id", "category", "client_name", "client_email", "event_date", "venue", "description", "status")

    def __init__(
        self,
        *,
        item_id: str,
        category: str,
        client_name: str,
        client_email: str | None = None,
        event_date: date | None = None,
        venue: str | None = None,
        description: str | None = None,
        status: str | None = None,
    ):
        self.item_id = item_id
        self.category = category
        self.client_name = client_name
        self.client_email = client_email
        self.event_date = event_date
        self.venue = venue
        self.description = description
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "category": self.category,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "event_date": self.event_date.isoformat() if self.event_date else None,
            "venue": self.venue,
            "description": self.description,
            "status": self.status,
        }
