"""Monday.com booking source. Validation and parsing here; client below just sends the request."""
import logging
from typing import Any, Iterator

from artist_dispatch.core.board_config import BoardConfig
from artist_dispatch.core.constants import BOARD_MAX_PAGES, BOARD_PAGE_SIZE
from artist_dispatch.core.enums import ServiceCategory
from artist_dispatch.core.errors import BookingSourceError
from artist_dispatch.services.monday.base import BookingSource
from artist_dispatch.services.monday.client import MondayClient
from artist_dispatch.services.monday.config import MondayConfig
from artist_dispatch.services.monday.types import BoardItem, BoardPage, ClientBooking, ColumnValue, ItemNote

logger = logging.getLogger(__name__)

__all__ = [
    "BoardItem",
    "BoardPage",
    "BookingSource",
    "ClientBooking",
    "ColumnValue",
    "ItemNote",
    "MondayBookingSource",
    "get_booking_source",
    "parse_client_booking",
]


def _raise_on_error(raw: dict[str, Any], what: str) -> dict[str, Any]:
    if raw.get("error"):
        detail = raw.get("detail")
        msg = f"{what}: {raw['error']}" + (f" ({detail})" if detail else "")
        raise BookingSourceError(msg)
    return raw


class MondayBookingSource:
    """BookingSource over the Monday.com GraphQL API."""

    def __init__(self, client: MondayClient | None = None) -> None:
        self._client = client or MondayClient()

    def get_item(self, item_id: str) -> BoardItem:
        raw = _raise_on_error(self._client.get_item(item_id), f"get item {item_id}")
        items = raw.get("items") or []
        if not items:
            raise BookingSourceError(f"Board item {item_id} not found")
        return BoardItem.from_api(items[0])

    def get_board_items(self, board_id: str, cursor: str | None = None) -> BoardPage:
        raw = _raise_on_error(
            self._client.get_board_items_page(board_id, cursor=cursor, limit=BOARD_PAGE_SIZE),
            f"board {board_id} items",
        )
        if cursor:
            page = raw.get("next_items_page") or {}
        else:
            boards = raw.get("boards") or []
            if not boards:
                raise BookingSourceError(f"Board {board_id} not found")
            page = boards[0].get("items_page") or {}
        items = [BoardItem.from_api(i) for i in page.get("items") or []]
        return BoardPage(items, page.get("cursor") or None)

    def iter_board_items(self, board_id: str) -> Iterator[BoardItem]:
        cursor = None
        for _ in range(BOARD_MAX_PAGES):
            page = self.get_board_items(board_id, cursor=cursor)
            yield from page.items
            if not page.cursor:
                return
            cursor = page.cursor
        logger.warning("Board %s: stopped after %s pages (cap)", board_id, BOARD_MAX_PAGES)

    def get_item_notes(self, item_id: str) -> list[ItemNote]:
        raw = _raise_on_error(self._client.get_item_updates(item_id), f"notes of item {item_id}")
        items = raw.get("items") or []
        if not items:
            return []
        out = []
        for u in items[0].get("updates") or []:
            text = (u.get("text_body") or u.get("body") or "").strip()
            if text:
                out.append(ItemNote(id=str(u.get("id") or ""), text=text, created_at=u.get("created_at")))
        return out

    def _board_for(self, item_id: str) -> str:
        board_id = self._client.config.clients_board_id
        if board_id:
            return board_id
        item = self.get_item(item_id)
        if not item.board_id:
            raise BookingSourceError(f"Board of item {item_id} unknown")
        return item.board_id

    def set_field(self, item_id: str, field_key: str, value: Any) -> None:
        self.set_fields(item_id, {field_key: value})

    def set_fields(self, item_id: str, values: dict[str, Any]) -> None:
        if not values:
            return
        board_id = self._board_for(item_id)
        _raise_on_error(
            self._client.change_multiple_column_values(item_id, board_id, values),
            f"set fields {sorted(values)} on item {item_id}",
        )

    def append_note(self, item_id: str, text: str) -> None:
        if not (text or "").strip():
            return
        _raise_on_error(self._client.create_update(item_id, text), f"append note to item {item_id}")


def parse_client_booking(item: BoardItem, category: ServiceCategory, board_config: BoardConfig) -> ClientBooking:
    """Client fields for one category from a clients-board item."""
    status_column = board_config.columns_for(category).status_column
    date_col = item.column(board_config.event_date_column)
    email = item.text(board_config.email_column) or None
    return ClientBooking(
        item_id=item.id,
        category=category.value,
        client_name=item.text(board_config.client_name_column) or item.name or "Client",
        client_email=email.lower() if email else None,
        event_date=date_col.as_date() if date_col else None,
        venue=item.text(board_config.venue_column) or None,
        description=item.text(board_config.description_column) or None,
        status=item.text(status_column) or None,
    )


default_source: MondayBookingSource | None = None


def get_booking_source() -> BookingSource:
    """Process-wide Monday source. FastAPI dependency (override in tests)."""
    global default_source
    if default_source is None:
        default_source = MondayBookingSource(MondayClient(MondayConfig()))
    return default_source
