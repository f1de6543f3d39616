"""Protocol for the external booking source. The Monday.com implementation lives in __init__; tests pass fakes."""
from typing import Any, Iterator, Protocol

from artist_dispatch.services.monday.types import BoardItem, BoardPage, ItemNote


class BookingSource(Protocol):
    """Read client bookings and notes; write status-like fields and notes. Failures raise BookingSourceError."""

    def get_item(self, item_id: str) -> BoardItem:
        ...

    def get_board_items(self, board_id: str, cursor: str | None = None) -> BoardPage:
        ...

    def iter_board_items(self, board_id: str) -> Iterator[BoardItem]:
        """All items of a board, following cursors until exhausted."""
        ...

    def get_item_notes(self, item_id: str) -> list[ItemNote]:
        ...

    def set_field(self, item_id: str, field_key: str, value: Any) -> None:
        ...

    def set_fields(self, item_id: str, values: dict[str, Any]) -> None:
        ...

    def append_note(self, item_id: str, text: str) -> None:
        ...
