"""
Notification gateway: artist pushes and the board's email automation.

The automation is a column write on the client's board item ("Send options" /
"Send no availability"); the board's own automation sends the email.
Callers run these after commit (see effects.run_effects).
"""
import logging
from datetime import date

from sqlalchemy.orm import Session

from artist_dispatch.core.board_config import BoardConfig, get_board_config
from artist_dispatch.core.enums import Automation, ServiceCategory
from artist_dispatch.core.errors import BookingSourceError, NotificationError
from artist_dispatch.services.monday import BookingSource, get_booking_source
from artist_dispatch.services.push import send_new_proposal_notification, send_push_to_category

logger = logging.getLogger(__name__)


class NotificationGateway:
    def __init__(self, source: BookingSource, board_config: BoardConfig) -> None:
        self._source = source
        self._board_config = board_config

    def notify_artists(
        self,
        db: Session,
        artist_ids: list[int],
        *,
        client_name: str,
        category: ServiceCategory,
        event_date: date | None = None,
    ) -> int:
        return send_new_proposal_notification(db, artist_ids, client_name, category, event_date)

    def notify_category(self, db: Session, category: ServiceCategory, title: str, body: str) -> int:
        return send_push_to_category(db, category, title, body)

    def trigger_automation(self, monday_item_id: str, category: ServiceCategory, automation: Automation) -> None:
        """Set the email-automation column. Raises NotificationError on any failure."""
        column = self._board_config.columns_for(category).automation_column
        if not column:
            raise NotificationError("Email automation column not configured (MONDAY_EMAIL_AUTOMATION_COLUMN_ID)")
        try:
            self._source.set_fields(monday_item_id, {column: automation.value})
        except BookingSourceError as e:
            raise NotificationError(f"Could not set '{automation.value}' on item {monday_item_id}: {e}") from e
        logger.info("Automation '%s' set on item %s (%s)", automation.value, monday_item_id, category.value)


_gateway: NotificationGateway | None = None


def get_notification_gateway() -> NotificationGateway:
    """Process-wide gateway over the Monday source. FastAPI dependency (override in tests)."""
    global _gateway
    if _gateway is None:
        _gateway = NotificationGateway(get_booking_source(), get_board_config())
    return _gateway
