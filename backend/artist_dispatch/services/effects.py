"""
External side effects queued during a transaction and run after commit.

Engine and sweeper functions return a list of these instead of calling the gateway,
so a push or board write never runs inside (or rolls back) the database transaction.
"""
import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from artist_dispatch.core.enums import Automation, ServiceCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotifyArtists:
    """Push 'new proposal' to these artists."""
    artist_ids: tuple[int, ...]
    client_name: str
    category: ServiceCategory
    event_date: date | None = None


@dataclass(frozen=True)
class TriggerAutomation:
    """Write the email-automation label on the client's board item."""
    batch_id: int
    monday_item_id: str
    category: ServiceCategory
    automation: Automation


def run_effects(db: Session, gateway, effects) -> list[str]:
    """
    Run effects best-effort, in order. Returns error strings (empty when all succeeded).
    Call only after the transaction that queued them has committed.
    """
    errors: list[str] = []
    for effect in effects:
        try:
            if isinstance(effect, NotifyArtists):
                gateway.notify_artists(
                    db,
                    list(effect.artist_ids),
                    client_name=effect.client_name,
                    category=effect.category,
                    event_date=effect.event_date,
                )
            elif isinstance(effect, TriggerAutomation):
                gateway.trigger_automation(effect.monday_item_id, effect.category, effect.automation)
            else:
                raise TypeError(f"Unknown effect {type(effect).__name__}")
        except Exception as e:
            logger.warning("Effect %s failed: %s", type(effect).__name__, e, exc_info=True)
            if isinstance(effect, TriggerAutomation):
                errors.append(f"batch {effect.batch_id}: automation '{effect.automation.value}' failed: {e}")
            else:
                errors.append(f"{type(effect).__name__} failed: {e}")
    return errors
