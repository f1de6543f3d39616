"""
Monday.com webhook intake: turn board events into batches.

Status column changes (per category, compared with normalize_status):
  undecided - inquire availabilities        -> BROADCAST to every active artist (UNDECIDED)
  travelling fee + inquire the artist       -> SINGLE to the chosen artist linked on the item (CHOSEN_ARTIST);
                                               tier-priority SINGLE when no linked artist is known locally
  inquire second option (MUA) /
  travelling fee + inquire second option (HS) -> BROADCAST to every active artist except the one named in the
                                               latest "copy paste para whatsapp de <name>" note (SECOND_OPTION)
New items on the clients board already in the travelling status get a SINGLE batch for the artist named in notes.

Board read failures while creating the record fall back to a category-wide push so artists still hear about
the client. Nothing here raises to the route: the board must always get a 200.
"""
import json
import logging
import time
from typing import Any, Callable

from sqlalchemy.orm import Session

from artist_dispatch.core.board_config import (
    TRIGGER_SECOND_OPTION,
    TRIGGER_TRAVELLING,
    TRIGGER_UNDECIDED,
    BoardConfig,
)
from artist_dispatch.core.constants import (
    AUDIT_MARKED_UNDECIDED,
    ENTITY_CLIENT_SERVICE,
    NOTE_LOOKUP_DELAY_SECONDS,
    NOTE_LOOKUP_RETRIES,
    SYSTEM_ACTOR,
)
from artist_dispatch.core.enums import BatchMode, BatchStartReason, ServiceCategory
from artist_dispatch.core.errors import BookingSourceError, DispatchError, DuplicateOpenBatchError
from artist_dispatch.models.client_service import ClientService
from artist_dispatch.services.artist_directory import (
    get_artist_by_email,
    get_artist_by_monday_item,
    select_eligible_artists,
)
from artist_dispatch.services.audit import log_audit
from artist_dispatch.services.client_records import upsert_client_service
from artist_dispatch.services.effects import run_effects
from artist_dispatch.services.monday import BoardItem, BookingSource, parse_client_booking
from artist_dispatch.services.proposal_engine import BatchCreated, create_batch

logger = logging.getLogger(__name__)

FALLBACK_PUSH_TITLE = "New proposal available"
FALLBACK_PUSH_BODY = "A new client needs availability ({category})."

_CREATE_EVENTS = ("create_pulse", "create_item")


def _event_item_id(event: dict[str, Any]) -> str | None:
    """Recipes send the item as itemId, pulseId, item_id or pulse_id."""
    for key in ("itemId", "pulseId", "item_id", "pulse_id"):
        raw = event.get(key)
        if isinstance(raw, (int, str)) and str(raw).strip() and str(raw).strip() != "0":
            return str(raw).strip()
    return None


def _label(value: Any) -> str:
    """Status text from an event value: {"label": {"text": ...}}, {"label": "..."}, {"text": ...} or a JSON string."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return value
    if not isinstance(value, dict):
        return ""
    label = value.get("label")
    if isinstance(label, dict):
        label = label.get("text")
    return str(label or value.get("text") or "")


def _fallback_push(db: Session, gateway, category: ServiceCategory) -> int:
    try:
        return gateway.notify_category(
            db, category, FALLBACK_PUSH_TITLE, FALLBACK_PUSH_BODY.format(category=category.value)
        )
    except Exception as e:
        logger.warning("Fallback push to %s failed: %s", category.value, e, exc_info=True)
        return 0


def _fetch_and_upsert(
    db: Session, source: BookingSource, item_id: str, category: ServiceCategory, board_config: BoardConfig
) -> tuple[BoardItem, ClientService]:
    item = source.get_item(item_id)
    record = upsert_client_service(db, parse_client_booking(item, category, board_config), actor=SYSTEM_ACTOR)
    return item, record


def _named_artist_email(
    source: BookingSource,
    item_id: str,
    category: ServiceCategory,
    board_config: BoardConfig,
    sleep: Callable[[float], None],
) -> str | None:
    """Artist named in the item's whatsapp note; retried because the note can land after the event."""
    for attempt in range(1, NOTE_LOOKUP_RETRIES + 1):
        try:
            notes = source.get_item_notes(item_id)
        except BookingSourceError as e:
            logger.warning("Notes of item %s unreadable (attempt %s): %s", item_id, attempt, e)
            notes = []
        for note in notes:
            email = board_config.find_named_artist_email(note.text, category)
            if email:
                return email
        if attempt < NOTE_LOOKUP_RETRIES:
            sleep(NOTE_LOOKUP_DELAY_SECONDS)
    return None


def _open(db: Session, gateway, record: ClientService, mode: BatchMode, reason: BatchStartReason, **kwargs) -> dict:
    created: BatchCreated = create_batch(db, record.id, mode, reason, actor=SYSTEM_ACTOR, **kwargs)
    errors = run_effects(db, gateway, created.effects)
    return {
        "success": True,
        "client_service_id": record.id,
        "batch_id": created.batch_id,
        "mode": mode.value,
        "proposal_count": created.proposal_count,
        "errors": errors,
    }


def _on_undecided(db, source, gateway, item_id, category, board_config, sleep) -> dict:
    try:
        _, record = _fetch_and_upsert(db, source, item_id, category, board_config)
    except BookingSourceError as e:
        logger.warning("Undecided %s item %s: board read failed (%s); fallback push", category.value, item_id, e)
        return {"success": True, "note": "fallback push", "pushed": _fallback_push(db, gateway, category)}
    # A repeated event raises DuplicateOpenBatchError here and leaves no audit row
    out = _open(db, gateway, record, BatchMode.BROADCAST, BatchStartReason.UNDECIDED)
    try:
        log_audit(
            db,
            action=AUDIT_MARKED_UNDECIDED,
            entity_type=ENTITY_CLIENT_SERVICE,
            entity_id=record.id,
            client_service_id=record.id,
            details={"monday_item_id": item_id, "category": category.value, "batch_id": out["batch_id"]},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return out


def _on_travelling(db, source, gateway, item_id, category, board_config, sleep) -> dict:
    try:
        item, record = _fetch_and_upsert(db, source, item_id, category, board_config)
    except BookingSourceError as e:
        logger.warning("Travelling %s item %s: board read failed (%s); fallback push", category.value, item_id, e)
        return {"success": True, "note": "fallback push", "pushed": _fallback_push(db, gateway, category)}
    chosen_column = board_config.columns_for(category).chosen_artist_column
    col = item.column(chosen_column)
    artist = None
    for linked_id in (col.linked_item_ids() if col else []):
        candidate = get_artist_by_monday_item(db, linked_id)
        if candidate and candidate.active and candidate.category == category.value:
            artist = candidate
            break
    if artist is None:
        logger.warning(
            "Travelling %s item %s: chosen artist not found locally (column %r); using tier priority",
            category.value, item_id, chosen_column,
        )
        return _open(db, gateway, record, BatchMode.SINGLE, BatchStartReason.CHOSEN_ARTIST)
    return _open(db, gateway, record, BatchMode.SINGLE, BatchStartReason.CHOSEN_ARTIST, artist_ids=[artist.id])


def _on_second_option(db, source, gateway, item_id, category, board_config, sleep) -> dict:
    excluded_email = _named_artist_email(source, item_id, category, board_config, sleep)
    excluded = get_artist_by_email(db, excluded_email) if excluded_email else None
    targets = select_eligible_artists(
        db, category, BatchMode.BROADCAST, exclude_ids=[excluded.id] if excluded else []
    )
    if not targets:
        logger.info("Second option %s item %s: no active artists after exclusion", category.value, item_id)
        return {"success": True, "note": "no artists after exclusion"}
    try:
        _, record = _fetch_and_upsert(db, source, item_id, category, board_config)
    except BookingSourceError as e:
        logger.warning("Second option %s item %s: board read failed (%s); fallback push", category.value, item_id, e)
        return {"success": True, "note": "fallback push", "pushed": _fallback_push(db, gateway, category)}
    out = _open(
        db, gateway, record, BatchMode.BROADCAST, BatchStartReason.SECOND_OPTION,
        artist_ids=[a.id for a in targets],
    )
    out["excluded_email"] = excluded_email
    return out


_HANDLERS = {
    TRIGGER_UNDECIDED: _on_undecided,
    TRIGGER_TRAVELLING: _on_travelling,
    TRIGGER_SECOND_OPTION: _on_second_option,
}


def _on_item_created(db, source, gateway, event, board_config, sleep) -> dict:
    item_id = _event_item_id(event)
    board_id = str(event.get("boardId") or "")
    if not item_id:
        return {"success": True, "note": "create without item id ignored"}
    if board_config.clients_board_id and board_id and board_id != board_config.clients_board_id:
        return {"success": True, "note": "create on other board ignored"}
    item = source.get_item(item_id)
    category = None
    for cat in board_config.columns:
        if board_config.match_trigger(cat, item.text(board_config.columns_for(cat).status_column)) == TRIGGER_TRAVELLING:
            category = cat
            break
    if category is None:
        return {"success": True, "note": "create without travelling status ignored"}
    email = _named_artist_email(source, item_id, category, board_config, sleep)
    artist = get_artist_by_email(db, email, category) if email else None
    if artist is None or not artist.active:
        logger.info("Created item %s (%s): no named active artist in notes (%s)", item_id, category.value, email)
        return {"success": True, "note": "no chosen artist"}
    record = upsert_client_service(db, parse_client_booking(item, category, board_config), actor=SYSTEM_ACTOR)
    return _open(db, gateway, record, BatchMode.SINGLE, BatchStartReason.CHOSEN_ARTIST, artist_ids=[artist.id])


def handle_board_event(
    db: Session,
    source: BookingSource,
    gateway,
    payload: dict[str, Any],
    board_config: BoardConfig,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Handle one webhook payload. Returns the JSON body for the board; never raises DispatchError."""
    if payload.get("challenge"):
        return {"challenge": payload["challenge"]}
    event = payload.get("event") or {}
    event_type = event.get("type")
    try:
        if event_type in _CREATE_EVENTS:
            return _on_item_created(db, source, gateway, event, board_config, sleep)
        if event_type != "update_column_value":
            return {"success": True, "message": "Event type not handled"}
        category = board_config.category_for_status_column(event.get("columnId"))
        if category is None:
            return {"success": True, "note": "column ignored"}
        item_id = _event_item_id(event)
        if not item_id:
            logger.warning("Status change on %s without item id; category-wide push only", category.value)
            return {"success": True, "note": "push without item id", "pushed": _fallback_push(db, gateway, category)}
        status_text = _label(event.get("value"))
        trigger = board_config.match_trigger(category, status_text)
        if trigger is None:
            return {"success": True, "note": "status ignored"}
        logger.info("Board event: item %s %s -> %s (%r)", item_id, category.value, trigger, status_text)
        return _HANDLERS[trigger](db, source, gateway, item_id, category, board_config, sleep)
    except DuplicateOpenBatchError as e:
        logger.info("Board event ignored: %s", e)
        return {"success": True, "note": "open batch exists"}
    except DispatchError as e:
        logger.warning("Board event %s failed: %s", event_type, e)
        return {"success": False, "error": str(e)}
