"""
Artist-facing board views: clients already booked with the artist, logging a trial date,
and bookings waiting on the client's payment that the artist can confirm.

All three read the clients board live. The board says who is booked through the category's
status column plus a note the team writes naming the artist ("Ana reservada",
"aceitou as condições de Ana"); names come from the board lookup tables.
"""
import logging
from datetime import date

from sqlalchemy.orm import Session

from artist_dispatch.core.board_config import BoardConfig
from artist_dispatch.core.constants import (
    AUDIT_ARTIST_LOG_TRIAL,
    AUDIT_CONFIRM_BOOKING,
    ENTITY_CLIENT_ITEM,
    ENTITY_CLIENT_SERVICE,
)
from artist_dispatch.core.enums import ServiceCategory
from artist_dispatch.core.errors import BookingSourceError, ConflictError, ValidationError
from artist_dispatch.core.normalize import normalize_status, normalize_text
from artist_dispatch.core.timeutil import isoformat, local_today, utcnow
from artist_dispatch.models.artist import Artist
from artist_dispatch.services.artist_directory import get_artist
from artist_dispatch.services.audit import log_audit
from artist_dispatch.services.client_records import upsert_client_service_from_source
from artist_dispatch.services.monday import BoardItem, BookingSource

logger = logging.getLogger(__name__)

# Trial note signature when the artist is missing from the name tables
UNKNOWN_ARTIST_NAME = "Artista"


def board_name(artist: Artist, board_config: BoardConfig) -> str | None:
    """Name used for the artist in item notes: lookup table first, then the first word of their name."""
    category = ServiceCategory(artist.category)
    name = board_config.board_name_for(artist.email, category)
    if name:
        return name
    words = (artist.name or "").split()
    return words[0] if words else None


def _require_board(board_config: BoardConfig) -> str:
    if not board_config.clients_board_id:
        raise BookingSourceError("Clients board not configured (MONDAY_CLIENTS_BOARD_ID)")
    return board_config.clients_board_id


def _require_active(db: Session, artist_id: int) -> Artist:
    artist = get_artist(db, artist_id)
    if not artist.active:
        raise ConflictError(f"Artist {artist_id} is inactive")
    return artist


def _notes_mention(source: BookingSource, item_id: str, marker: str) -> bool:
    return any(marker in normalize_text(note.text) for note in source.get_item_notes(item_id))


def _status_in(item: BoardItem, column_id: str, phrases: set[str]) -> bool:
    status = normalize_status(item.text(column_id))
    return bool(status) and status in phrases


def _event_date(item: BoardItem, board_config: BoardConfig) -> date | None:
    col = item.column(board_config.event_date_column)
    return col.as_date() if col else None


def list_booked_clients(
    db: Session,
    source: BookingSource,
    board_config: BoardConfig,
    artist_id: int,
    *,
    today: date | None = None,
) -> list[dict]:
    """
    Clients booked with the artist whose event is today or later: category status is a booked
    status and a note says "<name> reservada". Sorted by client name. Inactive artists get [].
    """
    artist = get_artist(db, artist_id)
    if not artist.active:
        return []
    name = board_name(artist, board_config)
    if not name:
        logger.info("Booked clients: artist %s has no board name", artist_id)
        return []
    board_id = _require_board(board_config)
    category = ServiceCategory(artist.category)
    status_column = board_config.columns_for(category).status_column
    booked = board_config.booked_phrases(category)
    marker = normalize_text(board_config.reserved_note.format(name=name))
    today = today or local_today()

    scanned = 0
    out = []
    for item in source.iter_board_items(board_id):
        scanned += 1
        if not _status_in(item, status_column, booked):
            continue
        event_date = _event_date(item, board_config)
        if event_date is None or event_date < today:
            continue
        if not _notes_mention(source, item.id, marker):
            continue
        trial = item.column(board_config.trial_date_column)
        trial_date = trial.as_date() if trial else None
        out.append({
            "monday_item_id": item.id,
            "client_name": item.text(board_config.client_name_column) or item.name,
            "event_date": event_date.isoformat(),
            "trial_date": trial_date.isoformat() if trial_date else None,
        })
    out.sort(key=lambda c: normalize_text(c["client_name"]))
    logger.info("Booked clients for artist %s (%s): %s of %s items", artist_id, name, len(out), scanned)
    return out


def log_trial(
    db: Session,
    source: BookingSource,
    board_config: BoardConfig,
    artist_id: int,
    monday_item_id: str,
    trial_date,
    *,
    actor: str,
) -> dict:
    """
    Write the trial date on the client's board item, post a note naming the artist, then audit.
    Board failures raise BookingSourceError and nothing is audited.
    """
    if isinstance(trial_date, str):
        try:
            trial_date = date.fromisoformat(trial_date.strip())
        except ValueError:
            raise ValidationError(f"Invalid trial date {trial_date!r}; use YYYY-MM-DD") from None
    if not isinstance(trial_date, date):
        raise ValidationError("trial_date is required")
    item_id = str(monday_item_id).strip()
    if not item_id:
        raise ValidationError("monday_item_id is required")
    artist = _require_active(db, artist_id)
    name = board_name(artist, board_config) or UNKNOWN_ARTIST_NAME
    day = trial_date.isoformat()

    source.set_fields(item_id, {board_config.trial_date_column: {"date": day}})
    source.append_note(item_id, board_config.trial_note.format(name=name, date=day))
    try:
        log_audit(
            db,
            action=AUDIT_ARTIST_LOG_TRIAL,
            entity_type=ENTITY_CLIENT_ITEM,
            entity_id=item_id,
            actor=actor,
            details={"trial_date": day, "artist_id": artist.id, "artist_email": artist.email},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Artist %s logged trial %s on item %s", artist.id, day, item_id)
    return {"monday_item_id": item_id, "trial_date": day}


def list_confirmable_bookings(
    db: Session,
    source: BookingSource,
    board_config: BoardConfig,
    artist_id: int,
    *,
    today: date | None = None,
) -> list[dict]:
    """
    Bookings waiting on the client's payment that accepted this artist: category status is an
    awaiting-payment status, the event is after today, and a note says "aceitou as condições de <name>".
    Soonest event first. Artists missing from the name tables get [].
    """
    artist = get_artist(db, artist_id)
    if not artist.active:
        return []
    category = ServiceCategory(artist.category)
    name = board_config.board_name_for(artist.email, category)
    if not name:
        logger.info("Confirmable bookings: artist %s not in the name tables", artist_id)
        return []
    board_id = _require_board(board_config)
    status_column = board_config.columns_for(category).status_column
    awaiting = board_config.awaiting_payment_phrases(category)
    marker = normalize_text(board_config.accepted_note.format(name=name))
    today = today or local_today()

    out = []
    for item in source.iter_board_items(board_id):
        if not _status_in(item, status_column, awaiting):
            continue
        event_date = _event_date(item, board_config)
        if event_date is None or event_date <= today:
            continue
        if not _notes_mention(source, item.id, marker):
            continue
        out.append({"monday_item_id": item.id, "name": item.name, "event_date": event_date.isoformat()})
    out.sort(key=lambda b: (b["event_date"], b["monday_item_id"]))
    return out


def confirm_booking(
    db: Session,
    source: BookingSource,
    board_config: BoardConfig,
    artist_id: int,
    monday_item_id: str,
    *,
    actor: str,
) -> dict:
    """Make sure the client has a local record for the artist's category and audit the confirmation."""
    item_id = str(monday_item_id or "").strip()
    if not item_id:
        raise ValidationError("monday_item_id is required")
    artist = _require_active(db, artist_id)
    category = ServiceCategory(artist.category)
    record = upsert_client_service_from_source(db, source, item_id, category, board_config, actor=actor)
    try:
        log_audit(
            db,
            action=AUDIT_CONFIRM_BOOKING,
            entity_type=ENTITY_CLIENT_SERVICE,
            entity_id=record.id,
            actor=actor,
            client_service_id=record.id,
            details={
                "monday_item_id": item_id,
                "artist_id": artist.id,
                "artist_email": artist.email,
                "category": category.value,
                "confirmed_at": isoformat(utcnow()),
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Artist %s confirmed booking for item %s (client service %s)", artist.id, item_id, record.id)
    return {"client_service_id": record.id, "monday_item_id": item_id, "category": category.value}
