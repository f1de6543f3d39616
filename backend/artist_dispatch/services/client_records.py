"""
Client-service records: local copy of a board booking per category.

Board reads happen outside any open transaction and are never trusted to be current:
every write derived from them is an upsert on (monday_item_id, category).
"""
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from artist_dispatch.core.board_config import BoardConfig
from artist_dispatch.core.constants import (
    AUDIT_BATCH_COMPLETED,
    AUDIT_BATCH_CREATED,
    AUDIT_CLIENT_SERVICE_DELETED,
    AUDIT_CLIENT_SERVICE_UPSERT,
    AUDIT_CONFIRM_BOOKING,
    AUDIT_EXPIRED_NO_AVAILABILITY,
    AUDIT_EXPIRED_SENT_OPTIONS,
    AUDIT_MARKED_UNDECIDED,
    AUDIT_PROPOSAL_RESPONSE,
    AUDIT_SINGLE_TIMEOUT_TO_BROADCAST,
    ENTITY_CLIENT_SERVICE,
    TIMELINE_LIMIT,
)
from artist_dispatch.core.enums import ArtistTier, BatchState, ProposalResponse, ServiceCategory
from artist_dispatch.core.errors import BookingSourceError, ConflictError, NotFoundError
from artist_dispatch.core.normalize import normalize_status
from artist_dispatch.core.timeutil import ensure_utc, format_display, isoformat
from artist_dispatch.models.client_service import ClientService
from artist_dispatch.models.proposal import Proposal
from artist_dispatch.models.proposal_batch import ProposalBatch
from artist_dispatch.services.artist_directory import tier_name
from artist_dispatch.services.audit import list_audit_for_client_service, log_audit
from artist_dispatch.services.monday import BookingSource, ClientBooking, parse_client_booking
from artist_dispatch.services.proposal_ledger import list_batches_for_client_service

logger = logging.getLogger(__name__)

_TIMELINE_FORMAT = "%b %d, %Y %H:%M"


def get_client_service(db: Session, client_service_id: int) -> ClientService:
    record = db.query(ClientService).filter(ClientService.id == client_service_id).first()
    if record is None:
        raise NotFoundError(f"Client service {client_service_id} not found")
    return record


def find_client_service(db: Session, monday_item_id: str, category: ServiceCategory) -> ClientService | None:
    return (
        db.query(ClientService)
        .filter(ClientService.monday_item_id == str(monday_item_id), ClientService.category == category.value)
        .first()
    )


def _apply_booking(record: ClientService, booking: ClientBooking) -> bool:
    """Copy board fields onto the record. Returns True if anything changed."""
    changed = False
    for attr, value in (
        ("client_name", booking.client_name),
        ("client_email", booking.client_email),
        ("event_date", booking.event_date),
        ("venue", booking.venue),
        ("description", booking.description),
        ("current_status", booking.status),
    ):
        if getattr(record, attr) != value:
            setattr(record, attr, value)
            changed = True
    return changed


def upsert_client_service(db: Session, booking: ClientBooking, *, actor: str | None = None) -> ClientService:
    """Insert or refresh the record for (item, category) and commit. Tolerates a concurrent insert of the same pair."""
    category = ServiceCategory(booking.category)
    created = False
    record = find_client_service(db, booking.item_id, category)
    try:
        if record is None:
            record = ClientService(monday_item_id=str(booking.item_id), category=category.value)
            _apply_booking(record, booking)
            db.add(record)
            try:
                db.flush()
                created = True
            except IntegrityError:
                # Someone else inserted it between our read and write
                db.rollback()
                record = find_client_service(db, booking.item_id, category)
                if record is None:
                    raise
                _apply_booking(record, booking)
            changed = True
        else:
            changed = _apply_booking(record, booking)
        if changed:
            db.flush()
            log_audit(
                db,
                action=AUDIT_CLIENT_SERVICE_UPSERT,
                entity_type=ENTITY_CLIENT_SERVICE,
                entity_id=record.id,
                actor=actor,
                client_service_id=record.id,
                details={
                    "created": created,
                    "monday_item_id": record.monday_item_id,
                    "category": record.category,
                    "status": record.current_status,
                },
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(record)
    return record


def upsert_client_service_from_source(
    db: Session,
    source: BookingSource,
    monday_item_id: str,
    category: ServiceCategory,
    board_config: BoardConfig,
    *,
    actor: str | None = None,
) -> ClientService:
    """Read the item from the board and upsert. BookingSourceError propagates: no source data, no record."""
    item = source.get_item(str(monday_item_id))
    booking = parse_client_booking(item, category, board_config)
    return upsert_client_service(db, booking, actor=actor)


def sync_open_bookings(db: Session, source: BookingSource, board_config: BoardConfig, *, actor: str | None = None) -> dict:
    """
    Walk the clients board and upsert a record for each item/category whose status is one of the
    trigger phrases. Returns counts; a board failure raises BookingSourceError.
    """
    if not board_config.clients_board_id:
        raise BookingSourceError("Clients board not configured (MONDAY_CLIENTS_BOARD_ID)")
    qualifying = {c: board_config.qualifying_statuses(c) for c in board_config.columns}
    scanned = 0
    upserted = 0
    for item in source.iter_board_items(board_config.clients_board_id):
        scanned += 1
        for category, phrases in qualifying.items():
            status = normalize_status(item.text(board_config.columns_for(category).status_column))
            if status and status in phrases:
                upsert_client_service(db, parse_client_booking(item, category, board_config), actor=actor)
                upserted += 1
    logger.info("Board sync: scanned %s items, upserted %s client services", scanned, upserted)
    return {"scanned": scanned, "upserted": upserted}


def delete_client_service(db: Session, client_service_id: int, *, actor: str | None = None) -> None:
    """Delete a record with its batches and proposals. Refused while a batch is OPEN."""
    try:
        record = (
            db.query(ClientService)
            .filter(ClientService.id == client_service_id)
            .with_for_update()
            .first()
        )
        if record is None:
            raise NotFoundError(f"Client service {client_service_id} not found")
        open_id = (
            db.query(ProposalBatch.id)
            .filter(ProposalBatch.client_service_id == record.id, ProposalBatch.state == BatchState.OPEN.value)
            .scalar()
        )
        if open_id is not None:
            raise ConflictError(f"Client service {client_service_id} has open batch {open_id}; cannot delete")
        db.query(Proposal).filter(Proposal.client_service_id == record.id).delete(synchronize_session=False)
        db.query(ProposalBatch).filter(ProposalBatch.client_service_id == record.id).delete(synchronize_session=False)
        log_audit(
            db,
            action=AUDIT_CLIENT_SERVICE_DELETED,
            entity_type=ENTITY_CLIENT_SERVICE,
            entity_id=record.id,
            actor=actor,
            details={"monday_item_id": record.monday_item_id, "category": record.category},
        )
        db.delete(record)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted client service %s", client_service_id)


# --- Backoffice view ---


def _timeline_event(action: str, category: str, details: dict) -> str:
    if action == AUDIT_BATCH_CREATED:
        return f"{category} {details.get('mode', '')} batch created ({details.get('proposal_count', 0)} artists)".replace("  ", " ")
    if action == AUDIT_BATCH_COMPLETED:
        return f"{category} batch completed"
    if action == AUDIT_PROPOSAL_RESPONSE:
        who = details.get("artist_email") or details.get("artist_name") or f"artist {details.get('artist_id')}"
        return f"{who} responded {details.get('response')} to {category} proposal"
    if action == AUDIT_SINGLE_TIMEOUT_TO_BROADCAST:
        return f"{category} single offer unanswered; broadcast to all artists"
    if action == AUDIT_EXPIRED_SENT_OPTIONS:
        return f"{category} batch expired; options sent to client"
    if action == AUDIT_EXPIRED_NO_AVAILABILITY:
        return f"{category} batch expired; no availability sent to client"
    if action == AUDIT_CONFIRM_BOOKING:
        return f"{details.get('artist_email') or 'artist'} confirmed {category} booking"
    if action == AUDIT_MARKED_UNDECIDED:
        return f"{category} marked undecided"
    if action == AUDIT_CLIENT_SERVICE_UPSERT:
        return f"{category} synced from board" + (f" ({details['status']})" if details.get("status") else "")
    return f"{action} - {category}"


def _timeline(db: Session, records: list[ClientService]) -> list[dict]:
    entries: list[tuple[datetime, dict]] = []
    for record in records:
        for log in list_audit_for_client_service(db, record.id, limit=TIMELINE_LIMIT):
            at = ensure_utc(log.created_at)
            entries.append((at, {
                "at": isoformat(at),
                "timestamp": format_display(at, _TIMELINE_FORMAT),
                "action": log.action,
                "category": record.category,
                "actor": log.actor,
                "event": _timeline_event(log.action, record.category, log.details or {}),
            }))
    entries.sort(key=lambda e: e[0], reverse=True)
    return [e for _, e in entries[:TIMELINE_LIMIT]]


def _latest_batch(batches: list[dict]) -> dict | None:
    """OPEN batch if any, else the most recent (batches come newest first)."""
    for b in batches:
        if b["state"] == BatchState.OPEN.value:
            return b
    return batches[0] if batches else None


def get_client_info(db: Session, source: BookingSource, board_config: BoardConfig, monday_item_id: str) -> dict:
    """
    Backoffice view of one board client: live board fields, latest batch per category,
    artists grouped by answer / category / tier, and a timeline in the display time zone.
    A board failure degrades to local data only (board fields None, board_error set).
    """
    records = (
        db.query(ClientService)
        .filter(ClientService.monday_item_id == str(monday_item_id))
        .order_by(ClientService.category.asc())
        .all()
    )
    board: dict | None = None
    board_error: str | None = None
    try:
        item = source.get_item(str(monday_item_id))
        board = {
            "item_id": item.id,
            "name": item.name,
            "statuses": {
                c.value: item.text(board_config.columns_for(c).status_column) or None
                for c in board_config.columns
            },
            **{k: v for k, v in parse_client_booking(item, ServiceCategory.MUA, board_config).to_dict().items()
               if k not in ("category", "status", "item_id")},
        }
    except (BookingSourceError, KeyError) as e:
        board_error = str(e)
        logger.warning("Backoffice: board read for item %s failed: %s", monday_item_id, e)
    if not records and board is None:
        raise NotFoundError(f"No client found for board item {monday_item_id}")

    tiers = [t.name for t in ArtistTier]
    available = {c.value: {t: [] for t in tiers} for c in ServiceCategory}
    unavailable = {c.value: {t: [] for t in tiers} for c in ServiceCategory}
    services = []
    for record in records:
        batches = list_batches_for_client_service(db, record.id)
        latest = _latest_batch(batches)
        services.append({
            "client_service_id": record.id,
            "category": record.category,
            "client_name": record.client_name,
            "event_date": record.event_date.isoformat() if record.event_date else None,
            "venue": record.venue,
            "current_status": record.current_status,
            "latest_batch": latest,
            "batch_count": len(batches),
        })
        for p in (latest or {}).get("proposals", []):
            tier = tier_name(p["artist_tier"]) or tiers[-1]
            entry = {"email": p["artist_email"], "name": p["artist_name"], "responded_at": p["responded_at"]}
            if p["response"] == ProposalResponse.YES.value:
                available[record.category][tier].append(entry)
            elif p["response"] == ProposalResponse.NO.value:
                unavailable[record.category][tier].append(entry)

    return {
        "monday_item_id": str(monday_item_id),
        "board": board,
        "board_error": board_error,
        "services": services,
        "available_artists": available,
        "unavailable_artists": unavailable,
        "timeline": _timeline(db, records),
    }
