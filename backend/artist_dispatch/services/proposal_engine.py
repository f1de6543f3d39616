"""
Proposal batch engine: open batches (who is offered a booking) and apply artist responses.

Batch state machine:
  OPEN -> COMPLETED          respond(): SINGLE + YES, or no proposal left unanswered
  OPEN -> EXPIRED_NO_ACTION  deadline sweep only (deadline_sweeper)
Terminal states are never left.

Locking: create_batch locks the client_services row, respond locks the proposal_batches row,
so concurrent responses to one SINGLE batch serialize and exactly one YES can win.
External calls (push, board writes) are returned as effects and run by the caller after commit.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from artist_dispatch.core.constants import (
    AUDIT_BATCH_COMPLETED,
    AUDIT_BATCH_CREATED,
    AUDIT_PROPOSAL_RESPONSE,
    ENTITY_BATCH,
    ENTITY_PROPOSAL,
    PROPOSAL_DEADLINE_HOURS,
)
from artist_dispatch.core.enums import BatchMode, BatchStartReason, BatchState, ProposalResponse, ServiceCategory
from artist_dispatch.core.errors import (
    AlreadyRespondedError,
    BatchNotOpenError,
    DuplicateOpenBatchError,
    NotFoundError,
    ValidationError,
)
from artist_dispatch.core.timeutil import isoformat, utcnow
from artist_dispatch.models.artist import Artist
from artist_dispatch.models.client_service import ClientService
from artist_dispatch.models.proposal import Proposal
from artist_dispatch.models.proposal_batch import ProposalBatch
from artist_dispatch.services.artist_directory import select_eligible_artists
from artist_dispatch.services.audit import log_audit
from artist_dispatch.services.effects import NotifyArtists

logger = logging.getLogger(__name__)


@dataclass
class BatchCreated:
    batch_id: int
    proposal_count: int
    artist_ids: list[int] = field(default_factory=list)
    effects: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"batch_id": self.batch_id, "proposal_count": self.proposal_count, "artist_ids": self.artist_ids}


@dataclass
class RespondOutcome:
    proposal_id: int
    batch_id: int
    response: str
    batch_state: str
    batch_completed: bool = False
    auto_declined: int = 0

    def to_dict(self) -> dict:
        return {
            "proposal_id": self.proposal_id,
            "batch_id": self.batch_id,
            "response": self.response,
            "batch_state": self.batch_state,
            "batch_completed": self.batch_completed,
            "auto_declined": self.auto_declined,
        }


def parse_mode(value) -> BatchMode:
    try:
        return BatchMode(str(getattr(value, "value", value)).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid mode {value!r}. Use SINGLE or BROADCAST.") from None


def parse_start_reason(value) -> BatchStartReason:
    try:
        return BatchStartReason(str(getattr(value, "value", value)).strip().upper())
    except ValueError:
        allowed = ", ".join(r.value for r in BatchStartReason)
        raise ValidationError(f"Invalid start reason {value!r}. Use one of: {allowed}.") from None


def parse_response(value) -> ProposalResponse:
    try:
        return ProposalResponse(str(getattr(value, "value", value)).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid response {value!r}. Use YES or NO.") from None


ONE_OPEN_INDEX = "uq_proposal_batches_one_open"
# SQLite names the columns, not the index
_SQLITE_ONE_OPEN_MESSAGE = "unique constraint failed: proposal_batches.client_service_id"


def is_one_open_batch_violation(exc: IntegrityError) -> bool:
    """True when the error comes from the one-OPEN-batch-per-client index and nothing else."""
    message = str(getattr(exc, "orig", None) or exc).lower()
    return ONE_OPEN_INDEX in message or _SQLITE_ONE_OPEN_MESSAGE in message


def _validate_target_count(mode: BatchMode, target_count) -> int | None:
    if target_count is None:
        return None
    if mode != BatchMode.SINGLE:
        raise ValidationError("target_count only applies to SINGLE batches")
    if isinstance(target_count, bool) or not isinstance(target_count, int) or target_count < 1:
        raise ValidationError(f"target_count must be a positive integer, got {target_count!r}")
    return target_count


def _explicit_artists(
    db: Session,
    category: ServiceCategory,
    mode: BatchMode,
    target_count: int | None,
    artist_ids: Iterable[int],
) -> list[Artist]:
    """Artists named by the caller (chosen artist, second-option broadcast). All must be active and of the category."""
    ids: list[int] = []
    for raw in artist_ids:
        try:
            aid = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid artist id {raw!r}") from None
        if aid not in ids:
            ids.append(aid)
    if not ids:
        raise ValidationError("artist_ids must not be empty")
    if mode == BatchMode.SINGLE and len(ids) > (target_count or 1):
        raise ValidationError(f"SINGLE batch takes at most {target_count or 1} artist(s), got {len(ids)}")
    rows = db.query(Artist).filter(Artist.id.in_(ids)).all()
    by_id = {a.id: a for a in rows}
    bad = [aid for aid in ids if aid not in by_id or not by_id[aid].active or by_id[aid].category != category.value]
    if bad:
        raise ValidationError(f"Artists {bad} are unknown, inactive or not {category.value}")
    return [by_id[aid] for aid in ids]


def open_batch(
    db: Session,
    record: ClientService,
    mode: BatchMode,
    start_reason: BatchStartReason,
    *,
    target_count: int | None = None,
    artist_ids: Iterable[int] | None = None,
    actor: str | None = None,
    now: datetime | None = None,
) -> BatchCreated:
    """
    Insert the batch, its proposals and the audit row into the current transaction. No commit and no
    open-batch check: the caller holds the client_services lock (create_batch) or has just closed the
    previous batch (sweeper escalation).
    """
    now = now or utcnow()
    category = ServiceCategory(record.category)
    if artist_ids is not None:
        artists = _explicit_artists(db, category, mode, target_count, artist_ids)
    else:
        artists = select_eligible_artists(db, category, mode, target_count)
    batch = ProposalBatch(
        client_service_id=record.id,
        mode=mode.value,
        state=BatchState.OPEN.value,
        start_reason=start_reason.value,
        target_count=target_count,
        deadline_at=now + timedelta(hours=PROPOSAL_DEADLINE_HOURS),
        created_at=now,
    )
    db.add(batch)
    db.flush()
    for artist in artists:
        db.add(
            Proposal(
                batch_id=batch.id,
                artist_id=artist.id,
                client_service_id=record.id,
                created_at=now,
            )
        )
    ids = [a.id for a in artists]
    log_audit(
        db,
        action=AUDIT_BATCH_CREATED,
        entity_type=ENTITY_BATCH,
        entity_id=batch.id,
        actor=actor,
        client_service_id=record.id,
        details={
            "batch_id": batch.id,
            "mode": mode.value,
            "start_reason": start_reason.value,
            "category": category.value,
            "monday_item_id": record.monday_item_id,
            "client_name": record.client_name,
            "proposal_count": len(ids),
            "artist_ids": ids,
            "deadline_at": isoformat(batch.deadline_at),
        },
    )
    db.flush()
    if not ids:
        logger.warning(
            "Batch %s (%s, %s) opened with zero proposals: no eligible %s artists",
            batch.id, mode.value, start_reason.value, category.value,
        )
    effects = []
    if ids:
        effects.append(
            NotifyArtists(
                artist_ids=tuple(ids),
                client_name=record.client_name or "New client",
                category=category,
                event_date=record.event_date,
            )
        )
    return BatchCreated(batch_id=batch.id, proposal_count=len(ids), artist_ids=ids, effects=effects)


def create_batch(
    db: Session,
    client_service_id: int,
    mode,
    start_reason,
    target_count: int | None = None,
    *,
    artist_ids: Iterable[int] | None = None,
    actor: str | None = None,
    now: datetime | None = None,
) -> BatchCreated:
    """
    Open a batch for a client service: batch + proposals + audit in one transaction.
    Raises ValidationError, NotFoundError, DuplicateOpenBatchError. Effects in the result are not run here.
    """
    mode_val = parse_mode(mode)
    reason_val = parse_start_reason(start_reason)
    count = _validate_target_count(mode_val, target_count)
    if artist_ids is not None:
        artist_ids = list(artist_ids)
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
            .filter(
                ProposalBatch.client_service_id == record.id,
                ProposalBatch.state == BatchState.OPEN.value,
            )
            .scalar()
        )
        if open_id is not None:
            raise DuplicateOpenBatchError(
                f"Client service {client_service_id} already has open batch {open_id}"
            )
        created = open_batch(
            db, record, mode_val, reason_val,
            target_count=count, artist_ids=artist_ids, actor=actor, now=now,
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if not is_one_open_batch_violation(e):
            raise
        # Another transaction opened a batch first
        raise DuplicateOpenBatchError(f"Client service {client_service_id} already has an open batch") from None
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Created %s batch %s for client service %s (%s proposals, reason %s)",
        mode_val.value, created.batch_id, client_service_id, created.proposal_count, reason_val.value,
    )
    return created


def respond(
    db: Session,
    proposal_id: int,
    response,
    actor_user_id: str,
    *,
    now: datetime | None = None,
) -> RespondOutcome:
    """
    Record an artist's YES/NO. Checks, in order: NotFound, AlreadyResponded, BatchNotOpen.
    SINGLE + YES completes the batch and auto-declines the other pending proposals; any batch
    with nothing left unanswered completes.
    """
    answer = parse_response(response)
    actor = (actor_user_id or "").strip()
    if not actor:
        raise ValidationError("actor_user_id is required")
    now = now or utcnow()
    try:
        batch_id = db.query(Proposal.batch_id).filter(Proposal.id == proposal_id).scalar()
        if batch_id is None:
            raise NotFoundError(f"Proposal {proposal_id} not found")
        batch = (
            db.query(ProposalBatch)
            .filter(ProposalBatch.id == batch_id)
            .with_for_update()
            .populate_existing()
            .one()
        )
        proposal = db.query(Proposal).filter(Proposal.id == proposal_id).populate_existing().one()
        if proposal.response is not None:
            raise AlreadyRespondedError(f"Proposal {proposal_id} already answered {proposal.response}")
        if batch.state != BatchState.OPEN.value:
            raise BatchNotOpenError(f"Batch {batch.id} is {batch.state}; responses are closed")

        proposal.response = answer.value
        proposal.responded_at = now
        record = db.query(ClientService).filter(ClientService.id == batch.client_service_id).first()
        artist = db.query(Artist).filter(Artist.id == proposal.artist_id).first()
        log_audit(
            db,
            action=AUDIT_PROPOSAL_RESPONSE,
            entity_type=ENTITY_PROPOSAL,
            entity_id=proposal.id,
            actor=actor,
            client_service_id=batch.client_service_id,
            details={
                "proposal_id": proposal.id,
                "batch_id": batch.id,
                "response": answer.value,
                "client_name": record.client_name if record else None,
                "artist_id": proposal.artist_id,
                "artist_email": artist.email if artist else None,
                "artist_name": artist.name if artist else None,
            },
        )

        auto_declined = 0
        completed = False
        if batch.mode == BatchMode.SINGLE.value and answer == ProposalResponse.YES:
            auto_declined = (
                db.query(Proposal)
                .filter(
                    Proposal.batch_id == batch.id,
                    Proposal.id != proposal.id,
                    Proposal.response.is_(None),
                )
                .update(
                    {Proposal.response: ProposalResponse.NO.value, Proposal.responded_at: now},
                    synchronize_session=False,
                )
            )
            completed = True
        else:
            db.flush()
            pending = (
                db.query(func.count(Proposal.id))
                .filter(Proposal.batch_id == batch.id, Proposal.response.is_(None))
                .scalar()
            )
            completed = pending == 0
        if completed:
            batch.state = BatchState.COMPLETED.value
            batch.completed_at = now
            log_audit(
                db,
                action=AUDIT_BATCH_COMPLETED,
                entity_type=ENTITY_BATCH,
                entity_id=batch.id,
                actor=actor,
                client_service_id=batch.client_service_id,
                details={
                    "batch_id": batch.id,
                    "mode": batch.mode,
                    "trigger_proposal_id": proposal.id,
                    "auto_declined": auto_declined,
                },
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Proposal %s answered %s by %s (batch %s %s, auto-declined %s)",
        proposal_id, answer.value, actor, batch_id,
        BatchState.COMPLETED.value if completed else BatchState.OPEN.value, auto_declined,
    )
    return RespondOutcome(
        proposal_id=proposal_id,
        batch_id=batch_id,
        response=answer.value,
        batch_state=BatchState.COMPLETED.value if completed else BatchState.OPEN.value,
        batch_completed=completed,
        auto_declined=auto_declined,
    )
