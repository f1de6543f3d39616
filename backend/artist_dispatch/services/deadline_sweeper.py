"""
Deadline sweep: drive every OPEN batch whose deadline has passed to its outcome, once.

Per expired batch, in its own transaction:
  SINGLE with no response at all -> EXPIRED_NO_ACTION + new BROADCAST batch (PRIOR_DECLINED).
                                    Escalation is the primary effect: if it fails the whole step
                                    rolls back, the batch stays OPEN and the error is reported.
  otherwise, >= 1 YES            -> EXPIRED_NO_ACTION + "Send options" automation
  otherwise                      -> EXPIRED_NO_ACTION + "Send no availability" automation
Automations and pushes run after commit; their failures land in SweepResult.errors and never
undo the transition. A batch is selected only while OPEN, so re-running the sweep is safe.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from artist_dispatch.core.constants import (
    AUDIT_EXPIRED_NO_AVAILABILITY,
    AUDIT_EXPIRED_SENT_OPTIONS,
    AUDIT_SINGLE_TIMEOUT_TO_BROADCAST,
    ENTITY_BATCH,
)
from artist_dispatch.core.enums import (
    Automation,
    BatchMode,
    BatchStartReason,
    BatchState,
    ProposalResponse,
    ServiceCategory,
)
from artist_dispatch.core.timeutil import isoformat, utcnow
from artist_dispatch.models.client_service import ClientService
from artist_dispatch.models.proposal import Proposal
from artist_dispatch.models.proposal_batch import ProposalBatch
from artist_dispatch.services.audit import log_audit
from artist_dispatch.services.effects import TriggerAutomation, run_effects
from artist_dispatch.services.proposal_engine import open_batch

logger = logging.getLogger(__name__)

OUTCOME_ESCALATED = "escalated"
OUTCOME_SENT_OPTIONS = "sent_options"
OUTCOME_NO_AVAILABILITY = "no_availability"


@dataclass
class SweepResult:
    processed: int = 0
    sent_options: int = 0
    no_availability: int = 0
    escalated: int = 0
    skipped: int = 0  # selected but no longer OPEN/expired when locked (another worker or a response won)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "sent_options": self.sent_options,
            "no_availability": self.no_availability,
            "escalated": self.escalated,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


def _tally(db: Session, batch_id: int) -> dict[str, int]:
    rows = (
        db.query(Proposal.response, func.count(Proposal.id))
        .filter(Proposal.batch_id == batch_id)
        .group_by(Proposal.response)
        .all()
    )
    counts = {r or "PENDING": n for r, n in rows}
    yes = counts.get(ProposalResponse.YES.value, 0)
    no = counts.get(ProposalResponse.NO.value, 0)
    pending = counts.get("PENDING", 0)
    return {"total": yes + no + pending, "yes": yes, "no": no, "pending": pending}


def _client_fields(record: ClientService) -> dict:
    return {
        "client_service_id": record.id,
        "monday_item_id": record.monday_item_id,
        "client_name": record.client_name,
        "category": record.category,
        "event_date": record.event_date.isoformat() if record.event_date else None,
    }


def _resolve_batch(db: Session, batch_id: int, now: datetime) -> tuple[str | None, list]:
    """
    Lock and resolve one batch inside the current transaction (caller commits).
    Returns (outcome, effects); outcome None = skipped.
    """
    batch = (
        db.query(ProposalBatch)
        .filter(
            ProposalBatch.id == batch_id,
            ProposalBatch.state == BatchState.OPEN.value,
            ProposalBatch.deadline_at <= now,
        )
        .with_for_update(skip_locked=True)
        .populate_existing()
        .first()
    )
    if batch is None:
        return None, []
    record = db.query(ClientService).filter(ClientService.id == batch.client_service_id).one()
    tally = _tally(db, batch.id)
    batch.state = BatchState.EXPIRED_NO_ACTION.value
    batch.completed_at = now
    details = {"batch_id": batch.id, "mode": batch.mode, "tally": tally, **_client_fields(record)}

    if batch.mode == BatchMode.SINGLE.value and tally["yes"] + tally["no"] == 0:
        # Old batch must be closed before the new OPEN one is inserted (one-open index)
        db.flush()
        created = open_batch(db, record, BatchMode.BROADCAST, BatchStartReason.PRIOR_DECLINED, now=now)
        log_audit(
            db,
            action=AUDIT_SINGLE_TIMEOUT_TO_BROADCAST,
            entity_type=ENTITY_BATCH,
            entity_id=batch.id,
            client_service_id=record.id,
            details={**details, "new_batch_id": created.batch_id, "new_proposal_count": created.proposal_count},
        )
        logger.info(
            "Sweep: SINGLE batch %s unanswered; escalated to BROADCAST batch %s (%s proposals)",
            batch.id, created.batch_id, created.proposal_count,
        )
        return OUTCOME_ESCALATED, created.effects

    if tally["yes"] > 0:
        automation, action, outcome = Automation.SEND_OPTIONS, AUDIT_EXPIRED_SENT_OPTIONS, OUTCOME_SENT_OPTIONS
    else:
        automation, action, outcome = (
            Automation.SEND_NO_AVAILABILITY, AUDIT_EXPIRED_NO_AVAILABILITY, OUTCOME_NO_AVAILABILITY,
        )
    log_audit(
        db,
        action=action,
        entity_type=ENTITY_BATCH,
        entity_id=batch.id,
        client_service_id=record.id,
        details={**details, "automation": automation.value, "expired_at": isoformat(now)},
    )
    logger.info("Sweep: batch %s expired (%s yes / %s no / %s pending) -> %s",
                batch.id, tally["yes"], tally["no"], tally["pending"], automation.value)
    effect = TriggerAutomation(
        batch_id=batch.id,
        monday_item_id=record.monday_item_id,
        category=ServiceCategory(record.category),
        automation=automation,
    )
    return outcome, [effect]


def sweep_expired_batches(db: Session, gateway, *, now: datetime | None = None) -> SweepResult:
    """
    Resolve every expired OPEN batch. Never raises for a single batch's failure (collected in
    errors); only a failure to list expired batches propagates.
    """
    now = now or utcnow()
    result = SweepResult()
    batch_ids = [
        r[0]
        for r in db.query(ProposalBatch.id)
        .filter(ProposalBatch.state == BatchState.OPEN.value, ProposalBatch.deadline_at <= now)
        .order_by(ProposalBatch.deadline_at.asc(), ProposalBatch.id.asc())
        .all()
    ]
    db.commit()
    if not batch_ids:
        return result
    logger.info("Sweep: %s expired open batches", len(batch_ids))
    for batch_id in batch_ids:
        try:
            outcome, effects = _resolve_batch(db, batch_id, now)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.exception("Sweep: batch %s failed: %s", batch_id, e)
            result.errors.append(f"batch {batch_id}: {e}")
            continue
        if outcome is None:
            result.skipped += 1
            continue
        result.processed += 1
        if outcome == OUTCOME_ESCALATED:
            result.escalated += 1
        elif outcome == OUTCOME_SENT_OPTIONS:
            result.sent_options += 1
        else:
            result.no_availability += 1
        result.errors.extend(run_effects(db, gateway, effects))
    logger.info(
        "Sweep done: processed=%s options=%s no_availability=%s escalated=%s skipped=%s errors=%s",
        result.processed, result.sent_options, result.no_availability,
        result.escalated, result.skipped, len(result.errors),
    )
    return result
