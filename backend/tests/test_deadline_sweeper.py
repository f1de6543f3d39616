"""Tests for the deadline sweep: expiry outcomes, escalation and idempotence."""

from datetime import timedelta

from artist_dispatch.core.enums import BatchMode, BatchStartReason, BatchState
from artist_dispatch.models import AuditLog, Proposal, ProposalBatch
from artist_dispatch.services.deadline_sweeper import sweep_expired_batches
from artist_dispatch.services.proposal_engine import create_batch, respond

from conftest import T0

AFTER_DEADLINE = T0 + timedelta(hours=25)


def _batches(db, client_service_id):
    db.expire_all()
    return (
        db.query(ProposalBatch)
        .filter(ProposalBatch.client_service_id == client_service_id)
        .order_by(ProposalBatch.id)
        .all()
    )


def _proposals(db, batch_id):
    return db.query(Proposal).filter(Proposal.batch_id == batch_id).order_by(Proposal.id).all()


def test_unanswered_single_escalates_to_broadcast(db, gateway, make_artist, make_client_service):
    artists = [make_artist(tier=t) for t in (1, 2, 3)]
    make_artist("HS")
    record = make_client_service()
    create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.CHOSEN_ARTIST, now=T0)

    result = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE)

    assert result.escalated == 1
    assert result.processed == 1
    assert result.errors == []
    original, escalated = _batches(db, record.id)
    assert original.state == BatchState.EXPIRED_NO_ACTION.value
    assert original.completed_at is not None
    assert escalated.mode == BatchMode.BROADCAST.value
    assert escalated.state == BatchState.OPEN.value
    assert escalated.start_reason == BatchStartReason.PRIOR_DECLINED.value
    assert {p.artist_id for p in _proposals(db, escalated.id)} == {a.id for a in artists}
    assert gateway.notified == [([a.id for a in artists], "Maria Costa")]
    assert gateway.automations == []
    assert db.query(AuditLog).filter(AuditLog.action == "SINGLE_BATCH_TIMEOUT_TO_BROADCAST").count() == 1


def test_zero_proposal_single_escalates_at_deadline(db, gateway, make_client_service):
    record = make_client_service()
    create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL, now=T0)

    assert sweep_expired_batches(db, gateway, now=T0 + timedelta(hours=1)).processed == 0
    result = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE)

    assert result.escalated == 1
    original, escalated = _batches(db, record.id)
    assert original.state == BatchState.EXPIRED_NO_ACTION.value
    assert escalated.state == BatchState.OPEN.value
    assert gateway.notified == []


def test_broadcast_with_yes_sends_options_once(db, gateway, make_artist, make_client_service):
    make_artist()
    make_artist()
    record = make_client_service(monday_item_id="777")
    created = create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED, now=T0)
    first, _ = _proposals(db, created.batch_id)
    respond(db, first.id, "YES", "u1", now=T0 + timedelta(hours=2))

    result = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE)
    again = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE + timedelta(hours=1))

    assert result.sent_options == 1
    assert again.processed == 0
    assert gateway.automations == [("777", record.category, "Send options")]
    (batch,) = _batches(db, record.id)
    assert batch.state == BatchState.EXPIRED_NO_ACTION.value


def test_broadcast_without_yes_sends_no_availability(db, gateway, make_artist, make_client_service):
    make_artist()
    make_artist()
    record = make_client_service(monday_item_id="778")
    created = create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED, now=T0)
    first, _ = _proposals(db, created.batch_id)
    respond(db, first.id, "NO", "u1", now=T0)

    result = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE)

    assert result.no_availability == 1
    assert gateway.automations == [("778", record.category, "Send no availability")]


def test_unanswered_broadcast_does_not_escalate(db, gateway, make_artist, make_client_service):
    make_artist()
    record = make_client_service()
    create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED, now=T0)

    result = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE)

    assert result.escalated == 0
    assert result.no_availability == 1
    assert len(_batches(db, record.id)) == 1


def test_partially_answered_single_is_not_escalated(db, gateway, make_artist, make_client_service):
    make_artist()
    make_artist()
    record = make_client_service()
    created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL, target_count=2, now=T0)
    first, _ = _proposals(db, created.batch_id)
    respond(db, first.id, "NO", "u1", now=T0)

    result = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE)

    assert result.escalated == 0
    assert result.no_availability == 1
    assert len(_batches(db, record.id)) == 1


def test_automation_failure_keeps_transition(db, gateway, make_artist, make_client_service):
    make_artist()
    record = make_client_service()
    create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED, now=T0)
    gateway.fail_automation = True

    result = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE)

    assert result.processed == 1
    assert len(result.errors) == 1
    assert "Send no availability" in result.errors[0]
    (batch,) = _batches(db, record.id)
    assert batch.state == BatchState.EXPIRED_NO_ACTION.value


def test_completed_and_future_batches_untouched(db, gateway, make_artist, make_client_service):
    make_artist()
    done = make_client_service()
    pending = make_client_service()
    created = create_batch(db, done.id, BatchMode.SINGLE, BatchStartReason.MANUAL, now=T0)
    (p,) = _proposals(db, created.batch_id)
    respond(db, p.id, "YES", "u1", now=T0)
    create_batch(db, pending.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED, now=AFTER_DEADLINE)

    result = sweep_expired_batches(db, gateway, now=AFTER_DEADLINE + timedelta(hours=1))

    assert result.processed == 0
    assert _batches(db, done.id)[0].state == BatchState.COMPLETED.value
    assert _batches(db, pending.id)[0].state == BatchState.OPEN.value
    assert gateway.automations == []
