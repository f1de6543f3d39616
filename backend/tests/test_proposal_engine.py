"""Tests for batch creation, artist selection and responses."""

from datetime import timedelta

import pytest

from artist_dispatch.core.enums import BatchMode, BatchStartReason, BatchState, ProposalResponse, ServiceCategory
from artist_dispatch.core.errors import (
    AlreadyRespondedError,
    BatchNotOpenError,
    DuplicateOpenBatchError,
    NotFoundError,
    ValidationError,
)
from artist_dispatch.core.timeutil import ensure_utc
from artist_dispatch.models import AuditLog, Proposal, ProposalBatch
from artist_dispatch.services.artist_directory import select_eligible_artists
from artist_dispatch.services.effects import NotifyArtists
from artist_dispatch.services.proposal_engine import create_batch, respond

from conftest import T0


def _proposals(db, batch_id):
    return db.query(Proposal).filter(Proposal.batch_id == batch_id).order_by(Proposal.id).all()


class TestSelection:
    def test_single_orders_by_tier_then_creation(self, db, make_artist):
        fresh = make_artist(tier=3)
        resident_old = make_artist(tier=2)
        resident_new = make_artist(tier=2)
        make_artist(tier=1, active=False)
        picked = select_eligible_artists(db, ServiceCategory.MUA, BatchMode.SINGLE)
        assert [a.id for a in picked] == [resident_old.id]
        picked = select_eligible_artists(db, ServiceCategory.MUA, BatchMode.SINGLE, target_count=3)
        assert [a.id for a in picked] == [resident_old.id, resident_new.id, fresh.id]


class TestCreateBatch:
    def test_broadcast_targets_only_active_matching_artists(self, db, make_artist, make_client_service):
        matching = [make_artist("MUA") for _ in range(3)]
        make_artist("HS")
        make_artist("HS")
        record = make_client_service("MUA")

        created = create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED, now=T0)

        proposals = _proposals(db, created.batch_id)
        assert len(proposals) == 3
        assert {p.artist_id for p in proposals} == {a.id for a in matching}
        assert all(p.response is None and p.responded_at is None for p in proposals)
        batch = db.get(ProposalBatch, created.batch_id)
        assert batch.state == BatchState.OPEN.value
        assert ensure_utc(batch.deadline_at) == T0 + timedelta(hours=24)

    def test_returns_notify_effect_without_running_it(self, db, make_artist, make_client_service):
        artist = make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, "single", "manual")
        assert created.effects == [
            NotifyArtists(artist_ids=(artist.id,), client_name="Maria Costa", category=ServiceCategory.MUA, event_date=None)
        ]

    def test_zero_eligible_artists_creates_empty_batch(self, db, make_client_service):
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL)
        assert created.proposal_count == 0
        assert created.effects == []
        assert db.get(ProposalBatch, created.batch_id).state == BatchState.OPEN.value

    def test_second_open_batch_rejected(self, db, make_artist, make_client_service):
        make_artist()
        record = make_client_service()
        create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED)
        with pytest.raises(DuplicateOpenBatchError):
            create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED)
        assert db.query(ProposalBatch).count() == 1

    def test_unknown_client_service(self, db):
        with pytest.raises(NotFoundError):
            create_batch(db, 999, BatchMode.SINGLE, BatchStartReason.MANUAL)

    def test_invalid_inputs_rejected_before_writing(self, db, make_artist, make_client_service):
        make_artist()
        record = make_client_service()
        with pytest.raises(ValidationError):
            create_batch(db, record.id, "everyone", BatchStartReason.MANUAL)
        with pytest.raises(ValidationError):
            create_batch(db, record.id, BatchMode.SINGLE, "because")
        with pytest.raises(ValidationError):
            create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.MANUAL, target_count=2)
        with pytest.raises(ValidationError):
            create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL, target_count=0)
        assert db.query(ProposalBatch).count() == 0

    def test_explicit_artist_must_match_category(self, db, make_artist, make_client_service):
        hs = make_artist("HS")
        record = make_client_service("MUA")
        with pytest.raises(ValidationError):
            create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.CHOSEN_ARTIST, artist_ids=[hs.id])

    def test_explicit_artist_single(self, db, make_artist, make_client_service):
        make_artist(tier=1)
        chosen = make_artist(tier=3)
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.CHOSEN_ARTIST, artist_ids=[chosen.id])
        assert created.artist_ids == [chosen.id]

    def test_audit_row_written(self, db, make_artist, make_client_service):
        make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL, actor="admin-1")
        row = db.query(AuditLog).filter(AuditLog.action == "BATCH_CREATED").one()
        assert row.actor == "admin-1"
        assert row.client_service_id == record.id
        assert row.details["batch_id"] == created.batch_id
        assert row.details["proposal_count"] == 1


class TestRespond:
    def test_single_yes_completes_and_auto_declines_others(self, db, make_artist, make_client_service):
        a, b, c = make_artist(), make_artist(), make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL, target_count=3, now=T0)
        by_artist = {p.artist_id: p for p in _proposals(db, created.batch_id)}

        outcome = respond(db, by_artist[b.id].id, ProposalResponse.YES, "user-b", now=T0)

        assert outcome.batch_completed is True
        assert outcome.auto_declined == 2
        db.expire_all()
        batch = db.get(ProposalBatch, created.batch_id)
        assert batch.state == BatchState.COMPLETED.value
        assert batch.completed_at is not None
        after = {p.artist_id: p for p in _proposals(db, created.batch_id)}
        assert after[b.id].response == "YES"
        for other in (a, c):
            assert after[other.id].response == "NO"
            assert after[other.id].responded_at is not None

    def test_single_no_keeps_batch_open_while_others_pending(self, db, make_artist, make_client_service):
        make_artist()
        make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL, target_count=2)
        first, _ = _proposals(db, created.batch_id)
        outcome = respond(db, first.id, "no", "user-a")
        assert outcome.batch_state == BatchState.OPEN.value
        assert outcome.auto_declined == 0

    def test_broadcast_completes_when_all_answered(self, db, make_artist, make_client_service):
        make_artist()
        make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED)
        p1, p2 = _proposals(db, created.batch_id)
        assert respond(db, p1.id, "YES", "u1").batch_completed is False
        outcome = respond(db, p2.id, "NO", "u2")
        assert outcome.batch_completed is True
        assert outcome.batch_state == BatchState.COMPLETED.value

    def test_second_response_rejected(self, db, make_artist, make_client_service):
        make_artist()
        make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED)
        p1, _ = _proposals(db, created.batch_id)
        respond(db, p1.id, "YES", "u1")
        with pytest.raises(AlreadyRespondedError):
            respond(db, p1.id, "NO", "u1")
        db.expire_all()
        assert db.get(Proposal, p1.id).response == "YES"

    def test_auto_declined_proposal_reports_already_responded(self, db, make_artist, make_client_service):
        make_artist()
        make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL, target_count=2)
        p1, p2 = _proposals(db, created.batch_id)
        respond(db, p1.id, "YES", "u1")
        with pytest.raises(AlreadyRespondedError):
            respond(db, p2.id, "YES", "u2")

    def test_closed_batch_rejects_pending_proposal(self, db, make_artist, make_client_service):
        make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL)
        batch = db.get(ProposalBatch, created.batch_id)
        batch.state = BatchState.EXPIRED_NO_ACTION.value
        db.commit()
        (p,) = _proposals(db, created.batch_id)
        with pytest.raises(BatchNotOpenError):
            respond(db, p.id, "YES", "u1")

    def test_unknown_proposal_and_missing_actor(self, db, make_artist, make_client_service):
        with pytest.raises(NotFoundError):
            respond(db, 12345, "YES", "u1")
        make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL)
        (p,) = _proposals(db, created.batch_id)
        with pytest.raises(ValidationError):
            respond(db, p.id, "YES", "  ")
        with pytest.raises(ValidationError):
            respond(db, p.id, "MAYBE", "u1")
