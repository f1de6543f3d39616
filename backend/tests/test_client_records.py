"""Tests for client-service records: upsert from the board, sync, delete, backoffice view."""

from datetime import date

import pytest

from artist_dispatch.core.enums import BatchMode, BatchStartReason, ServiceCategory
from artist_dispatch.core.errors import BookingSourceError, ConflictError, NotFoundError
from artist_dispatch.models import AuditLog, ClientService, Proposal, ProposalBatch
from artist_dispatch.services.client_records import (
    delete_client_service,
    get_client_info,
    sync_open_bookings,
    upsert_client_service_from_source,
)
from artist_dispatch.services.proposal_engine import create_batch, respond

from conftest import T0, TRAVELLING, UNDECIDED, board_item


class TestUpsert:
    def test_creates_record_from_board_item(self, db, source, board_config):
        source.add(board_item("101", mua_status=UNDECIDED))

        record = upsert_client_service_from_source(db, source, "101", ServiceCategory.MUA, board_config)

        assert record.monday_item_id == "101"
        assert record.category == "MUA"
        assert record.client_name == "Maria Costa"
        assert record.client_email == "maria@example.com"
        assert record.event_date == date(2026, 6, 14)
        assert record.venue == "Sintra"
        assert record.current_status == UNDECIDED

    def test_second_upsert_updates_in_place(self, db, source, board_config):
        source.add(board_item("101", mua_status=UNDECIDED))
        first = upsert_client_service_from_source(db, source, "101", ServiceCategory.MUA, board_config)
        source.add(board_item("101", name="Maria C.", mua_status=TRAVELLING))

        second = upsert_client_service_from_source(db, source, "101", ServiceCategory.MUA, board_config)

        assert second.id == first.id
        assert second.client_name == "Maria C."
        assert db.query(ClientService).count() == 1
        assert db.query(AuditLog).filter(AuditLog.action == "CLIENT_SERVICE_UPSERT").count() == 2

    def test_unchanged_item_writes_no_audit(self, db, source, board_config):
        source.add(board_item("101"))
        upsert_client_service_from_source(db, source, "101", ServiceCategory.MUA, board_config)
        upsert_client_service_from_source(db, source, "101", ServiceCategory.MUA, board_config)
        assert db.query(AuditLog).count() == 1

    def test_one_record_per_category(self, db, source, board_config):
        source.add(board_item("101"))
        mua = upsert_client_service_from_source(db, source, "101", ServiceCategory.MUA, board_config)
        hs = upsert_client_service_from_source(db, source, "101", ServiceCategory.HS, board_config)
        assert mua.id != hs.id

    def test_board_failure_creates_nothing(self, db, source, board_config):
        source.fail = True
        with pytest.raises(BookingSourceError):
            upsert_client_service_from_source(db, source, "101", ServiceCategory.MUA, board_config)
        assert db.query(ClientService).count() == 0


class TestSync:
    def test_upserts_only_items_waiting_for_artists(self, db, source, board_config):
        source.add(board_item("101", mua_status=UNDECIDED))
        source.add(board_item("102", mua_status=TRAVELLING, hs_status=UNDECIDED))
        source.add(board_item("103", mua_status="Booked"))

        result = sync_open_bookings(db, source, board_config)

        assert result == {"scanned": 3, "upserted": 3}
        pairs = {(r.monday_item_id, r.category) for r in db.query(ClientService).all()}
        assert pairs == {("101", "MUA"), ("102", "MUA"), ("102", "HS")}


class TestDelete:
    def test_refused_while_batch_open(self, db, make_artist, make_client_service):
        make_artist()
        record = make_client_service()
        create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED)
        with pytest.raises(ConflictError):
            delete_client_service(db, record.id)
        assert db.query(ClientService).count() == 1

    def test_deletes_history(self, db, make_artist, make_client_service):
        make_artist()
        record = make_client_service()
        created = create_batch(db, record.id, BatchMode.SINGLE, BatchStartReason.MANUAL)
        respond(db, db.query(Proposal).filter(Proposal.batch_id == created.batch_id).one().id, "YES", "u1")

        delete_client_service(db, record.id, actor="admin")

        assert db.query(ClientService).count() == 0
        assert db.query(ProposalBatch).count() == 0
        assert db.query(Proposal).count() == 0
        assert db.query(AuditLog).filter(AuditLog.action == "CLIENT_SERVICE_DELETED").count() == 1

    def test_unknown(self, db):
        with pytest.raises(NotFoundError):
            delete_client_service(db, 42)


class TestClientInfo:
    def test_groups_artists_by_answer_and_tier(self, db, source, board_config, make_artist):
        founder = make_artist(tier=1, email="ana@example.com", name="Ana")
        fresh = make_artist(tier=3, email="zoe@example.com", name="Zoe")
        source.add(board_item("101", mua_status=UNDECIDED))
        record = upsert_client_service_from_source(db, source, "101", ServiceCategory.MUA, board_config)
        created = create_batch(db, record.id, BatchMode.BROADCAST, BatchStartReason.UNDECIDED, now=T0)
        by_artist = {
            p.artist_id: p for p in db.query(Proposal).filter(Proposal.batch_id == created.batch_id).all()
        }
        respond(db, by_artist[founder.id].id, "YES", "u1", now=T0)
        respond(db, by_artist[fresh.id].id, "NO", "u2", now=T0)

        info = get_client_info(db, source, board_config, "101")

        assert info["board"]["client_name"] == "Maria Costa"
        assert info["board"]["statuses"]["MUA"] == UNDECIDED
        assert info["board_error"] is None
        assert [a["email"] for a in info["available_artists"]["MUA"]["FOUNDER"]] == ["ana@example.com"]
        assert [a["email"] for a in info["unavailable_artists"]["MUA"]["FRESH"]] == ["zoe@example.com"]
        (service,) = info["services"]
        assert service["latest_batch"]["batch_id"] == created.batch_id
        actions = [e["action"] for e in info["timeline"]]
        assert "BATCH_CREATED" in actions and "PROPOSAL_RESPONSE" in actions

    def test_board_down_falls_back_to_local_data(self, db, source, board_config, make_client_service):
        make_client_service(monday_item_id="555")
        source.fail = True

        info = get_client_info(db, source, board_config, "555")

        assert info["board"] is None
        assert "board down" in info["board_error"]
        assert len(info["services"]) == 1

    def test_unknown_everywhere(self, db, source, board_config):
        with pytest.raises(NotFoundError):
            get_client_info(db, source, board_config, "999")
