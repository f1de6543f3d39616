"""Tests for Monday.com webhook intake: status triggers become batches."""

import json

from artist_dispatch.core.enums import ServiceCategory
from artist_dispatch.models import AuditLog, Proposal, ProposalBatch
from artist_dispatch.services.monday import ItemNote
from artist_dispatch.services.webhook_service import handle_board_event

from conftest import TRAVELLING, UNDECIDED, board_item


def _status_event(item_id="101", text=UNDECIDED, column="project_status"):
    return {
        "event": {
            "type": "update_column_value",
            "boardId": "board-1",
            "pulseId": item_id,
            "columnId": column,
            "value": {"label": {"index": 1, "text": text}},
        }
    }


def _handle(db, source, gateway, board_config, payload):
    return handle_board_event(db, source, gateway, payload, board_config, sleep=lambda s: None)


def _only_batch(db):
    (batch,) = db.query(ProposalBatch).all()
    return batch


def test_challenge_is_echoed(db, source, gateway, board_config):
    assert _handle(db, source, gateway, board_config, {"challenge": "abc"}) == {"challenge": "abc"}


def test_undecided_opens_broadcast(db, source, gateway, board_config, make_artist):
    artists = [make_artist() for _ in range(2)]
    make_artist("HS")
    source.add(board_item("101", mua_status=UNDECIDED))

    out = _handle(db, source, gateway, board_config, _status_event())

    assert out["success"] is True
    batch = _only_batch(db)
    assert batch.mode == "BROADCAST"
    assert batch.start_reason == "UNDECIDED"
    assert {p.artist_id for p in db.query(Proposal).all()} == {a.id for a in artists}
    assert gateway.notified == [([a.id for a in artists], "Maria Costa")]
    assert db.query(AuditLog).filter(AuditLog.action == "MARKED_UNDECIDED").count() == 1


def test_status_with_other_dashes_and_case_matches(db, source, gateway, board_config, make_artist):
    make_artist()
    source.add(board_item("101"))
    _handle(db, source, gateway, board_config, _status_event(text="UNDECIDED-inquire   availabilities"))
    assert _only_batch(db).mode == "BROADCAST"


def test_hs_column_creates_hs_record(db, source, gateway, board_config, make_artist):
    hs = make_artist("HS")
    source.add(board_item("101", hs_status=UNDECIDED))

    _handle(db, source, gateway, board_config, _status_event(column="dup__of_mstatus"))

    (proposal,) = db.query(Proposal).all()
    assert proposal.artist_id == hs.id


def test_repeated_event_does_not_duplicate_open_batch(db, source, gateway, board_config, make_artist):
    make_artist()
    source.add(board_item("101"))
    _handle(db, source, gateway, board_config, _status_event())

    out = _handle(db, source, gateway, board_config, _status_event())

    assert out == {"success": True, "note": "open batch exists"}
    assert db.query(ProposalBatch).count() == 1
    (marked,) = db.query(AuditLog).filter(AuditLog.action == "MARKED_UNDECIDED").all()
    assert marked.details["batch_id"] == _only_batch(db).id


def test_travelling_targets_linked_artist(db, source, gateway, board_config, make_artist):
    make_artist(tier=1)
    chosen = make_artist(tier=3, monday_item_id="9001")
    source.add(board_item("101", mua_status=TRAVELLING, chosen_mua=[9001]))

    _handle(db, source, gateway, board_config, _status_event(text=TRAVELLING))

    batch = _only_batch(db)
    assert batch.mode == "SINGLE"
    assert batch.start_reason == "CHOSEN_ARTIST"
    assert [p.artist_id for p in db.query(Proposal).all()] == [chosen.id]


def test_travelling_without_known_artist_uses_tier_priority(db, source, gateway, board_config, make_artist):
    founder = make_artist(tier=1)
    make_artist(tier=2)
    source.add(board_item("101", mua_status=TRAVELLING, chosen_mua=[424242]))

    _handle(db, source, gateway, board_config, _status_event(text=TRAVELLING))

    assert [p.artist_id for p in db.query(Proposal).all()] == [founder.id]


def test_second_option_excludes_named_artist(db, source, gateway, board_config, make_artist):
    ana = make_artist(email="ana@example.com", name="Ana Silva")
    others = [make_artist(), make_artist()]
    source.add(board_item("101"))
    source.notes["101"] = [ItemNote(id="1", text="Copy paste para whatsapp de Ana Silva: olá")]

    out = _handle(db, source, gateway, board_config, _status_event(text="Inquire second option"))

    assert out["excluded_email"] == "ana@example.com"
    batch = _only_batch(db)
    assert batch.start_reason == "SECOND_OPTION"
    ids = {p.artist_id for p in db.query(Proposal).all()}
    assert ids == {a.id for a in others}
    assert ana.id not in ids


def test_second_option_retries_note_lookup(db, source, gateway, board_config, make_artist):
    make_artist()
    source.add(board_item("101"))

    _handle(db, source, gateway, board_config, _status_event(text="Inquire second option"))

    assert source.note_reads == 3
    assert _only_batch(db).start_reason == "SECOND_OPTION"


def test_board_failure_falls_back_to_category_push(db, source, gateway, board_config, make_artist):
    make_artist()
    source.fail = True

    out = _handle(db, source, gateway, board_config, _status_event())

    assert out["note"] == "fallback push"
    assert gateway.category_pushes == [ServiceCategory.MUA]
    assert db.query(ProposalBatch).count() == 0


def test_missing_item_id_pushes_category(db, source, gateway, board_config):
    payload = _status_event()
    del payload["event"]["pulseId"]

    out = _handle(db, source, gateway, board_config, payload)

    assert out["note"] == "push without item id"
    assert gateway.category_pushes == [ServiceCategory.MUA]


def test_ignored_events(db, source, gateway, board_config):
    assert _handle(db, source, gateway, board_config, {"event": {"type": "create_update"}})["message"]
    assert _handle(db, source, gateway, board_config, _status_event(column="text9"))["note"] == "column ignored"
    assert _handle(db, source, gateway, board_config, _status_event(text="Booked"))["note"] == "status ignored"
    assert db.query(ProposalBatch).count() == 0


def test_json_string_value_is_parsed(db, source, gateway, board_config, make_artist):
    make_artist()
    source.add(board_item("101"))
    payload = _status_event()
    payload["event"]["value"] = json.dumps({"label": {"text": UNDECIDED}})

    _handle(db, source, gateway, board_config, payload)

    assert _only_batch(db).mode == "BROADCAST"


def test_created_item_with_travelling_status_targets_named_artist(db, source, gateway, board_config, make_artist):
    make_artist(tier=1)
    ana = make_artist(email="ana@example.com", name="Ana Silva")
    source.add(board_item("101", mua_status=TRAVELLING))
    source.notes["101"] = [ItemNote(id="1", text="copy paste para whatsapp de Ana Silva")]

    out = _handle(db, source, gateway, board_config, {"event": {"type": "create_pulse", "pulseId": 101, "boardId": "board-1"}})

    assert out["success"] is True
    assert [p.artist_id for p in db.query(Proposal).all()] == [ana.id]
