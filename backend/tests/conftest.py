"""Pytest fixtures: in-memory SQLite session, fake board source and gateway, API client."""

import json
import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

# Settings are read at import time; keep tests off the real database and board
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MONDAY_API_TOKEN", "")
os.environ.setdefault("PROPOSAL_DEADLINE_HOURS", "24")
os.environ.setdefault("RUN_SWEEP_ON_STARTUP", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from artist_dispatch.api.deps import board_config_dep, booking_source_dep, gateway_dep
from artist_dispatch.core.board_config import BoardConfig, CategoryColumns
from artist_dispatch.core.enums import ServiceCategory
from artist_dispatch.core.errors import BookingSourceError, NotificationError
from artist_dispatch.db.base import Base
from artist_dispatch.db.session import get_db
from artist_dispatch.main import app
from artist_dispatch.models import Artist, ClientService
from artist_dispatch.services.monday import BoardItem, BoardPage, ItemNote

T0 = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)

UNDECIDED = "Undecided – Inquire availabilities"
TRAVELLING = "Travelling fee + inquire the artist"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def board_config() -> BoardConfig:
    return BoardConfig(
        clients_board_id="board-1",
        columns={
            ServiceCategory.MUA: CategoryColumns("project_status", "connect_mua", "email_automation"),
            ServiceCategory.HS: CategoryColumns("dup__of_mstatus", "connect_hs", "email_automation"),
        },
        artist_names={
            ServiceCategory.MUA: {"Ana Silva": "ana@example.com"},
            ServiceCategory.HS: {"Rita Lopes": "rita@example.com"},
        },
    )


def board_item(
    item_id: str = "101",
    *,
    name: str = "Maria Costa",
    mua_status: str | None = None,
    hs_status: str | None = None,
    event_date: str | None = "2026-06-14",
    chosen_mua: list[int] | None = None,
    email: str | None = "maria@example.com",
    trial_date: str | None = None,
) -> BoardItem:
    """A clients-board item shaped like the GraphQL response."""
    cols = [
        {"id": "short_text8", "text": name, "value": json.dumps(name)},
        {"id": "email4", "text": email, "value": None},
        {"id": "location", "text": "Sintra", "value": None},
    ]
    if event_date:
        cols.append({"id": "date6", "text": event_date, "value": json.dumps({"date": event_date})})
    if mua_status:
        cols.append({"id": "project_status", "text": mua_status, "value": json.dumps({"index": 1})})
    if hs_status:
        cols.append({"id": "dup__of_mstatus", "text": hs_status, "value": json.dumps({"index": 1})})
    if trial_date:
        cols.append({"id": "date_mkpj7c7s", "text": trial_date, "value": json.dumps({"date": trial_date})})
    if chosen_mua is not None:
        linked = {"linkedPulseIds": [{"linkedPulseId": i} for i in chosen_mua]}
        cols.append({"id": "connect_mua", "text": "", "value": json.dumps(linked)})
    return BoardItem.from_api({"id": item_id, "name": name, "board": {"id": "board-1"}, "column_values": cols})


class FakeSource:
    """In-memory BookingSource."""

    def __init__(self):
        self.items: dict[str, BoardItem] = {}
        self.notes: dict[str, list[ItemNote]] = {}
        self.writes: list[tuple[str, dict]] = []
        self.appended: list[tuple[str, str]] = []
        self.fail = False
        self.note_reads = 0

    def add(self, item: BoardItem) -> BoardItem:
        self.items[item.id] = item
        return item

    def get_item(self, item_id):
        if self.fail:
            raise BookingSourceError("board down")
        if str(item_id) not in self.items:
            raise BookingSourceError(f"Board item {item_id} not found")
        return self.items[str(item_id)]

    def get_board_items(self, board_id, cursor=None):
        if self.fail:
            raise BookingSourceError("board down")
        return BoardPage(list(self.items.values()), None)

    def iter_board_items(self, board_id):
        yield from self.get_board_items(board_id).items

    def get_item_notes(self, item_id):
        self.note_reads += 1
        return list(self.notes.get(str(item_id), []))

    def set_field(self, item_id, field_key, value):
        self.set_fields(item_id, {field_key: value})

    def set_fields(self, item_id, values):
        if self.fail:
            raise BookingSourceError("board down")
        self.writes.append((str(item_id), dict(values)))

    def append_note(self, item_id, text):
        if self.fail:
            raise BookingSourceError("board down")
        self.appended.append((str(item_id), text))


class FakeGateway:
    """Records notifications and automations instead of sending them."""

    def __init__(self):
        self.notified: list[tuple[list[int], str]] = []
        self.category_pushes: list[ServiceCategory] = []
        self.automations: list[tuple[str, ServiceCategory, str]] = []
        self.fail_automation = False

    def notify_artists(self, db, artist_ids, *, client_name, category, event_date=None):
        self.notified.append((list(artist_ids), client_name))
        return len(artist_ids)

    def notify_category(self, db, category, title, body):
        self.category_pushes.append(category)
        return 0

    def trigger_automation(self, monday_item_id, category, automation):
        if self.fail_automation:
            raise NotificationError("column write failed")
        self.automations.append((monday_item_id, category, automation.value))


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def make_artist(db: Session):
    """Factory: artists created in order get increasing created_at."""
    counter = {"n": 0}

    def _make(category="MUA", tier=3, active=True, email=None, name=None, monday_item_id=None) -> Artist:
        counter["n"] += 1
        n = counter["n"]
        artist = Artist(
            email=email or f"artist{n}@example.com",
            name=name or f"Artist {n}",
            category=category,
            tier=tier,
            active=active,
            monday_item_id=monday_item_id,
            created_at=T0 - timedelta(days=100 - n),
        )
        db.add(artist)
        db.commit()
        db.refresh(artist)
        return artist

    return _make


@pytest.fixture
def make_client_service(db: Session):
    counter = {"n": 0}

    def _make(category="MUA", monday_item_id=None, client_name="Maria Costa") -> ClientService:
        counter["n"] += 1
        record = ClientService(
            monday_item_id=monday_item_id or str(500 + counter["n"]),
            category=category,
            client_name=client_name,
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make


@pytest.fixture
def client(db: Session, source: FakeSource, gateway: FakeGateway, board_config: BoardConfig) -> Generator[TestClient, None, None]:
    """TestClient with database and collaborators overridden. Lifespan (scheduler) is not started."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[booking_source_dep] = lambda: source
    app.dependency_overrides[gateway_dep] = lambda: gateway
    app.dependency_overrides[board_config_dep] = lambda: board_config
    yield TestClient(app)
    app.dependency_overrides.clear()
