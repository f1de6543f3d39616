"""
Batches and client services: open a batch, list a client's batches, sync/delete records,
and trigger the deadline sweep on demand.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from artist_dispatch.api.deps import (
    BoardConfig,
    BookingSource,
    NotificationGateway,
    board_config_dep,
    booking_source_dep,
    gateway_dep,
    optional_actor_id,
)
from artist_dispatch.core.enums import BatchMode, BatchStartReason, ServiceCategory
from artist_dispatch.core.errors import DispatchError, dispatch_error_to_http
from artist_dispatch.db.session import get_db
from artist_dispatch.services.client_records import (
    delete_client_service,
    sync_open_bookings,
    upsert_client_service_from_source,
)
from artist_dispatch.services.deadline_sweeper import sweep_expired_batches
from artist_dispatch.services.effects import run_effects
from artist_dispatch.services.proposal_engine import create_batch
from artist_dispatch.services.proposal_ledger import list_batches_for_client_service

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateBatchBody(BaseModel):
    client_service_id: int | None = Field(None, description="Existing client service; or give monday_item_id + category")
    monday_item_id: str | None = Field(None, max_length=32)
    category: ServiceCategory | None = None
    mode: BatchMode
    start_reason: BatchStartReason = BatchStartReason.MANUAL
    target_count: int | None = Field(None, ge=1)
    artist_ids: list[int] | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def require_client_reference(self):
        if self.client_service_id is None and not (self.monday_item_id and self.category):
            raise ValueError("Give client_service_id, or monday_item_id and category")
        return self


@router.post("/batches")
def create_batch_route(
    body: CreateBatchBody,
    db: Session = Depends(get_db),
    source: BookingSource = Depends(booking_source_dep),
    gateway: NotificationGateway = Depends(gateway_dep),
    board_config: BoardConfig = Depends(board_config_dep),
    actor: str | None = Depends(optional_actor_id),
) -> dict[str, Any]:
    """
    Open a batch. With monday_item_id + category the client service is first upserted from the board
    (board unreachable -> 502, nothing created). Pushes go out after the batch is committed.
    """
    try:
        cs_id = body.client_service_id
        if cs_id is None:
            record = upsert_client_service_from_source(
                db, source, body.monday_item_id, body.category, board_config, actor=actor
            )
            cs_id = record.id
        created = create_batch(
            db, cs_id, body.mode, body.start_reason, body.target_count,
            artist_ids=body.artist_ids, actor=actor,
        )
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    errors = run_effects(db, gateway, created.effects)
    return {**created.to_dict(), "client_service_id": cs_id, "notification_errors": errors}


@router.get("/client-services/{client_service_id}/batches")
def list_client_service_batches(client_service_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """All batches of the client service, newest first, with proposals and artists."""
    try:
        batches = list_batches_for_client_service(db, client_service_id)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return {"client_service_id": client_service_id, "batches": batches}


@router.post("/client-services/sync")
def sync_client_services(
    db: Session = Depends(get_db),
    source: BookingSource = Depends(booking_source_dep),
    board_config: BoardConfig = Depends(board_config_dep),
    actor: str | None = Depends(optional_actor_id),
) -> dict[str, Any]:
    """Upsert client services for every board item currently waiting for artists."""
    try:
        return sync_open_bookings(db, source, board_config, actor=actor)
    except DispatchError as e:
        raise dispatch_error_to_http(e)


@router.delete("/client-services/{client_service_id}")
def delete_client_service_route(
    client_service_id: int,
    db: Session = Depends(get_db),
    actor: str | None = Depends(optional_actor_id),
) -> dict[str, Any]:
    """Delete a client service and its history. 409 while a batch is open."""
    try:
        delete_client_service(db, client_service_id, actor=actor)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return {"ok": True, "deleted": client_service_id}


@router.post("/jobs/process-deadlines")
def process_deadlines(
    db: Session = Depends(get_db),
    gateway: NotificationGateway = Depends(gateway_dep),
) -> dict[str, Any]:
    """Run the deadline sweep now (same work as the scheduled job). Per-batch failures are in errors."""
    result = sweep_expired_batches(db, gateway)
    return {"success": True, **result.to_dict()}
