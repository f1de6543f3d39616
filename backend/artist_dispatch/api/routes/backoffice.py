"""Backoffice: client view with availability and timeline, recent batches."""
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from artist_dispatch.api.deps import BoardConfig, BookingSource, board_config_dep, booking_source_dep
from artist_dispatch.core.constants import RECENT_BATCHES_LIMIT
from artist_dispatch.core.enums import BatchState
from artist_dispatch.core.errors import DispatchError, dispatch_error_to_http
from artist_dispatch.db.session import get_db
from artist_dispatch.services.client_records import get_client_info
from artist_dispatch.services.proposal_ledger import list_recent_batches

router = APIRouter()


@router.get("/backoffice/clients/{monday_item_id}")
def backoffice_client(
    monday_item_id: str,
    db: Session = Depends(get_db),
    source: BookingSource = Depends(booking_source_dep),
    board_config: BoardConfig = Depends(board_config_dep),
) -> dict[str, Any]:
    try:
        return get_client_info(db, source, board_config, monday_item_id)
    except DispatchError as e:
        raise dispatch_error_to_http(e)


@router.get("/backoffice/batches")
def backoffice_batches(
    db: Session = Depends(get_db),
    limit: int = Query(RECENT_BATCHES_LIMIT, ge=1, le=200),
    state: BatchState | None = Query(None),
) -> dict[str, Any]:
    batches = list_recent_batches(db, limit=limit, state=state.value if state else None)
    return {"batches": batches, "count": len(batches)}
