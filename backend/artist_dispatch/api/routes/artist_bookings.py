"""Artist-facing board views: booked clients, trial dates, bookings to confirm."""
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from artist_dispatch.api.deps import BoardConfig, BookingSource, actor_id, board_config_dep, booking_source_dep
from artist_dispatch.core.errors import DispatchError, dispatch_error_to_http
from artist_dispatch.db.session import get_db
from artist_dispatch.services.artist_bookings import (
    confirm_booking,
    list_booked_clients,
    list_confirmable_bookings,
    log_trial,
)

router = APIRouter()


class TrialBody(BaseModel):
    monday_item_id: str
    trial_date: date


class ConfirmBody(BaseModel):
    monday_item_id: str


@router.get("/artists/{artist_id}/booked-clients")
def booked_clients(
    artist_id: int,
    db: Session = Depends(get_db),
    source: BookingSource = Depends(booking_source_dep),
    board_config: BoardConfig = Depends(board_config_dep),
) -> dict[str, Any]:
    try:
        clients = list_booked_clients(db, source, board_config, artist_id)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return {"artist_id": artist_id, "clients": clients, "count": len(clients)}


@router.post("/artists/{artist_id}/trials")
def log_trial_date(
    artist_id: int,
    body: TrialBody,
    db: Session = Depends(get_db),
    source: BookingSource = Depends(booking_source_dep),
    board_config: BoardConfig = Depends(board_config_dep),
    actor: str = Depends(actor_id),
) -> dict[str, Any]:
    """Set the trial date on the client's board item and leave a note. 502 if the board write fails."""
    try:
        out = log_trial(db, source, board_config, artist_id, body.monday_item_id, body.trial_date, actor=actor)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return {"success": True, **out}


@router.get("/artists/{artist_id}/confirmable-bookings")
def confirmable_bookings(
    artist_id: int,
    db: Session = Depends(get_db),
    source: BookingSource = Depends(booking_source_dep),
    board_config: BoardConfig = Depends(board_config_dep),
) -> dict[str, Any]:
    try:
        items = list_confirmable_bookings(db, source, board_config, artist_id)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return {"artist_id": artist_id, "items": items, "count": len(items)}


@router.post("/artists/{artist_id}/confirm-booking")
def confirm(
    artist_id: int,
    body: ConfirmBody,
    db: Session = Depends(get_db),
    source: BookingSource = Depends(booking_source_dep),
    board_config: BoardConfig = Depends(board_config_dep),
    actor: str = Depends(actor_id),
) -> dict[str, Any]:
    try:
        out = confirm_booking(db, source, board_config, artist_id, body.monday_item_id, actor=actor)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return {"success": True, **out}
