"""Artist-facing proposals: respond YES/NO, list what is still open, stats."""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from artist_dispatch.api.deps import actor_id
from artist_dispatch.core.enums import ProposalResponse
from artist_dispatch.core.errors import DispatchError, dispatch_error_to_http
from artist_dispatch.db.session import get_db
from artist_dispatch.services.proposal_engine import respond
from artist_dispatch.services.proposal_ledger import get_artist_proposal_stats, list_open_proposals_for_artist

router = APIRouter()
logger = logging.getLogger(__name__)


class RespondBody(BaseModel):
    response: ProposalResponse


@router.post("/proposals/{proposal_id}/respond")
def respond_to_proposal(
    proposal_id: int,
    body: RespondBody,
    db: Session = Depends(get_db),
    actor: str = Depends(actor_id),
) -> dict[str, Any]:
    """
    Record the artist's answer. 404 unknown proposal; 409 already answered or batch closed.
    """
    try:
        outcome = respond(db, proposal_id, body.response, actor)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return {"success": True, **outcome.to_dict()}


@router.get("/artists/{artist_id}/proposals")
def list_artist_proposals(artist_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Open proposals the artist can still answer, soonest deadline first."""
    try:
        proposals = list_open_proposals_for_artist(db, artist_id)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return {"artist_id": artist_id, "proposals": proposals, "count": len(proposals)}


@router.get("/artists/{artist_id}/stats")
def artist_stats(artist_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    try:
        return get_artist_proposal_stats(db, artist_id)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
