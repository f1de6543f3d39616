"""Admin artist directory: provision, list, deactivate, correct category."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from artist_dispatch.api.deps import optional_actor_id
from artist_dispatch.core.enums import ArtistTier, ServiceCategory
from artist_dispatch.core.errors import DispatchError, dispatch_error_to_http
from artist_dispatch.db.session import get_db
from artist_dispatch.services.artist_directory import (
    artist_to_dict,
    correct_artist_category,
    create_artist,
    deactivate_artist,
    list_artists,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateArtistBody(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    category: ServiceCategory
    tier: ArtistTier = ArtistTier.FRESH
    name: str | None = Field(None, max_length=255)
    user_id: str | None = Field(None, max_length=64)
    monday_item_id: str | None = Field(None, max_length=32)


class CategoryCorrectionBody(BaseModel):
    category: ServiceCategory
    reason: str | None = Field(None, max_length=500)


@router.post("/artists")
def create_artist_route(
    body: CreateArtistBody,
    db: Session = Depends(get_db),
    actor: str | None = Depends(optional_actor_id),
) -> dict[str, Any]:
    try:
        artist = create_artist(
            db,
            email=body.email,
            category=body.category,
            tier=body.tier,
            name=body.name,
            user_id=body.user_id,
            monday_item_id=body.monday_item_id,
            actor=actor,
        )
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return artist_to_dict(artist)


@router.get("/artists")
def list_artists_route(
    db: Session = Depends(get_db),
    category: ServiceCategory | None = Query(None),
    active: bool | None = Query(None),
) -> dict[str, Any]:
    rows = list_artists(db, category=category, active=active)
    return {"artists": [artist_to_dict(a) for a in rows], "count": len(rows)}


@router.post("/artists/{artist_id}/deactivate")
def deactivate_artist_route(
    artist_id: int,
    db: Session = Depends(get_db),
    actor: str | None = Depends(optional_actor_id),
) -> dict[str, Any]:
    """Soft delete: the artist stops receiving new proposals."""
    try:
        return artist_to_dict(deactivate_artist(db, artist_id, actor=actor))
    except DispatchError as e:
        raise dispatch_error_to_http(e)


@router.post("/artists/{artist_id}/category")
def correct_category_route(
    artist_id: int,
    body: CategoryCorrectionBody,
    db: Session = Depends(get_db),
    actor: str | None = Depends(optional_actor_id),
) -> dict[str, Any]:
    """Admin correction of an artist's category (audited). 409 while they have pending offers."""
    try:
        artist = correct_artist_category(db, artist_id, body.category, actor=actor, reason=body.reason)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    return artist_to_dict(artist)
