"""Push notification registration: artist device tokens for new-proposal alerts."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from artist_dispatch.core.errors import DispatchError, dispatch_error_to_http
from artist_dispatch.core.timeutil import utcnow
from artist_dispatch.db.session import get_db
from artist_dispatch.models.push_token import PushToken
from artist_dispatch.services.artist_directory import get_artist

router = APIRouter()
logger = logging.getLogger(__name__)


class RegisterPushBody(BaseModel):
    device_token: str = Field(..., min_length=1, max_length=256, description="APNs device token (hex string)")
    artist_id: int = Field(..., ge=1)
    platform: str = Field(default="ios", pattern="^(ios|android)$")


@router.post("/push/register")
def register_push_token(body: RegisterPushBody, db: Session = Depends(get_db)):
    """
    Register an artist's device for new-proposal pushes.
    Idempotent: same token is re-bound to the artist and updated_at refreshed.
    """
    try:
        artist = get_artist(db, body.artist_id)
    except DispatchError as e:
        raise dispatch_error_to_http(e)
    token_str = body.device_token.strip()
    existing = db.query(PushToken).filter(PushToken.device_token == token_str).first()
    if existing:
        existing.artist_id = artist.id
        existing.platform = body.platform
        existing.updated_at = utcnow()
        db.commit()
        return {"ok": True, "message": "Token already registered"}
    db.add(PushToken(device_token=token_str, platform=body.platform, artist_id=artist.id))
    db.commit()
    logger.info("Registered push token for artist=%s platform=%s", artist.id, body.platform)
    return {"ok": True, "message": "Token registered"}
