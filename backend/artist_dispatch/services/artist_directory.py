"""
Artist directory: who can receive proposals, and admin provisioning.

Selection rules:
  SINGLE    -> active artists of the category ordered by tier (1 first), then oldest first; take target_count (default 1).
  BROADCAST -> every active artist of the category. No tier, distance or capacity filtering.
"""
import logging
import re
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from artist_dispatch.core.constants import (
    AUDIT_ARTIST_CATEGORY_CORRECTED,
    AUDIT_ARTIST_CREATED,
    AUDIT_ARTIST_DEACTIVATED,
    ENTITY_ARTIST,
)
from artist_dispatch.core.enums import ArtistTier, BatchMode, BatchState, ServiceCategory
from artist_dispatch.core.errors import CategoryChangeError, ConflictError, NotFoundError, ValidationError
from artist_dispatch.models.artist import Artist
from artist_dispatch.models.proposal import Proposal
from artist_dispatch.models.proposal_batch import ProposalBatch
from artist_dispatch.services.audit import log_audit

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_category(value) -> ServiceCategory:
    try:
        return ServiceCategory(str(getattr(value, "value", value)).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid category {value!r}. Use MUA or HS.") from None


def parse_tier(value) -> ArtistTier:
    if isinstance(value, str) and not value.strip().isdigit():
        try:
            return ArtistTier[value.strip().upper()]
        except KeyError:
            raise ValidationError(f"Invalid tier {value!r}. Use 1-3 or FOUNDER/RESIDENT/FRESH.") from None
    try:
        return ArtistTier(int(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid tier {value!r}. Use 1-3 or FOUNDER/RESIDENT/FRESH.") from None


def tier_name(value) -> str | None:
    try:
        return ArtistTier(int(value)).name
    except (TypeError, ValueError):
        return None


def select_eligible_artists(
    db: Session,
    category: ServiceCategory,
    mode: BatchMode,
    target_count: int | None = None,
    exclude_ids: Iterable[int] = (),
) -> list[Artist]:
    q = db.query(Artist).filter(Artist.category == category.value, Artist.active.is_(True))
    excluded = [int(i) for i in exclude_ids]
    if excluded:
        q = q.filter(Artist.id.notin_(excluded))
    q = q.order_by(Artist.tier.asc(), Artist.created_at.asc(), Artist.id.asc())
    if mode == BatchMode.SINGLE:
        return q.limit(target_count or 1).all()
    return q.all()


def count_active_artists(db: Session, category: ServiceCategory) -> int:
    return (
        db.query(func.count(Artist.id))
        .filter(Artist.category == category.value, Artist.active.is_(True))
        .scalar()
        or 0
    )


def get_artist(db: Session, artist_id: int) -> Artist:
    artist = db.query(Artist).filter(Artist.id == artist_id).first()
    if artist is None:
        raise NotFoundError(f"Artist {artist_id} not found")
    return artist


def get_artist_by_email(db: Session, email: str, category: ServiceCategory | None = None) -> Artist | None:
    q = db.query(Artist).filter(func.lower(Artist.email) == (email or "").strip().lower())
    if category is not None:
        q = q.filter(Artist.category == category.value)
    return q.first()


def get_artist_by_monday_item(db: Session, monday_item_id: str) -> Artist | None:
    return db.query(Artist).filter(Artist.monday_item_id == str(monday_item_id)).first()


def list_artists(
    db: Session,
    category: ServiceCategory | None = None,
    active: bool | None = None,
) -> list[Artist]:
    q = db.query(Artist)
    if category is not None:
        q = q.filter(Artist.category == category.value)
    if active is not None:
        q = q.filter(Artist.active.is_(active))
    return q.order_by(Artist.category.asc(), Artist.tier.asc(), Artist.created_at.asc(), Artist.id.asc()).all()


def create_artist(
    db: Session,
    *,
    email: str,
    category,
    tier=ArtistTier.FRESH,
    name: str | None = None,
    user_id: str | None = None,
    monday_item_id: str | None = None,
    actor: str | None = None,
) -> Artist:
    """Provision an artist (admin). Email is the natural key; duplicates are a conflict."""
    email = (email or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError(f"Invalid email {email!r}")
    cat = parse_category(category)
    tier_val = parse_tier(tier)
    if get_artist_by_email(db, email) is not None:
        raise ConflictError(f"Artist with email {email} already exists")
    artist = Artist(
        email=email,
        name=(name or "").strip() or None,
        category=cat.value,
        tier=int(tier_val),
        active=True,
        user_id=(user_id or "").strip() or None,
        monday_item_id=(str(monday_item_id).strip() if monday_item_id else None),
    )
    db.add(artist)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Artist with email {email} or user id {user_id} already exists") from None
    log_audit(
        db,
        action=AUDIT_ARTIST_CREATED,
        entity_type=ENTITY_ARTIST,
        entity_id=artist.id,
        actor=actor,
        details={"email": email, "category": cat.value, "tier": int(tier_val)},
    )
    db.commit()
    db.refresh(artist)
    logger.info("Created artist %s (%s, tier %s)", artist.id, cat.value, int(tier_val))
    return artist


def deactivate_artist(db: Session, artist_id: int, *, actor: str | None = None) -> Artist:
    """Soft delete. Pending proposals stay; the artist just stops being selected."""
    artist = get_artist(db, artist_id)
    if not artist.active:
        return artist
    artist.active = False
    log_audit(
        db,
        action=AUDIT_ARTIST_DEACTIVATED,
        entity_type=ENTITY_ARTIST,
        entity_id=artist.id,
        actor=actor,
        details={"email": artist.email, "category": artist.category},
    )
    db.commit()
    db.refresh(artist)
    return artist


def correct_artist_category(
    db: Session,
    artist_id: int,
    new_category,
    *,
    actor: str | None = None,
    reason: str | None = None,
) -> Artist:
    """
    Admin-only category correction. Refused while the artist has unanswered proposals in
    OPEN batches, since those offers were made for the old category.
    """
    cat = parse_category(new_category)
    artist = get_artist(db, artist_id)
    if artist.category == cat.value:
        raise ValidationError(f"Artist {artist_id} is already {cat.value}")
    pending = (
        db.query(func.count(Proposal.id))
        .join(ProposalBatch, ProposalBatch.id == Proposal.batch_id)
        .filter(
            Proposal.artist_id == artist.id,
            Proposal.response.is_(None),
            ProposalBatch.state == BatchState.OPEN.value,
        )
        .scalar()
        or 0
    )
    if pending:
        raise CategoryChangeError(
            f"Artist {artist_id} has {pending} pending proposal(s) in open batches; resolve them first"
        )
    old = artist.category
    artist.category = cat.value
    log_audit(
        db,
        action=AUDIT_ARTIST_CATEGORY_CORRECTED,
        entity_type=ENTITY_ARTIST,
        entity_id=artist.id,
        actor=actor,
        details={"from": old, "to": cat.value, "reason": reason},
    )
    db.commit()
    db.refresh(artist)
    logger.info("Artist %s category corrected %s -> %s", artist.id, old, cat.value)
    return artist


def artist_to_dict(artist: Artist) -> dict:
    return {
        "id": artist.id,
        "email": artist.email,
        "name": artist.name,
        "category": artist.category,
        "tier": artist.tier,
        "tier_name": tier_name(artist.tier),
        "active": bool(artist.active),
        "user_id": artist.user_id,
        "monday_item_id": artist.monday_item_id,
    }
