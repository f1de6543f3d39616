"""
Read side of proposals: what an artist can still answer, per-artist stats, and the
batch history of a client service. No writes.
"""
from datetime import datetime

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from artist_dispatch.core.constants import RECENT_BATCHES_LIMIT
from artist_dispatch.core.enums import BatchState, ProposalResponse
from artist_dispatch.core.errors import NotFoundError
from artist_dispatch.core.timeutil import ensure_utc, format_remaining, isoformat, utcnow
from artist_dispatch.models.artist import Artist
from artist_dispatch.models.client_service import ClientService
from artist_dispatch.models.proposal import Proposal
from artist_dispatch.models.proposal_batch import ProposalBatch
from artist_dispatch.services.artist_directory import get_artist


def list_open_proposals_for_artist(db: Session, artist_id: int, *, now: datetime | None = None) -> list[dict]:
    """
    Pending proposals in OPEN batches for the artist's category, oldest deadline first.
    A client service the artist has already answered (YES or NO, in any batch) never shows up again.
    Inactive artists get an empty list.
    """
    artist = get_artist(db, artist_id)
    if not artist.active:
        return []
    now = now or utcnow()
    answered = (
        select(Proposal.client_service_id)
        .where(Proposal.artist_id == artist.id, Proposal.response.isnot(None))
    )
    rows = (
        db.query(Proposal, ProposalBatch, ClientService)
        .join(ProposalBatch, ProposalBatch.id == Proposal.batch_id)
        .join(ClientService, ClientService.id == Proposal.client_service_id)
        .filter(
            Proposal.artist_id == artist.id,
            Proposal.response.is_(None),
            ProposalBatch.state == BatchState.OPEN.value,
            ClientService.category == artist.category,
            Proposal.client_service_id.notin_(answered),
        )
        .order_by(ProposalBatch.deadline_at.asc(), Proposal.id.asc())
        .all()
    )
    out = []
    for proposal, batch, record in rows:
        deadline = ensure_utc(batch.deadline_at)
        out.append(
            {
                "proposal_id": proposal.id,
                "batch_id": batch.id,
                "mode": batch.mode,
                "client_service_id": record.id,
                "monday_item_id": record.monday_item_id,
                "category": record.category,
                "client_name": record.client_name,
                "event_date": record.event_date.isoformat() if record.event_date else None,
                "venue": record.venue,
                "description": record.description,
                "deadline_at": isoformat(deadline),
                "is_expired": deadline <= now,
                "time_remaining": format_remaining(deadline - now),
                "created_at": isoformat(proposal.created_at),
            }
        )
    return out


def get_artist_proposal_stats(db: Session, artist_id: int) -> dict:
    """Totals plus response rate (answered / total) and acceptance rate (accepted / answered), in percent."""
    artist = get_artist(db, artist_id)
    total, accepted, declined = (
        db.query(
            func.count(Proposal.id),
            func.coalesce(func.sum(case((Proposal.response == ProposalResponse.YES.value, 1), else_=0)), 0),
            func.coalesce(func.sum(case((Proposal.response == ProposalResponse.NO.value, 1), else_=0)), 0),
        )
        .filter(Proposal.artist_id == artist.id)
        .one()
    )
    total, accepted, declined = int(total or 0), int(accepted or 0), int(declined or 0)
    answered = accepted + declined
    return {
        "artist_id": artist.id,
        "total": total,
        "accepted": accepted,
        "declined": declined,
        "pending": total - answered,
        "response_rate": round(answered / total * 100, 2) if total else 0.0,
        "acceptance_rate": round(accepted / answered * 100, 2) if answered else 0.0,
    }


def _tally(proposals: list[Proposal]) -> dict[str, int]:
    yes = sum(1 for p in proposals if p.response == ProposalResponse.YES.value)
    no = sum(1 for p in proposals if p.response == ProposalResponse.NO.value)
    return {"total": len(proposals), "yes": yes, "no": no, "pending": len(proposals) - yes - no}


def _batch_view(batch: ProposalBatch, proposal_rows: list[tuple[Proposal, Artist]]) -> dict:
    proposals = [p for p, _ in proposal_rows]
    return {
        "batch_id": batch.id,
        "client_service_id": batch.client_service_id,
        "mode": batch.mode,
        "state": batch.state,
        "start_reason": batch.start_reason,
        "target_count": batch.target_count,
        "deadline_at": isoformat(batch.deadline_at),
        "created_at": isoformat(batch.created_at),
        "completed_at": isoformat(batch.completed_at),
        "tally": _tally(proposals),
        "proposals": [
            {
                "proposal_id": p.id,
                "artist_id": a.id,
                "artist_name": a.name,
                "artist_email": a.email,
                "artist_tier": a.tier,
                "response": p.response,
                "responded_at": isoformat(p.responded_at),
            }
            for p, a in proposal_rows
        ],
    }


def _proposals_by_batch(db: Session, batch_ids: list[int]) -> dict[int, list[tuple[Proposal, Artist]]]:
    grouped: dict[int, list[tuple[Proposal, Artist]]] = {bid: [] for bid in batch_ids}
    if not batch_ids:
        return grouped
    rows = (
        db.query(Proposal, Artist)
        .join(Artist, Artist.id == Proposal.artist_id)
        .filter(Proposal.batch_id.in_(batch_ids))
        .order_by(Artist.tier.asc(), Proposal.id.asc())
        .all()
    )
    for proposal, artist in rows:
        grouped[proposal.batch_id].append((proposal, artist))
    return grouped


def list_batches_for_client_service(db: Session, client_service_id: int) -> list[dict]:
    """Every batch of the client service, newest first, with proposals and artists."""
    if db.query(ClientService.id).filter(ClientService.id == client_service_id).scalar() is None:
        raise NotFoundError(f"Client service {client_service_id} not found")
    batches = (
        db.query(ProposalBatch)
        .filter(ProposalBatch.client_service_id == client_service_id)
        .order_by(ProposalBatch.created_at.desc(), ProposalBatch.id.desc())
        .all()
    )
    grouped = _proposals_by_batch(db, [b.id for b in batches])
    return [_batch_view(b, grouped[b.id]) for b in batches]


def list_recent_batches(db: Session, limit: int = RECENT_BATCHES_LIMIT, state: str | None = None) -> list[dict]:
    """Backoffice listing: latest batches across all clients with client display fields."""
    q = db.query(ProposalBatch, ClientService).join(ClientService, ClientService.id == ProposalBatch.client_service_id)
    if state:
        q = q.filter(ProposalBatch.state == state)
    rows = q.order_by(ProposalBatch.created_at.desc(), ProposalBatch.id.desc()).limit(limit).all()
    grouped = _proposals_by_batch(db, [b.id for b, _ in rows])
    out = []
    for batch, record in rows:
        view = _batch_view(batch, grouped[batch.id])
        view["client_name"] = record.client_name
        view["category"] = record.category
        view["monday_item_id"] = record.monday_item_id
        out.append(view)
    return out
