"""One artist's offer within a batch. Response is write-once (except SINGLE auto-decline)."""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from artist_dispatch.core.timeutil import utcnow
from artist_dispatch.db.base import Base


class Proposal(Base):
    __tablename__ = "proposals"
    __table_args__ = (
        UniqueConstraint("batch_id", "artist_id", name="uq_proposals_batch_artist"),
        Index("ix_proposals_artist_response", "artist_id", "response"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(Integer, ForeignKey("proposal_batches.id", ondelete="CASCADE"), nullable=False, index=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False)
    # Denormalized from the batch for "has this artist answered this client before" queries
    client_service_id = Column(
        Integer, ForeignKey("client_services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    response = Column(String(8), nullable=True)  # NULL = pending | YES | NO
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
