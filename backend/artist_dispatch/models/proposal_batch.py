"""One round of offers for a client service. OPEN -> COMPLETED | EXPIRED_NO_ACTION; terminal states never reopen."""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.sql import func

from artist_dispatch.core.timeutil import utcnow
from artist_dispatch.db.base import Base


class ProposalBatch(Base):
    __tablename__ = "proposal_batches"
    __table_args__ = (
        Index("ix_proposal_batches_state_deadline", "state", "deadline_at"),
        # At most one OPEN batch per client service
        Index(
            "uq_proposal_batches_one_open",
            "client_service_id",
            unique=True,
            postgresql_where=text("state = 'OPEN'"),
            sqlite_where=text("state = 'OPEN'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_service_id = Column(
        Integer, ForeignKey("client_services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    mode = Column(String(16), nullable=False)  # SINGLE | BROADCAST
    state = Column(String(24), nullable=False, default="OPEN")  # OPEN | COMPLETED | EXPIRED_NO_ACTION
    start_reason = Column(String(32), nullable=False)
    target_count = Column(Integer, nullable=True)  # SINGLE override; NULL = default 1
    deadline_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)  # set on COMPLETED and EXPIRED_NO_ACTION
