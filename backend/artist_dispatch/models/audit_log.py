"""Append-only audit trail. Written in the same transaction as the change it describes; never updated."""
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from artist_dispatch.core.timeutil import utcnow
from artist_dispatch.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor = Column(String(64), nullable=False, default="system")
    action = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(32), nullable=False)
    entity_id = Column(String(64), nullable=False)
    # Set when the entry concerns a client service (drives the backoffice timeline)
    client_service_id = Column(
        Integer, ForeignKey("client_services.id", ondelete="SET NULL"), nullable=True, index=True
    )
    details = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
