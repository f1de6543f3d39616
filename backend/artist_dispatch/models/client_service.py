"""Local copy of one board booking for one category. Upserted from the board, never duplicated."""
from sqlalchemy import Column, Date, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from artist_dispatch.core.timeutil import utcnow
from artist_dispatch.db.base import Base


class ClientService(Base):
    __tablename__ = "client_services"
    __table_args__ = (
        UniqueConstraint("monday_item_id", "category", name="uq_client_services_item_category"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    monday_item_id = Column(String(32), nullable=False, index=True)
    category = Column(String(8), nullable=False)  # MUA | HS
    client_name = Column(String(255), nullable=True)
    client_email = Column(String(255), nullable=True)
    event_date = Column(Date, nullable=True)
    venue = Column(String(512), nullable=True)
    description = Column(Text, nullable=True)
    current_status = Column(String(255), nullable=True)  # board status label at last sync
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)
