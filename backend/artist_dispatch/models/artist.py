"""Artist eligible for proposals. One category per artist; deactivated (active=False) instead of deleted."""
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func

from artist_dispatch.core.timeutil import utcnow
from artist_dispatch.db.base import Base


class Artist(Base):
    __tablename__ = "artists"
    __table_args__ = (
        Index("ix_artists_category_active_tier", "category", "active", "tier"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=True, unique=True)  # opaque identity reference from the auth layer
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    category = Column(String(8), nullable=False)  # MUA | HS
    tier = Column(Integer, nullable=False, default=3)  # 1 FOUNDER, 2 RESIDENT, 3 FRESH
    active = Column(Boolean, nullable=False, default=True)
    monday_item_id = Column(String(32), nullable=True, index=True)  # item on the artists board (chosen-artist links)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)
