from artist_dispatch.db.base import Base
from artist_dispatch.db.session import get_db, engine, SessionLocal
from artist_dispatch.db.tables import ALL_TABLE_NAMES, DISPATCH_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "DISPATCH_TABLE_NAMES"]
