from shuttle.db.base import Base
from shuttle.db.session import get_db, engine, SessionLocal
from shuttle.db.tables import ALL_TABLE_NAMES, CAPACITY_TABLE_NAMES
from shuttle.db.upsert import insert_for

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "CAPACITY_TABLE_NAMES", "insert_for"]
