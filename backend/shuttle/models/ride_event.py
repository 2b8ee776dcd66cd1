"""Audit trail: one row per applied ride status transition, written in the transition's transaction."""
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from shuttle.db.base import Base


class RideEvent(Base):
    __tablename__ = "ride_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False, index=True)
    old_status = Column(String(32), nullable=False)
    new_status = Column(String(32), nullable=False)
    actor_type = Column(String(16), nullable=False, default="system")  # system | rider | driver | admin
    actor_id = Column(Integer, nullable=True)
    meta = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
