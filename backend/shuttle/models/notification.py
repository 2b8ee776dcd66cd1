"""Rider-facing notification record. sms_status: skipped | queued | sent | failed."""
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from shuttle.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    ride_id = Column(Integer, nullable=True, index=True)
    kind = Column(String(32), nullable=False)  # e.g. ride_status
    message = Column(Text, nullable=False)
    sms_status = Column(String(16), nullable=False, default="skipped")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
