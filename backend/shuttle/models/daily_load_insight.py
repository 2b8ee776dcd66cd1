"""Nightly load analysis for one day: overbooked hours and tight back-to-back chains."""
from sqlalchemy import JSON, Column, Date, DateTime, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from shuttle.db.base import Base


class DailyLoadInsight(Base):
    __tablename__ = "daily_load_insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    day = Column(Date, nullable=False, index=True)
    generated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    total_rides = Column(Integer, nullable=False, default=0)
    recommended_start_time = Column(DateTime(timezone=True), nullable=True)
    overbooked_slots = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    at_risk_rides = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
