"""
Reporting snapshot of a day's capacity. Recomputed by the capacity planner; never read
for admission decisions.
"""
from sqlalchemy import Column, Date, DateTime, Float, Integer
from sqlalchemy.sql import func

from shuttle.db.base import Base


class DailyCapacitySummary(Base):
    __tablename__ = "daily_capacity_summary"

    date = Column(Date, primary_key=True)
    premium_capacity = Column(Integer, nullable=False, default=0)
    premium_booked_count = Column(Integer, nullable=False, default=0)
    non_premium_capacity_computed = Column(Integer, nullable=False, default=0)
    non_premium_booked_count = Column(Integer, nullable=False, default=0)
    reliability_score = Column(Float, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
