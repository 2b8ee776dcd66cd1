"""
One row per (date, arrival slot, direction). Counters are mutated only through
services/slots/ledger.py; the CHECK constraints hold the per-tier bounds and keep
peak slots closed to non-premium riders.
"""
from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, Integer, String
from sqlalchemy.sql import func

from shuttle.db.base import Base


class SlotCapacity(Base):
    __tablename__ = "slot_capacity"

    slot_id = Column(String(64), primary_key=True)  # slot_YYYY-MM-DD_HH:MM_direction
    date = Column(Date, nullable=False, index=True)
    direction = Column(String(32), nullable=False)
    slot_type = Column(String(16), nullable=False)  # peak | off_peak
    arrival_start = Column(String(5), nullable=False)  # local HH:MM
    arrival_end = Column(String(5), nullable=False)

    max_riders_premium = Column(Integer, nullable=False, default=0)
    used_riders_premium = Column(Integer, nullable=False, default=0)
    max_riders_non_premium = Column(Integer, nullable=False, default=0)
    used_riders_non_premium = Column(Integer, nullable=False, default=0)
    is_fragile = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "used_riders_premium >= 0 AND used_riders_premium <= max_riders_premium",
            name="ck_slot_capacity_premium_bounds",
        ),
        CheckConstraint(
            "used_riders_non_premium >= 0 AND used_riders_non_premium <= max_riders_non_premium",
            name="ck_slot_capacity_non_premium_bounds",
        ),
        CheckConstraint(
            "slot_type <> 'peak' OR max_riders_non_premium = 0",
            name="ck_slot_capacity_peak_premium_only",
        ),
    )
