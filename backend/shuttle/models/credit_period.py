"""
Per-user credit ledger for one calendar month. Consumption is a conditional update
(used < total) in services/credits.py; refunds floor at zero.
"""
from sqlalchemy import Column, Date, DateTime, Integer, UniqueConstraint
from sqlalchemy.sql import func

from shuttle.db.base import Base


class CreditPeriod(Base):
    __tablename__ = "ride_credit_periods"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)  # exclusive: first day of next month

    standard_total = Column(Integer, nullable=False, default=0)
    standard_used = Column(Integer, nullable=False, default=0)
    grocery_total = Column(Integer, nullable=False, default=0)
    grocery_used = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "period_start", name="uq_credit_period_user_start"),)
