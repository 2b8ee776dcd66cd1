"""Plans (premium / standard / light) and per-user subscriptions."""
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from shuttle.db.base import Base


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(32), nullable=False, unique=True)
    name = Column(String(64), nullable=False)
    peak_access = Column(Boolean, nullable=False, default=False)
    standard_credits = Column(Integer, nullable=False, default=0)
    grocery_credits = Column(Integer, nullable=False, default=0)
    price_cents = Column(Integer, nullable=False, default=0)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    status = Column(String(16), nullable=False, default="active", index=True)  # active | cancelled
    current_period_start = Column(Date, nullable=False)
    current_period_end = Column(Date, nullable=False)
    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
