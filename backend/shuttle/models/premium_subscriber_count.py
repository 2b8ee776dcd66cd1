"""Single-row global counter of premium subscribers (current_count <= max_count)."""
from sqlalchemy import CheckConstraint, Column, DateTime, Integer
from sqlalchemy.sql import func

from shuttle.db.base import Base


class PremiumSubscriberCount(Base):
    __tablename__ = "premium_subscriber_count"

    id = Column(Integer, primary_key=True)  # always 1
    current_count = Column(Integer, nullable=False, default=0)
    max_count = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)

    __table_args__ = (
        CheckConstraint("current_count >= 0 AND current_count <= max_count", name="ck_premium_count_bounds"),
    )
