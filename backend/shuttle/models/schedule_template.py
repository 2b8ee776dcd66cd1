from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from shuttle.db.base import Base


class ScheduleTemplate(Base):
    """Weekly recurring ride: day_of_week 0=Sunday..6=Saturday, arrival_time local HH:MM."""

    __tablename__ = "schedule_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    direction = Column(String(16), nullable=False)  # to_work | to_home
    arrival_time = Column(String(5), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "day_of_week", "direction", name="uq_schedule_template_user_day_direction"),
    )
