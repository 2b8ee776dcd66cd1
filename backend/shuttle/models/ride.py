"""
A concrete ride. Status moves only through services/ride_lifecycle.py (one transition table).
slot_id/hold_id are set when the ride was booked from or confirmed against a hold; expanded rides carry neither.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.sql import func

from shuttle.db.base import Base


class Ride(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    driver_id = Column(Integer, nullable=True)
    contact_phone = Column(String(32), nullable=True)  # SMS target for status updates

    pickup_address = Column(String(256), nullable=True)
    dropoff_address = Column(String(256), nullable=True)
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    drop_lat = Column(Float, nullable=True)
    drop_lng = Column(Float, nullable=True)

    pickup_time = Column(DateTime(timezone=True), nullable=False, index=True)
    pickup_window_start = Column(DateTime(timezone=True), nullable=True)
    pickup_window_end = Column(DateTime(timezone=True), nullable=True)
    arrival_target = Column(DateTime(timezone=True), nullable=True)
    arrival_window_start = Column(DateTime(timezone=True), nullable=True)
    arrival_window_end = Column(DateTime(timezone=True), nullable=True)

    ride_type = Column(String(16), nullable=False, default="standard")  # standard | grocery
    plan_type = Column(String(16), nullable=True)  # premium | standard | light
    status = Column(String(32), nullable=False, default="pending", index=True)
    slot_id = Column(String(64), ForeignKey("slot_capacity.slot_id"), nullable=True, index=True)
    hold_id = Column(String(64), nullable=True)

    # Per-transition timestamps
    driver_en_route_at = Column(DateTime(timezone=True), nullable=True)
    arrived_at = Column(DateTime(timezone=True), nullable=True)
    in_progress_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Billing
    wait_minutes = Column(Integer, nullable=True)
    wait_charge_cents = Column(Integer, nullable=False, default=0)
    late_minutes = Column(Integer, nullable=True)
    compensation_type = Column(String(16), nullable=False, default="none")  # none | half_refund | full_refund
    compensation_applied = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
