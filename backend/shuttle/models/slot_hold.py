"""
Provisional reservation against a slot. status: active -> confirmed | expired | cancelled (all terminal).
While active, the hold owns one unit of the slot's tier counter.
"""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, text
from sqlalchemy.sql import func

from shuttle.db.base import Base


class SlotHold(Base):
    __tablename__ = "slot_holds"

    hold_id = Column(String(64), primary_key=True)  # hold_<uuid4>
    slot_id = Column(String(64), ForeignKey("slot_capacity.slot_id"), nullable=False, index=True)
    rider_id = Column(Integer, nullable=False, index=True)
    plan_type = Column(String(16), nullable=False)  # premium | standard | light

    origin_lat = Column(Float, nullable=True)
    origin_lng = Column(Float, nullable=True)
    destination_lat = Column(Float, nullable=True)
    destination_lng = Column(Float, nullable=True)
    origin_address = Column(String(256), nullable=True)
    destination_address = Column(String(256), nullable=True)

    status = Column(String(16), nullable=False, default="active", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    released_at = Column(DateTime(timezone=True), nullable=True)  # set on expire/cancel
    confirmed_ride_id = Column(Integer, nullable=True)

    __table_args__ = (
        Index(
            "uq_slot_holds_active_slot_rider",
            "slot_id",
            "rider_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )
