"""
Ride lifecycle: one transition table, applied under a row lock.

    pending | requested | scheduled  (initial group, moves inside it allowed)
        -> driver_en_route -> arrived -> in_progress -> completed
    cancelled_by_user | cancelled_by_admin | cancelled_by_driver | no_show from any non-terminal state.

Side effects (arrival time, wait billing, lateness compensation, slot release, audit row) are
written in the same transaction as the status. Observers run only after the commit.
"""
import logging
import math
from datetime import datetime
from enum import Enum

from sqlalchemy.orm import Session

from shuttle.config import settings
from shuttle.core.clock import as_utc, minutes_since, utcnow
from shuttle.core.errors import InvalidTransition, NotFoundError
from shuttle.models.ride import Ride
from shuttle.models.ride_event import RideEvent
from shuttle.services.credits import refund_credit
from shuttle.services.notifications import RideStatusChange, notify_status_change
from shuttle.services.slots.ledger import release, tier_for_plan

logger = logging.getLogger(__name__)


class RideStatus(str, Enum):
    PENDING = "pending"
    REQUESTED = "requested"
    SCHEDULED = "scheduled"
    DRIVER_EN_ROUTE = "driver_en_route"
    ARRIVED = "arrived"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED_BY_USER = "cancelled_by_user"
    CANCELLED_BY_ADMIN = "cancelled_by_admin"
    CANCELLED_BY_DRIVER = "cancelled_by_driver"
    NO_SHOW = "no_show"


class CompensationType(str, Enum):
    NONE = "none"
    HALF_REFUND = "half_refund"
    FULL_REFUND = "full_refund"


INITIAL_STATUSES = frozenset({RideStatus.PENDING, RideStatus.REQUESTED, RideStatus.SCHEDULED})
CANCELLATION_STATUSES = frozenset(
    {
        RideStatus.CANCELLED_BY_USER,
        RideStatus.CANCELLED_BY_ADMIN,
        RideStatus.CANCELLED_BY_DRIVER,
        RideStatus.NO_SHOW,
    }
)
TERMINAL_STATUSES = CANCELLATION_STATUSES | {RideStatus.COMPLETED}

TRANSITIONS: dict[RideStatus, frozenset[RideStatus]] = {
    **{s: (INITIAL_STATUSES - {s}) | {RideStatus.DRIVER_EN_ROUTE} | CANCELLATION_STATUSES for s in INITIAL_STATUSES},
    RideStatus.DRIVER_EN_ROUTE: frozenset({RideStatus.ARRIVED}) | CANCELLATION_STATUSES,
    RideStatus.ARRIVED: frozenset({RideStatus.IN_PROGRESS}) | CANCELLATION_STATUSES,
    RideStatus.IN_PROGRESS: frozenset({RideStatus.COMPLETED}) | CANCELLATION_STATUSES,
    **{s: frozenset() for s in TERMINAL_STATUSES},
}


def parse_status(value: str) -> RideStatus | None:
    try:
        return RideStatus(value)
    except ValueError:
        return None


def can_transition(current: str, requested: str) -> bool:
    """Self-transition is a permitted no-op; anything else must be in TRANSITIONS."""
    cur, req = parse_status(current), parse_status(requested)
    if cur is None or req is None:
        return False
    if cur == req:
        return True
    return req in TRANSITIONS[cur]


def _whole_minutes(minutes: float) -> int:
    """Nearest whole minute, halves rounded up (4.5 -> 5)."""
    return math.floor(minutes + 0.5)


def _wait_billing(ride: Ride, now: datetime) -> None:
    if ride.arrived_at is None:
        return
    wait = max(0, _whole_minutes(minutes_since(ride.arrived_at, now)))
    billable = max(0, wait - settings.free_wait_minutes)
    ride.wait_minutes = wait
    ride.wait_charge_cents = billable * settings.wait_price_per_min_cents


def _lateness(db: Session, ride: Ride, now: datetime) -> dict:
    """Full refund (one credit back) at >= late_full_refund_minutes, at most once; half refund is advisory."""
    if ride.arrival_target is None:
        return {}
    late = max(0, _whole_minutes(minutes_since(ride.arrival_target, now)))
    ride.late_minutes = late
    if late >= settings.late_full_refund_minutes and not ride.compensation_applied:
        refunded = refund_credit(db, ride.user_id, ride.ride_type or "standard", now)
        ride.compensation_type = CompensationType.FULL_REFUND.value
        ride.compensation_applied = True
        return {"compensation": CompensationType.FULL_REFUND.value, "credit_refunded": refunded}
    if late >= settings.late_half_refund_minutes and (ride.compensation_type or "none") == CompensationType.NONE.value:
        ride.compensation_type = CompensationType.HALF_REFUND.value
        return {"compensation": CompensationType.HALF_REFUND.value}
    return {}


def _apply_side_effects(
    db: Session,
    ride: Ride,
    old: RideStatus,
    new: RideStatus,
    actor_type: str,
    actor_id: int | None,
    now: datetime,
) -> dict:
    meta: dict = {}
    if new == RideStatus.DRIVER_EN_ROUTE:
        ride.driver_en_route_at = now
        if actor_type == "driver" and actor_id is not None and ride.driver_id is None:
            ride.driver_id = actor_id
    elif new == RideStatus.ARRIVED:
        ride.arrived_at = now
    elif new == RideStatus.IN_PROGRESS:
        ride.in_progress_at = now
        if old == RideStatus.ARRIVED:
            _wait_billing(ride, now)
            meta["wait_minutes"] = ride.wait_minutes
            meta["wait_charge_cents"] = ride.wait_charge_cents
    elif new == RideStatus.COMPLETED:
        ride.completed_at = now
        meta.update(_lateness(db, ride, now))
    elif new in CANCELLATION_STATUSES:
        ride.cancelled_at = now
        if ride.slot_id:
            meta["slot_released"] = release(db, ride.slot_id, tier_for_plan(ride.plan_type))
    return meta


def apply_status_transition(
    db: Session,
    ride_id: int,
    new_status: str,
    actor_id: int | None = None,
    actor_type: str = "system",
    now: datetime | None = None,
) -> Ride:
    """
    Move a ride to `new_status`. The ride row is locked (SELECT ... FOR UPDATE) for the whole
    read-modify-write so concurrent updates on the same ride serialize. Raises InvalidTransition
    naming current and requested status, NotFoundError for an unknown ride.
    """
    now = as_utc(now) if now else utcnow()
    ride = db.query(Ride).filter(Ride.id == ride_id).with_for_update().populate_existing().first()
    if ride is None:
        db.rollback()
        raise NotFoundError(f"Ride {ride_id} not found")

    old_value = ride.status
    if not can_transition(old_value, new_status):
        db.rollback()
        raise InvalidTransition(old_value, new_status)
    if old_value == new_status:
        db.commit()
        return ride

    old, new = RideStatus(old_value), RideStatus(new_status)
    meta = _apply_side_effects(db, ride, old, new, actor_type, actor_id, now)
    ride.status = new.value
    ride.updated_at = now
    db.add(
        RideEvent(
            ride_id=ride.id,
            old_status=old.value,
            new_status=new.value,
            actor_type=actor_type,
            actor_id=actor_id,
            meta=meta or None,
            created_at=now,
        )
    )
    db.commit()
    logger.info("ride %s: %s -> %s by %s:%s", ride_id, old.value, new.value, actor_type, actor_id)

    notify_status_change(
        RideStatusChange(
            ride_id=ride.id,
            user_id=ride.user_id,
            old_status=old.value,
            new_status=new.value,
            actor_type=actor_type,
            actor_id=actor_id,
            at=now,
            contact_phone=ride.contact_phone,
            meta=meta or None,
        )
    )
    return ride


def ride_to_dict(ride: Ride) -> dict:
    def ts(value):
        return as_utc(value).isoformat() if value else None

    return {
        "id": ride.id,
        "user_id": ride.user_id,
        "driver_id": ride.driver_id,
        "status": ride.status,
        "ride_type": ride.ride_type,
        "plan_type": ride.plan_type,
        "slot_id": ride.slot_id,
        "hold_id": ride.hold_id,
        "pickup": {"address": ride.pickup_address, "lat": ride.pickup_lat, "lng": ride.pickup_lng},
        "dropoff": {"address": ride.dropoff_address, "lat": ride.drop_lat, "lng": ride.drop_lng},
        "pickup_time": ts(ride.pickup_time),
        "pickup_window": [ts(ride.pickup_window_start), ts(ride.pickup_window_end)],
        "arrival_target": ts(ride.arrival_target),
        "arrival_window": [ts(ride.arrival_window_start), ts(ride.arrival_window_end)],
        "arrived_at": ts(ride.arrived_at),
        "completed_at": ts(ride.completed_at),
        "wait_minutes": ride.wait_minutes,
        "wait_charge_cents": ride.wait_charge_cents,
        "late_minutes": ride.late_minutes,
        "compensation_type": ride.compensation_type,
        "compensation_applied": bool(ride.compensation_applied),
    }
