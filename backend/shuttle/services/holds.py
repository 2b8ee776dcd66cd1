"""
Hold manager: short-lived provisional reservations against a slot.

State machine: active -> confirmed | expired | cancelled, all terminal. Every transition is a
conditional UPDATE ... WHERE status = 'active', so confirm, cancel and the expiry sweep can race
freely and exactly one of them wins per hold. A hold owns one unit of its slot's tier counter
while active; confirm keeps it (it becomes the ride's allocation), cancel and expire give it back.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shuttle.config import settings
from shuttle.core.clock import as_utc, local_datetime, local_day_bounds, to_local, utcnow
from shuttle.core.errors import SLOT_FULL, SLOT_NOT_FOUND, AdmissionDenied, HoldNotActive, NotFoundError
from shuttle.models.ride import Ride
from shuttle.models.slot_hold import SlotHold
from shuttle.services.capacity_planner import can_add_ride
from shuttle.services.slots.catalog import get_slot
from shuttle.services.slots.ledger import release, reserve, tier_for_plan
from shuttle.services.travel import estimate_between

logger = logging.getLogger(__name__)

ACTIVE = "active"
CONFIRMED = "confirmed"
EXPIRED = "expired"
CANCELLED = "cancelled"


def hold_to_dict(hold: SlotHold) -> dict:
    return {
        "hold_id": hold.hold_id,
        "slot_id": hold.slot_id,
        "rider_id": hold.rider_id,
        "plan_type": hold.plan_type,
        "origin": {"lat": hold.origin_lat, "lng": hold.origin_lng, "address": hold.origin_address},
        "destination": {"lat": hold.destination_lat, "lng": hold.destination_lng, "address": hold.destination_address},
        "status": hold.status,
        "created_at": as_utc(hold.created_at).isoformat() if hold.created_at else None,
        "expires_at": as_utc(hold.expires_at).isoformat(),
        "confirmed_ride_id": hold.confirmed_ride_id,
    }


def get_hold(db: Session, hold_id: str) -> SlotHold:
    hold = db.get(SlotHold, hold_id, populate_existing=True)
    if hold is None:
        raise NotFoundError(f"Hold {hold_id} not found")
    return hold


def active_hold_for_rider(db: Session, rider_id: int) -> SlotHold | None:
    return (
        db.query(SlotHold)
        .filter(SlotHold.rider_id == rider_id, SlotHold.status == ACTIVE)
        .order_by(SlotHold.created_at.desc())
        .populate_existing()
        .first()
    )


def _transition(
    db: Session,
    hold_id: str,
    new_status: str,
    now: datetime,
    only_unexpired: bool = False,
    only_expired: bool = False,
    **values,
) -> bool:
    """Move an active hold to `new_status`. True only for the caller that won the row."""
    stmt = update(SlotHold).where(SlotHold.hold_id == hold_id, SlotHold.status == ACTIVE)
    if only_unexpired:
        stmt = stmt.where(SlotHold.expires_at > now)
    if only_expired:
        stmt = stmt.where(SlotHold.expires_at <= now)
    result = db.execute(
        stmt.values(status=new_status, **values).execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _not_active(db: Session, hold_id: str, requested: str, now: datetime) -> HoldNotActive:
    hold = get_hold(db, hold_id)
    current = hold.status
    if current == ACTIVE and as_utc(hold.expires_at) <= now:
        current = EXPIRED
    return HoldNotActive(hold_id, current, requested)


def _cancel_in_txn(db: Session, hold: SlotHold, now: datetime) -> bool:
    if not _transition(db, hold.hold_id, CANCELLED, now, released_at=now):
        return False
    release(db, hold.slot_id, tier_for_plan(hold.plan_type))
    return True


def create_hold(
    db: Session,
    slot_id: str,
    rider_id: int,
    plan_type: str,
    origin: dict | None = None,
    destination: dict | None = None,
    now: datetime | None = None,
) -> SlotHold:
    """
    Reserve one unit of the slot for `rider_id` for hold_expiry_minutes. The rider's previous active
    hold (if any) is cancelled in the same transaction. Raises AdmissionDenied with the planner's
    reason code when the ride cannot be admitted, slot_full when the reservation loses a race.
    """
    now = as_utc(now) if now else utcnow()
    origin = origin or {}
    destination = destination or {}

    slot = get_slot(db, slot_id)
    if slot is None:
        raise AdmissionDenied(SLOT_NOT_FOUND, "Slot not found")
    decision = can_add_ride(db, slot.date, slot_id, plan_type)
    if not decision.allowed:
        raise AdmissionDenied(decision.code, decision.reason)

    previous = active_hold_for_rider(db, rider_id)
    if previous is not None:
        _cancel_in_txn(db, previous, now)

    if not reserve(db, slot_id, tier_for_plan(plan_type)):
        db.rollback()
        raise AdmissionDenied(SLOT_FULL, "Slot is full")

    hold = SlotHold(
        hold_id=f"hold_{uuid.uuid4()}",
        slot_id=slot_id,
        rider_id=rider_id,
        plan_type=plan_type,
        origin_lat=origin.get("lat"),
        origin_lng=origin.get("lng"),
        origin_address=origin.get("address"),
        destination_lat=destination.get("lat"),
        destination_lng=destination.get("lng"),
        destination_address=destination.get("address"),
        status=ACTIVE,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.hold_expiry_minutes),
    )
    db.add(hold)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent create for the same (slot, rider); the rollback also undoes our reservation.
        db.rollback()
        raise AdmissionDenied(SLOT_FULL, "An active hold already exists for this slot")
    logger.info("hold created %s slot=%s rider=%s plan=%s", hold.hold_id, slot_id, rider_id, plan_type)
    return hold


def confirm_hold(db: Session, hold_id: str, ride_id: int, now: datetime | None = None, commit: bool = True) -> SlotHold:
    """
    active (and not past expires_at) -> confirmed. The slot reservation is kept as the ride's allocation.
    A hold past its expiry fails as expired even if the sweep has not reached it yet.
    """
    now = as_utc(now) if now else utcnow()
    if not _transition(db, hold_id, CONFIRMED, now, only_unexpired=True, confirmed_at=now, confirmed_ride_id=ride_id):
        error = _not_active(db, hold_id, CONFIRMED, now)
        db.rollback()
        raise error
    hold = get_hold(db, hold_id)
    # The ride inherits the hold's unit so cancelling the ride gives it back.
    db.execute(
        update(Ride)
        .where(Ride.id == ride_id, Ride.slot_id.is_(None))
        .values(slot_id=hold.slot_id, hold_id=hold_id, plan_type=hold.plan_type)
        .execution_options(synchronize_session=False)
    )
    if commit:
        db.commit()
    logger.info("hold confirmed %s ride_id=%s", hold_id, ride_id)
    return get_hold(db, hold_id)


def cancel_hold(db: Session, hold_id: str, now: datetime | None = None) -> SlotHold:
    now = as_utc(now) if now else utcnow()
    hold = get_hold(db, hold_id)
    if not _cancel_in_txn(db, hold, now):
        error = _not_active(db, hold_id, CANCELLED, now)
        db.rollback()
        raise error
    db.commit()
    logger.info("hold cancelled %s", hold_id)
    return get_hold(db, hold_id)


def expire_holds(db: Session, now: datetime | None = None) -> int:
    """
    Sweep: every active hold with expires_at <= now becomes expired and gives its unit back.
    Each hold is its own conditional update and commit, so a concurrent confirm/cancel simply wins
    or loses the row and a repeated sweep is a no-op.
    """
    now = as_utc(now) if now else utcnow()
    candidates = (
        db.query(SlotHold.hold_id, SlotHold.slot_id, SlotHold.plan_type)
        .filter(SlotHold.status == ACTIVE, SlotHold.expires_at <= now)
        .all()
    )
    expired = 0
    for hold_id, slot_id, plan_type in candidates:
        try:
            if _transition(db, hold_id, EXPIRED, now, only_expired=True, released_at=now):
                release(db, slot_id, tier_for_plan(plan_type))
                expired += 1
            db.commit()
        except Exception as e:
            logger.exception("expire_holds: failed for %s: %s", hold_id, e)
            db.rollback()
    if expired:
        logger.info("expire_holds: expired=%s", expired)
    return expired


def _ride_times(slot, hold: SlotHold) -> dict:
    """Arrival target is the slot end; pickup backs off travel time plus the arrive-early buffer."""
    arrival_start = local_datetime(slot.date, slot.arrival_start).astimezone(timezone.utc)
    arrival_end = local_datetime(slot.date, slot.arrival_end).astimezone(timezone.utc)
    estimate = estimate_between(hold.origin_lat, hold.origin_lng, hold.destination_lat, hold.destination_lng, arrival_end)
    pickup = arrival_end - timedelta(minutes=estimate.travel_minutes + settings.arrive_early_minutes)
    half = timedelta(minutes=settings.pickup_window_size / 2)
    return {
        "pickup_time": pickup,
        "pickup_window_start": pickup - half,
        "pickup_window_end": pickup + half,
        "arrival_target": arrival_end,
        "arrival_window_start": arrival_start,
        "arrival_window_end": arrival_end,
    }


def book_ride_from_hold(db: Session, hold_id: str, contact_phone: str | None = None, now: datetime | None = None) -> Ride:
    """
    Turn an active hold into a scheduled ride: the travel estimate runs first (no locks held), then the
    ride insert and the hold confirmation commit together.
    """
    now = as_utc(now) if now else utcnow()
    hold = get_hold(db, hold_id)
    if hold.status != ACTIVE or as_utc(hold.expires_at) <= now:
        raise _not_active(db, hold_id, CONFIRMED, now)
    slot = get_slot(db, hold.slot_id)
    if slot is None:
        raise NotFoundError(f"Slot {hold.slot_id} not found")
    times = _ride_times(slot, hold)

    ride = Ride(
        user_id=hold.rider_id,
        contact_phone=contact_phone,
        pickup_address=hold.origin_address or "Pickup",
        dropoff_address=hold.destination_address or "Dropoff",
        pickup_lat=hold.origin_lat,
        pickup_lng=hold.origin_lng,
        drop_lat=hold.destination_lat,
        drop_lng=hold.destination_lng,
        ride_type="standard",
        plan_type=hold.plan_type,
        status="scheduled",
        slot_id=hold.slot_id,
        hold_id=hold_id,
        created_at=now,
        **times,
    )
    db.add(ride)
    db.flush()
    confirm_hold(db, hold_id, ride.id, now=now, commit=False)
    db.commit()
    logger.info("ride %s booked from hold %s pickup=%s", ride.id, hold_id, to_local(ride.pickup_time).isoformat())
    return ride


def hold_stats(db: Session, now: datetime | None = None) -> dict:
    now = as_utc(now) if now else utcnow()
    day_start, day_end = local_day_bounds(to_local(now).date())
    active = db.query(func.count(SlotHold.hold_id)).filter(SlotHold.status == ACTIVE).scalar() or 0
    confirmed = (
        db.query(func.count(SlotHold.hold_id))
        .filter(SlotHold.status == CONFIRMED, SlotHold.confirmed_at >= day_start, SlotHold.confirmed_at < day_end)
        .scalar()
    )
    resolved = dict(
        db.query(SlotHold.status, func.count(SlotHold.hold_id))
        .filter(
            SlotHold.status.in_((EXPIRED, CANCELLED)),
            SlotHold.released_at >= day_start,
            SlotHold.released_at < day_end,
        )
        .group_by(SlotHold.status)
        .all()
    )
    return {
        "active": active,
        "confirmed_today": confirmed or 0,
        "expired_today": resolved.get(EXPIRED, 0),
        "cancelled_today": resolved.get(CANCELLED, 0),
    }
