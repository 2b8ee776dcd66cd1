"""
Capacity planner: premium subscriber ceiling and the derived non-premium daily capacity.

- Premium capacity is a global ceiling on subscribers, held in a single counter row and
  changed only by conditional UPDATEs (activation / cancellation), never per ride.
- Non-premium capacity for a day is derived from premium load: the more premium rides are
  booked, the fewer non-premium rides are admitted (step reduction, capped by the daily max).
- Admission checks always re-derive from live rows. daily_capacity_summary is written for
  reporting only and never read here for a decision.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from shuttle.config import settings
from shuttle.core.clock import local_datetime, local_day_bounds, local_hour_bounds, utcnow
from shuttle.core.constants import CANCELLED_RIDE_STATUSES, PREMIUM_PLAN, SLOT_TYPE_OFF_PEAK, SLOT_TYPE_PEAK
from shuttle.core.errors import DAILY_CAP_REACHED, PEAK_RESTRICTED, SLOT_FULL, SLOT_NOT_FOUND
from shuttle.db.upsert import insert_for
from shuttle.models.daily_capacity_summary import DailyCapacitySummary
from shuttle.models.premium_subscriber_count import PremiumSubscriberCount
from shuttle.models.ride import Ride
from shuttle.models.slot_capacity import SlotCapacity
from shuttle.services.slots.catalog import get_slot, slot_summary_for_date, slots_for_date
from shuttle.services.slots.ledger import update_max_non_premium

logger = logging.getLogger(__name__)

# (premium load threshold, reduction). First match wins, so keep descending.
PREMIUM_LOAD_REDUCTION_THRESHOLDS = (
    (0.8, 0.5),
    (0.6, 0.25),
    (0.4, 0.1),
)

REASON_DAILY_LIMIT = "Daily ride limit reached"
REASON_SLOT_NOT_FOUND = "Slot not found"
REASON_PREMIUM_FULL = "Slot at premium capacity"
REASON_PEAK = "Non-premium rides not allowed during peak hours"
REASON_NON_PREMIUM_FULL = "Slot at non-premium capacity"
REASON_DAILY_NON_PREMIUM = "Daily non-premium capacity reached"

_COUNTER_ID = 1


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    reason: str | None = None
    code: str | None = None

    def to_dict(self) -> dict:
        out = {"allowed": self.allowed}
        if not self.allowed:
            out["reason"] = self.reason
            out["code"] = self.code
        return out


ALLOWED = AdmissionDecision(allowed=True)


# ---------------------------------------------------------------------------
# Premium subscriber counter
# ---------------------------------------------------------------------------


def _ensure_counter(db: Session) -> None:
    db.execute(
        insert_for(db, PremiumSubscriberCount)
        .values(id=_COUNTER_ID, current_count=0, max_count=settings.max_premium_subscribers)
        .on_conflict_do_nothing(index_elements=["id"])
    )


def premium_subscriber_count(db: Session) -> int:
    count = db.query(PremiumSubscriberCount.current_count).filter(PremiumSubscriberCount.id == _COUNTER_ID).scalar()
    return count or 0


def can_add_premium_subscriber(db: Session) -> bool:
    row = (
        db.query(PremiumSubscriberCount.current_count, PremiumSubscriberCount.max_count)
        .filter(PremiumSubscriberCount.id == _COUNTER_ID)
        .first()
    )
    if row is None:
        return settings.max_premium_subscribers > 0
    return row.current_count < row.max_count


def increment_premium_count(db: Session) -> bool:
    """Take one premium seat. False when the ceiling is reached. Does not commit."""
    _ensure_counter(db)
    result = db.execute(
        update(PremiumSubscriberCount)
        .where(
            PremiumSubscriberCount.id == _COUNTER_ID,
            PremiumSubscriberCount.current_count < PremiumSubscriberCount.max_count,
        )
        .values(current_count=PremiumSubscriberCount.current_count + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def decrement_premium_count(db: Session) -> None:
    """Release one premium seat, floored at zero. Does not commit."""
    _ensure_counter(db)
    db.execute(
        update(PremiumSubscriberCount)
        .where(PremiumSubscriberCount.id == _COUNTER_ID, PremiumSubscriberCount.current_count > 0)
        .values(current_count=PremiumSubscriberCount.current_count - 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


# ---------------------------------------------------------------------------
# Daily capacity
# ---------------------------------------------------------------------------


def _active_rides(db: Session):
    return db.query(Ride).filter(Ride.status.notin_(CANCELLED_RIDE_STATUSES))


def booked_counts_for_date(db: Session, day: date) -> tuple[int, int]:
    """(premium_booked, non_premium_booked) for non-cancelled rides picking up on the local day."""
    start, end = local_day_bounds(day)
    rows = (
        _active_rides(db)
        .filter(Ride.pickup_time >= start, Ride.pickup_time < end)
        .with_entities(Ride.plan_type, func.count(Ride.id))
        .group_by(Ride.plan_type)
        .all()
    )
    premium = sum(n for plan, n in rows if plan == PREMIUM_PLAN)
    non_premium = sum(n for plan, n in rows if plan != PREMIUM_PLAN)
    return premium, non_premium


def reduction_factor(premium_load: float) -> float:
    for threshold, reduction in PREMIUM_LOAD_REDUCTION_THRESHOLDS:
        if premium_load >= threshold:
            return reduction
    return 0.0


def compute_non_premium_capacity(premium_booked: int, premium_denominator: int, off_peak_slot_count: int) -> int:
    """
    floor(off_peak_slots * base_per_slot * (1 - reduction(load))), capped by daily_max - premium_booked.

    >>> compute_non_premium_capacity(16, 20, 10)  # 80% load -> 50% reduction
    10
    """
    load = premium_booked / premium_denominator if premium_denominator > 0 else 0.0
    base = off_peak_slot_count * settings.base_non_premium_per_slot
    adjusted = math.floor(base * (1 - reduction_factor(load)))
    return max(0, min(adjusted, settings.max_rides_per_day - premium_booked))


def premium_load_denominator(slot_summary: dict) -> int:
    if settings.premium_load_basis == "slot_capacity":
        return slot_summary["total_premium_capacity"]
    return settings.max_premium_subscribers


def _derive_daily_capacity(db: Session, day: date) -> dict:
    slot_summary = slot_summary_for_date(db, day)
    premium_booked, non_premium_booked = booked_counts_for_date(db, day)
    non_premium_capacity = compute_non_premium_capacity(
        premium_booked, premium_load_denominator(slot_summary), slot_summary["off_peak_slots"]
    )
    return {
        "date": day.isoformat(),
        "premium_capacity": settings.max_premium_subscribers,
        "premium_booked_count": premium_booked,
        "premium_remaining": max(0, settings.max_premium_subscribers - premium_booked),
        "non_premium_capacity_computed": non_premium_capacity,
        "non_premium_booked_count": non_premium_booked,
        "non_premium_remaining": max(0, non_premium_capacity - non_premium_booked),
        "slot_summary": slot_summary,
    }


def compute_daily_capacity(db: Session, day: date) -> dict:
    """Derive the day's capacity and upsert daily_capacity_summary (reporting only)."""
    summary = _derive_daily_capacity(db, day)
    values = {
        "premium_capacity": summary["premium_capacity"],
        "premium_booked_count": summary["premium_booked_count"],
        "non_premium_capacity_computed": summary["non_premium_capacity_computed"],
        "non_premium_booked_count": summary["non_premium_booked_count"],
        "updated_at": utcnow(),
    }
    stmt = insert_for(db, DailyCapacitySummary).values(date=day, **values)
    db.execute(stmt.on_conflict_do_update(index_elements=["date"], set_=values))
    db.commit()
    existing = db.get(DailyCapacitySummary, day)
    summary["reliability_score"] = existing.reliability_score if existing else None
    return summary


# ---------------------------------------------------------------------------
# Admission checks
# ---------------------------------------------------------------------------


def rides_in_hour(db: Session, when: datetime) -> int:
    start, end = local_hour_bounds(when)
    return _active_rides(db).filter(Ride.pickup_time >= start, Ride.pickup_time < end).count()


def check_hourly_capacity(db: Session, day: date, hour: int) -> bool:
    """True while the local clock hour still has room under max_rides_per_hour."""
    return rides_in_hour(db, local_datetime(day, f"{hour:02d}:00")) < settings.max_rides_per_hour


def check_daily_capacity(db: Session, day: date) -> bool:
    start, end = local_day_bounds(day)
    count = _active_rides(db).filter(Ride.pickup_time >= start, Ride.pickup_time < end).count()
    return count < settings.max_rides_per_day


def can_add_premium_ride(db: Session, day: date, slot_id: str) -> AdmissionDecision:
    if not check_daily_capacity(db, day):
        return AdmissionDecision(False, REASON_DAILY_LIMIT, DAILY_CAP_REACHED)
    slot = get_slot(db, slot_id)
    if slot is None:
        return AdmissionDecision(False, REASON_SLOT_NOT_FOUND, SLOT_NOT_FOUND)
    if slot.used_riders_premium >= slot.max_riders_premium:
        return AdmissionDecision(False, REASON_PREMIUM_FULL, SLOT_FULL)
    return ALLOWED


def can_add_non_premium_ride(db: Session, day: date, slot_id: str) -> AdmissionDecision:
    if not check_daily_capacity(db, day):
        return AdmissionDecision(False, REASON_DAILY_LIMIT, DAILY_CAP_REACHED)
    slot = get_slot(db, slot_id)
    if slot is None:
        return AdmissionDecision(False, REASON_SLOT_NOT_FOUND, SLOT_NOT_FOUND)
    if slot.slot_type == SLOT_TYPE_PEAK:
        return AdmissionDecision(False, REASON_PEAK, PEAK_RESTRICTED)
    if slot.used_riders_non_premium >= slot.max_riders_non_premium:
        return AdmissionDecision(False, REASON_NON_PREMIUM_FULL, SLOT_FULL)
    derived = _derive_daily_capacity(db, day)
    if derived["non_premium_booked_count"] >= derived["non_premium_capacity_computed"]:
        return AdmissionDecision(False, REASON_DAILY_NON_PREMIUM, DAILY_CAP_REACHED)
    return ALLOWED


def can_add_ride(db: Session, day: date, slot_id: str, plan_type: str | None) -> AdmissionDecision:
    if (plan_type or "").lower() == PREMIUM_PLAN:
        return can_add_premium_ride(db, day, slot_id)
    return can_add_non_premium_ride(db, day, slot_id)


# ---------------------------------------------------------------------------
# Breakdown, reporting, balancing
# ---------------------------------------------------------------------------


def hourly_capacity_breakdown(db: Session, day: date) -> list[dict]:
    by_hour: dict[str, dict] = {}
    for slot in slots_for_date(db, day):
        hour = slot.arrival_start[:2] + ":00"
        row = by_hour.setdefault(
            hour,
            {
                "hour": hour,
                "slot_type": slot.slot_type,
                "premium_slots": 0,
                "premium_used": 0,
                "non_premium_slots": 0,
                "non_premium_used": 0,
            },
        )
        row["premium_slots"] += slot.max_riders_premium
        row["premium_used"] += slot.used_riders_premium
        row["non_premium_slots"] += slot.max_riders_non_premium
        row["non_premium_used"] += slot.used_riders_non_premium
    return [by_hour[h] for h in sorted(by_hour)]


def capacity_utilization_report(db: Session, start: date, end: date) -> list[dict]:
    rows = (
        db.query(DailyCapacitySummary)
        .filter(DailyCapacitySummary.date >= start, DailyCapacitySummary.date <= end)
        .order_by(DailyCapacitySummary.date)
        .all()
    )
    return [
        {
            "date": r.date.isoformat(),
            "premium_utilization": r.premium_booked_count / r.premium_capacity if r.premium_capacity > 0 else 0,
            "non_premium_utilization": (
                r.non_premium_booked_count / r.non_premium_capacity_computed
                if r.non_premium_capacity_computed > 0
                else 0
            ),
            "total_rides": r.premium_booked_count + r.non_premium_booked_count,
        }
        for r in rows
    ]


def _midday_first(slot: SlotCapacity) -> tuple[int, str]:
    hour = int(slot.arrival_start[:2])
    return (0 if 10 <= hour < 15 else 1, slot.arrival_start)


def auto_balance_non_premium_capacity(
    db: Session,
    day: date,
    target_capacity: int,
    direction: str | None = None,
) -> int:
    """
    Spread `target_capacity` non-premium seats evenly over the day's off-peak slots; the remainder
    goes to mid-day slots (10:00-15:00) first. Returns the number of slots updated.
    """
    off_peak = [s for s in slots_for_date(db, day, direction) if s.slot_type == SLOT_TYPE_OFF_PEAK]
    if not off_peak:
        return 0
    per_slot, remainder = divmod(max(0, target_capacity), len(off_peak))
    ordered = sorted(off_peak, key=_midday_first)
    for i, slot in enumerate(ordered):
        update_max_non_premium(db, slot.slot_id, per_slot + (1 if i < remainder else 0))
    db.commit()
    logger.info("auto_balance_non_premium_capacity: %s target=%s slots=%s", day, target_capacity, len(ordered))
    return len(ordered)
