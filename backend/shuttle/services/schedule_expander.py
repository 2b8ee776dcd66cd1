"""
Schedule expander: weekly templates -> concrete pending rides for the next N days.

A candidate (day, template) is skipped, not failed, when it is in the past, when the pickup falls in
a peak window and the plan has no peak access, when that clock hour is already at the per-hour cap,
or when the user already has a ride within the overlap buffer. The credit debit is a conditional
update committed with the ride; once credits run out the user's run stops. Reruns are safe: the
overlap check sees rides created by an earlier run.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from shuttle.config import settings
from shuttle.core.clock import as_utc, is_in_peak_window, js_day_of_week, local_datetime, to_local, utcnow
from shuttle.core.constants import CANCELLED_RIDE_STATUSES, EXPANSION_DAYS_AHEAD, RIDE_TYPE_STANDARD
from shuttle.core.errors import AdmissionDenied
from shuttle.models.ride import Ride
from shuttle.models.saved_location import SavedLocation
from shuttle.models.schedule_template import ScheduleTemplate
from shuttle.services.capacity_planner import rides_in_hour
from shuttle.services.credits import consume_credit, get_or_create_credit_period, remaining
from shuttle.services.subscriptions import active_subscription
from shuttle.services.travel import distance_km, estimate_travel

logger = logging.getLogger(__name__)

TO_WORK = "to_work"
TO_HOME = "to_home"


def _locations(db: Session, user_id: int) -> tuple[SavedLocation | None, SavedLocation | None]:
    rows = {loc.label: loc for loc in db.query(SavedLocation).filter(SavedLocation.user_id == user_id).all()}
    home = rows.get("home")
    work = rows.get("work") or rows.get("school")
    return home, work


def _usable(loc: SavedLocation | None) -> bool:
    return loc is not None and loc.lat is not None and loc.lng is not None


def has_overlap(db: Session, user_id: int, pickup: datetime) -> bool:
    buffer = timedelta(minutes=settings.overlap_buffer_minutes)
    return (
        db.query(Ride.id)
        .filter(
            Ride.user_id == user_id,
            Ride.status.notin_(CANCELLED_RIDE_STATUSES),
            Ride.pickup_time >= pickup - buffer,
            Ride.pickup_time <= pickup + buffer,
        )
        .first()
        is not None
    )


def expand_schedules_for_user(
    db: Session,
    user_id: int,
    days_ahead: int = EXPANSION_DAYS_AHEAD,
    now: datetime | None = None,
) -> dict:
    """Create pending rides for one user. Returns counters (created, skipped_* and ride_ids)."""
    now = as_utc(now) if now else utcnow()
    stats: Counter = Counter()
    ride_ids: list[int] = []

    sub = active_subscription(db, user_id)
    if sub is None:
        logger.info("expand: user %s has no active subscription; skipping", user_id)
        return {"created": 0, "skipped_no_subscription": 1, "ride_ids": []}
    _, plan = sub

    home, work = _locations(db, user_id)
    if not (_usable(home) and _usable(work)):
        logger.info("expand: user %s missing usable home/work locations; skipping", user_id)
        return {"created": 0, "skipped_no_locations": 1, "ride_ids": []}

    templates = (
        db.query(ScheduleTemplate)
        .filter(ScheduleTemplate.user_id == user_id, ScheduleTemplate.enabled.is_(True))
        .order_by(ScheduleTemplate.arrival_time)
        .all()
    )
    credits_left = remaining(get_or_create_credit_period(db, user_id, now))
    db.commit()

    today = to_local(now).date()
    for offset in range(days_ahead):
        if credits_left <= 0:
            break
        day = today + timedelta(days=offset)
        for tpl in (t for t in templates if t.day_of_week == js_day_of_week(day)):
            if credits_left <= 0:
                stats["skipped_no_credit"] += 1
                break
            arrival = local_datetime(day, tpl.arrival_time).astimezone(timezone.utc)
            if arrival <= now:
                stats["skipped_past"] += 1
                continue

            origin, dest = (home, work) if tpl.direction == TO_WORK else (work, home)
            estimate = estimate_travel(distance_km(origin.lat, origin.lng, dest.lat, dest.lng), arrival)
            pickup = arrival - timedelta(minutes=estimate.travel_minutes + settings.arrive_early_minutes)

            if is_in_peak_window(pickup) and not plan.peak_access:
                stats["skipped_peak"] += 1
                continue
            if rides_in_hour(db, pickup) >= settings.max_rides_per_hour:
                stats["skipped_hourly_cap"] += 1
                continue
            if has_overlap(db, user_id, pickup):
                stats["skipped_overlap"] += 1
                continue

            try:
                consume_credit(db, user_id, RIDE_TYPE_STANDARD, now)
            except AdmissionDenied:
                db.rollback()
                credits_left = 0
                stats["skipped_no_credit"] += 1
                break

            pickup_half = timedelta(minutes=round(settings.pickup_window_size / 2))
            arrival_half = timedelta(minutes=round(settings.arrival_window_size / 2))
            ride = Ride(
                user_id=user_id,
                pickup_address=origin.address,
                dropoff_address=dest.address,
                pickup_lat=origin.lat,
                pickup_lng=origin.lng,
                drop_lat=dest.lat,
                drop_lng=dest.lng,
                pickup_time=pickup,
                pickup_window_start=pickup - pickup_half,
                pickup_window_end=pickup + pickup_half,
                arrival_target=arrival,
                arrival_window_start=arrival - arrival_half,
                arrival_window_end=arrival + arrival_half,
                ride_type=RIDE_TYPE_STANDARD,
                plan_type=plan.code,
                status="pending",
                created_at=now,
            )
            db.add(ride)
            db.commit()
            ride_ids.append(ride.id)
            credits_left -= 1
            stats["created"] += 1

    logger.info("expand: user %s created=%s stats=%s", user_id, stats["created"], dict(stats))
    return {"created": stats["created"], **{k: v for k, v in stats.items() if k != "created"}, "ride_ids": ride_ids}


def expand_all_schedules(db: Session, days_ahead: int = EXPANSION_DAYS_AHEAD, now: datetime | None = None) -> dict:
    """Run every user with templates. One user's failure is logged and does not stop the others."""
    user_ids = [uid for (uid,) in db.query(ScheduleTemplate.user_id).distinct().order_by(ScheduleTemplate.user_id)]
    results: dict[int, dict] = {}
    for user_id in user_ids:
        try:
            results[user_id] = expand_schedules_for_user(db, user_id, days_ahead, now)
        except Exception as e:
            logger.exception("expand: failed for user %s: %s", user_id, e)
            db.rollback()
            results[user_id] = {"created": 0, "error": str(e)}
    logger.info("expand_all_schedules: users=%s created=%s", len(user_ids), sum(r.get("created", 0) for r in results.values()))
    return results
