"""
Nightly load analysis for one day (single shared vehicle pool).

- Overbooked hours: local clock hours whose non-cancelled ride count exceeds max_rides_per_hour.
- At-risk chains: consecutive rides where the next pickup leaves less than arrive_early_minutes of
  slack after the current passenger leg plus the reposition leg.
- Recommended start: first pickup, moved 15 min earlier for any negative slack, 10 min for tight slack.

The day's daily_load_insights row is replaced (delete + insert in one transaction), so reruns are safe.
"""
import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from shuttle.config import settings
from shuttle.core.clock import as_utc, local_day_bounds, to_local, utcnow
from shuttle.core.constants import CANCELLED_RIDE_STATUSES, DEFAULT_PASSENGER_LEG_MINUTES
from shuttle.models.daily_load_insight import DailyLoadInsight
from shuttle.models.ride import Ride
from shuttle.services.travel import distance_km, estimate_travel

logger = logging.getLogger(__name__)

NEGATIVE_SLACK = "negative_slack"
TIGHT_WINDOW = "tight_back_to_back_window"
NEGATIVE_SLACK_START_OFFSET_MINUTES = 15
TIGHT_SLACK_START_OFFSET_MINUTES = 10


def _has_coords(*values) -> bool:
    return all(v is not None for v in values)


def passenger_leg_minutes(ride: Ride) -> int:
    if not _has_coords(ride.pickup_lat, ride.pickup_lng, ride.drop_lat, ride.drop_lng):
        return DEFAULT_PASSENGER_LEG_MINUTES
    km = distance_km(ride.pickup_lat, ride.pickup_lng, ride.drop_lat, ride.drop_lng)
    return estimate_travel(km, as_utc(ride.pickup_time)).travel_minutes


def reposition_leg_minutes(current: Ride, nxt: Ride) -> int:
    if not _has_coords(current.drop_lat, current.drop_lng, nxt.pickup_lat, nxt.pickup_lng):
        return 0
    km = distance_km(current.drop_lat, current.drop_lng, nxt.pickup_lat, nxt.pickup_lng)
    return estimate_travel(km, as_utc(nxt.pickup_time)).travel_minutes


def overbooked_hours(rides: list[Ride]) -> list[dict]:
    counts: dict[str, int] = {}
    for ride in rides:
        hour_start = to_local(ride.pickup_time).replace(minute=0, second=0, microsecond=0).isoformat()
        counts[hour_start] = counts.get(hour_start, 0) + 1
    return [
        {"hour_start": hour, "rides_count": n, "max_rides_per_hour": settings.max_rides_per_hour}
        for hour, n in sorted(counts.items())
        if n > settings.max_rides_per_hour
    ]


def at_risk_pairs(rides: list[Ride]) -> list[dict]:
    out = []
    for current, nxt in zip(rides, rides[1:]):
        free_at = as_utc(current.pickup_time) + timedelta(
            minutes=passenger_leg_minutes(current) + reposition_leg_minutes(current, nxt)
        )
        slack = (as_utc(nxt.pickup_time) - free_at).total_seconds() / 60
        if slack < settings.arrive_early_minutes:
            out.append(
                {
                    "ride_id": current.id,
                    "next_ride_id": nxt.id,
                    "slack_minutes": round(slack),
                    "reason": NEGATIVE_SLACK if slack < 0 else TIGHT_WINDOW,
                }
            )
    return out


def recommended_start_offset(at_risk: list[dict]) -> int:
    if not at_risk:
        return 0
    worst = min(r["slack_minutes"] for r in at_risk)
    if worst < 0:
        return NEGATIVE_SLACK_START_OFFSET_MINUTES
    return TIGHT_SLACK_START_OFFSET_MINUTES


def run_daily_load_analysis(db: Session, day: date) -> DailyLoadInsight:
    start, end = local_day_bounds(day)
    rides = (
        db.query(Ride)
        .filter(Ride.pickup_time >= start, Ride.pickup_time < end, Ride.status.notin_(CANCELLED_RIDE_STATUSES))
        .order_by(Ride.pickup_time, Ride.id)
        .all()
    )
    overbooked = overbooked_hours(rides)
    at_risk = at_risk_pairs(rides)
    recommended = None
    if rides:
        recommended = as_utc(rides[0].pickup_time) - timedelta(minutes=recommended_start_offset(at_risk))

    db.query(DailyLoadInsight).filter(DailyLoadInsight.day == day).delete(synchronize_session=False)
    insight = DailyLoadInsight(
        day=day,
        generated_at=utcnow(),
        total_rides=len(rides),
        recommended_start_time=recommended,
        overbooked_slots=overbooked,
        at_risk_rides=at_risk,
    )
    db.add(insight)
    db.commit()
    logger.info(
        "load analysis %s: rides=%s overbooked_hours=%s at_risk=%s", day, len(rides), len(overbooked), len(at_risk)
    )
    return insight


def insight_to_dict(insight: DailyLoadInsight) -> dict:
    return {
        "day": insight.day.isoformat(),
        "generated_at": as_utc(insight.generated_at).isoformat() if insight.generated_at else None,
        "total_rides": insight.total_rides,
        "recommended_start_time": (
            as_utc(insight.recommended_start_time).isoformat() if insight.recommended_start_time else None
        ),
        "overbooked_slots": insight.overbooked_slots or [],
        "at_risk_rides": insight.at_risk_rides or [],
    }
