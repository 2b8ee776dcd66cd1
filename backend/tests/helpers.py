"""Shared dates and builders for the test suite (local timezone is UTC here, see conftest)."""
from datetime import date, datetime, timezone

from shuttle.models.ride import Ride

# Monday, outside the Dec-Feb winter season. Peak windows: 07:00-10:00 and 15:00-18:00.
DAY = date(2030, 3, 4)
NOW = datetime(2030, 3, 4, 6, 0, tzinfo=timezone.utc)


def at(hm: str, day: date = DAY) -> datetime:
    hours, minutes = (int(p) for p in hm.split(":"))
    return datetime(day.year, day.month, day.day, hours, minutes, tzinfo=timezone.utc)


def slot_id(hm: str, direction: str = "other", day: date = DAY) -> str:
    return f"slot_{day.isoformat()}_{hm}_{direction}"


def add_ride(db, pickup: datetime, plan_type: str = "standard", status: str = "scheduled", user_id: int = 1, **kwargs) -> Ride:
    ride = Ride(user_id=user_id, pickup_time=pickup, plan_type=plan_type, status=status, **kwargs)
    db.add(ride)
    db.commit()
    return ride
