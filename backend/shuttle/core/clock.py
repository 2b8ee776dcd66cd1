"""
Time helpers. Convention: every timestamp persisted in the database is UTC;
slot times, peak windows and schedule templates are local "HH:MM" in settings.app_timezone.
"""
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from shuttle.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a stored timestamp. Some drivers (SQLite) hand back naive values; those are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.app_timezone)


def to_local(value: datetime) -> datetime:
    return as_utc(value).astimezone(local_tz())


def parse_hm(hm: str) -> int:
    """'HH:MM' (or 'HH:MM:SS') -> minutes since midnight. Raises ValueError on garbage."""
    parts = (hm or "").strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time {hm!r}; expected HH:MM")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time {hm!r}; expected HH:MM")
    return hours * 60 + minutes


def minutes_to_hm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def local_datetime(day: date, hm: str) -> datetime:
    """Aware datetime for a local wall-clock time on a given date."""
    mins = parse_hm(hm)
    return datetime.combine(day, time(mins // 60, mins % 60), tzinfo=local_tz())


def is_local_time_in_peak_window(hm: str) -> bool:
    """Peak windows are [start, end) in local time: morning and evening commute."""
    mins = parse_hm(hm)
    windows = (
        (settings.peak_morning_start, settings.peak_morning_end),
        (settings.peak_evening_start, settings.peak_evening_end),
    )
    return any(parse_hm(start) <= mins < parse_hm(end) for start, end in windows)


def is_in_peak_window(when: datetime) -> bool:
    local = to_local(when)
    return is_local_time_in_peak_window(f"{local.hour:02d}:{local.minute:02d}")


def minutes_since(earlier: datetime, now: datetime) -> float:
    return (as_utc(now) - as_utc(earlier)).total_seconds() / 60


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day, as UTC instants for querying pickup_time."""
    start = datetime.combine(day, time(0, 0), tzinfo=local_tz())
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def local_hour_bounds(when: datetime) -> tuple[datetime, datetime]:
    """[start, end) of the local clock hour containing `when`, as UTC instants."""
    local = to_local(when).replace(minute=0, second=0, microsecond=0)
    return local.astimezone(timezone.utc), (local + timedelta(hours=1)).astimezone(timezone.utc)


def js_day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday (schedule template convention)."""
    return (day.weekday() + 1) % 7
