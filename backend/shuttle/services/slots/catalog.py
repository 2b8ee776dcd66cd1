"""
Slot catalog: fixed-width arrival slots per (date, direction).

- Slots are created lazily and idempotently (INSERT ... ON CONFLICT DO NOTHING) the first time a
  date is referenced; re-initializing never rewrites counters.
- slot_id is deterministic (slot_YYYY-MM-DD_HH:MM_direction) so callers can reference a slot
  without a lookup.
- A slot is peak when its arrival start falls in a peak window; peak slots get max_non_premium = 0.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from shuttle.config import settings
from shuttle.core.clock import is_local_time_in_peak_window, minutes_to_hm, parse_hm
from shuttle.core.constants import SLOT_DIRECTIONS, SLOT_TYPE_OFF_PEAK, SLOT_TYPE_PEAK
from shuttle.db.upsert import insert_for
from shuttle.models.slot_capacity import SlotCapacity

logger = logging.getLogger(__name__)

_SLOT_ID_RE = re.compile(r"^slot_(\d{4}-\d{2}-\d{2})_(\d{2}:\d{2})_(.+)$")


@dataclass(frozen=True)
class SlotRef:
    date: date
    arrival_start: str
    direction: str


def make_slot_id(day: date, arrival_start: str, direction: str) -> str:
    return f"slot_{day.isoformat()}_{arrival_start}_{direction}"


def parse_slot_id(slot_id: str) -> SlotRef | None:
    """Inverse of make_slot_id. Returns None for ids that do not match the format."""
    m = _SLOT_ID_RE.match(slot_id or "")
    if not m:
        return None
    try:
        day = date.fromisoformat(m.group(1))
        parse_hm(m.group(2))
    except ValueError:
        return None
    return SlotRef(date=day, arrival_start=m.group(2), direction=m.group(3))


def slot_type_for(arrival_start: str) -> str:
    return SLOT_TYPE_PEAK if is_local_time_in_peak_window(arrival_start) else SLOT_TYPE_OFF_PEAK


def generate_slot_rows(day: date, direction: str) -> list[dict]:
    """Rows for one direction across the operating day; no persistence."""
    width = settings.slot_window_minutes
    start = parse_hm(settings.operating_day_start)
    end = parse_hm(settings.operating_day_end)
    rows = []
    for mins in range(start, end, width):
        arrival_start = minutes_to_hm(mins)
        slot_type = slot_type_for(arrival_start)
        rows.append(
            {
                "slot_id": make_slot_id(day, arrival_start, direction),
                "date": day,
                "direction": direction,
                "slot_type": slot_type,
                "arrival_start": arrival_start,
                "arrival_end": minutes_to_hm(mins + width),
                "max_riders_premium": settings.default_max_premium_per_slot,
                "used_riders_premium": 0,
                "max_riders_non_premium": (
                    0 if slot_type == SLOT_TYPE_PEAK else settings.default_max_non_premium_per_slot
                ),
                "used_riders_non_premium": 0,
                "is_fragile": False,
            }
        )
    return rows


def initialize_slots_for_date(db: Session, day: date) -> int:
    """
    Insert any missing slots for every direction on `day`. Returns the number of rows inserted.
    Safe under concurrent callers: the conflict clause makes a duplicate insert a no-op.
    """
    expected = len(SLOT_DIRECTIONS) * len(generate_slot_rows(day, SLOT_DIRECTIONS[0]))
    existing = db.query(func.count(SlotCapacity.slot_id)).filter(SlotCapacity.date == day).scalar() or 0
    if existing >= expected:
        return 0
    for direction in SLOT_DIRECTIONS:
        rows = generate_slot_rows(day, direction)
        db.execute(insert_for(db, SlotCapacity).values(rows).on_conflict_do_nothing(index_elements=["slot_id"]))
    db.commit()
    inserted = (db.query(func.count(SlotCapacity.slot_id)).filter(SlotCapacity.date == day).scalar() or 0) - existing
    logger.info("initialize_slots_for_date: %s inserted=%s", day, inserted)
    return inserted


def slots_for_date(db: Session, day: date, direction: str | None = None) -> list[SlotCapacity]:
    initialize_slots_for_date(db, day)
    q = db.query(SlotCapacity).filter(SlotCapacity.date == day)
    if direction:
        q = q.filter(SlotCapacity.direction == direction)
    return q.order_by(SlotCapacity.arrival_start, SlotCapacity.direction).populate_existing().all()


def get_slot(db: Session, slot_id: str) -> SlotCapacity | None:
    """Look up a slot, creating the day's slots on first reference when the id is well-formed."""
    slot = db.get(SlotCapacity, slot_id, populate_existing=True)
    if slot is not None:
        return slot
    ref = parse_slot_id(slot_id)
    if ref is None or ref.direction not in SLOT_DIRECTIONS:
        return None
    initialize_slots_for_date(db, ref.date)
    return db.get(SlotCapacity, slot_id)


def available_premium(slot: SlotCapacity) -> int:
    return max(0, slot.max_riders_premium - slot.used_riders_premium)


def available_non_premium(slot: SlotCapacity) -> int:
    return max(0, slot.max_riders_non_premium - slot.used_riders_non_premium)


def has_availability(slot: SlotCapacity, is_premium: bool) -> bool:
    if is_premium:
        return slot.used_riders_premium < slot.max_riders_premium
    if slot.slot_type == SLOT_TYPE_PEAK:
        return False
    return slot.used_riders_non_premium < slot.max_riders_non_premium


def slot_to_dict(slot: SlotCapacity) -> dict:
    return {
        "slot_id": slot.slot_id,
        "date": slot.date.isoformat(),
        "direction": slot.direction,
        "slot_type": slot.slot_type,
        "arrival_start": slot.arrival_start,
        "arrival_end": slot.arrival_end,
        "max_riders_premium": slot.max_riders_premium,
        "used_riders_premium": slot.used_riders_premium,
        "max_riders_non_premium": slot.max_riders_non_premium,
        "used_riders_non_premium": slot.used_riders_non_premium,
        "fragile": bool(slot.is_fragile),
    }


def slots_with_availability(db: Session, day: date, direction: str | None = None) -> list[dict]:
    out = []
    for slot in slots_for_date(db, day, direction):
        d = slot_to_dict(slot)
        d["available_premium"] = available_premium(slot)
        d["available_non_premium"] = available_non_premium(slot)
        out.append(d)
    return out


def available_slots_in_range(
    db: Session,
    day: date,
    direction: str,
    is_premium: bool,
    start_time: str,
    end_time: str,
) -> list[SlotCapacity]:
    """Slots with arrival start in [start_time, end_time) that can take one more rider of the tier."""
    start_mins, end_mins = parse_hm(start_time), parse_hm(end_time)
    return [
        slot
        for slot in slots_for_date(db, day, direction)
        if start_mins <= parse_hm(slot.arrival_start) < end_mins and has_availability(slot, is_premium)
    ]


def slot_summary_for_date(db: Session, day: date) -> dict:
    initialize_slots_for_date(db, day)
    rows = (
        db.query(
            SlotCapacity.slot_type,
            func.count(SlotCapacity.slot_id),
            func.coalesce(func.sum(SlotCapacity.max_riders_premium), 0),
            func.coalesce(func.sum(SlotCapacity.used_riders_premium), 0),
            func.coalesce(func.sum(SlotCapacity.max_riders_non_premium), 0),
            func.coalesce(func.sum(SlotCapacity.used_riders_non_premium), 0),
        )
        .filter(SlotCapacity.date == day)
        .group_by(SlotCapacity.slot_type)
        .all()
    )
    summary = {
        "total_slots": 0,
        "peak_slots": 0,
        "off_peak_slots": 0,
        "total_premium_capacity": 0,
        "total_premium_used": 0,
        "total_non_premium_capacity": 0,
        "total_non_premium_used": 0,
    }
    for slot_type, count, p_max, p_used, np_max, np_used in rows:
        summary["total_slots"] += count
        summary["peak_slots" if slot_type == SLOT_TYPE_PEAK else "off_peak_slots"] += count
        summary["total_premium_capacity"] += int(p_max)
        summary["total_premium_used"] += int(p_used)
        summary["total_non_premium_capacity"] += int(np_max)
        summary["total_non_premium_used"] += int(np_used)
    return summary


def reset_slots_for_date(db: Session, day: date) -> int:
    """Admin: zero usage counters and fragility for every slot on `day`."""
    n = (
        db.query(SlotCapacity)
        .filter(SlotCapacity.date == day)
        .update(
            {
                SlotCapacity.used_riders_premium: 0,
                SlotCapacity.used_riders_non_premium: 0,
                SlotCapacity.is_fragile: False,
                SlotCapacity.updated_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    logger.info("reset_slots_for_date: %s rows=%s", day, n)
    return n


def set_slot_fragility(db: Session, slot_id: str, fragile: bool) -> bool:
    n = (
        db.query(SlotCapacity)
        .filter(SlotCapacity.slot_id == slot_id)
        .update(
            {SlotCapacity.is_fragile: fragile, SlotCapacity.updated_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
    )
    db.commit()
    return n > 0
