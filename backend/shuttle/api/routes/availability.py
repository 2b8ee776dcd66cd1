"""
Availability API: slots for a date and the admission queries (premium / non-premium, hour, day).
Read-only except that a date's slots are created on first reference.
"""
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shuttle.core.constants import PREMIUM_PLAN
from shuttle.core.errors import NotFoundError
from shuttle.db.session import get_db
from shuttle.services import capacity_planner
from shuttle.services.slots import catalog

router = APIRouter()

HM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


@router.get("/slots")
def list_slots(
    date_str: date = Query(..., alias="date"),
    direction: str | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    slots = catalog.slots_with_availability(db, date_str, direction)
    return {"date": date_str.isoformat(), "direction": direction, "slots": slots}


@router.get("/slots/available")
def available_slots(
    date_str: date = Query(..., alias="date"),
    direction: str = Query(...),
    plan_type: str = Query("standard"),
    start: str = Query("06:00", pattern=HM_PATTERN),
    end: str = Query("22:00", pattern=HM_PATTERN),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    slots = catalog.available_slots_in_range(db, date_str, direction, plan_type == PREMIUM_PLAN, start, end)
    return {"slots": [catalog.slot_to_dict(s) for s in slots]}


@router.get("/slots/{slot_id}")
def get_slot(slot_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    slot = catalog.get_slot(db, slot_id)
    if slot is None:
        raise NotFoundError(f"Slot {slot_id} not found")
    return catalog.slot_to_dict(slot)


@router.get("/admission")
def admission(
    slot_id: str = Query(...),
    plan_type: str = Query("standard"),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Would a ride of this plan fit the slot right now? Returns allowed + reason/code."""
    ref = catalog.parse_slot_id(slot_id)
    if ref is None:
        raise NotFoundError(f"Slot {slot_id} not found")
    return capacity_planner.can_add_ride(db, ref.date, slot_id, plan_type).to_dict()


@router.get("/admission/hourly")
def hourly_check(
    date_str: date = Query(..., alias="date"),
    hour: int = Query(..., ge=0, le=23),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return {"allowed": capacity_planner.check_hourly_capacity(db, date_str, hour)}


@router.get("/admission/daily")
def daily_check(date_str: date = Query(..., alias="date"), db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"allowed": capacity_planner.check_daily_capacity(db, date_str)}
