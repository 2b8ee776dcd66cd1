"""Capacity API: daily summary, hourly breakdown, utilization report, non-premium rebalancing."""
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shuttle.db.session import get_db
from shuttle.services import capacity_planner
from shuttle.services.slots.catalog import slot_summary_for_date

router = APIRouter()


class AutoBalanceBody(BaseModel):
    target_capacity: int = Field(..., ge=0)
    direction: str | None = None


@router.get("/capacity/report")
def utilization_report(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return {"days": capacity_planner.capacity_utilization_report(db, start, end)}


@router.get("/capacity/premium")
def premium_seats(db: Session = Depends(get_db)) -> dict[str, Any]:
    return {
        "current": capacity_planner.premium_subscriber_count(db),
        "can_add": capacity_planner.can_add_premium_subscriber(db),
    }


@router.get("/capacity/{day}")
def daily_capacity(day: date, db: Session = Depends(get_db)) -> dict[str, Any]:
    return capacity_planner.compute_daily_capacity(db, day)


@router.get("/capacity/{day}/hourly")
def hourly_breakdown(day: date, db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"date": day.isoformat(), "hours": capacity_planner.hourly_capacity_breakdown(db, day)}


@router.get("/capacity/{day}/slots-summary")
def slots_summary(day: date, db: Session = Depends(get_db)) -> dict[str, Any]:
    return slot_summary_for_date(db, day)


@router.post("/capacity/{day}/auto-balance")
def auto_balance(day: date, body: AutoBalanceBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    n = capacity_planner.auto_balance_non_premium_capacity(db, day, body.target_capacity, body.direction)
    return {"ok": True, "slots_updated": n}
