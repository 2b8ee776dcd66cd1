"""
Admin API: trigger batch jobs on demand, reset a date's slots, manage subscriptions.
Jobs here run in the request's session; the scheduler runs the same operations in its own.
"""
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shuttle.core.constants import EXPANSION_DAYS_AHEAD
from shuttle.core.errors import NotFoundError
from shuttle.db.session import get_db
from shuttle.models.daily_load_insight import DailyLoadInsight
from shuttle.services import credits, subscriptions
from shuttle.services.holds import expire_holds
from shuttle.services.load_balancer import insight_to_dict, run_daily_load_analysis
from shuttle.services.schedule_expander import expand_all_schedules, expand_schedules_for_user
from shuttle.services.slots.catalog import reset_slots_for_date, set_slot_fragility

router = APIRouter()
logger = logging.getLogger(__name__)


class FragilityBody(BaseModel):
    fragile: bool


class SubscriptionBody(BaseModel):
    user_id: int
    plan_code: str


@router.post("/jobs/expire-holds")
def run_expire_holds(db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"expired": expire_holds(db)}


@router.post("/jobs/expand-schedules")
def run_expand_schedules(
    days_ahead: int = Query(EXPANSION_DAYS_AHEAD, ge=1, le=31),
    user_id: int | None = Query(None),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    if user_id is not None:
        return {"results": {user_id: expand_schedules_for_user(db, user_id, days_ahead)}}
    return {"results": expand_all_schedules(db, days_ahead)}


@router.post("/jobs/monthly-reset")
def run_reset(db: Session = Depends(get_db)) -> dict[str, Any]:
    return subscriptions.run_monthly_reset(db)


@router.post("/jobs/load-analysis")
def run_load_analysis(day: date = Query(..., alias="date"), db: Session = Depends(get_db)) -> dict[str, Any]:
    return insight_to_dict(run_daily_load_analysis(db, day))


@router.get("/load-insights/{day}")
def load_insight(day: date, db: Session = Depends(get_db)) -> dict[str, Any]:
    row = db.query(DailyLoadInsight).filter(DailyLoadInsight.day == day).order_by(DailyLoadInsight.id.desc()).first()
    if row is None:
        raise NotFoundError(f"No load analysis for {day}")
    return insight_to_dict(row)


@router.post("/slots/{day}/reset")
def reset_slots(day: date, db: Session = Depends(get_db)) -> dict[str, Any]:
    logger.warning("Admin reset of slot counters for %s", day)
    return {"ok": True, "slots_reset": reset_slots_for_date(db, day)}


@router.post("/slots/{slot_id}/fragility")
def slot_fragility(slot_id: str, body: FragilityBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    if not set_slot_fragility(db, slot_id, body.fragile):
        raise NotFoundError(f"Slot {slot_id} not found")
    return {"ok": True, "slot_id": slot_id, "fragile": body.fragile}


@router.post("/subscriptions")
def activate(body: SubscriptionBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    sub = subscriptions.activate_subscription(db, body.user_id, body.plan_code)
    return {"ok": True, "subscription_id": sub.id, "plan_code": body.plan_code}


@router.delete("/subscriptions/{user_id}")
def cancel(user_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    if not subscriptions.cancel_subscription(db, user_id):
        raise NotFoundError(f"No active subscription for user {user_id}")
    return {"ok": True}


@router.get("/credits/{user_id}")
def credit_summary(user_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    return credits.credits_summary(db, user_id)
