"""
Ride credits: one ledger row per user per calendar month (UTC).

consume_credit / refund_credit are conditional UPDATEs and never commit; the caller commits them
together with the ride they pay for (or refund).
"""
import logging
from datetime import date, datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from shuttle.config import settings
from shuttle.core.clock import as_utc, utcnow
from shuttle.core.constants import RIDE_TYPE_GROCERY, RIDE_TYPE_STANDARD
from shuttle.core.errors import INSUFFICIENT_CREDIT, AdmissionDenied
from shuttle.db.upsert import insert_for
from shuttle.models.credit_period import CreditPeriod
from shuttle.models.subscription import Subscription, SubscriptionPlan

logger = logging.getLogger(__name__)


def current_period_bounds(now: datetime | None = None) -> tuple[date, date]:
    """[first day of this month, first day of next month) in UTC."""
    now = as_utc(now) if now else utcnow()
    start = date(now.year, now.month, 1)
    end = date(now.year + 1, 1, 1) if now.month == 12 else date(now.year, now.month + 1, 1)
    return start, end


def plan_allotment(db: Session, user_id: int) -> tuple[int, int]:
    """(standard, grocery) credits for the user's active plan, or the configured defaults."""
    plan = (
        db.query(SubscriptionPlan)
        .join(Subscription, Subscription.plan_id == SubscriptionPlan.id)
        .filter(Subscription.user_id == user_id, Subscription.status == "active")
        .order_by(Subscription.id.desc())
        .first()
    )
    if plan is None:
        return settings.default_standard_credits, settings.default_grocery_credits
    return plan.standard_credits, plan.grocery_credits


def get_or_create_credit_period(db: Session, user_id: int, now: datetime | None = None) -> CreditPeriod:
    start, end = current_period_bounds(now)
    row = (
        db.query(CreditPeriod)
        .filter(CreditPeriod.user_id == user_id, CreditPeriod.period_start == start)
        .first()
    )
    if row is not None:
        return row
    standard, grocery = plan_allotment(db, user_id)
    db.execute(
        insert_for(db, CreditPeriod)
        .values(
            user_id=user_id,
            period_start=start,
            period_end=end,
            standard_total=standard,
            standard_used=0,
            grocery_total=grocery,
            grocery_used=0,
        )
        .on_conflict_do_nothing(index_elements=["user_id", "period_start"])
    )
    db.flush()
    logger.info("credit period created user_id=%s start=%s standard=%s grocery=%s", user_id, start, standard, grocery)
    return (
        db.query(CreditPeriod)
        .filter(CreditPeriod.user_id == user_id, CreditPeriod.period_start == start)
        .one()
    )


def _columns(ride_type: str):
    if ride_type == RIDE_TYPE_GROCERY:
        return CreditPeriod.grocery_used, CreditPeriod.grocery_total
    if ride_type == RIDE_TYPE_STANDARD:
        return CreditPeriod.standard_used, CreditPeriod.standard_total
    raise ValueError(f"Unknown ride type {ride_type!r}")


def remaining(period: CreditPeriod, ride_type: str = RIDE_TYPE_STANDARD) -> int:
    if ride_type == RIDE_TYPE_GROCERY:
        return max(0, period.grocery_total - period.grocery_used)
    return max(0, period.standard_total - period.standard_used)


def consume_credit(db: Session, user_id: int, ride_type: str = RIDE_TYPE_STANDARD, now: datetime | None = None) -> None:
    """Debit one credit of `ride_type`. Raises AdmissionDenied(insufficient_credit) when none remain."""
    period = get_or_create_credit_period(db, user_id, now)
    used, total = _columns(ride_type)
    result = db.execute(
        update(CreditPeriod)
        .where(CreditPeriod.id == period.id, used < total)
        .values({used: used + 1, CreditPeriod.updated_at: utcnow()})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AdmissionDenied(INSUFFICIENT_CREDIT, f"No {ride_type} credits left this period")
    db.expire(period)


def refund_credit(db: Session, user_id: int, ride_type: str = RIDE_TYPE_STANDARD, now: datetime | None = None) -> bool:
    """Give one credit back to the current period. Floors at zero used; returns False when nothing was used."""
    period = get_or_create_credit_period(db, user_id, now)
    used, _ = _columns(ride_type)
    result = db.execute(
        update(CreditPeriod)
        .where(CreditPeriod.id == period.id, used > 0)
        .values({used: used - 1, CreditPeriod.updated_at: utcnow()})
        .execution_options(synchronize_session=False)
    )
    db.expire(period)
    if result.rowcount != 1:
        logger.info("refund_credit: user_id=%s type=%s nothing to refund", user_id, ride_type)
        return False
    return True


def credits_summary(db: Session, user_id: int, now: datetime | None = None) -> dict:
    period = get_or_create_credit_period(db, user_id, now)
    db.commit()
    return {
        "user_id": user_id,
        "period_start": period.period_start.isoformat(),
        "period_end": period.period_end.isoformat(),
        "standard_total": period.standard_total,
        "standard_used": period.standard_used,
        "standard_remaining": remaining(period, RIDE_TYPE_STANDARD),
        "grocery_total": period.grocery_total,
        "grocery_used": period.grocery_used,
        "grocery_remaining": remaining(period, RIDE_TYPE_GROCERY),
    }
