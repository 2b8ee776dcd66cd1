"""
Subscription plans and per-user subscriptions.

Premium seats are limited globally: activating a premium plan takes a seat from the planner's
counter in the same transaction as the subscription row, cancelling gives it back.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from shuttle.core.clock import utcnow
from shuttle.core.constants import PREMIUM_PLAN
from shuttle.core.errors import PREMIUM_FULL, AdmissionDenied, NotFoundError
from shuttle.db.upsert import insert_for
from shuttle.models.subscription import Subscription, SubscriptionPlan
from shuttle.services.capacity_planner import decrement_premium_count, increment_premium_count
from shuttle.services.credits import current_period_bounds, get_or_create_credit_period

logger = logging.getLogger(__name__)

DEFAULT_PLANS = (
    {"code": "light", "name": "Light", "peak_access": False, "standard_credits": 10, "grocery_credits": 1, "price_cents": 9900},
    {"code": "standard", "name": "Standard", "peak_access": False, "standard_credits": 20, "grocery_credits": 2, "price_cents": 14900},
    {"code": "premium", "name": "Premium", "peak_access": True, "standard_credits": 30, "grocery_credits": 4, "price_cents": 19900},
)


def seed_plans(db: Session) -> None:
    """Insert the default plans if missing; existing rows are left as configured."""
    for plan in DEFAULT_PLANS:
        db.execute(insert_for(db, SubscriptionPlan).values(**plan).on_conflict_do_nothing(index_elements=["code"]))
    db.commit()


def get_plan(db: Session, code: str) -> SubscriptionPlan:
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.code == code).first()
    if plan is None:
        raise NotFoundError(f"Unknown plan {code}")
    return plan


def active_subscription(db: Session, user_id: int) -> tuple[Subscription, SubscriptionPlan] | None:
    row = (
        db.query(Subscription, SubscriptionPlan)
        .join(SubscriptionPlan, Subscription.plan_id == SubscriptionPlan.id)
        .filter(Subscription.user_id == user_id, Subscription.status == "active")
        .order_by(Subscription.id.desc())
        .first()
    )
    return (row[0], row[1]) if row else None


def has_peak_access(db: Session, user_id: int) -> bool:
    sub = active_subscription(db, user_id)
    return bool(sub and sub[1].peak_access)


def plan_type_for_user(db: Session, user_id: int) -> str | None:
    sub = active_subscription(db, user_id)
    return sub[1].code if sub else None


def init_credits_for_plan(db: Session, user_id: int, plan: SubscriptionPlan, now: datetime | None = None) -> None:
    """Set the current period's totals to the plan allotment. Usage already recorded is kept."""
    period = get_or_create_credit_period(db, user_id, now)
    period.standard_total = plan.standard_credits
    period.grocery_total = plan.grocery_credits
    period.updated_at = utcnow()


def activate_subscription(db: Session, user_id: int, plan_code: str, now: datetime | None = None) -> Subscription:
    """
    Start `plan_code` for the user, replacing any active subscription. Raises
    AdmissionDenied(premium_full) when no premium seat is left.
    """
    plan = get_plan(db, plan_code)
    current = active_subscription(db, user_id)
    if current and current[1].code == plan.code:
        return current[0]

    if plan.code == PREMIUM_PLAN and not increment_premium_count(db):
        db.rollback()
        raise AdmissionDenied(PREMIUM_FULL, "No premium seats available")

    if current:
        _end(db, current[0], current[1], now)

    start, end = current_period_bounds(now)
    sub = Subscription(
        user_id=user_id,
        plan_id=plan.id,
        status="active",
        current_period_start=start,
        current_period_end=end,
        started_at=now or utcnow(),
    )
    db.add(sub)
    init_credits_for_plan(db, user_id, plan, now)
    db.commit()
    logger.info("activate_subscription: user_id=%s plan=%s", user_id, plan.code)
    return sub


def _end(db: Session, sub: Subscription, plan: SubscriptionPlan, now: datetime | None) -> None:
    sub.status = "cancelled"
    sub.cancelled_at = now or utcnow()
    if plan.code == PREMIUM_PLAN:
        decrement_premium_count(db)


def cancel_subscription(db: Session, user_id: int, now: datetime | None = None) -> bool:
    current = active_subscription(db, user_id)
    if current is None:
        return False
    _end(db, current[0], current[1], now)
    db.commit()
    logger.info("cancel_subscription: user_id=%s plan=%s", user_id, current[1].code)
    return True


def run_monthly_reset(db: Session, now: datetime | None = None) -> dict:
    """
    Roll every active subscription into the current month and re-initialize its credits.
    Idempotent: subscriptions already on the current period are skipped. One failure does not
    stop the others.
    """
    start, end = current_period_bounds(now)
    rows = (
        db.query(Subscription, SubscriptionPlan)
        .join(SubscriptionPlan, Subscription.plan_id == SubscriptionPlan.id)
        .filter(Subscription.status == "active", Subscription.current_period_start != start)
        .all()
    )
    updated = failed = 0
    for sub, plan in rows:
        try:
            sub.current_period_start = start
            sub.current_period_end = end
            init_credits_for_plan(db, sub.user_id, plan, now)
            db.commit()
            updated += 1
        except Exception as e:
            logger.exception("monthly reset failed subscription_id=%s user_id=%s: %s", sub.id, sub.user_id, e)
            db.rollback()
            failed += 1
    logger.info("run_monthly_reset: period=%s updated=%s failed=%s", start, updated, failed)
    return {"period_start": start.isoformat(), "updated": updated, "failed": failed}
