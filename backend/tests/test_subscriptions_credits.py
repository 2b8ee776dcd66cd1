"""Tests for plans, subscriptions, premium seats and the monthly credit ledger."""
from datetime import date, datetime, timezone

import pytest

from shuttle.config import settings
from shuttle.core.errors import INSUFFICIENT_CREDIT, PREMIUM_FULL, AdmissionDenied, NotFoundError
from shuttle.models.subscription import Subscription, SubscriptionPlan
from shuttle.services import capacity_planner, credits, subscriptions

MARCH = datetime(2030, 3, 10, 12, 0, tzinfo=timezone.utc)
APRIL = datetime(2030, 4, 1, 0, 30, tzinfo=timezone.utc)


@pytest.fixture
def plans(db):
    subscriptions.seed_plans(db)
    return db


class TestCreditPeriods:
    def test_period_bounds(self):
        assert credits.current_period_bounds(MARCH) == (date(2030, 3, 1), date(2030, 4, 1))
        assert credits.current_period_bounds(datetime(2030, 12, 31, tzinfo=timezone.utc)) == (
            date(2030, 12, 1),
            date(2031, 1, 1),
        )

    def test_defaults_without_plan(self, db):
        assert credits.plan_allotment(db, 1) == (settings.default_standard_credits, settings.default_grocery_credits)

    def test_consume_until_empty(self, plans):
        subscriptions.activate_subscription(plans, 1, "light", now=MARCH)
        period = credits.get_or_create_credit_period(plans, 1, MARCH)
        period.grocery_total = 1
        plans.commit()

        credits.consume_credit(plans, 1, "grocery", now=MARCH)
        plans.commit()
        with pytest.raises(AdmissionDenied) as exc:
            credits.consume_credit(plans, 1, "grocery", now=MARCH)
        assert exc.value.code == INSUFFICIENT_CREDIT

        summary = credits.credits_summary(plans, 1, now=MARCH)
        assert summary["grocery_used"] == 1
        assert summary["grocery_remaining"] == 0
        assert summary["standard_total"] == 10

    def test_refund_floors(self, db):
        assert credits.refund_credit(db, 1, now=MARCH) is False
        credits.consume_credit(db, 1, now=MARCH)
        assert credits.refund_credit(db, 1, now=MARCH) is True
        db.commit()
        assert credits.credits_summary(db, 1, now=MARCH)["standard_used"] == 0

    def test_unknown_ride_type(self, db):
        with pytest.raises(ValueError):
            credits.consume_credit(db, 1, "limo", now=MARCH)


class TestSubscriptions:
    def test_seed_is_idempotent(self, plans):
        subscriptions.seed_plans(plans)
        assert plans.query(SubscriptionPlan).count() == 3
        assert subscriptions.get_plan(plans, "premium").peak_access is True

    def test_unknown_plan(self, plans):
        with pytest.raises(NotFoundError):
            subscriptions.activate_subscription(plans, 1, "platinum")

    def test_activate_and_switch(self, plans):
        subscriptions.activate_subscription(plans, 1, "light", now=MARCH)
        assert subscriptions.plan_type_for_user(plans, 1) == "light"
        assert not subscriptions.has_peak_access(plans, 1)

        subscriptions.activate_subscription(plans, 1, "premium", now=MARCH)
        assert subscriptions.plan_type_for_user(plans, 1) == "premium"
        assert subscriptions.has_peak_access(plans, 1)
        assert plans.query(Subscription).filter(Subscription.status == "active").count() == 1
        assert capacity_planner.premium_subscriber_count(plans) == 1
        assert credits.credits_summary(plans, 1, now=MARCH)["standard_total"] == 30

    def test_reactivating_same_plan_is_noop(self, plans):
        first = subscriptions.activate_subscription(plans, 1, "premium", now=MARCH)
        again = subscriptions.activate_subscription(plans, 1, "premium", now=MARCH)
        assert again.id == first.id
        assert capacity_planner.premium_subscriber_count(plans) == 1

    def test_premium_ceiling(self, plans, monkeypatch):
        monkeypatch.setattr(settings, "max_premium_subscribers", 1)
        subscriptions.activate_subscription(plans, 1, "premium", now=MARCH)
        with pytest.raises(AdmissionDenied) as exc:
            subscriptions.activate_subscription(plans, 2, "premium", now=MARCH)
        assert exc.value.code == PREMIUM_FULL
        assert subscriptions.active_subscription(plans, 2) is None

        assert subscriptions.cancel_subscription(plans, 1, now=MARCH)
        subscriptions.activate_subscription(plans, 2, "premium", now=MARCH)
        assert capacity_planner.premium_subscriber_count(plans) == 1

    def test_cancel_without_subscription(self, plans):
        assert subscriptions.cancel_subscription(plans, 1) is False


class TestMonthlyReset:
    def test_rolls_period_and_reinitializes(self, plans):
        subscriptions.activate_subscription(plans, 1, "standard", now=MARCH)
        credits.consume_credit(plans, 1, now=MARCH)
        plans.commit()

        result = subscriptions.run_monthly_reset(plans, now=APRIL)

        assert result == {"period_start": "2030-04-01", "updated": 1, "failed": 0}
        sub, _ = subscriptions.active_subscription(plans, 1)
        assert sub.current_period_start == date(2030, 4, 1)
        april = credits.credits_summary(plans, 1, now=APRIL)
        assert (april["standard_total"], april["standard_used"]) == (20, 0)
        assert credits.credits_summary(plans, 1, now=MARCH)["standard_used"] == 1

    def test_second_run_is_noop(self, plans):
        subscriptions.activate_subscription(plans, 1, "standard", now=MARCH)
        subscriptions.run_monthly_reset(plans, now=APRIL)
        assert subscriptions.run_monthly_reset(plans, now=APRIL)["updated"] == 0

    def test_cancelled_subscriptions_skipped(self, plans):
        subscriptions.activate_subscription(plans, 1, "standard", now=MARCH)
        subscriptions.cancel_subscription(plans, 1, now=MARCH)
        assert subscriptions.run_monthly_reset(plans, now=APRIL)["updated"] == 0
