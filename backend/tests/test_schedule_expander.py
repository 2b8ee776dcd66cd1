"""Tests for schedule expansion: templates -> pending rides, credits, peak access, overlap."""
from datetime import datetime, timezone

import pytest

from helpers import add_ride, at
from shuttle.config import settings
from shuttle.core.clock import as_utc
from shuttle.models.ride import Ride
from shuttle.models.saved_location import SavedLocation
from shuttle.models.schedule_template import ScheduleTemplate
from shuttle.services import credits, subscriptions
from shuttle.services.schedule_expander import expand_all_schedules, expand_schedules_for_user, has_overlap

# Sunday evening; a two-day run covers Sunday and Monday 2030-03-04.
RUN_AT = datetime(2030, 3, 3, 20, 0, tzinfo=timezone.utc)
MONDAY = 1
HOME = {"lat": 49.8951, "lng": -97.1384, "address": "12 Elm St"}
WORK = {"lat": 49.8844, "lng": -97.1470, "address": "100 Main St"}


def _rider(db, user_id=1, plan="standard", credit_total=None, locations=True, templates=(("to_work", "11:00"), ("to_home", "13:00"))):
    subscriptions.seed_plans(db)
    subscriptions.activate_subscription(db, user_id, plan, now=RUN_AT)
    if credit_total is not None:
        period = credits.get_or_create_credit_period(db, user_id, RUN_AT)
        period.standard_total = credit_total
    if locations:
        db.add(SavedLocation(user_id=user_id, label="home", **HOME))
        db.add(SavedLocation(user_id=user_id, label="work", **WORK))
    for direction, arrival in templates:
        db.add(ScheduleTemplate(user_id=user_id, day_of_week=MONDAY, direction=direction, arrival_time=arrival))
    db.commit()


def _expand(db, user_id=1, now=RUN_AT):
    return expand_schedules_for_user(db, user_id, days_ahead=2, now=now)


class TestExpansion:
    def test_creates_pending_rides(self, db):
        _rider(db)
        result = _expand(db)

        assert result["created"] == 2
        rides = db.query(Ride).order_by(Ride.pickup_time).all()
        assert [r.status for r in rides] == ["pending", "pending"]
        to_work = rides[0]
        assert to_work.pickup_address == HOME["address"]
        assert to_work.dropoff_address == WORK["address"]
        assert as_utc(to_work.arrival_target) == at("11:00")
        # ~1.4 km -> 6 min minimum travel, plus 5 min arrive-early buffer.
        assert as_utc(to_work.pickup_time) == at("10:49")
        assert as_utc(to_work.pickup_window_start) == at("10:44")
        assert rides[1].pickup_address == WORK["address"]
        assert credits.credits_summary(db, 1, now=RUN_AT)["standard_used"] == 2

    def test_one_credit_two_templates(self, db):
        _rider(db, credit_total=1)
        result = _expand(db)

        assert result["created"] == 1
        assert result["skipped_no_credit"] == 1
        assert db.query(Ride).count() == 1
        assert credits.credits_summary(db, 1, now=RUN_AT)["standard_remaining"] == 0

    def test_no_credits_creates_nothing(self, db):
        _rider(db, credit_total=0)
        assert _expand(db)["created"] == 0
        assert db.query(Ride).count() == 0

    def test_rerun_skips_overlap(self, db):
        _rider(db)
        _expand(db)
        result = _expand(db)

        assert result["created"] == 0
        assert result["skipped_overlap"] == 2
        assert db.query(Ride).count() == 2

    def test_peak_needs_premium(self, db):
        _rider(db, templates=(("to_work", "09:00"),))
        result = _expand(db)
        assert result["created"] == 0
        assert result["skipped_peak"] == 1

    def test_premium_books_peak(self, db):
        _rider(db, plan="premium", templates=(("to_work", "09:00"),))
        result = _expand(db)
        assert result["created"] == 1
        assert db.query(Ride).one().plan_type == "premium"

    def test_hourly_cap(self, db, monkeypatch):
        monkeypatch.setattr(settings, "max_rides_per_hour", 1)
        _rider(db, templates=(("to_work", "11:00"),))
        add_ride(db, at("10:30"), user_id=99)
        result = _expand(db)
        assert result["created"] == 0
        assert result["skipped_hourly_cap"] == 1

    def test_past_arrivals_skipped(self, db):
        _rider(db)
        result = _expand(db, now=at("12:00"))
        assert result["created"] == 1
        assert result["skipped_past"] == 1

    def test_requires_subscription(self, db):
        db.add(ScheduleTemplate(user_id=5, day_of_week=MONDAY, direction="to_work", arrival_time="11:00"))
        db.commit()
        result = _expand(db, user_id=5)
        assert result == {"created": 0, "skipped_no_subscription": 1, "ride_ids": []}

    def test_requires_locations(self, db):
        _rider(db, locations=False)
        result = _expand(db)
        assert result["created"] == 0
        assert result["skipped_no_locations"] == 1

    def test_school_counts_as_work(self, db):
        _rider(db, locations=False, templates=(("to_work", "11:00"),))
        db.add(SavedLocation(user_id=1, label="home", **HOME))
        db.add(SavedLocation(user_id=1, label="school", **WORK))
        db.commit()
        assert _expand(db)["created"] == 1

    def test_disabled_template_ignored(self, db):
        _rider(db, templates=(("to_work", "11:00"),))
        db.query(ScheduleTemplate).update({ScheduleTemplate.enabled: False})
        db.commit()
        assert _expand(db)["created"] == 0


class TestOverlapAndBatch:
    def test_has_overlap_window(self, db):
        add_ride(db, at("10:00"))
        assert has_overlap(db, 1, at("10:30"))
        assert not has_overlap(db, 1, at("10:31"))
        assert not has_overlap(db, 2, at("10:00"))

    def test_cancelled_rides_do_not_overlap(self, db):
        add_ride(db, at("10:00"), status="cancelled_by_user")
        assert not has_overlap(db, 1, at("10:00"))

    def test_expand_all_isolates_users(self, db):
        _rider(db, user_id=1)
        _rider(db, user_id=2, locations=False)

        results = expand_all_schedules(db, days_ahead=2, now=RUN_AT)

        assert results[1]["created"] == 2
        assert results[2]["skipped_no_locations"] == 1


@pytest.mark.parametrize("plan", ["light", "standard"])
def test_plan_credits_seed_period(db, plan):
    _rider(db, plan=plan, templates=())
    expected = subscriptions.get_plan(db, plan).standard_credits
    assert credits.credits_summary(db, 1, now=RUN_AT)["standard_total"] == expected
