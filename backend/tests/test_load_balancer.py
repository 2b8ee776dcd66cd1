"""Tests for the nightly load analysis."""
from datetime import timedelta

from helpers import DAY, add_ride, at
from shuttle.core.clock import as_utc
from shuttle.models.daily_load_insight import DailyLoadInsight
from shuttle.models.ride import Ride
from shuttle.services import load_balancer as lb


def _ride(hm, ride_id=None, **kwargs):
    return Ride(id=ride_id, user_id=1, pickup_time=at(hm), status="scheduled", **kwargs)


class TestLegs:
    def test_passenger_leg_default_without_coordinates(self):
        assert lb.passenger_leg_minutes(_ride("11:00")) == 8

    def test_passenger_leg_from_coordinates(self):
        ride = _ride("11:00", pickup_lat=49.80, pickup_lng=-97.10, drop_lat=49.80, drop_lng=-97.10)
        assert lb.passenger_leg_minutes(ride) == 6  # zero distance -> minimum travel time

    def test_reposition_needs_both_ends(self):
        assert lb.reposition_leg_minutes(_ride("11:00"), _ride("11:30")) == 0


class TestAnalysis:
    def test_overbooked_hours(self):
        rides = [_ride(hm) for hm in ("11:00", "11:10", "11:20", "11:30", "11:40", "12:00")]
        assert lb.overbooked_hours(rides) == [
            {"hour_start": "2030-03-04T11:00:00+00:00", "rides_count": 5, "max_rides_per_hour": 4}
        ]

    def test_at_risk_pairs(self):
        # Default 8-minute legs, no reposition: each pickup needs 5 minutes of slack after the previous leg.
        rides = [_ride("11:00", 1), _ride("11:05", 2), _ride("11:20", 3), _ride("12:00", 4)]
        assert lb.at_risk_pairs(rides) == [
            {"ride_id": 1, "next_ride_id": 2, "slack_minutes": -3, "reason": lb.NEGATIVE_SLACK},
        ]

    def test_tight_window(self):
        pairs = lb.at_risk_pairs([_ride("11:00", 1), _ride("11:10", 2)])
        assert pairs == [{"ride_id": 1, "next_ride_id": 2, "slack_minutes": 2, "reason": lb.TIGHT_WINDOW}]

    def test_recommended_offset(self):
        assert lb.recommended_start_offset([]) == 0
        assert lb.recommended_start_offset([{"slack_minutes": 2}]) == 10
        assert lb.recommended_start_offset([{"slack_minutes": 2}, {"slack_minutes": -1}]) == 15


class TestDailyRun:
    def test_persists_and_replaces(self, db):
        add_ride(db, at("11:00"))
        add_ride(db, at("11:05"))
        add_ride(db, at("12:00"), status="cancelled_by_admin")

        insight = lb.run_daily_load_analysis(db, DAY)
        assert insight.total_rides == 2
        assert as_utc(insight.recommended_start_time) == at("11:00") - timedelta(minutes=15)
        assert insight.at_risk_rides[0]["reason"] == lb.NEGATIVE_SLACK

        lb.run_daily_load_analysis(db, DAY)
        assert db.query(DailyLoadInsight).filter(DailyLoadInsight.day == DAY).count() == 1

    def test_empty_day(self, db):
        insight = lb.run_daily_load_analysis(db, DAY)
        data = lb.insight_to_dict(insight)
        assert data["total_rides"] == 0
        assert data["recommended_start_time"] is None
        assert data["overbooked_slots"] == []
