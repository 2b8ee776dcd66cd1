"""HTTP-level tests: routing, error mapping and the hold -> ride flow through the API."""
import pytest
from fastapi.testclient import TestClient

from helpers import DAY, slot_id
from shuttle.main import app

DAY_STR = DAY.isoformat()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


class TestBasics:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_scheduler_not_started(self, client):
        assert not hasattr(app.state, "scheduler")

    def test_list_slots(self, client):
        resp = client.get("/slots", params={"date": DAY_STR, "direction": "other"})
        assert resp.status_code == 200
        slots = resp.json()["slots"]
        assert len(slots) == 192
        assert slots[0]["available_non_premium"] == 2

    def test_available_slots_in_range(self, client):
        params = {"date": DAY_STR, "direction": "other", "start": "11:00", "end": "11:30"}
        slots = client.get("/slots/available", params=params).json()["slots"]
        assert [s["arrival_start"] for s in slots] == ["11:00", "11:05", "11:10", "11:15", "11:20", "11:25"]

    @pytest.mark.parametrize("bad", ["abc", "25:00", "11:60", "7:00"])
    def test_malformed_range_is_422(self, client, bad):
        params = {"date": DAY_STR, "direction": "other", "start": bad}
        assert client.get("/slots/available", params=params).status_code == 422

    def test_unknown_slot_is_404(self, client):

        resp = client.get("/slots/slot_2030-03-04_11:00_nowhere")
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    def test_admission_query(self, client):
        peak = slot_id("08:00")
        assert client.get("/admission", params={"slot_id": peak, "plan_type": "premium"}).json() == {"allowed": True}
        body = client.get("/admission", params={"slot_id": peak, "plan_type": "standard"}).json()
        assert body["allowed"] is False
        assert body["code"] == "peak_restricted"

    def test_hourly_and_daily_checks(self, client):
        assert client.get("/admission/hourly", params={"date": DAY_STR, "hour": 11}).json() == {"allowed": True}
        assert client.get("/admission/daily", params={"date": DAY_STR}).json() == {"allowed": True}


class TestHoldFlow:
    def test_peak_hold_denied_for_standard(self, client):
        resp = client.post("/holds", json={"slot_id": slot_id("08:00"), "rider_id": 1, "plan_type": "standard"})
        assert resp.status_code == 409
        assert resp.json()["code"] == "peak_restricted"

    def test_hold_book_and_transition(self, client):
        resp = client.post(
            "/holds",
            json={"slot_id": slot_id("11:00"), "rider_id": 1, "plan_type": "standard", "origin": {"address": "Home"}},
        )
        assert resp.status_code == 200
        hold = resp.json()["hold"]
        assert hold["status"] == "active"
        assert client.get("/riders/1/hold").json()["hold"]["hold_id"] == hold["hold_id"]

        ride = client.post(f"/holds/{hold['hold_id']}/book", json={"contact_phone": "+15550100"}).json()["ride"]
        assert ride["status"] == "scheduled"
        assert ride["slot_id"] == slot_id("11:00")
        assert client.get(f"/holds/{hold['hold_id']}").json()["status"] == "confirmed"

        bad = client.post(f"/rides/{ride['id']}/status", json={"status": "completed"})
        assert bad.status_code == 409
        assert bad.json() == {
            "ok": False,
            "code": "invalid_transition",
            "message": "Cannot transition from scheduled to completed.",
            "current": "scheduled",
            "requested": "completed",
        }

        ok = client.post(f"/rides/{ride['id']}/status", json={"status": "driver_en_route", "actor_type": "driver", "actor_id": 9})
        assert ok.status_code == 200
        assert ok.json()["ride"]["driver_id"] == 9
        events = client.get(f"/rides/{ride['id']}/events").json()["events"]
        assert [e["new_status"] for e in events] == ["driver_en_route"]

    def test_cancel_twice_conflicts(self, client):
        hold = client.post("/holds", json={"slot_id": slot_id("11:00"), "rider_id": 2}).json()["hold"]
        assert client.post(f"/holds/{hold['hold_id']}/cancel").status_code == 200
        resp = client.post(f"/holds/{hold['hold_id']}/cancel")
        assert resp.status_code == 409
        assert resp.json()["current"] == "cancelled"

    def test_unknown_hold_and_ride(self, client):
        assert client.get("/holds/hold_missing").status_code == 404
        assert client.get("/rides/999").status_code == 404
        assert client.post("/rides/999/status", json={"status": "arrived"}).status_code == 404

    def test_hold_stats(self, client):
        client.post("/holds", json={"slot_id": slot_id("11:00"), "rider_id": 3})
        assert client.get("/holds/stats").json()["active"] == 1


class TestCapacityAndAdmin:
    def test_daily_capacity(self, client):
        body = client.get(f"/capacity/{DAY_STR}").json()
        assert body["premium_booked_count"] == 0
        assert body["slot_summary"]["total_slots"] == 960

    def test_hourly_breakdown_and_summary(self, client):
        assert len(client.get(f"/capacity/{DAY_STR}/hourly").json()["hours"]) == 16
        assert client.get(f"/capacity/{DAY_STR}/slots-summary").json()["peak_slots"] == 360

    def test_auto_balance(self, client):
        resp = client.post(f"/capacity/{DAY_STR}/auto-balance", json={"target_capacity": 0, "direction": "other"})
        assert resp.json() == {"ok": True, "slots_updated": 120}
        slot = client.get(f"/slots/{slot_id('11:00')}").json()
        assert slot["max_riders_non_premium"] == 0

    def test_premium_seats(self, client):
        assert client.get("/capacity/premium").json() == {"current": 0, "can_add": True}

    def test_subscription_lifecycle(self, client, db):
        from shuttle.services.subscriptions import seed_plans

        seed_plans(db)
        resp = client.post("/admin/subscriptions", json={"user_id": 1, "plan_code": "premium"})
        assert resp.status_code == 200
        assert client.get("/capacity/premium").json()["current"] == 1
        assert client.get("/admin/credits/1").json()["standard_total"] == 30
        assert client.delete("/admin/subscriptions/1").status_code == 200
        assert client.delete("/admin/subscriptions/1").status_code == 404

    def test_jobs(self, client):
        assert client.post("/admin/jobs/expire-holds").json() == {"expired": 0}
        assert client.post("/admin/jobs/expand-schedules").json() == {"results": {}}
        insight = client.post("/admin/jobs/load-analysis", params={"date": DAY_STR}).json()
        assert insight["total_rides"] == 0
        assert client.get(f"/admin/load-insights/{DAY_STR}").status_code == 200
        assert client.get("/admin/load-insights/2031-01-01").status_code == 404

    def test_fragility_and_reset(self, client):
        client.get("/slots", params={"date": DAY_STR})
        resp = client.post(f"/admin/slots/{slot_id('11:00')}/fragility", json={"fragile": True})
        assert resp.json()["fragile"] is True
        assert client.get(f"/slots/{slot_id('11:00')}").json()["fragile"] is True
        assert client.post(f"/admin/slots/{DAY_STR}/reset").json() == {"ok": True, "slots_reset": 960}
