"""Tests for the time helpers and the slot catalog."""
from datetime import date

import pytest

from helpers import DAY, slot_id
from shuttle.core.clock import js_day_of_week, minutes_to_hm, parse_hm
from shuttle.models.slot_capacity import SlotCapacity
from shuttle.services.slots import catalog, ledger

SLOTS_PER_DIRECTION = 192  # 06:00-22:00 in 5-minute slots
PEAK_SLOTS_PER_DIRECTION = 72  # 07:00-10:00 and 15:00-18:00


class TestClock:
    def test_parse_and_format_minutes(self):
        assert parse_hm("07:05") == 425
        assert parse_hm("07:05:30") == 425
        assert minutes_to_hm(425) == "07:05"

    @pytest.mark.parametrize("bad", ["", "7", "24:00", "12:60", "ab:cd"])
    def test_parse_rejects_garbage(self, bad):
        with pytest.raises(ValueError):
            parse_hm(bad)

    def test_day_of_week_starts_on_sunday(self):
        assert js_day_of_week(date(2030, 3, 3)) == 0
        assert js_day_of_week(DAY) == 1
        assert js_day_of_week(date(2030, 3, 9)) == 6


class TestSlotIds:
    def test_parse_slot_id(self):
        ref = catalog.parse_slot_id("slot_2030-03-04_07:30_home_to_work")
        assert ref.date == DAY
        assert ref.arrival_start == "07:30"
        assert ref.direction == "home_to_work"
        assert catalog.make_slot_id(ref.date, ref.arrival_start, ref.direction) == "slot_2030-03-04_07:30_home_to_work"

    @pytest.mark.parametrize(
        "value",
        ["", "slot_2030-03-04", "slot_2030-02-30_07:30_other", "slot_2030-03-04_25:00_other", "hold_abc"],
    )
    def test_malformed_ids_parse_to_none(self, value):
        assert catalog.parse_slot_id(value) is None

    @pytest.mark.parametrize(
        "hm,expected",
        [
            ("06:55", "off_peak"),
            ("07:00", "peak"),
            ("09:55", "peak"),
            ("10:00", "off_peak"),
            ("15:00", "peak"),
            ("17:55", "peak"),
            ("18:00", "off_peak"),
        ],
    )
    def test_slot_type_follows_peak_windows(self, hm, expected):
        assert catalog.slot_type_for(hm) == expected


class TestInitialization:
    def test_initialize_creates_every_direction_once(self, db):
        assert catalog.initialize_slots_for_date(db, DAY) == 5 * SLOTS_PER_DIRECTION
        assert catalog.initialize_slots_for_date(db, DAY) == 0
        assert db.query(SlotCapacity).filter(SlotCapacity.date == DAY).count() == 5 * SLOTS_PER_DIRECTION

    def test_peak_slots_have_no_non_premium_capacity(self, db):
        slots = catalog.slots_for_date(db, DAY, "other")
        assert len(slots) == SLOTS_PER_DIRECTION
        peak = [s for s in slots if s.slot_type == "peak"]
        assert len(peak) == PEAK_SLOTS_PER_DIRECTION
        assert all(s.max_riders_non_premium == 0 for s in peak)
        assert all(s.max_riders_non_premium > 0 for s in slots if s.slot_type == "off_peak")
        assert slots[0].arrival_start == "06:00"
        assert slots[0].arrival_end == "06:05"

    def test_reinitializing_keeps_counters(self, db):
        catalog.initialize_slots_for_date(db, DAY)
        assert ledger.reserve(db, slot_id("11:00"), "premium")
        db.commit()

        catalog.initialize_slots_for_date(db, DAY)

        assert catalog.get_slot(db, slot_id("11:00")).used_riders_premium == 1

    def test_get_slot_initializes_lazily(self, db):
        slot = catalog.get_slot(db, slot_id("12:00", "home_to_campus"))
        assert slot is not None
        assert slot.direction == "home_to_campus"
        assert db.query(SlotCapacity).count() == 5 * SLOTS_PER_DIRECTION

    def test_get_slot_unknown_direction(self, db):
        assert catalog.get_slot(db, slot_id("12:00", "nowhere")) is None
        assert db.query(SlotCapacity).count() == 0


class TestQueries:
    def test_summary_counts_slot_types(self, db):
        summary = catalog.slot_summary_for_date(db, DAY)
        assert summary["total_slots"] == 5 * SLOTS_PER_DIRECTION
        assert summary["peak_slots"] == 5 * PEAK_SLOTS_PER_DIRECTION
        assert summary["off_peak_slots"] == 5 * (SLOTS_PER_DIRECTION - PEAK_SLOTS_PER_DIRECTION)
        assert summary["total_premium_used"] == 0

    def test_available_in_range_by_tier(self, db):
        premium = catalog.available_slots_in_range(db, DAY, "other", True, "09:30", "10:30")
        assert [s.arrival_start for s in premium][:1] == ["09:30"]
        assert len(premium) == 12

        non_premium = catalog.available_slots_in_range(db, DAY, "other", False, "09:30", "10:30")
        assert [s.arrival_start for s in non_premium] == [
            "10:00", "10:05", "10:10", "10:15", "10:20", "10:25",
        ]

    def test_full_slot_is_not_available(self, db):
        catalog.initialize_slots_for_date(db, DAY)
        sid = slot_id("10:00")
        assert ledger.reserve(db, sid, "non_premium")
        assert ledger.reserve(db, sid, "non_premium")
        db.commit()

        slots = catalog.available_slots_in_range(db, DAY, "other", False, "10:00", "10:10")
        assert [s.arrival_start for s in slots] == ["10:05"]

    def test_slots_with_availability(self, db):
        rows = catalog.slots_with_availability(db, DAY, "other")
        first = rows[0]
        assert first["slot_id"] == slot_id("06:00")
        assert first["available_premium"] == first["max_riders_premium"]
        assert first["fragile"] is False

    def test_reset_and_fragility(self, db):
        catalog.initialize_slots_for_date(db, DAY)
        sid = slot_id("11:00")
        ledger.reserve(db, sid, "premium")
        db.commit()
        assert catalog.set_slot_fragility(db, sid, True) is True
        assert catalog.set_slot_fragility(db, slot_id("11:00", "nowhere"), True) is False

        assert catalog.reset_slots_for_date(db, DAY) == 5 * SLOTS_PER_DIRECTION

        slot = catalog.get_slot(db, sid)
        assert slot.used_riders_premium == 0
        assert slot.is_fragile is False
