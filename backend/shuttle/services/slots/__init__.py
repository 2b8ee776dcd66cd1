"""
Slots: the arrival-slot catalog and the capacity ledger that guards its counters.
"""
from shuttle.services.slots.catalog import (
    available_slots_in_range,
    get_slot,
    has_availability,
    initialize_slots_for_date,
    make_slot_id,
    parse_slot_id,
    reset_slots_for_date,
    set_slot_fragility,
    slot_summary_for_date,
    slots_for_date,
    slots_with_availability,
)
from shuttle.services.slots.ledger import release, reserve, tier_for_plan, update_max_non_premium

__all__ = [
    "available_slots_in_range",
    "get_slot",
    "has_availability",
    "initialize_slots_for_date",
    "make_slot_id",
    "parse_slot_id",
    "release",
    "reserve",
    "reset_slots_for_date",
    "set_slot_fragility",
    "slot_summary_for_date",
    "slots_for_date",
    "slots_with_availability",
    "tier_for_plan",
    "update_max_non_premium",
]
