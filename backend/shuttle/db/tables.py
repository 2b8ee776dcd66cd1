"""
Single source of truth for database tables created by migration 001.

Use these names when writing raw SQL (e.g. TRUNCATE in scripts/reset_capacity.py).
"""
ALL_TABLE_NAMES = (
    "slot_capacity",
    "slot_holds",
    "rides",
    "ride_events",
    "ride_credit_periods",
    "schedule_templates",
    "saved_locations",
    "subscription_plans",
    "subscriptions",
    "premium_subscriber_count",
    "daily_capacity_summary",
    "daily_load_insights",
    "notifications",
)

# Tables cleared by an administrative capacity reset. Order matters for FK (children first).
CAPACITY_TABLE_NAMES = (
    "slot_holds",
    "daily_capacity_summary",
    "slot_capacity",
)
