"""
Centralized constants for scheduler jobs and status groups.

Change job IDs or intervals here instead of scattering literals across main and scripts.
Capacity numbers live in config.settings (env-driven).
"""

# Scheduler job IDs (must match ids used in main.py add_job)
HOLD_EXPIRY_JOB_ID = "hold_expiry_sweep"
HOLD_EXPIRY_INTERVAL_SECONDS = 60
SCHEDULE_EXPANSION_JOB_ID = "schedule_expansion"
SCHEDULE_EXPANSION_HOUR = 2  # local time
MONTHLY_RESET_JOB_ID = "monthly_credit_reset"
MONTHLY_RESET_HOUR = 0
LOAD_ANALYSIS_JOB_ID = "daily_load_analysis"
LOAD_ANALYSIS_HOUR = 23

# Schedule expansion lookahead
EXPANSION_DAYS_AHEAD = 7

# Slot directions (slot_id suffix)
SLOT_DIRECTIONS = ("home_to_campus", "campus_to_home", "home_to_work", "work_to_home", "other")
SLOT_TYPE_PEAK = "peak"
SLOT_TYPE_OFF_PEAK = "off_peak"

# Capacity tiers
TIER_PREMIUM = "premium"
TIER_NON_PREMIUM = "non_premium"
PREMIUM_PLAN = "premium"

# Ride statuses that no longer consume capacity
CANCELLED_RIDE_STATUSES = (
    "cancelled",
    "cancelled_by_user",
    "cancelled_by_admin",
    "cancelled_by_driver",
    "no_show",
)

# Ride types / credit kinds
RIDE_TYPE_STANDARD = "standard"
RIDE_TYPE_GROCERY = "grocery"

# Load analysis: passenger leg when a ride has no coordinates
DEFAULT_PASSENGER_LEG_MINUTES = 8
