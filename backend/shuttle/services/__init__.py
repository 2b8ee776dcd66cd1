from shuttle.services.capacity_planner import (
    can_add_non_premium_ride,
    can_add_premium_ride,
    check_daily_capacity,
    check_hourly_capacity,
)
from shuttle.services.holds import cancel_hold, confirm_hold, create_hold, expire_holds
from shuttle.services.load_balancer import run_daily_load_analysis
from shuttle.services.ride_lifecycle import apply_status_transition
from shuttle.services.schedule_expander import expand_schedules_for_user

__all__ = [
    "apply_status_transition",
    "can_add_non_premium_ride",
    "can_add_premium_ride",
    "cancel_hold",
    "check_daily_capacity",
    "check_hourly_capacity",
    "confirm_hold",
    "create_hold",
    "expand_schedules_for_user",
    "expire_holds",
    "run_daily_load_analysis",
]
