from shuttle.models.credit_period import CreditPeriod
from shuttle.models.daily_capacity_summary import DailyCapacitySummary
from shuttle.models.daily_load_insight import DailyLoadInsight
from shuttle.models.notification import Notification
from shuttle.models.premium_subscriber_count import PremiumSubscriberCount
from shuttle.models.ride import Ride
from shuttle.models.ride_event import RideEvent
from shuttle.models.saved_location import SavedLocation
from shuttle.models.schedule_template import ScheduleTemplate
from shuttle.models.slot_capacity import SlotCapacity
from shuttle.models.slot_hold import SlotHold
from shuttle.models.subscription import Subscription, SubscriptionPlan

__all__ = [
    "CreditPeriod",
    "DailyCapacitySummary",
    "DailyLoadInsight",
    "Notification",
    "PremiumSubscriberCount",
    "Ride",
    "RideEvent",
    "SavedLocation",
    "ScheduleTemplate",
    "SlotCapacity",
    "SlotHold",
    "Subscription",
    "SubscriptionPlan",
]
