"""
Travel-time model used for pickup planning and load analysis.

Pure functions of distance and timestamp: no database, no network. Callers run the estimate
before taking any row lock.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from math import asin, cos, radians, sin, sqrt

from shuttle.config import settings
from shuttle.core.clock import to_local

RUSH_HOUR_MULTIPLIER = 1.15
MIN_EFFECTIVE_SPEED_KMH = 5


@dataclass
class TravelEstimate:
    travel_minutes: int
    eta_multiplier: float
    reasons: list[str] = field(default_factory=list)


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres (Haversine)."""
    lat1, lng1, lat2, lng2 = map(radians, [float(lat1), float(lng1), float(lat2), float(lng2)])
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    return 2 * asin(sqrt(a)) * 6371.0


def is_winter_season(when: datetime) -> bool:
    return to_local(when).month in (12, 1, 2)


def is_rush_hour(when: datetime) -> bool:
    h = to_local(when).hour
    return 7 <= h <= 9 or 15 <= h <= 18


def estimate_travel(distance: float, when: datetime, is_snow: bool = False) -> TravelEstimate:
    """
    Minutes to cover `distance` km starting at `when`. Snow (explicit, forced by TRAVEL_MODE=snow, or
    Dec-Feb) switches to the winter speed, or applies the snow penalty when no winter speed is set.
    Rush hour adds 15%. Never below settings.min_travel_minutes.
    """
    reasons = []
    multiplier = 1.0
    speed = settings.travel_speed_kmh

    if is_snow or settings.travel_mode.strip().lower() == "snow" or is_winter_season(when):
        if settings.winter_speed_kmh > 0:
            speed = settings.winter_speed_kmh
        else:
            multiplier *= 1 + settings.snow_penalty_percent / 100
        reasons.append("snow")

    if is_rush_hour(when):
        multiplier *= RUSH_HOUR_MULTIPLIER
        reasons.append("rush_hour")

    minutes = (max(0.0, distance) / max(MIN_EFFECTIVE_SPEED_KMH, speed)) * 60 * multiplier
    return TravelEstimate(
        travel_minutes=max(settings.min_travel_minutes, math.ceil(minutes)),
        eta_multiplier=multiplier,
        reasons=reasons,
    )


def estimate_between(
    lat1: float | None,
    lng1: float | None,
    lat2: float | None,
    lng2: float | None,
    when: datetime,
) -> TravelEstimate:
    """Estimate for two points; missing coordinates fall back to the minimum travel time."""
    if None in (lat1, lng1, lat2, lng2):
        return TravelEstimate(travel_minutes=settings.min_travel_minutes, eta_multiplier=1.0, reasons=["no_coordinates"])
    return estimate_travel(distance_km(lat1, lng1, lat2, lng2), when)
