"""Read-side rating averages.  Pure functions, no mutation."""

from __future__ import annotations

from typing import Iterable, Optional

from .entities import Ride
from .enums import Role


def average_rating(values: Iterable[Optional[int]]) -> Optional[int]:
    """Integer mean of the present values, or ``None`` if there are none."""
    rated = [v for v in values if v is not None]
    if not rated:
        return None
    return sum(rated) // len(rated)


def get_driver_avg_rating(rides: Iterable[Ride]) -> Optional[int]:
    return average_rating(r.driver_rating for r in rides)


def get_rider_avg_rating(rides: Iterable[Ride]) -> Optional[int]:
    return average_rating(r.rider_rating for r in rides)


def get_avg_rating(rides: Iterable[Ride], role: Role) -> Optional[int]:
    if role == Role.DRIVER:
        return get_driver_avg_rating(rides)
    return get_rider_avg_rating(rides)
