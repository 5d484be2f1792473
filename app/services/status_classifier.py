"""
Urgency tiers for an expiry date.

  Expired   daysLeft < 0
  Urgent    0 <= daysLeft <= 7
  Upcoming  7 < daysLeft <= 30
  Safe      daysLeft > 30

Days are whole calendar days between today's date and the expiry date.
"""

from datetime import date, datetime
from enum import Enum
from typing import Union

URGENT_MAX_DAYS = 7
UPCOMING_MAX_DAYS = 30


class ExpiryStatus(str, Enum):
    EXPIRED = "Expired"
    URGENT = "Urgent"
    UPCOMING = "Upcoming"
    SAFE = "Safe"


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def days_left(expiry: Union[date, datetime], now: Union[date, datetime]) -> int:
    """Expiry minus now in whole days; negative once the date has passed."""
    return (_as_date(expiry) - _as_date(now)).days


def classify_days(remaining: int) -> ExpiryStatus:
    if remaining < 0:
        return ExpiryStatus.EXPIRED
    if remaining <= URGENT_MAX_DAYS:
        return ExpiryStatus.URGENT
    if remaining <= UPCOMING_MAX_DAYS:
        return ExpiryStatus.UPCOMING
    return ExpiryStatus.SAFE


def classify(expiry: Union[date, datetime], now: Union[date, datetime]) -> ExpiryStatus:
    return classify_days(days_left(expiry, now))


def overall_status(tax_expiry, insurance_expiry, now) -> ExpiryStatus:
    """Dashboard status of a vehicle: whichever document expires first decides."""
    return classify_days(min(days_left(tax_expiry, now), days_left(insurance_expiry, now)))
