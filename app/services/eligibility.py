"""
Decides whether a document (tax or insurance) should trigger a notification now.

A document is eligible when it expires within the notification window and
nobody has been notified about it during the resend cooldown. Already-expired
documents are only eligible when notify_expired is set (off by default: the
notice is meant as advance warning).
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from app.services.status_classifier import days_left

DEFAULT_NOTIFY_WINDOW_DAYS = 7
DEFAULT_RESEND_COOLDOWN_DAYS = 10


class EligibilityReason(str, Enum):
    ELIGIBLE = "eligible"
    OUTSIDE_WINDOW = "outside_window"
    ALREADY_EXPIRED = "already_expired"
    IN_COOLDOWN = "in_cooldown"


@dataclass(frozen=True)
class EligibilityDecision:
    eligible: bool
    reason: EligibilityReason
    days_left: int


def evaluate(
    expiry: date,
    last_sent: Optional[datetime],
    now: datetime,
    notify_window_days: int = DEFAULT_NOTIFY_WINDOW_DAYS,
    resend_cooldown_days: int = DEFAULT_RESEND_COOLDOWN_DAYS,
    notify_expired: bool = False,
) -> EligibilityDecision:
    remaining = days_left(expiry, now)

    if remaining > notify_window_days:
        return EligibilityDecision(False, EligibilityReason.OUTSIDE_WINDOW, remaining)
    if remaining < 0 and not notify_expired:
        return EligibilityDecision(False, EligibilityReason.ALREADY_EXPIRED, remaining)
    if last_sent is not None and last_sent >= now - timedelta(days=resend_cooldown_days):
        return EligibilityDecision(False, EligibilityReason.IN_COOLDOWN, remaining)
    return EligibilityDecision(True, EligibilityReason.ELIGIBLE, remaining)


def is_eligible(
    expiry: date,
    last_sent: Optional[datetime],
    now: datetime,
    notify_window_days: int = DEFAULT_NOTIFY_WINDOW_DAYS,
    resend_cooldown_days: int = DEFAULT_RESEND_COOLDOWN_DAYS,
    notify_expired: bool = False,
) -> bool:
    return evaluate(
        expiry, last_sent, now, notify_window_days, resend_cooldown_days, notify_expired
    ).eligible
