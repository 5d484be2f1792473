"""Unit tests for notification eligibility (window + cooldown)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta, timezone
from app.services.eligibility import EligibilityReason, evaluate, is_eligible

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def in_days(n):
    return NOW.date() + timedelta(days=n)


class TestWindow:
    @pytest.mark.parametrize("offset, expected", [(0, True), (5, True), (7, True), (8, False), (40, False)])
    def test_never_notified_depends_only_on_window(self, offset, expected):
        assert is_eligible(in_days(offset), None, NOW) is expected

    def test_custom_window(self):
        assert is_eligible(in_days(14), None, NOW, notify_window_days=14)
        assert not is_eligible(in_days(15), None, NOW, notify_window_days=14)

    def test_outside_window_reason(self):
        decision = evaluate(in_days(40), None, NOW)
        assert decision.reason is EligibilityReason.OUTSIDE_WINDOW
        assert decision.days_left == 40

    def test_outside_window_ignores_last_sent(self):
        long_ago = NOW - timedelta(days=365)
        assert not is_eligible(in_days(40), long_ago, NOW)
        assert not is_eligible(in_days(40), NOW, NOW)


class TestCooldown:
    def test_recent_notification_blocks(self):
        decision = evaluate(in_days(5), NOW - timedelta(days=3), NOW)
        assert not decision.eligible
        assert decision.reason is EligibilityReason.IN_COOLDOWN

    def test_notification_older_than_cooldown_allows_resend(self):
        assert is_eligible(in_days(5), NOW - timedelta(days=10, seconds=1), NOW)

    def test_exactly_at_cooldown_boundary_still_blocks(self):
        assert not is_eligible(in_days(5), NOW - timedelta(days=10), NOW)

    def test_second_call_after_send_is_not_eligible(self):
        expiry = in_days(3)
        assert is_eligible(expiry, None, NOW)
        just_now = NOW
        assert not is_eligible(expiry, just_now, NOW)
        assert not is_eligible(expiry, just_now, NOW)

    def test_custom_cooldown(self):
        sent = NOW - timedelta(days=3)
        assert is_eligible(in_days(5), sent, NOW, resend_cooldown_days=2)


class TestExpiredPolicy:
    def test_expired_documents_skipped_by_default(self):
        decision = evaluate(in_days(-1), None, NOW)
        assert not decision.eligible
        assert decision.reason is EligibilityReason.ALREADY_EXPIRED

    def test_expired_documents_notified_when_enabled(self):
        assert is_eligible(in_days(-3), None, NOW, notify_expired=True)

    def test_expired_documents_still_respect_cooldown(self):
        assert not is_eligible(in_days(-3), NOW - timedelta(days=1), NOW, notify_expired=True)
