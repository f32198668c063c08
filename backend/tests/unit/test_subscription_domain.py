"""
Unit tests for subscription lifecycle rules and billing arithmetic.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from marketplace.domain.subscription import (
    BillingCycle,
    SubscriptionStatus,
    can_transition,
    minor_to_major,
    next_period_end,
    resolve_billing_cycle,
)


class TestTransitions:
    """Tests for the subscription transition table."""

    @pytest.mark.parametrize("current,target", [
        (SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE),
        (SubscriptionStatus.PENDING, SubscriptionStatus.CANCELLED),
        (SubscriptionStatus.ACTIVE, SubscriptionStatus.ACTIVE),
        (SubscriptionStatus.ACTIVE, SubscriptionStatus.INACTIVE),
        (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED),
        (SubscriptionStatus.INACTIVE, SubscriptionStatus.ACTIVE),
        (SubscriptionStatus.INACTIVE, SubscriptionStatus.CANCELLED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize("current,target", [
        (SubscriptionStatus.PENDING, SubscriptionStatus.INACTIVE),
        (SubscriptionStatus.INACTIVE, SubscriptionStatus.PENDING),
        (SubscriptionStatus.ACTIVE, SubscriptionStatus.PENDING),
    ])
    def test_rejected(self, current, target):
        assert can_transition(current, target) is False

    @pytest.mark.parametrize("target", list(SubscriptionStatus))
    def test_cancelled_is_terminal(self, target):
        assert can_transition(SubscriptionStatus.CANCELLED, target) is False


class TestBillingCycle:
    """Tests for resolve_billing_cycle() and next_period_end()."""

    def test_stored_cycle_wins_over_plan_name(self):
        assert resolve_billing_cycle(BillingCycle.MONTHLY, "plan_yearly") == BillingCycle.MONTHLY

    def test_plan_name_is_fallback(self):
        assert resolve_billing_cycle(None, "plan_Yearly_pro") == BillingCycle.YEARLY
        assert resolve_billing_cycle(None, "plan_basic") == BillingCycle.MONTHLY
        assert resolve_billing_cycle(None, None) == BillingCycle.MONTHLY

    def test_monthly_adds_thirty_days_to_stored_end(self):
        end = datetime(2020, 3, 15, 12, 0, tzinfo=timezone.utc)
        assert next_period_end(end, datetime(2019, 1, 1, tzinfo=timezone.utc), BillingCycle.MONTHLY) == end + timedelta(days=30)

    def test_yearly_adds_365_days(self):
        assert next_period_end(
            datetime(2025, 1, 1, tzinfo=timezone.utc), datetime(2024, 1, 1, tzinfo=timezone.utc), BillingCycle.YEARLY
        ) == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_first_charge_anchors_on_start(self):
        start = datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert next_period_end(None, start, BillingCycle.MONTHLY) == datetime(2025, 7, 1, tzinfo=timezone.utc)


class TestMinorToMajor:
    @pytest.mark.parametrize("amount,expected", [
        (9900, Decimal("99.00")),
        (1, Decimal("0.01")),
        (0, Decimal("0.00")),
        (123456, Decimal("1234.56")),
    ])
    def test_conversion(self, amount, expected):
        assert minor_to_major(amount) == expected
