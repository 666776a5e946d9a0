from datetime import datetime, timedelta, timezone

import pytest

from postmaker.domain.models import Subscription, SubscriptionStatus
from postmaker.domain.trial_policy import (
    AccessReason,
    days_until,
    evaluate_access,
    is_trial_active,
    trial_days_remaining,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _subscription(status=SubscriptionStatus.TRIAL, trial_end=NOW + timedelta(days=15)):
    return Subscription(
        id=1,
        user_id=1,
        status=status,
        trial_start_date=trial_end - timedelta(days=15),
        trial_end_date=trial_end,
    )


def test_missing_subscription_is_denied():
    decision = evaluate_access(None, NOW)
    assert not decision.allowed
    assert decision.reason is AccessReason.NO_SUBSCRIPTION


def test_active_subscription_ignores_trial_dates():
    decision = evaluate_access(_subscription(SubscriptionStatus.ACTIVE, NOW - timedelta(days=90)), NOW)
    assert decision.allowed
    assert decision.reason is AccessReason.SUBSCRIBED
    assert not decision.requires_expiry


def test_trial_within_window_reports_days_remaining():
    decision = evaluate_access(_subscription(trial_end=NOW + timedelta(days=3, hours=1)), NOW)
    assert decision.allowed
    assert decision.reason is AccessReason.TRIAL
    assert decision.trial_days_remaining == 4


def test_trial_on_its_last_instant_is_still_allowed():
    decision = evaluate_access(_subscription(trial_end=NOW), NOW)
    assert decision.allowed
    assert decision.trial_days_remaining == 0


def test_lapsed_trial_requires_expiry():
    decision = evaluate_access(_subscription(trial_end=NOW - timedelta(seconds=1)), NOW)
    assert not decision.allowed
    assert decision.trial_expired
    assert decision.requires_expiry


def test_expired_status_reports_trial_expired_without_flip():
    decision = evaluate_access(_subscription(SubscriptionStatus.EXPIRED, NOW - timedelta(days=2)), NOW)
    assert not decision.allowed
    assert decision.trial_expired
    assert not decision.requires_expiry


@pytest.mark.parametrize(
    "status",
    [SubscriptionStatus.PAST_DUE, SubscriptionStatus.UNPAID, SubscriptionStatus.CANCELED],
)
def test_other_statuses_require_subscription(status):
    decision = evaluate_access(_subscription(status), NOW)
    assert not decision.allowed
    assert decision.reason is AccessReason.SUBSCRIPTION_REQUIRED
    assert not decision.trial_expired


def test_canceled_subscription_inside_old_trial_window_is_denied():
    decision = evaluate_access(_subscription(SubscriptionStatus.CANCELED, NOW + timedelta(days=10)), NOW)
    assert not decision.allowed


def test_days_until_rounds_up_and_floors_at_zero():
    assert days_until(NOW + timedelta(days=1, seconds=1), NOW) == 2
    assert days_until(NOW + timedelta(days=2), NOW) == 2
    assert days_until(NOW - timedelta(days=5), NOW) == 0
    assert trial_days_remaining(NOW + timedelta(hours=1), NOW) == 1


def test_is_trial_active_is_derived_from_status_and_window():
    assert is_trial_active(_subscription(), NOW)
    assert not is_trial_active(_subscription(trial_end=NOW - timedelta(minutes=1)), NOW)
    assert not is_trial_active(_subscription(SubscriptionStatus.ACTIVE), NOW)
    assert not is_trial_active(None, NOW)
