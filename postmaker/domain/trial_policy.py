"""Pure access rules for trials and paid subscriptions.

Nothing here touches storage. Callers that receive a decision with
``requires_expiry`` set are responsible for persisting the trial expiry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from .models import Subscription, SubscriptionStatus

DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccessReason(str, Enum):
    SUBSCRIBED = "subscribed"
    TRIAL = "trial"
    TRIAL_EXPIRED = "trial_expired"
    SUBSCRIPTION_REQUIRED = "subscription_required"
    NO_SUBSCRIPTION = "no_subscription"


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason: AccessReason
    trial_days_remaining: int = 0
    requires_expiry: bool = False

    @property
    def trial_expired(self) -> bool:
        return self.reason is AccessReason.TRIAL_EXPIRED


def days_until(moment: datetime, now: datetime) -> int:
    """Whole days from ``now`` until ``moment``, rounded up and floored at zero."""
    return max(0, math.ceil((moment - now) / DAY))


def trial_days_remaining(trial_end_date: datetime, now: datetime) -> int:
    return days_until(trial_end_date, now)


def is_trial_active(subscription: Optional[Subscription], now: datetime) -> bool:
    if subscription is None:
        return False
    return subscription.status is SubscriptionStatus.TRIAL and now <= subscription.trial_end_date


def evaluate_access(subscription: Optional[Subscription], now: datetime) -> AccessDecision:
    if subscription is None:
        return AccessDecision(allowed=False, reason=AccessReason.NO_SUBSCRIPTION)

    if subscription.status is SubscriptionStatus.ACTIVE:
        return AccessDecision(allowed=True, reason=AccessReason.SUBSCRIBED)

    if subscription.status is SubscriptionStatus.TRIAL:
        if now <= subscription.trial_end_date:
            return AccessDecision(
                allowed=True,
                reason=AccessReason.TRIAL,
                trial_days_remaining=trial_days_remaining(subscription.trial_end_date, now),
            )
        return AccessDecision(
            allowed=False,
            reason=AccessReason.TRIAL_EXPIRED,
            requires_expiry=True,
        )

    if subscription.status is SubscriptionStatus.EXPIRED:
        return AccessDecision(allowed=False, reason=AccessReason.TRIAL_EXPIRED)

    return AccessDecision(allowed=False, reason=AccessReason.SUBSCRIPTION_REQUIRED)
