"""Access Gate: decides whether a user may generate content right now."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ...domain.models import Subscription, SubscriptionStatus
from ...domain.ports.persistence import SubscriptionStore
from ...domain.trial_policy import (
    AccessDecision,
    days_until,
    evaluate_access,
    is_trial_active,
    trial_days_remaining,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SubscriptionStatusView:
    status: SubscriptionStatus
    is_trial_active: bool
    trial_days_remaining: int
    trial_end_date: datetime
    stripe_current_period_end: Optional[datetime]
    days_until_renewal: Optional[int]
    has_active_subscription: bool
    can_manage_billing: bool


class AccessService:
    """Evaluates subscriptions and applies lazy trial expiry."""

    def __init__(
        self,
        store: SubscriptionStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    def check_access(self, user_id: int) -> AccessDecision:
        now = self._clock()
        subscription = self._store.get_subscription_by_user_id(user_id)
        decision = evaluate_access(subscription, now)
        if decision.requires_expiry and subscription is not None:
            self.apply_expiry(subscription, now)
        if not decision.allowed:
            logger.info("Access denied for user %s: %s", user_id, decision.reason.value)
        return decision

    def apply_expiry(self, subscription: Subscription, now: datetime) -> bool:
        """Flip a lapsed trial to expired. Returns True only for the call that changed the row."""
        flipped = self._store.expire_trial(subscription.id, now)
        if flipped:
            logger.info("Trial expired for user %s (ended %s)", subscription.user_id, subscription.trial_end_date)
        return flipped

    def get_subscription(self, user_id: int) -> Optional[Subscription]:
        return self._store.get_subscription_by_user_id(user_id)

    def expire_stale_trial(self, user_id: int) -> Optional[Subscription]:
        """Used on login: persist expiry for a lapsed trial and return the fresh record."""
        now = self._clock()
        subscription = self._store.get_subscription_by_user_id(user_id)
        if subscription is None:
            return None
        if evaluate_access(subscription, now).requires_expiry and self.apply_expiry(subscription, now):
            return self._store.get_subscription_by_user_id(user_id)
        return subscription

    def get_status(self, user_id: int) -> SubscriptionStatusView:
        now = self._clock()
        subscription = self._store.get_subscription_by_user_id(user_id)
        if subscription is None:
            raise LookupError("Subscription not found")

        trial_active = is_trial_active(subscription, now)
        period_end = subscription.stripe_current_period_end
        return SubscriptionStatusView(
            status=subscription.status,
            is_trial_active=trial_active,
            trial_days_remaining=trial_days_remaining(subscription.trial_end_date, now) if trial_active else 0,
            trial_end_date=subscription.trial_end_date,
            stripe_current_period_end=period_end,
            days_until_renewal=days_until(period_end, now) if period_end else None,
            has_active_subscription=subscription.is_active(),
            can_manage_billing=subscription.stripe_customer_id is not None,
        )
