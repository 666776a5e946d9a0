"""User-initiated billing flows: checkout, cancel, reactivate and the billing portal."""

from __future__ import annotations

import logging

from ...domain.models import Subscription, SubscriptionStatus, User
from ...domain.ports.persistence import SubscriptionStore
from ...domain.ports.providers import BillingClient, CheckoutSession

logger = logging.getLogger(__name__)


class SubscriptionService:
    def __init__(self, store: SubscriptionStore, billing: BillingClient, frontend_base_url: str) -> None:
        self._store = store
        self._billing = billing
        self._frontend_base_url = frontend_base_url.rstrip("/")

    def create_checkout(self, user: User) -> CheckoutSession:
        subscription = self._require_subscription(user.id)
        if subscription.is_active():
            raise ValueError("User already has an active subscription")

        session = self._billing.create_checkout_session(
            user_id=user.id,
            customer_email=user.email,
            customer_id=subscription.stripe_customer_id,
            # Stripe substitutes the placeholder with the session id on redirect.
            success_url=f"{self._frontend_base_url}/dashboard?session_id={{CHECKOUT_SESSION_ID}}&success=true",
            cancel_url=f"{self._frontend_base_url}/pricing?canceled=true",
        )
        logger.info("Checkout session %s created for user %s", session.id, user.id)
        return session

    def cancel(self, user_id: int) -> Subscription:
        subscription = self._require_subscription(user_id)
        if not subscription.stripe_subscription_id:
            raise ValueError("No active subscription to cancel")

        self._billing.cancel_subscription(subscription.stripe_subscription_id)
        logger.info("Subscription %s set to cancel at period end", subscription.stripe_subscription_id)
        return self._store.set_status(subscription.id, SubscriptionStatus.CANCELED)

    def reactivate(self, user_id: int) -> Subscription:
        subscription = self._require_subscription(user_id)
        if not subscription.stripe_subscription_id:
            raise ValueError("No subscription to reactivate")
        if subscription.status is not SubscriptionStatus.CANCELED:
            raise ValueError("Subscription is not canceled")

        self._billing.reactivate_subscription(subscription.stripe_subscription_id)
        logger.info("Subscription %s reactivated", subscription.stripe_subscription_id)
        return self._store.set_status(subscription.id, SubscriptionStatus.ACTIVE)

    def billing_portal_url(self, user_id: int) -> str:
        subscription = self._require_subscription(user_id)
        if not subscription.stripe_customer_id:
            raise ValueError("No billing account found")
        return self._billing.create_billing_portal_session(
            subscription.stripe_customer_id,
            return_url=f"{self._frontend_base_url}/dashboard",
        )

    def _require_subscription(self, user_id: int) -> Subscription:
        subscription = self._store.get_subscription_by_user_id(user_id)
        if subscription is None:
            raise LookupError("Subscription not found")
        return subscription
