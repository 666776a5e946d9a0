"""Folds verified Stripe webhook events into local subscription state.

Every handler looks the subscription up by a stable Stripe identifier and
writes absolute values, so replaying an event converges to the same row.
Handlers never raise: Stripe only retries on non-2xx responses, and one bad
event must not fail the delivery.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from ...domain.models import SubscriptionStatus
from ...domain.ports.persistence import SubscriptionStore

logger = logging.getLogger(__name__)


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    UNMATCHED = "unmatched"
    IGNORED = "ignored"
    FAILED = "failed"


def map_provider_status(stripe_subscription: Mapping[str, Any]) -> SubscriptionStatus:
    provider_status = stripe_subscription.get("status")
    if provider_status == "canceled" or stripe_subscription.get("cancel_at_period_end"):
        return SubscriptionStatus.CANCELED
    if provider_status == "past_due":
        return SubscriptionStatus.PAST_DUE
    if provider_status == "unpaid":
        return SubscriptionStatus.UNPAID
    return SubscriptionStatus.ACTIVE


def _first_item(stripe_subscription: Mapping[str, Any]) -> Mapping[str, Any]:
    items = (stripe_subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _period_end(stripe_subscription: Mapping[str, Any]) -> Optional[datetime]:
    # Newer Stripe API versions report the period on each item instead.
    timestamp = stripe_subscription.get("current_period_end") or _first_item(stripe_subscription).get(
        "current_period_end"
    )
    if not timestamp:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


def _object_id(value: Any) -> Optional[str]:
    # Expanded Stripe references arrive as objects rather than id strings.
    if isinstance(value, Mapping):
        return value.get("id")
    return value


class WebhookReconciler:
    """Dispatches Stripe events to per-kind handlers."""

    def __init__(self, store: SubscriptionStore) -> None:
        self._store = store
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], ReconcileOutcome]] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_failed": self._handle_payment_failed,
            "invoice.payment_succeeded": self._handle_payment_succeeded,
        }

    def reconcile(self, event: Mapping[str, Any]) -> ReconcileOutcome:
        event_type = event.get("type")
        event_id = event.get("id")
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info("Unhandled Stripe event type %s (%s)", event_type, event_id)
            return ReconcileOutcome.IGNORED

        logger.info("Stripe webhook event %s (%s)", event_type, event_id)
        try:
            data_object = event["data"]["object"]
            return handler(data_object)
        except Exception:
            logger.exception("Failed to handle Stripe event %s (%s)", event_type, event_id)
            return ReconcileOutcome.FAILED

    def _handle_checkout_completed(self, session: Mapping[str, Any]) -> ReconcileOutcome:
        metadata = session.get("metadata") or {}
        raw_user_id = metadata.get("userId")
        customer_id = _object_id(session.get("customer"))
        subscription_id = _object_id(session.get("subscription"))
        if not raw_user_id or not customer_id or not subscription_id:
            logger.warning(
                "Checkout session %s missing userId, customer or subscription", session.get("id")
            )
            return ReconcileOutcome.UNMATCHED
        try:
            user_id = int(raw_user_id)
        except (TypeError, ValueError):
            logger.warning("Checkout session %s has invalid userId %r", session.get("id"), raw_user_id)
            return ReconcileOutcome.UNMATCHED

        updated = self._store.activate_subscription(user_id, customer_id, subscription_id)
        if updated is None:
            logger.warning("Subscription not found for checkout of user %s", user_id)
            return ReconcileOutcome.UNMATCHED
        logger.info("Subscription activated for user %s", user_id)
        return ReconcileOutcome.APPLIED

    def _handle_subscription_updated(self, stripe_subscription: Mapping[str, Any]) -> ReconcileOutcome:
        subscription_id = stripe_subscription["id"]
        price = _first_item(stripe_subscription).get("price") or {}
        status = map_provider_status(stripe_subscription)
        updated = self._store.sync_stripe_subscription(
            subscription_id,
            status=status,
            stripe_price_id=_object_id(price),
            current_period_end=_period_end(stripe_subscription),
        )
        if updated is None:
            logger.info("Subscription not found for update: %s", subscription_id)
            return ReconcileOutcome.UNMATCHED
        logger.info("Subscription updated: %s -> %s", subscription_id, status.value)
        return ReconcileOutcome.APPLIED

    def _handle_subscription_deleted(self, stripe_subscription: Mapping[str, Any]) -> ReconcileOutcome:
        subscription_id = stripe_subscription["id"]
        updated = self._store.detach_stripe_subscription(subscription_id)
        if updated is None:
            logger.info("Subscription not found for deletion: %s", subscription_id)
            return ReconcileOutcome.UNMATCHED
        logger.info("Subscription canceled: %s", subscription_id)
        return ReconcileOutcome.APPLIED

    def _handle_payment_failed(self, invoice: Mapping[str, Any]) -> ReconcileOutcome:
        customer_id = _object_id(invoice.get("customer"))
        if not customer_id:
            return ReconcileOutcome.UNMATCHED
        updated = self._store.set_status_for_customer(customer_id, SubscriptionStatus.PAST_DUE)
        if updated is None:
            logger.info("No subscription for customer %s with failed payment", customer_id)
            return ReconcileOutcome.UNMATCHED
        logger.info("Payment failed for customer %s; subscription past due", customer_id)
        return ReconcileOutcome.APPLIED

    def _handle_payment_succeeded(self, invoice: Mapping[str, Any]) -> ReconcileOutcome:
        customer_id = _object_id(invoice.get("customer"))
        if not customer_id:
            return ReconcileOutcome.UNMATCHED
        updated = self._store.set_status_for_customer(
            customer_id,
            SubscriptionStatus.ACTIVE,
            only_from=SubscriptionStatus.PAST_DUE,
        )
        if updated is None:
            logger.debug("Payment succeeded for customer %s; nothing to recover", customer_id)
            return ReconcileOutcome.IGNORED
        logger.info("Payment recovered for customer %s; subscription active", customer_id)
        return ReconcileOutcome.APPLIED
