"""Stripe payment integration service."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import stripe

from ..domain.ports.providers import (
    BillingClient,
    BillingError,
    CheckoutSession,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)


class StripeService(BillingClient):
    """Manages Stripe API calls for checkout, cancellation and webhooks.

    The API key is passed with every request instead of being assigned to the
    module-level ``stripe.api_key``, so several instances can coexist.
    """

    def __init__(
        self,
        secret_key: Optional[str],
        webhook_secret: Optional[str],
        price_id: Optional[str],
    ) -> None:
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._price_id = price_id
        if not secret_key:
            logger.warning("STRIPE_SECRET_KEY is not set; billing endpoints will fail.")

    @property
    def configured(self) -> bool:
        return bool(self._secret_key and self._price_id)

    def _require_configured(self) -> None:
        if not self.configured:
            raise BillingError("Stripe not configured. Set STRIPE_SECRET_KEY and STRIPE_PRICE_ID.")

    def create_checkout_session(
        self,
        *,
        user_id: int,
        customer_email: str,
        customer_id: Optional[str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        self._require_configured()
        metadata = {"userId": str(user_id)}
        params: Dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [{"price": self._price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "subscription_data": {"metadata": metadata},
        }
        if customer_id:
            params["customer"] = customer_id
        else:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(api_key=self._secret_key, **params)
        except stripe.StripeError as exc:
            logger.error("Stripe checkout session error for user %s: %s", user_id, exc)
            raise BillingError("Failed to create checkout session") from exc
        return CheckoutSession(id=session.id, url=session.url)

    def cancel_subscription(self, stripe_subscription_id: str) -> None:
        self._set_cancel_at_period_end(stripe_subscription_id, True)

    def reactivate_subscription(self, stripe_subscription_id: str) -> None:
        self._set_cancel_at_period_end(stripe_subscription_id, False)

    def create_billing_portal_session(self, stripe_customer_id: str, return_url: str) -> str:
        self._require_configured()
        try:
            session = stripe.billing_portal.Session.create(
                api_key=self._secret_key,
                customer=stripe_customer_id,
                return_url=return_url,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe billing portal error for %s: %s", stripe_customer_id, exc)
            raise BillingError("Failed to create billing portal session") from exc
        return session.url

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the Stripe-Signature header and decode the event body."""
        if not self._webhook_secret:
            raise WebhookVerificationError("Webhook secret not configured")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookVerificationError("Webhook payload is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature or "",
                self._webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise WebhookVerificationError("Invalid webhook signature") from exc

        try:
            event = json.loads(body)
        except ValueError as exc:
            raise WebhookVerificationError("Webhook payload is not valid JSON") from exc
        if not isinstance(event, dict) or "type" not in event:
            raise WebhookVerificationError("Webhook payload is not a Stripe event")
        return event

    def _set_cancel_at_period_end(self, stripe_subscription_id: str, value: bool) -> None:
        self._require_configured()
        try:
            stripe.Subscription.modify(
                stripe_subscription_id,
                api_key=self._secret_key,
                cancel_at_period_end=value,
            )
        except stripe.StripeError as exc:
            action = "cancel" if value else "reactivate"
            logger.error("Stripe %s subscription error for %s: %s", action, stripe_subscription_id, exc)
            raise BillingError(f"Failed to {action} subscription") from exc
