"""Capability interfaces for the external providers the core talks to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


class BillingError(RuntimeError):
    """Raised when the billing provider rejects or fails a request."""


class WebhookVerificationError(ValueError):
    """Raised when an inbound webhook payload fails signature verification."""


class ContentGenerationError(RuntimeError):
    """Raised when the AI provider cannot produce content."""


@dataclass(slots=True)
class CheckoutSession:
    id: str
    url: str


class BillingClient(Protocol):
    def create_checkout_session(
        self,
        *,
        user_id: int,
        customer_email: str,
        customer_id: Optional[str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        ...

    def cancel_subscription(self, stripe_subscription_id: str) -> None:
        ...

    def reactivate_subscription(self, stripe_subscription_id: str) -> None:
        ...

    def create_billing_portal_session(self, stripe_customer_id: str, return_url: str) -> str:
        ...

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        ...


class NotificationSender(Protocol):
    def send_verification_email(self, to_email: str, first_name: str, verification_token: str) -> bool:
        ...

    def send_trial_expiring_email(self, to_email: str, first_name: str, days_remaining: int) -> bool:
        ...

    def send_trial_expired_email(self, to_email: str, first_name: str) -> bool:
        ...


class ContentGenerator(Protocol):
    async def generate(self, content_type: str, topic: str, keywords: Optional[str]) -> str:
        ...
