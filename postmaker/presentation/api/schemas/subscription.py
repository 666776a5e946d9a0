"""Pydantic schemas for subscription API endpoints."""

from datetime import datetime
from typing import Optional

from ....application.services.access_service import SubscriptionStatusView
from .common import CamelModel


class CheckoutResponse(CamelModel):
    session_id: str
    url: str


class SubscriptionStatusResponse(CamelModel):
    """Response schema for the current user's billing state."""

    status: str
    is_trial_active: bool
    trial_days_remaining: int
    trial_end_date: datetime
    stripe_current_period_end: Optional[datetime] = None
    days_until_renewal: Optional[int] = None
    has_active_subscription: bool
    can_manage_billing: bool

    @classmethod
    def from_view(cls, view: SubscriptionStatusView) -> "SubscriptionStatusResponse":
        return cls(
            status=view.status.value,
            is_trial_active=view.is_trial_active,
            trial_days_remaining=view.trial_days_remaining,
            trial_end_date=view.trial_end_date,
            stripe_current_period_end=view.stripe_current_period_end,
            days_until_renewal=view.days_until_renewal,
            has_active_subscription=view.has_active_subscription,
            can_manage_billing=view.can_manage_billing,
        )


class BillingPortalResponse(CamelModel):
    url: str


class WebhookAck(CamelModel):
    received: bool = True
