"""Subscription domain model holding a user's trial and Stripe billing state."""

from datetime import datetime
from enum import Enum
from typing import Optional


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    CANCELED = "canceled"
    EXPIRED = "expired"


class Subscription:
    """
    Subscription entity, one per user, created together with the user at signup.

    Attributes:
        id: Unique identifier
        user_id: Reference to User (unique)
        status: Lifecycle state (trial, active, past_due, unpaid, canceled, expired)
        trial_start_date: Start of the free trial window
        trial_end_date: End of the free trial window, fixed at creation
        stripe_customer_id: Stripe customer ID, set once checkout completes
        stripe_subscription_id: Stripe subscription ID, cleared when Stripe deletes it
        stripe_price_id: Stripe price ID of the first subscription item
        stripe_current_period_end: Next billing boundary reported by Stripe
        trial_reminder_sent: Whether the "trial expiring" email went out
        trial_expired_email_sent: Whether the "trial expired" email went out
        created_at: Record creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        user_id: int,
        status: SubscriptionStatus,
        trial_start_date: datetime,
        trial_end_date: datetime,
        stripe_customer_id: Optional[str] = None,
        stripe_subscription_id: Optional[str] = None,
        stripe_price_id: Optional[str] = None,
        stripe_current_period_end: Optional[datetime] = None,
        trial_reminder_sent: bool = False,
        trial_expired_email_sent: bool = False,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.status = SubscriptionStatus(status)
        self.trial_start_date = trial_start_date
        self.trial_end_date = trial_end_date
        self.stripe_customer_id = stripe_customer_id
        self.stripe_subscription_id = stripe_subscription_id
        self.stripe_price_id = stripe_price_id
        self.stripe_current_period_end = stripe_current_period_end
        self.trial_reminder_sent = trial_reminder_sent
        self.trial_expired_email_sent = trial_expired_email_sent
        self.created_at = created_at or trial_start_date
        self.updated_at = updated_at or self.created_at

    def is_active(self) -> bool:
        """Check if a paid subscription is currently active."""
        return self.status is SubscriptionStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} user_id={self.user_id} status={self.status.value}>"
