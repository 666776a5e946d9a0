from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from ..models import Content, ContentTypeStats, Subscription, SubscriptionStatus, User, UserSummary


class UserRepository(Protocol):
    """Persistence functions related to user accounts."""

    def create_user_with_subscription(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        verification_token: Optional[str],
        verification_expires_at: Optional[datetime],
        trial_start_date: datetime,
        trial_end_date: datetime,
    ) -> Tuple[User, Subscription]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_verification_token(self, token: str) -> Optional[User]:
        ...

    def mark_email_verified(self, user_id: int) -> User:
        ...

    def update_verification_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        ...

    def set_admin(self, user_id: int, is_admin: bool = True) -> None:
        ...

    def list_users(
        self,
        *,
        search: Optional[str],
        status: Optional[SubscriptionStatus],
        sort_by: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> Tuple[List[UserSummary], int]:
        ...

    def count_users(self, created_since: Optional[datetime] = None) -> int:
        ...


class SubscriptionStore(Protocol):
    """Keyed reads and single-row updates of subscription records.

    Every mutation is one UPDATE statement, so concurrent writers rely on the
    database's row atomicity. Conditional updates report whether a row changed.
    """

    def get_subscription_by_user_id(self, user_id: int) -> Optional[Subscription]:
        ...

    def get_subscription_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        ...

    def get_subscription_by_customer_id(self, stripe_customer_id: str) -> Optional[Subscription]:
        ...

    def activate_subscription(
        self, user_id: int, stripe_customer_id: str, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        ...

    def sync_stripe_subscription(
        self,
        stripe_subscription_id: str,
        *,
        status: SubscriptionStatus,
        stripe_price_id: Optional[str],
        current_period_end: Optional[datetime],
    ) -> Optional[Subscription]:
        ...

    def detach_stripe_subscription(self, stripe_subscription_id: str) -> Optional[Subscription]:
        ...

    def set_status_for_customer(
        self,
        stripe_customer_id: str,
        status: SubscriptionStatus,
        *,
        only_from: Optional[SubscriptionStatus] = None,
    ) -> Optional[Subscription]:
        ...

    def set_status(self, subscription_id: int, status: SubscriptionStatus) -> Subscription:
        ...

    def expire_trial(self, subscription_id: int, now: datetime) -> bool:
        ...

    def list_trials_for_reminder(
        self, window_start: datetime, window_end: datetime
    ) -> List[Tuple[Subscription, User]]:
        ...

    def list_trials_for_expiry_notice(
        self, window_start: datetime, window_end: datetime
    ) -> List[Tuple[Subscription, User]]:
        ...

    def claim_trial_reminder(self, subscription_id: int) -> bool:
        ...

    def release_trial_reminder(self, subscription_id: int) -> None:
        ...

    def claim_trial_expired_email(self, subscription_id: int) -> bool:
        ...

    def release_trial_expired_email(self, subscription_id: int) -> None:
        ...

    def mark_trial_expired(self, subscription_id: int) -> bool:
        ...

    def count_subscriptions(self, status: SubscriptionStatus) -> int:
        ...

    def count_active_trials(self, now: datetime) -> int:
        ...


class ContentRepository(Protocol):
    """Persistence functions related to generated content."""

    def create_content(
        self,
        user_id: int,
        content_type: str,
        topic: str,
        keywords: Optional[str],
        generated_content: str,
        word_count: int,
    ) -> Content:
        ...

    def list_content(
        self,
        user_id: int,
        *,
        content_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Content], int]:
        ...

    def get_content(self, content_id: int, user_id: int) -> Optional[Content]:
        ...

    def delete_content(self, content_id: int, user_id: int) -> bool:
        ...

    def get_content_stats(self, user_id: int) -> List[ContentTypeStats]:
        ...

    def count_content(self, created_since: Optional[datetime] = None) -> int:
        ...


class PersistenceGateway(
    UserRepository,
    SubscriptionStore,
    ContentRepository,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    def close(self) -> None:
        ...

