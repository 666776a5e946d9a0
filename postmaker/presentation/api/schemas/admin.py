from datetime import datetime
from typing import List, Optional

from ....application.services.admin_service import UserDetails
from ....domain.models import Subscription, UserSummary
from ....domain.trial_policy import is_trial_active, trial_days_remaining
from .common import CamelModel
from .content import ContentResponse, ContentTypeStatsResponse


class AdminStatsResponse(CamelModel):
    total_users: int
    active_subscriptions: int
    trial_users: int
    total_content: int
    users_last30_days: int
    content_last30_days: int
    monthly_revenue: int


class PagePagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PagePagination":
        return cls(total=total, page=page, limit=limit, total_pages=-(-total // limit))


class AdminSubscriptionSummary(CamelModel):
    status: str
    is_trial_active: bool
    trial_end_date: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None
    has_stripe_subscription: bool

    @classmethod
    def from_domain(cls, subscription: Optional[Subscription], now: datetime) -> "AdminSubscriptionSummary":
        if subscription is None:
            return cls(status="none", is_trial_active=False, has_stripe_subscription=False)
        return cls(
            status=subscription.status.value,
            is_trial_active=is_trial_active(subscription, now),
            trial_end_date=subscription.trial_end_date,
            stripe_customer_id=subscription.stripe_customer_id,
            has_stripe_subscription=subscription.stripe_subscription_id is not None,
        )


class AdminUserRow(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    created_at: datetime
    subscription: AdminSubscriptionSummary
    content_count: int

    @classmethod
    def from_summary(cls, summary: UserSummary, now: datetime) -> "AdminUserRow":
        user = summary.user
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_verified=user.is_verified,
            created_at=user.created_at,
            subscription=AdminSubscriptionSummary.from_domain(summary.subscription, now),
            content_count=summary.content_count,
        )


class AdminUserListResponse(CamelModel):
    users: List[AdminUserRow]
    pagination: PagePagination


class AdminSubscriptionDetails(AdminSubscriptionSummary):
    trial_days_remaining: int = 0
    stripe_subscription_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    stripe_current_period_end: Optional[datetime] = None


class AdminContentStats(CamelModel):
    total: int
    by_type: List[ContentTypeStatsResponse]


class AdminRecentContent(CamelModel):
    id: int
    content_type: str
    topic: str
    word_count: int
    created_at: datetime


class AdminUserDetails(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    is_admin: bool
    created_at: datetime
    subscription: AdminSubscriptionDetails
    content_stats: AdminContentStats
    recent_content: List[AdminRecentContent]

    @classmethod
    def from_details(cls, details: UserDetails, now: datetime) -> "AdminUserDetails":
        user, subscription = details.user, details.subscription
        subscription_details = AdminSubscriptionDetails.from_domain(subscription, now)
        if subscription is not None:
            if subscription_details.is_trial_active:
                subscription_details.trial_days_remaining = trial_days_remaining(subscription.trial_end_date, now)
            subscription_details.stripe_subscription_id = subscription.stripe_subscription_id
            subscription_details.stripe_price_id = subscription.stripe_price_id
            subscription_details.stripe_current_period_end = subscription.stripe_current_period_end
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_verified=user.is_verified,
            is_admin=user.is_admin,
            created_at=user.created_at,
            subscription=subscription_details,
            content_stats=AdminContentStats(
                total=sum(stat.count for stat in details.content_stats),
                by_type=[ContentTypeStatsResponse.from_domain(stat) for stat in details.content_stats],
            ),
            recent_content=[
                AdminRecentContent(
                    id=content.id,
                    content_type=content.content_type,
                    topic=content.topic,
                    word_count=content.word_count,
                    created_at=content.created_at,
                )
                for content in details.recent_content
            ],
        )


class AdminUserDetailsResponse(CamelModel):
    user: AdminUserDetails


class AdminUserContentResponse(CamelModel):
    content: List[ContentResponse]
    pagination: PagePagination
