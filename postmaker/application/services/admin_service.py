from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from ...domain.models import Content, ContentTypeStats, Subscription, SubscriptionStatus, User, UserSummary
from ...domain.ports.persistence import PersistenceGateway
from ...domain.trial_policy import utcnow

RECENT_ACTIVITY_WINDOW = timedelta(days=30)
RECENT_CONTENT_LIMIT = 10


@dataclass(slots=True)
class UserDetails:
    user: User
    subscription: Optional[Subscription]
    content_stats: List[ContentTypeStats]
    recent_content: List[Content]


class AdminService:
    """Read-only queries backing the admin dashboard."""

    def __init__(
        self,
        persistence: PersistenceGateway,
        monthly_price: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._persistence = persistence
        self._monthly_price = monthly_price
        self._clock = clock

    def platform_stats(self) -> Dict[str, int]:
        now = self._clock()
        since = now - RECENT_ACTIVITY_WINDOW
        active = self._persistence.count_subscriptions(SubscriptionStatus.ACTIVE)
        return {
            "totalUsers": self._persistence.count_users(),
            "activeSubscriptions": active,
            "trialUsers": self._persistence.count_active_trials(now),
            "totalContent": self._persistence.count_content(),
            "usersLast30Days": self._persistence.count_users(created_since=since),
            "contentLast30Days": self._persistence.count_content(created_since=since),
            "monthlyRevenue": active * self._monthly_price,
        }

    def list_users(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[UserSummary], int]:
        if sort_order not in ("asc", "desc"):
            raise ValueError("sortOrder must be 'asc' or 'desc'")
        status_filter = None
        if status and status != "all":
            try:
                status_filter = SubscriptionStatus(status)
            except ValueError as exc:
                raise ValueError(f"Unknown subscription status: {status}") from exc
        return self._persistence.list_users(
            search=search or None,
            status=status_filter,
            sort_by=sort_by,
            descending=sort_order == "desc",
            offset=(page - 1) * limit,
            limit=limit,
        )

    def user_details(self, user_id: int) -> UserDetails:
        user = self._require_user(user_id)
        recent, _ = self._persistence.list_content(user_id, limit=RECENT_CONTENT_LIMIT, offset=0)
        return UserDetails(
            user=user,
            subscription=self._persistence.get_subscription_by_user_id(user_id),
            content_stats=self._persistence.get_content_stats(user_id),
            recent_content=recent,
        )

    def user_content(self, user_id: int, *, page: int = 1, limit: int = 20) -> Tuple[List[Content], int]:
        self._require_user(user_id)
        return self._persistence.list_content(user_id, limit=limit, offset=(page - 1) * limit)

    def _require_user(self, user_id: int) -> User:
        user = self._persistence.get_user_by_id(user_id)
        if user is None:
            raise LookupError("User not found")
        return user
