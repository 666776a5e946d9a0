"""Domain models for the Post Maker application."""

from .content import CONTENT_TYPE_LABELS, Content, ContentTypeStats
from .subscription import Subscription, SubscriptionStatus
from .user import User, UserSummary

__all__ = [
    "CONTENT_TYPE_LABELS",
    "Content",
    "ContentTypeStats",
    "Subscription",
    "SubscriptionStatus",
    "User",
    "UserSummary",
]
