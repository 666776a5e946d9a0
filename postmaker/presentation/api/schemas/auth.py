"""Pydantic schemas for authentication endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from ....domain.models import Subscription, User
from ....domain.trial_policy import is_trial_active
from .common import CamelModel


class SignupRequest(CamelModel):
    """Request schema for account registration."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class SignupResponse(CamelModel):
    message: str
    requires_verification: bool = True
    email: str


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ResendVerificationRequest(CamelModel):
    email: EmailStr


class SubscriptionSummary(CamelModel):
    status: str
    is_trial_active: bool
    trial_start_date: datetime
    trial_end_date: datetime
    stripe_current_period_end: Optional[datetime] = None
    has_active_subscription: bool

    @classmethod
    def from_domain(cls, subscription: Subscription, now: datetime) -> "SubscriptionSummary":
        return cls(
            status=subscription.status.value,
            is_trial_active=is_trial_active(subscription, now),
            trial_start_date=subscription.trial_start_date,
            trial_end_date=subscription.trial_end_date,
            stripe_current_period_end=subscription.stripe_current_period_end,
            has_active_subscription=subscription.is_active(),
        )


class UserResponse(CamelModel):
    """Public view of a user account."""

    id: int
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    is_admin: bool
    created_at: datetime
    subscription: Optional[SubscriptionSummary] = None

    @classmethod
    def from_domain(cls, user: User, subscription: Optional[Subscription], now: datetime) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_verified=user.is_verified,
            is_admin=user.is_admin,
            created_at=user.created_at,
            subscription=SubscriptionSummary.from_domain(subscription, now) if subscription else None,
        )


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class VerifyEmailResponse(AuthResponse):
    message: str


class CurrentUserResponse(CamelModel):
    user: UserResponse
