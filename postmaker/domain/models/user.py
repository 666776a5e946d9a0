"""User domain model for client authentication and management."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .subscription import Subscription


class User:
    """
    User entity representing both regular and admin accounts.

    Attributes:
        id: Unique identifier
        email: User email address (unique, lower-cased)
        password_hash: bcrypt password hash
        first_name: Given name used in emails
        last_name: Family name
        is_verified: Whether email has been verified
        is_admin: Whether the user may access the admin dashboard
        verification_token: Token for email verification
        verification_expires_at: Expiration timestamp for verification token
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        is_verified: bool = False,
        is_admin: bool = False,
        verification_token: Optional[str] = None,
        verification_expires_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.email = email
        self.password_hash = password_hash
        self.first_name = first_name
        self.last_name = last_name
        self.is_verified = is_verified
        self.is_admin = is_admin
        self.verification_token = verification_token
        self.verification_expires_at = verification_expires_at
        self.created_at = created_at
        self.updated_at = updated_at or created_at

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} verified={self.is_verified} admin={self.is_admin}>"


class UserSummary:
    """Admin listing row: a user with its subscription and content count."""

    def __init__(self, user: User, subscription: Optional["Subscription"], content_count: int) -> None:
        self.user = user
        self.subscription = subscription
        self.content_count = content_count
