"""Service for user authentication and registration."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import bcrypt
import jwt

from ..domain.models import Subscription, User
from ..domain.ports.persistence import UserRepository
from ..domain.trial_policy import utcnow


class VerificationTokenExpired(ValueError):
    """Raised when an email verification link is used after its expiry."""

    def __init__(self, email: str):
        super().__init__("Verification token has expired")
        self.email = email


class UserService:
    """Service for managing user authentication and registration."""

    def __init__(
        self,
        user_repository: UserRepository,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        jwt_expiration_hours: int = 24 * 7,
        verification_expiration_hours: int = 24,
        trial_days: int = 15,
        bcrypt_rounds: int = 12,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.user_repository = user_repository
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.jwt_expiration_hours = jwt_expiration_hours
        self.verification_expiration_hours = verification_expiration_hours
        self.trial_days = trial_days
        self.bcrypt_rounds = bcrypt_rounds
        self.clock = clock

    def register(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> Tuple[User, Subscription]:
        """
        Register a new user together with its trial subscription.

        Args:
            email: User email
            password: Plain text password
            first_name: Given name
            last_name: Family name

        Returns:
            Tuple of (User, Subscription); the user still carries its verification token

        Raises:
            ValueError: If email already exists
        """
        if self.user_repository.get_user_by_email(email):
            raise ValueError("Email already registered")

        password_hash = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds)
        ).decode("utf-8")

        now = self.clock()
        return self.user_repository.create_user_with_subscription(
            email=email,
            password_hash=password_hash,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            verification_token=self._new_verification_token(),
            verification_expires_at=now + timedelta(hours=self.verification_expiration_hours),
            trial_start_date=now,
            trial_end_date=now + timedelta(days=self.trial_days),
        )

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user with email and password.

        Returns:
            User if the credentials match, None otherwise
        """
        user = self.user_repository.get_user_by_email(email)
        if not user:
            return None

        if not bcrypt.checkpw(password.encode("utf-8"), user.password_hash.encode("utf-8")):
            return None

        return user

    def verify_email(self, token: str) -> User:
        """
        Verify a user's email with a verification token.

        Returns:
            The verified user

        Raises:
            ValueError: If the token is unknown
            VerificationTokenExpired: If the token is past its expiry
        """
        user = self.user_repository.get_user_by_verification_token(token)
        if not user:
            raise ValueError("Invalid or expired verification token")

        if user.verification_expires_at and self.clock() > user.verification_expires_at:
            raise VerificationTokenExpired(user.email)

        return self.user_repository.mark_email_verified(user.id)

    def resend_verification(self, email: str) -> User:
        """
        Issue a fresh verification token.

        Returns:
            The user with the new token set

        Raises:
            LookupError: If no account uses this email
            ValueError: If the email is already verified
        """
        user = self.user_repository.get_user_by_email(email)
        if not user:
            raise LookupError("No account found with this email")

        if user.is_verified:
            raise ValueError("Email is already verified")

        token = self._new_verification_token()
        expires_at = self.clock() + timedelta(hours=self.verification_expiration_hours)
        self.user_repository.update_verification_token(user.id, token, expires_at)
        user.verification_token = token
        user.verification_expires_at = expires_at
        return user

    def create_token(self, user: User) -> str:
        """Create a signed JWT for the user."""
        # Token lifetimes are checked by PyJWT against the wall clock.
        issued_at = datetime.now(timezone.utc)
        payload = {
            "user_id": user.id,
            "email": user.email,
            "exp": issued_at + timedelta(hours=self.jwt_expiration_hours),
            "iat": issued_at,
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def verify_token(self, token: str) -> Optional[dict]:
        """Decode a JWT, returning None when it is invalid or expired."""
        try:
            return jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.InvalidTokenError:
            return None

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self.user_repository.get_user_by_id(user_id)

    @staticmethod
    def _new_verification_token() -> str:
        return secrets.token_hex(32)
