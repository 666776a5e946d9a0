import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.access_service import AccessService
from ...core.config import Settings
from ...core.dependencies import get_access_service, get_settings, get_user_service
from ...domain.models import User
from ...services.user_service import UserService
from .errors import SubscriptionRequiredError

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    user_service: UserService = Depends(get_user_service),
) -> User:
    """Resolve the bearer token to a user."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")

    payload = user_service.verify_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = user_service.get_by_id(payload.get("user_id"))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_verified_user(user: User = Depends(get_current_user)) -> User:
    if not user.is_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "Please verify your email before creating content",
                "requiresVerification": True,
                "email": user.email,
            },
        )
    return user


def require_admin_user(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required.",
        )
    return user


def require_content_access(
    user: User = Depends(require_verified_user),
    access_service: AccessService = Depends(get_access_service),
) -> User:
    """Gate content generation on an active subscription or a running trial."""
    decision = access_service.check_access(user.id)
    if not decision.allowed:
        raise SubscriptionRequiredError(decision)
    return user


def verify_cron_secret(
    x_cron_secret: Optional[str] = Header(default=None),
    secret: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    provided = x_cron_secret or secret
    # An unset CRON_SECRET disables the cron endpoints.
    if not settings.cron_secret or not provided or not secrets.compare_digest(
        provided.encode("utf-8"), settings.cron_secret.encode("utf-8")
    ):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
