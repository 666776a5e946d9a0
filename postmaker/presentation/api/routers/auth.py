import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....application.services.access_service import AccessService
from ....core.dependencies import (
    get_access_service,
    get_clock,
    get_notification_sender,
    get_user_service,
)
from ....domain.models import User
from ....domain.ports.providers import NotificationSender
from ....services.user_service import UserService, VerificationTokenExpired
from ...api.dependencies import get_current_user
from ...api.schemas.auth import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    ResendVerificationRequest,
    SignupRequest,
    SignupResponse,
    UserResponse,
    VerifyEmailResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _send_verification(sender: NotificationSender, user: User) -> None:
    if not sender.send_verification_email(user.email, user.first_name, user.verification_token):
        logger.warning("Verification email to %s was not delivered", user.email)


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    user_service: UserService = Depends(get_user_service),
    sender: NotificationSender = Depends(get_notification_sender),
) -> SignupResponse:
    try:
        user, _ = user_service.register(
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    logger.info("User %s signed up; trial started", user.id)
    _send_verification(sender, user)
    return SignupResponse(
        message="Account created! Please check your email to verify your account.",
        email=user.email,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    user_service: UserService = Depends(get_user_service),
    access_service: AccessService = Depends(get_access_service),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AuthResponse:
    user = user_service.authenticate(payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    if not user.is_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "Please verify your email before logging in",
                "requiresVerification": True,
                "email": user.email,
            },
        )

    subscription = access_service.expire_stale_trial(user.id)
    return AuthResponse(
        token=user_service.create_token(user),
        user=UserResponse.from_domain(user, subscription, clock()),
    )


@router.get("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    token: Optional[str] = Query(default=None),
    user_service: UserService = Depends(get_user_service),
    access_service: AccessService = Depends(get_access_service),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> VerifyEmailResponse:
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Verification token is required")

    try:
        user = user_service.verify_email(token)
    except VerificationTokenExpired as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(exc), "expired": True, "email": exc.email},
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    logger.info("Email verified for user %s", user.id)
    return VerifyEmailResponse(
        message="Email verified successfully!",
        token=user_service.create_token(user),
        user=UserResponse.from_domain(user, access_service.get_subscription(user.id), clock()),
    )


@router.post("/resend-verification")
async def resend_verification(
    payload: ResendVerificationRequest,
    user_service: UserService = Depends(get_user_service),
    sender: NotificationSender = Depends(get_notification_sender),
) -> Dict[str, str]:
    try:
        user = user_service.resend_verification(payload.email)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    _send_verification(sender, user)
    return {"message": "Verification email sent! Please check your inbox."}


@router.get("/me", response_model=CurrentUserResponse)
async def current_user(
    user: User = Depends(get_current_user),
    access_service: AccessService = Depends(get_access_service),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> CurrentUserResponse:
    return CurrentUserResponse(
        user=UserResponse.from_domain(user, access_service.get_subscription(user.id), clock()),
    )
