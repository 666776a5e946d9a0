"""Exception types and handlers shaping the public `{error, ...}` JSON contract."""

from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...domain.trial_policy import AccessDecision, AccessReason

_ACCESS_DENIED_MESSAGES = {
    AccessReason.TRIAL_EXPIRED: "Trial expired. Please subscribe to continue.",
    AccessReason.NO_SUBSCRIPTION: "No subscription found",
    AccessReason.SUBSCRIPTION_REQUIRED: "An active subscription is required to generate content.",
}


class SubscriptionRequiredError(Exception):
    """Raised by the content access gate when a user may not generate content."""

    def __init__(self, decision: AccessDecision):
        super().__init__(decision.reason.value)
        self.decision = decision

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": _ACCESS_DENIED_MESSAGES.get(self.decision.reason, "Subscription required"),
            "needsSubscription": True,
        }
        if self.decision.trial_expired:
            payload["trialExpired"] = True
        return payload


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Routers pass either a message or a complete error payload as detail.
        content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(SubscriptionRequiredError)
    async def subscription_required_handler(request: Request, exc: SubscriptionRequiredError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=exc.to_payload())
