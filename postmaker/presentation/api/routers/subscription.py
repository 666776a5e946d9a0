"""Subscription and Stripe webhook API endpoints."""

import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ....application.services.access_service import AccessService
from ....application.services.subscription_service import SubscriptionService
from ....application.services.webhook_reconciler import WebhookReconciler
from ....core.dependencies import (
    get_access_service,
    get_billing_client,
    get_subscription_service,
    get_webhook_reconciler,
)
from ....domain.models import User
from ....domain.ports.providers import BillingClient, BillingError, WebhookVerificationError
from ...api.dependencies import get_current_user
from ...api.schemas.subscription import (
    BillingPortalResponse,
    CheckoutResponse,
    SubscriptionStatusResponse,
    WebhookAck,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscription", tags=["Subscription"])


@router.post("/create-checkout", response_model=CheckoutResponse)
async def create_checkout(
    user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> CheckoutResponse:
    try:
        session = subscription_service.create_checkout(user)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BillingError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return CheckoutResponse(session_id=session.id, url=session.url)


@router.get("/status", response_model=SubscriptionStatusResponse)
async def subscription_status(
    user: User = Depends(get_current_user),
    access_service: AccessService = Depends(get_access_service),
) -> SubscriptionStatusResponse:
    try:
        view = access_service.get_status(user.id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return SubscriptionStatusResponse.from_view(view)


@router.post("/cancel")
async def cancel_subscription(
    user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, str]:
    try:
        subscription_service.cancel(user.id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BillingError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return {
        "message": "Subscription canceled successfully. Access will continue until the end of the billing period."
    }


@router.post("/reactivate")
async def reactivate_subscription(
    user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> Dict[str, str]:
    try:
        subscription_service.reactivate(user.id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BillingError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return {"message": "Subscription reactivated successfully"}


@router.post("/billing-portal", response_model=BillingPortalResponse)
async def billing_portal(
    user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> BillingPortalResponse:
    try:
        url = subscription_service.billing_portal_url(user.id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BillingError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return BillingPortalResponse(url=url)


@router.post("/webhook", response_model=WebhookAck, include_in_schema=False)
async def stripe_webhook(
    request: Request,
    billing_client: BillingClient = Depends(get_billing_client),
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
) -> WebhookAck:
    """Verify and apply a Stripe event. Only signature failures are rejected."""
    payload = await request.body()
    try:
        event = billing_client.construct_event(payload, request.headers.get("stripe-signature"))
    except WebhookVerificationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Webhook error", "message": str(exc)},
        ) from exc

    outcome = reconciler.reconcile(event)
    logger.debug("Stripe event %s reconciled: %s", event.get("id"), outcome.value)
    return WebhookAck()
