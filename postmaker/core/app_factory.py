from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.access_service import AccessService
from ..application.services.admin_service import AdminService
from ..application.services.content_service import ContentService
from ..application.services.subscription_service import SubscriptionService
from ..application.services.trial_notifier import TrialNotifier
from ..application.services.webhook_reconciler import WebhookReconciler
from ..domain.ports.persistence import PersistenceGateway
from ..domain.ports.providers import BillingClient, ContentGenerator, NotificationSender
from ..domain.trial_policy import utcnow
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.errors import register_exception_handlers
from ..presentation.api.routers import admin as admin_router
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import content as content_router
from ..presentation.api.routers import cron as cron_router
from ..presentation.api.routers import subscription as subscription_router
from ..services.content_generator import OpenAIContentGenerator
from ..services.email_service import EmailService
from ..services.stripe_service import StripeService
from ..services.user_service import UserService

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Post Maker AI", lifespan=_create_lifespan(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(content_router.router)
    app.include_router(subscription_router.router)
    app.include_router(cron_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "OK",
            "message": "Post Maker API is running",
            "timestamp": utcnow().isoformat(),
        }

    return app


def build_container(
    settings: Settings,
    *,
    persistence: Optional[PersistenceGateway] = None,
    billing_client: Optional[BillingClient] = None,
    notification_sender: Optional[NotificationSender] = None,
    content_generator: Optional[ContentGenerator] = None,
    clock: Callable[[], datetime] = utcnow,
) -> ApplicationContainer:
    """Wire services together. Collaborators passed in replace the production adapters."""
    persistence = persistence or SQLitePersistence(settings.database_path)
    billing_client = billing_client or StripeService(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        price_id=settings.stripe_price_id,
    )
    notification_sender = notification_sender or EmailService(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_username=settings.smtp_username,
        smtp_password=settings.smtp_password,
        from_email=settings.smtp_from_email,
        app_url=settings.frontend_base_url,
    )
    content_generator = content_generator or OpenAIContentGenerator(
        settings.openai_api_key, settings.openai_model
    )

    user_service = UserService(
        persistence,
        jwt_secret=settings.jwt_secret,
        jwt_expiration_hours=settings.jwt_expiration_hours,
        verification_expiration_hours=settings.verification_expiration_hours,
        trial_days=settings.trial_days,
        bcrypt_rounds=settings.bcrypt_rounds,
        clock=clock,
    )
    return ApplicationContainer(
        settings=settings,
        persistence=persistence,
        billing_client=billing_client,
        notification_sender=notification_sender,
        user_service=user_service,
        access_service=AccessService(persistence, clock=clock),
        subscription_service=SubscriptionService(persistence, billing_client, settings.frontend_base_url),
        webhook_reconciler=WebhookReconciler(persistence),
        content_service=ContentService(persistence, content_generator),
        admin_service=AdminService(persistence, settings.monthly_price, clock=clock),
        trial_notifier=TrialNotifier(
            persistence,
            notification_sender,
            clock=clock,
            send_delay_seconds=settings.email_send_delay_ms / 1000,
        ),
        clock=clock,
    )


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        container = build_container(settings)
        app.state.container = container  # type: ignore[attr-defined]
        if settings.jwt_secret == "change-me":
            logger.warning("JWT_SECRET is not set; using an insecure default.")
        logger.info("Post Maker API started (database %s)", settings.database_path)

        try:
            yield
        finally:
            container.persistence.close()

    return lifespan
