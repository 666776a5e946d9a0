from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ..application.services.access_service import AccessService
from ..application.services.admin_service import AdminService
from ..application.services.content_service import ContentService
from ..application.services.subscription_service import SubscriptionService
from ..application.services.trial_notifier import TrialNotifier
from ..application.services.webhook_reconciler import WebhookReconciler
from ..domain.ports.persistence import PersistenceGateway
from ..domain.ports.providers import BillingClient, NotificationSender
from ..services.user_service import UserService
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    billing_client: BillingClient
    notification_sender: NotificationSender
    user_service: UserService
    access_service: AccessService
    subscription_service: SubscriptionService
    webhook_reconciler: WebhookReconciler
    content_service: ContentService
    admin_service: AdminService
    trial_notifier: TrialNotifier
    clock: Callable[[], datetime]
