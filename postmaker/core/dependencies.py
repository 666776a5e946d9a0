from fastapi import Depends, Request

from .container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Application container not initialised.")
    return container


def get_settings(container: ApplicationContainer = Depends(get_container)):
    return container.settings


def get_clock(container: ApplicationContainer = Depends(get_container)):
    return container.clock


def get_billing_client(container: ApplicationContainer = Depends(get_container)):
    return container.billing_client


def get_notification_sender(container: ApplicationContainer = Depends(get_container)):
    return container.notification_sender


def get_user_service(container: ApplicationContainer = Depends(get_container)):
    return container.user_service


def get_access_service(container: ApplicationContainer = Depends(get_container)):
    return container.access_service


def get_subscription_service(container: ApplicationContainer = Depends(get_container)):
    return container.subscription_service


def get_webhook_reconciler(container: ApplicationContainer = Depends(get_container)):
    return container.webhook_reconciler


def get_content_service(container: ApplicationContainer = Depends(get_container)):
    return container.content_service


def get_admin_service(container: ApplicationContainer = Depends(get_container)):
    return container.admin_service


def get_trial_notifier(container: ApplicationContainer = Depends(get_container)):
    return container.trial_notifier
