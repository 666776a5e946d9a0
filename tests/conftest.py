import json
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import pytest
from fastapi.testclient import TestClient

from postmaker.core.app_factory import build_container, create_application
from postmaker.core.config import Settings
from postmaker.domain.ports.providers import (
    BillingClient,
    CheckoutSession,
    ContentGenerator,
    NotificationSender,
    WebhookVerificationError,
)
from postmaker.infrastructure.persistence.sqlite import SQLitePersistence

VALID_SIGNATURE = "t=1,v1=valid"


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeBillingClient(BillingClient):
    def __init__(self):
        self.checkout_calls: List[Dict] = []
        self.canceled: List[str] = []
        self.reactivated: List[str] = []
        self.portal_customers: List[str] = []

    def create_checkout_session(self, *, user_id, customer_email, customer_id, success_url, cancel_url):
        self.checkout_calls.append(
            {
                "user_id": user_id,
                "customer_email": customer_email,
                "customer_id": customer_id,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return CheckoutSession(id=f"cs_test_{user_id}", url=f"https://checkout.stripe.com/c/pay/cs_test_{user_id}")

    def cancel_subscription(self, stripe_subscription_id):
        self.canceled.append(stripe_subscription_id)

    def reactivate_subscription(self, stripe_subscription_id):
        self.reactivated.append(stripe_subscription_id)

    def create_billing_portal_session(self, stripe_customer_id, return_url):
        self.portal_customers.append(stripe_customer_id)
        return f"https://billing.stripe.com/p/session/{stripe_customer_id}?return={return_url}"

    def construct_event(self, payload, signature):
        if signature != VALID_SIGNATURE:
            raise WebhookVerificationError("No signatures found matching the expected signature for payload")
        return json.loads(payload)


class FakeNotificationSender(NotificationSender):
    def __init__(self):
        self.verification: List[Dict] = []
        self.expiring: List[Dict] = []
        self.expired: List[Dict] = []
        self.failing: Set[str] = set()

    def send_verification_email(self, to_email, first_name, verification_token):
        self.verification.append({"to": to_email, "first_name": first_name, "token": verification_token})
        return True

    def send_trial_expiring_email(self, to_email, first_name, days_remaining):
        if to_email in self.failing:
            return False
        self.expiring.append({"to": to_email, "first_name": first_name, "days_remaining": days_remaining})
        return True

    def send_trial_expired_email(self, to_email, first_name):
        if to_email in self.failing:
            return False
        self.expired.append({"to": to_email, "first_name": first_name})
        return True


class FakeContentGenerator(ContentGenerator):
    def __init__(self):
        self.calls: List[Dict] = []
        self.text = "Five steps to better onboarding emails"

    async def generate(self, content_type, topic, keywords):
        self.calls.append({"content_type": content_type, "topic": topic, "keywords": keywords})
        return self.text


@pytest.fixture
def settings(monkeypatch, tmp_path) -> Settings:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "postmaker-test.db"))
    monkeypatch.setenv("JWT_SECRET", "test-secret-with-at-least-32-bytes!!")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("CRON_SECRET", "cron-test-secret")
    monkeypatch.setenv("FRONTEND_BASE_URL", "https://app.postmaker.io/")
    monkeypatch.setenv("EMAIL_SEND_DELAY_MS", "0")
    monkeypatch.setenv("MONTHLY_PRICE", "29")
    return Settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def persistence(settings):
    gateway = SQLitePersistence(settings.database_path)
    yield gateway
    gateway.close()


@pytest.fixture
def billing() -> FakeBillingClient:
    return FakeBillingClient()


@pytest.fixture
def sender() -> FakeNotificationSender:
    return FakeNotificationSender()


@pytest.fixture
def generator() -> FakeContentGenerator:
    return FakeContentGenerator()


@pytest.fixture
def container(settings, persistence, billing, sender, generator, clock):
    return build_container(
        settings,
        persistence=persistence,
        billing_client=billing,
        notification_sender=sender,
        content_generator=generator,
        clock=clock,
    )


@pytest.fixture
def client(settings, container) -> TestClient:
    app = create_application(settings)
    # The lifespan is not entered, so the container is installed directly.
    app.state.container = container
    return TestClient(app)


@pytest.fixture
def make_user(container):
    def _make_user(
        email: str = "alice@postmaker.io",
        password: str = "correct-horse-battery",
        *,
        first_name: str = "Alice",
        last_name: str = "Martins",
        verified: bool = True,
        admin: bool = False,
    ):
        user, _ = container.user_service.register(email, password, first_name, last_name)
        if verified:
            user = container.user_service.verify_email(user.verification_token)
        if admin:
            container.persistence.set_admin(user.id, True)
            user = container.persistence.get_user_by_id(user.id)
        return user

    return _make_user


@pytest.fixture
def auth_headers(container):
    def _auth_headers(user) -> Dict[str, str]:
        return {"Authorization": f"Bearer {container.user_service.create_token(user)}"}

    return _auth_headers


def stripe_event(event_type: str, data_object: Dict, event_id: Optional[str] = None) -> Dict:
    return {
        "id": event_id or f"evt_{event_type.replace('.', '_')}",
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }
