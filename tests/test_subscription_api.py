import json

from conftest import VALID_SIGNATURE, stripe_event

from postmaker.domain.models import SubscriptionStatus


def post_webhook(client, event, signature=VALID_SIGNATURE):
    return client.post(
        "/api/subscription/webhook",
        content=json.dumps(event),
        headers={"stripe-signature": signature, "content-type": "application/json"},
    )


def checkout_completed(user_id, customer="cus_123", subscription="sub_123"):
    return stripe_event(
        "checkout.session.completed",
        {
            "id": "cs_test_1",
            "object": "checkout.session",
            "customer": customer,
            "subscription": subscription,
            "metadata": {"userId": str(user_id)},
        },
    )


def test_create_checkout(client, make_user, auth_headers, billing):
    user = make_user()
    response = client.post("/api/subscription/create-checkout", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json() == {
        "sessionId": f"cs_test_{user.id}",
        "url": f"https://checkout.stripe.com/c/pay/cs_test_{user.id}",
    }
    call = billing.checkout_calls[0]
    assert call["customer_email"] == "alice@postmaker.io"
    assert call["customer_id"] is None
    assert call["success_url"] == (
        "https://app.postmaker.io/dashboard?session_id={CHECKOUT_SESSION_ID}&success=true"
    )
    assert call["cancel_url"] == "https://app.postmaker.io/pricing?canceled=true"


def test_create_checkout_rejects_active_subscriber(client, make_user, auth_headers, persistence, billing):
    user = make_user()
    persistence.activate_subscription(user.id, "cus_123", "sub_123")

    response = client.post("/api/subscription/create-checkout", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json() == {"error": "User already has an active subscription"}
    assert billing.checkout_calls == []


def test_create_checkout_requires_token(client):
    response = client.post("/api/subscription/create-checkout")
    assert response.status_code == 401
    assert response.json() == {"error": "No token provided"}


def test_webhook_rejects_bad_signature(client, make_user, persistence):
    user = make_user()
    response = post_webhook(client, checkout_completed(user.id), signature="t=1,v1=forged")

    assert response.status_code == 400
    assert response.json()["error"] == "Webhook error"
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.TRIAL


def test_webhook_checkout_activates_subscription(client, make_user, auth_headers):
    user = make_user()

    response = post_webhook(client, checkout_completed(user.id))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    status = client.get("/api/subscription/status", headers=auth_headers(user)).json()
    assert status["status"] == "active"
    assert status["hasActiveSubscription"] is True
    assert status["canManageBilling"] is True


def test_webhook_acknowledges_unmatched_and_unknown_events(client, make_user):
    make_user()
    unknown_user = post_webhook(client, checkout_completed(9999))
    unhandled = post_webhook(client, stripe_event("customer.created", {"id": "cus_999"}))

    assert unknown_user.status_code == 200
    assert unhandled.status_code == 200
    assert unhandled.json() == {"received": True}


def test_webhook_subscription_update_sets_renewal(client, make_user, auth_headers, clock):
    user = make_user()
    post_webhook(client, checkout_completed(user.id))
    renewal = int(clock().timestamp()) + 10 * 86400

    post_webhook(
        client,
        stripe_event(
            "customer.subscription.updated",
            {
                "id": "sub_123",
                "object": "subscription",
                "status": "active",
                "cancel_at_period_end": False,
                "current_period_end": renewal,
                "items": {"data": [{"price": {"id": "price_monthly"}}]},
            },
        ),
    )

    status = client.get("/api/subscription/status", headers=auth_headers(user)).json()
    assert status["status"] == "active"
    assert status["daysUntilRenewal"] == 10


def test_payment_failure_then_recovery(client, make_user, persistence):
    user = make_user()
    post_webhook(client, checkout_completed(user.id))

    post_webhook(client, stripe_event("invoice.payment_failed", {"id": "in_1", "customer": "cus_123"}))
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.PAST_DUE

    post_webhook(client, stripe_event("invoice.payment_succeeded", {"id": "in_2", "customer": "cus_123"}))
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.ACTIVE


def test_subscription_deleted_detaches_stripe_id(client, make_user, persistence):
    user = make_user()
    post_webhook(client, checkout_completed(user.id))

    post_webhook(
        client,
        stripe_event("customer.subscription.deleted", {"id": "sub_123", "object": "subscription", "status": "canceled"}),
    )

    subscription = persistence.get_subscription_by_user_id(user.id)
    assert subscription.status is SubscriptionStatus.CANCELED
    assert subscription.stripe_subscription_id is None
    assert subscription.stripe_customer_id == "cus_123"


def test_cancel_and_reactivate(client, make_user, auth_headers, persistence, billing):
    user = make_user()
    headers = auth_headers(user)
    persistence.activate_subscription(user.id, "cus_123", "sub_123")

    canceled = client.post("/api/subscription/cancel", headers=headers)
    assert canceled.status_code == 200
    assert billing.canceled == ["sub_123"]
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.CANCELED

    reactivated = client.post("/api/subscription/reactivate", headers=headers)
    assert reactivated.status_code == 200
    assert reactivated.json() == {"message": "Subscription reactivated successfully"}
    assert billing.reactivated == ["sub_123"]
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.ACTIVE


def test_cancel_without_stripe_subscription(client, make_user, auth_headers, billing):
    response = client.post("/api/subscription/cancel", headers=auth_headers(make_user()))

    assert response.status_code == 400
    assert response.json() == {"error": "No active subscription to cancel"}
    assert billing.canceled == []


def test_reactivate_requires_canceled_subscription(client, make_user, auth_headers, persistence, billing):
    user = make_user()
    persistence.activate_subscription(user.id, "cus_123", "sub_123")

    response = client.post("/api/subscription/reactivate", headers=auth_headers(user))

    assert response.status_code == 400
    assert billing.reactivated == []


def test_billing_portal(client, make_user, auth_headers, persistence, billing):
    user = make_user()
    headers = auth_headers(user)

    assert client.post("/api/subscription/billing-portal", headers=headers).status_code == 400

    persistence.activate_subscription(user.id, "cus_123", "sub_123")
    response = client.post("/api/subscription/billing-portal", headers=headers)

    assert response.status_code == 200
    assert response.json()["url"].startswith("https://billing.stripe.com/p/session/cus_123")
    assert billing.portal_customers == ["cus_123"]


def test_status_reports_lapsed_trial_without_flipping_it(client, make_user, auth_headers, clock, persistence):
    user = make_user()
    clock.advance(days=16)

    status = client.get("/api/subscription/status", headers=auth_headers(user)).json()

    assert status["status"] == "trial"
    assert status["isTrialActive"] is False
    assert status["trialDaysRemaining"] == 0
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.TRIAL


def test_subscribing_after_trial_expiry_restores_access(client, make_user, auth_headers, clock):
    user = make_user()
    headers = auth_headers(user)
    clock.advance(days=16)
    payload = {"contentType": "Blog Post", "topic": "Pricing pages"}

    denied = client.post("/api/content/generate", json=payload, headers=headers)
    assert denied.status_code == 403
    assert denied.json()["trialExpired"] is True

    checkout = client.post("/api/subscription/create-checkout", headers=headers)
    assert checkout.status_code == 200
    post_webhook(client, checkout_completed(user.id))

    allowed = client.post("/api/content/generate", json=payload, headers=headers)
    assert allowed.status_code == 200
