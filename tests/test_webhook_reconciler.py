from datetime import datetime, timezone

import pytest

from conftest import stripe_event
from postmaker.application.services.webhook_reconciler import (
    ReconcileOutcome,
    WebhookReconciler,
    map_provider_status,
)
from postmaker.domain.models import SubscriptionStatus

PERIOD_END = 1790000000


def _stripe_subscription(sub_id="sub_1", status="active", cancel_at_period_end=False, **extra):
    payload = {
        "id": sub_id,
        "object": "subscription",
        "customer": "cus_1",
        "status": status,
        "cancel_at_period_end": cancel_at_period_end,
        "current_period_end": PERIOD_END,
        "items": {"data": [{"price": {"id": "price_monthly"}}]},
    }
    payload.update(extra)
    return payload


@pytest.fixture
def reconciler(persistence):
    return WebhookReconciler(persistence)


@pytest.fixture
def subscribed_user(make_user, reconciler):
    user = make_user()
    reconciler.reconcile(
        stripe_event(
            "checkout.session.completed",
            {"id": "cs_1", "customer": "cus_1", "subscription": "sub_1", "metadata": {"userId": str(user.id)}},
        )
    )
    return user


def test_checkout_completed_activates_subscription(make_user, reconciler, persistence, clock):
    user = make_user()
    outcome = reconciler.reconcile(
        stripe_event(
            "checkout.session.completed",
            {"id": "cs_1", "customer": "cus_1", "subscription": "sub_1", "metadata": {"userId": str(user.id)}},
        )
    )

    subscription = persistence.get_subscription_by_user_id(user.id)
    assert outcome is ReconcileOutcome.APPLIED
    assert subscription.status is SubscriptionStatus.ACTIVE
    assert subscription.stripe_customer_id == "cus_1"
    assert subscription.stripe_subscription_id == "sub_1"


def test_checkout_without_user_metadata_is_unmatched(reconciler):
    outcome = reconciler.reconcile(
        stripe_event("checkout.session.completed", {"id": "cs_2", "customer": "cus_2", "subscription": "sub_2"})
    )
    assert outcome is ReconcileOutcome.UNMATCHED


def test_checkout_for_unknown_user_is_unmatched(reconciler):
    outcome = reconciler.reconcile(
        stripe_event(
            "checkout.session.completed",
            {"id": "cs_3", "customer": "cus_3", "subscription": "sub_3", "metadata": {"userId": "9999"}},
        )
    )
    assert outcome is ReconcileOutcome.UNMATCHED


def test_subscription_updated_is_idempotent(subscribed_user, reconciler, persistence):
    event = stripe_event("customer.subscription.updated", _stripe_subscription())

    assert reconciler.reconcile(event) is ReconcileOutcome.APPLIED
    first = persistence.get_subscription_by_user_id(subscribed_user.id)
    assert reconciler.reconcile(event) is ReconcileOutcome.APPLIED
    second = persistence.get_subscription_by_user_id(subscribed_user.id)

    assert first.status is second.status is SubscriptionStatus.ACTIVE
    assert first.stripe_price_id == second.stripe_price_id == "price_monthly"
    assert second.stripe_current_period_end == datetime.fromtimestamp(PERIOD_END, tz=timezone.utc)


def test_subscription_updated_reads_period_end_from_items(subscribed_user, reconciler, persistence):
    payload = _stripe_subscription()
    del payload["current_period_end"]
    payload["items"]["data"][0]["current_period_end"] = PERIOD_END + 60

    reconciler.reconcile(stripe_event("customer.subscription.updated", payload))

    subscription = persistence.get_subscription_by_user_id(subscribed_user.id)
    assert subscription.stripe_current_period_end == datetime.fromtimestamp(PERIOD_END + 60, tz=timezone.utc)


@pytest.mark.parametrize(
    "provider_status, cancel_at_period_end, expected",
    [
        ("past_due", False, SubscriptionStatus.PAST_DUE),
        ("unpaid", False, SubscriptionStatus.UNPAID),
        ("active", True, SubscriptionStatus.CANCELED),
        ("canceled", False, SubscriptionStatus.CANCELED),
        ("trialing", False, SubscriptionStatus.ACTIVE),
    ],
)
def test_subscription_updated_maps_provider_status(
    subscribed_user, reconciler, persistence, provider_status, cancel_at_period_end, expected
):
    reconciler.reconcile(
        stripe_event(
            "customer.subscription.updated",
            _stripe_subscription(status=provider_status, cancel_at_period_end=cancel_at_period_end),
        )
    )
    assert persistence.get_subscription_by_user_id(subscribed_user.id).status is expected


def test_subscription_updated_for_unknown_id_is_ignored(subscribed_user, reconciler, persistence):
    outcome = reconciler.reconcile(
        stripe_event("customer.subscription.updated", _stripe_subscription(sub_id="sub_unknown", status="past_due"))
    )
    assert outcome is ReconcileOutcome.UNMATCHED
    assert persistence.get_subscription_by_user_id(subscribed_user.id).status is SubscriptionStatus.ACTIVE


def test_subscription_deleted_cancels_and_detaches(subscribed_user, reconciler, persistence):
    event = stripe_event("customer.subscription.deleted", _stripe_subscription(status="canceled"))

    assert reconciler.reconcile(event) is ReconcileOutcome.APPLIED
    subscription = persistence.get_subscription_by_user_id(subscribed_user.id)
    assert subscription.status is SubscriptionStatus.CANCELED
    assert subscription.stripe_subscription_id is None
    assert subscription.stripe_customer_id == "cus_1"
    # Replays find nothing to detach.
    assert reconciler.reconcile(event) is ReconcileOutcome.UNMATCHED


def test_payment_failure_then_recovery(subscribed_user, reconciler, persistence):
    invoice = {"id": "in_1", "object": "invoice", "customer": "cus_1", "subscription": "sub_1"}

    reconciler.reconcile(stripe_event("invoice.payment_failed", invoice))
    assert persistence.get_subscription_by_user_id(subscribed_user.id).status is SubscriptionStatus.PAST_DUE

    reconciler.reconcile(stripe_event("invoice.payment_succeeded", invoice))
    assert persistence.get_subscription_by_user_id(subscribed_user.id).status is SubscriptionStatus.ACTIVE


def test_payment_succeeded_does_not_revive_canceled_subscription(subscribed_user, reconciler, persistence):
    reconciler.reconcile(
        stripe_event("customer.subscription.updated", _stripe_subscription(cancel_at_period_end=True))
    )
    outcome = reconciler.reconcile(stripe_event("invoice.payment_succeeded", {"id": "in_2", "customer": "cus_1"}))

    assert outcome is ReconcileOutcome.IGNORED
    assert persistence.get_subscription_by_user_id(subscribed_user.id).status is SubscriptionStatus.CANCELED


def test_unknown_event_type_is_ignored(reconciler):
    assert reconciler.reconcile(stripe_event("customer.created", {"id": "cus_9"})) is ReconcileOutcome.IGNORED


def test_handler_errors_are_contained(subscribed_user, reconciler, persistence, mocker):
    mocker.patch.object(persistence, "sync_stripe_subscription", side_effect=RuntimeError("database is locked"))

    outcome = reconciler.reconcile(stripe_event("customer.subscription.updated", _stripe_subscription()))
    assert outcome is ReconcileOutcome.FAILED


def test_malformed_event_is_contained(reconciler):
    assert reconciler.reconcile({"type": "customer.subscription.updated"}) is ReconcileOutcome.FAILED


def test_map_provider_status_prefers_cancel_flag():
    assert map_provider_status({"status": "past_due", "cancel_at_period_end": True}) is SubscriptionStatus.CANCELED
