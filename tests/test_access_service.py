from datetime import timedelta

from postmaker.application.services.access_service import AccessService
from postmaker.domain.models import SubscriptionStatus
from postmaker.domain.trial_policy import AccessReason


def test_fresh_trial_grants_access(make_user, container):
    user = make_user()
    decision = container.access_service.check_access(user.id)

    assert decision.allowed
    assert decision.reason is AccessReason.TRIAL
    assert decision.trial_days_remaining == 15


def test_lapsed_trial_is_flipped_exactly_once(make_user, container, persistence, clock, mocker):
    user = make_user()
    clock.advance(days=16)
    expire_spy = mocker.spy(persistence, "expire_trial")

    first = container.access_service.check_access(user.id)
    second = container.access_service.check_access(user.id)

    assert not first.allowed and first.trial_expired
    assert not second.allowed and second.trial_expired
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.EXPIRED
    # The second check sees status=expired and does not write.
    assert expire_spy.call_count == 1


def test_gate_persists_expiry_within_first_second_after_trial_end(make_user, container, persistence, clock):
    user = make_user()
    subscription = persistence.get_subscription_by_user_id(user.id)
    clock.now = subscription.trial_end_date + timedelta(milliseconds=500)

    decision = container.access_service.check_access(user.id)

    assert not decision.allowed and decision.trial_expired
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.EXPIRED


def test_trial_is_still_open_at_its_exact_end(make_user, container, persistence, clock):
    user = make_user()
    clock.now = persistence.get_subscription_by_user_id(user.id).trial_end_date

    assert container.access_service.check_access(user.id).allowed
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.TRIAL


def test_apply_expiry_reports_only_the_winning_call(make_user, persistence, clock):
    user = make_user()
    clock.advance(days=15, seconds=1)
    service = AccessService(persistence, clock=clock)
    subscription = persistence.get_subscription_by_user_id(user.id)

    assert service.apply_expiry(subscription, clock()) is True
    assert service.apply_expiry(subscription, clock()) is False


def test_apply_expiry_does_not_touch_converted_subscription(make_user, persistence, clock):
    user = make_user()
    stale = persistence.get_subscription_by_user_id(user.id)
    persistence.activate_subscription(user.id, "cus_A", "sub_A")
    clock.advance(days=20)

    assert AccessService(persistence, clock=clock).apply_expiry(stale, clock()) is False
    assert persistence.get_subscription_by_user_id(user.id).status is SubscriptionStatus.ACTIVE


def test_active_subscription_after_trial_end_keeps_access(make_user, container, persistence, clock):
    user = make_user()
    persistence.activate_subscription(user.id, "cus_A", "sub_A")
    clock.advance(days=60)

    decision = container.access_service.check_access(user.id)
    assert decision.allowed
    assert decision.reason is AccessReason.SUBSCRIBED


def test_expire_stale_trial_returns_fresh_record(make_user, container, clock):
    user = make_user()
    assert container.access_service.expire_stale_trial(user.id).status is SubscriptionStatus.TRIAL

    clock.advance(days=16)
    refreshed = container.access_service.expire_stale_trial(user.id)
    assert refreshed.status is SubscriptionStatus.EXPIRED


def test_status_view_for_paid_subscription(make_user, container, persistence, clock):
    user = make_user()
    persistence.activate_subscription(user.id, "cus_A", "sub_A")
    persistence.sync_stripe_subscription(
        "sub_A",
        status=SubscriptionStatus.ACTIVE,
        stripe_price_id="price_monthly",
        current_period_end=clock() + timedelta(days=9, hours=2),
    )

    view = container.access_service.get_status(user.id)
    assert view.has_active_subscription
    assert not view.is_trial_active
    assert view.trial_days_remaining == 0
    assert view.days_until_renewal == 10
    assert view.can_manage_billing
