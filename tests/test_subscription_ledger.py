"""
Unit tests for the subscription state machine.
"""
from datetime import timedelta

import pytest

from sportmatch.core.errors import DuplicateSubscription, NotFound, PaymentGatewayError
from sportmatch.core.gating import EntitlementGate
from sportmatch.db.models.payment_event import ProcessedEvent
from sportmatch.db.models.subscription import Subscription
from sportmatch.services.stripe_service import (
    CheckoutSession,
    PaymentEvent,
    PaymentEventKind,
    PaymentGateway,
)
from sportmatch.services.subscription_service import SubscriptionLedger

from conftest import create_subscription


class FakeGateway(PaymentGateway):
    def __init__(self, fail_checkout=False, fail_cancel=False):
        self.fail_checkout = fail_checkout
        self.fail_cancel = fail_cancel
        self.sessions = []
        self.cancelled = []

    def create_checkout_session(self, subscription, plan, user):
        if self.fail_checkout:
            raise PaymentGatewayError("card network down")
        self.sessions.append(subscription.id)
        return CheckoutSession(session_id=f"cs_test_{subscription.id}", url=f"https://checkout.test/{subscription.id}")

    def parse_event(self, payload, signature):
        raise NotImplementedError

    def cancel_subscription(self, stripe_subscription_id):
        if self.fail_cancel:
            raise PaymentGatewayError()
        self.cancelled.append(stripe_subscription_id)


def completed(subscription_id, event_id="evt_completed", stripe_subscription_id="sub_123"):
    return PaymentEvent(
        event_id=event_id,
        event_type="checkout.session.completed",
        kind=PaymentEventKind.CHECKOUT_COMPLETED,
        subscription_id=subscription_id,
        stripe_subscription_id=stripe_subscription_id,
        stripe_customer_id="cus_123",
    )


def invoice(kind, event_id, stripe_subscription_id="sub_123"):
    event_type = "invoice.payment_succeeded" if kind == PaymentEventKind.PAYMENT_SUCCEEDED else "invoice.payment_failed"
    return PaymentEvent(event_id=event_id, event_type=event_type, kind=kind, stripe_subscription_id=stripe_subscription_id)


def deleted(event_id="evt_deleted", stripe_subscription_id="sub_123"):
    return PaymentEvent(
        event_id=event_id,
        event_type="customer.subscription.deleted",
        kind=PaymentEventKind.SUBSCRIPTION_DELETED,
        stripe_subscription_id=stripe_subscription_id,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def ledger(db, gateway):
    return SubscriptionLedger(db, gateway=gateway)


@pytest.fixture
def active(db, ledger, athlete, plan, now):
    result = ledger.start_checkout(athlete, plan.id, now)
    ledger.apply_event(completed(result.subscription_id), now)
    return db.get(Subscription, result.subscription_id)


def test_start_checkout_creates_pending(db, ledger, gateway, athlete, plan, now):
    result = ledger.start_checkout(athlete, plan.id, now)

    sub = db.get(Subscription, result.subscription_id)
    assert sub.status == "pending"
    assert sub.start_date == now
    assert sub.end_date == now + timedelta(days=30)
    assert sub.stripe_session_id == result.session_id
    assert result.checkout_url == f"https://checkout.test/{sub.id}"
    assert gateway.sessions == [sub.id]


def test_start_checkout_unknown_plan(ledger, athlete, now):
    with pytest.raises(NotFound):
        ledger.start_checkout(athlete, 999, now)


def test_start_checkout_rejects_second_open_subscription(ledger, athlete, plan, now):
    ledger.start_checkout(athlete, plan.id, now)

    with pytest.raises(DuplicateSubscription):
        ledger.start_checkout(athlete, plan.id, now)


def test_open_subscription_index_rejects_concurrent_insert(db, ledger, athlete, plan, now, monkeypatch):
    ledger.start_checkout(athlete, plan.id, now)
    monkeypatch.setattr(ledger.repository, "find_open", lambda user_id: None)

    with pytest.raises(DuplicateSubscription):
        ledger.start_checkout(athlete, plan.id, now)

    assert db.query(Subscription).count() == 1


def test_checkout_failure_leaves_no_record(db, athlete, plan, now):
    ledger = SubscriptionLedger(db, gateway=FakeGateway(fail_checkout=True))

    with pytest.raises(PaymentGatewayError):
        ledger.start_checkout(athlete, plan.id, now)

    assert db.query(Subscription).count() == 0


class BrokenGateway(FakeGateway):
    def create_checkout_session(self, subscription, plan, user):
        raise RuntimeError("connection reset")


def test_unexpected_gateway_error_is_wrapped(db, athlete, plan, now):
    ledger = SubscriptionLedger(db, gateway=BrokenGateway())

    with pytest.raises(PaymentGatewayError):
        ledger.start_checkout(athlete, plan.id, now)

    assert db.query(Subscription).count() == 0


def test_checkout_completed_activates(db, active, athlete, now):
    assert active.status == "active"
    assert active.stripe_subscription_id == "sub_123"
    assert active.stripe_customer_id == "cus_123"
    assert EntitlementGate(db).is_premium(athlete.id, now) is True


def test_duplicate_event_applied_once(db, ledger, athlete, plan, now):
    result = ledger.start_checkout(athlete, plan.id, now)

    first = ledger.apply_event(completed(result.subscription_id), now)
    second = ledger.apply_event(completed(result.subscription_id), now)

    assert first.applied is True
    assert second.applied is False
    assert second.duplicate is True
    assert db.query(ProcessedEvent).count() == 1


def test_duplicate_renewal_extends_once(db, ledger, active, now):
    later = now + timedelta(days=20)

    ledger.apply_event(invoice(PaymentEventKind.PAYMENT_SUCCEEDED, "evt_inv_1"), later)
    ledger.apply_event(invoice(PaymentEventKind.PAYMENT_SUCCEEDED, "evt_inv_1"), later + timedelta(days=1))

    db.refresh(active)
    assert active.end_date == later + timedelta(days=30)


def test_renewal_never_shortens_end_date(db, ledger, active, now):
    original_end = active.end_date

    outcome = ledger.apply_event(invoice(PaymentEventKind.PAYMENT_SUCCEEDED, "evt_inv_early"), now - timedelta(days=5))

    db.refresh(active)
    assert outcome.applied is True
    assert active.end_date == original_end


def test_payment_failed_then_renewal_reactivates(db, ledger, active, athlete, now):
    ledger.apply_event(invoice(PaymentEventKind.PAYMENT_FAILED, "evt_failed"), now)
    db.refresh(active)
    assert active.status == "payment_failed"
    assert EntitlementGate(db).is_premium(athlete.id, now) is False

    ledger.apply_event(invoice(PaymentEventKind.PAYMENT_SUCCEEDED, "evt_paid"), now + timedelta(days=1))
    db.refresh(active)
    assert active.status == "active"
    assert EntitlementGate(db).is_premium(athlete.id, now + timedelta(days=1)) is True


def test_completed_event_for_non_pending_is_stale(db, ledger, active, now):
    outcome = ledger.apply_event(completed(active.id, event_id="evt_completed_again"), now)

    assert outcome.applied is False
    assert outcome.reason == "stale"
    assert db.get(ProcessedEvent, "evt_completed_again").applied is False


def test_event_for_unknown_provider_subscription_is_stale(ledger, now):
    outcome = ledger.apply_event(deleted(stripe_subscription_id="sub_unknown"), now)

    assert outcome.applied is False
    assert outcome.reason == "stale"


def test_unknown_event_acknowledged(db, ledger, now):
    event = PaymentEvent(event_id="evt_other", event_type="customer.created", kind=PaymentEventKind.IGNORED)

    outcome = ledger.apply_event(event, now)

    assert outcome.applied is False
    assert outcome.reason == "ignored"
    assert db.get(ProcessedEvent, "evt_other") is not None


def test_checkout_expired_frees_user_to_retry(db, ledger, athlete, plan, now):
    result = ledger.start_checkout(athlete, plan.id, now)
    event = PaymentEvent(
        event_id="evt_expired",
        event_type="checkout.session.expired",
        kind=PaymentEventKind.CHECKOUT_EXPIRED,
        subscription_id=result.subscription_id,
    )

    assert ledger.apply_event(event, now).applied is True
    assert db.get(Subscription, result.subscription_id).status == "expired"

    retry = ledger.start_checkout(athlete, plan.id, now)
    assert retry.subscription_id != result.subscription_id


def test_user_cancel_then_provider_deleted_is_noop(db, ledger, gateway, active, athlete, now):
    cancel_at = now + timedelta(days=3)

    cancelled = ledger.cancel(athlete.id, cancel_at)

    assert cancelled.status == "cancelled"
    assert cancelled.end_date == cancel_at
    assert gateway.cancelled == ["sub_123"]
    assert EntitlementGate(db).is_premium(athlete.id, cancel_at) is False

    outcome = ledger.apply_event(deleted(), cancel_at + timedelta(minutes=1))
    db.refresh(cancelled)
    assert outcome.applied is False
    assert cancelled.end_date == cancel_at


def test_provider_deleted_cancels(db, ledger, active, now):
    outcome = ledger.apply_event(deleted(), now + timedelta(days=2))

    db.refresh(active)
    assert outcome.applied is True
    assert active.status == "cancelled"
    assert active.end_date == now + timedelta(days=2)


def test_renewal_after_cancel_is_stale(db, ledger, active, athlete, now):
    ledger.cancel(athlete.id, now)

    outcome = ledger.apply_event(invoice(PaymentEventKind.PAYMENT_SUCCEEDED, "evt_late_paid"), now)

    db.refresh(active)
    assert outcome.applied is False
    assert active.status == "cancelled"


def test_new_checkout_cancels_failed_subscription(db, ledger, gateway, active, athlete, plan, now):
    ledger.apply_event(invoice(PaymentEventKind.PAYMENT_FAILED, "evt_failed"), now)
    cancel_at = now + timedelta(days=1)

    result = ledger.start_checkout(athlete, plan.id, cancel_at)

    db.refresh(active)
    assert gateway.cancelled == ["sub_123"]
    assert active.status == "cancelled"
    assert active.end_date == cancel_at
    assert db.get(Subscription, result.subscription_id).status == "pending"

    outcome = ledger.apply_event(invoice(PaymentEventKind.PAYMENT_SUCCEEDED, "evt_paid_late"), cancel_at)
    assert outcome.applied is False
    assert outcome.reason == "stale"


def test_failed_subscription_cancel_error_blocks_checkout(db, athlete, plan, now):
    ledger = SubscriptionLedger(db, gateway=FakeGateway(fail_cancel=True))
    result = ledger.start_checkout(athlete, plan.id, now)
    ledger.apply_event(completed(result.subscription_id), now)
    ledger.apply_event(invoice(PaymentEventKind.PAYMENT_FAILED, "evt_failed"), now)

    with pytest.raises(PaymentGatewayError):
        ledger.start_checkout(athlete, plan.id, now)

    assert db.query(Subscription).count() == 1
    assert db.get(Subscription, result.subscription_id).status == "payment_failed"


def test_renewal_racing_new_checkout_is_stale(db, ledger, active, athlete, plan, now, monkeypatch):
    ledger.apply_event(invoice(PaymentEventKind.PAYMENT_FAILED, "evt_failed"), now)
    # The renewal lands before the new checkout has cancelled the failed row
    monkeypatch.setattr(ledger, "_close_failed", lambda user_id, now: None)
    ledger.start_checkout(athlete, plan.id, now)

    outcome = ledger.apply_event(invoice(PaymentEventKind.PAYMENT_SUCCEEDED, "evt_paid_late"), now)

    db.refresh(active)
    assert outcome.applied is False
    assert outcome.reason == "stale"
    assert active.status == "payment_failed"
    assert db.get(ProcessedEvent, "evt_paid_late") is not None


def test_cancel_failure_at_provider_changes_nothing(db, athlete, plan, now):
    gateway = FakeGateway(fail_cancel=True)
    ledger = SubscriptionLedger(db, gateway=gateway)
    result = ledger.start_checkout(athlete, plan.id, now)
    ledger.apply_event(completed(result.subscription_id), now)

    with pytest.raises(PaymentGatewayError):
        ledger.cancel(athlete.id, now)

    assert db.get(Subscription, result.subscription_id).status == "active"


def test_cancel_without_active_subscription(ledger, athlete, now):
    with pytest.raises(NotFound):
        ledger.cancel(athlete.id, now)


def test_status_lazily_expires(db, ledger, athlete, plan, now):
    sub = create_subscription(db, athlete, plan, status="active", end=now - timedelta(hours=1))

    status = ledger.status(athlete.id, now)

    assert status["is_premium"] is False
    assert status["status"] == "expired"
    assert status["plan_name"] == "Premium"
    db.refresh(sub)
    assert sub.status == "expired"


def test_status_without_subscription(ledger, athlete, now):
    status = ledger.status(athlete.id, now)

    assert status["is_premium"] is False
    assert status["status"] is None


def test_status_active(ledger, active, athlete, now):
    status = ledger.status(athlete.id, now)

    assert status["is_premium"] is True
    assert status["subscription_id"] == active.id


def test_lapsed_subscription_does_not_block_checkout(db, ledger, athlete, plan, now):
    old = create_subscription(db, athlete, plan, status="active", end=now - timedelta(days=1))

    result = ledger.start_checkout(athlete, plan.id, now)

    db.refresh(old)
    assert old.status == "expired"
    assert result.subscription_id != old.id


def test_sweep_expired(db, ledger, athlete, team, plan, now):
    lapsed = create_subscription(db, athlete, plan, status="active", end=now - timedelta(minutes=1))
    current = create_subscription(db, team, plan, status="active", end=now + timedelta(days=1))

    assert ledger.sweep_expired(now) == 1
    assert ledger.sweep_expired(now) == 0

    db.refresh(lapsed)
    db.refresh(current)
    assert lapsed.status == "expired"
    assert current.status == "active"
