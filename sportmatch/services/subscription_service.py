"""
Subscription ledger.

State machine for a subscription row:

    pending -> active -> cancelled | expired | payment_failed
    active / payment_failed -> active      (renewal, end date extended)
    pending -> expired                     (checkout abandoned at the provider)

Every mutation is a single conditional UPDATE guarded by the statuses the
transition may start from. Provider events arrive at least once and in any
order, so an update that matches no row is a stale event: it is logged and
acknowledged, never forced and never reported back to the provider as an error.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sportmatch.core.config import SUBSCRIPTION_PERIOD_DAYS
from sportmatch.core.errors import DuplicateSubscription, NotFound, PaymentGatewayError, StaleTransition
from sportmatch.db.base import utcnow
from sportmatch.db.models.payment_event import ProcessedEvent
from sportmatch.db.models.subscription import Plan, Subscription, SubscriptionStatus, OPEN_STATUSES
from sportmatch.db.models.user import User
from sportmatch.services.stripe_service import PaymentEvent, PaymentEventKind, PaymentGateway

logger = logging.getLogger(__name__)

PENDING = SubscriptionStatus.PENDING.value
ACTIVE = SubscriptionStatus.ACTIVE.value
CANCELLED = SubscriptionStatus.CANCELLED.value
EXPIRED = SubscriptionStatus.EXPIRED.value
PAYMENT_FAILED = SubscriptionStatus.PAYMENT_FAILED.value


@dataclass
class CheckoutResult:
    subscription_id: int
    session_id: str
    checkout_url: Optional[str]


@dataclass
class EventOutcome:
    event_id: str
    event_type: str
    applied: bool
    duplicate: bool = False
    subscription_id: Optional[int] = None
    reason: Optional[str] = None


class SubscriptionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_plan(self, plan_id: int) -> Optional[Plan]:
        return self.db.get(Plan, plan_id)

    def find_open(self, user_id: int) -> Optional[Subscription]:
        return self.db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.status.in_(OPEN_STATUSES),
        ).first()

    def find_active(self, user_id: int) -> Optional[Subscription]:
        return self.db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.status == ACTIVE,
        ).first()

    def find_payment_failed(self, user_id: int) -> Optional[Subscription]:
        return self.db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.status == PAYMENT_FAILED,
        ).order_by(Subscription.id.desc()).first()

    def latest(self, user_id: int) -> Optional[Subscription]:
        return self.db.query(Subscription).filter(
            Subscription.user_id == user_id,
        ).order_by(Subscription.created_at.desc(), Subscription.id.desc()).first()

    def find_by_stripe_subscription(self, stripe_subscription_id: str) -> Optional[Subscription]:
        return self.db.query(Subscription).filter(
            Subscription.stripe_subscription_id == stripe_subscription_id,
        ).order_by(Subscription.id.desc()).first()

    def insert_pending(self, user_id: int, plan_id: int, start: datetime, end: datetime) -> Subscription:
        """Insert and commit a pending row. The open-subscription index rejects a concurrent second one."""
        subscription = Subscription(
            user_id=user_id,
            plan_id=plan_id,
            status=PENDING,
            start_date=start,
            end_date=end,
        )
        self.db.add(subscription)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateSubscription()
        self.db.refresh(subscription)
        return subscription

    def delete_pending(self, subscription_id: int) -> int:
        deleted = self.db.query(Subscription).filter(
            Subscription.id == subscription_id,
            Subscription.status == PENDING,
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def transition(self, subscription_id: int, expected: Sequence[str], values: Dict, *conditions) -> int:
        """
        Conditional UPDATE ... WHERE id = :id AND status IN (:expected).

        Does not commit. Returns the number of rows changed (0 or 1).
        """
        return self.db.query(Subscription).filter(
            Subscription.id == subscription_id,
            Subscription.status.in_(expected),
            *conditions,
        ).update(values, synchronize_session=False)

    def expire_lapsed(self, now: datetime) -> int:
        changed = self.db.query(Subscription).filter(
            Subscription.status == ACTIVE,
            Subscription.end_date < now,
        ).update({Subscription.status: EXPIRED}, synchronize_session=False)
        self.db.commit()
        return changed

    def is_event_processed(self, event_id: str) -> bool:
        return self.db.get(ProcessedEvent, event_id) is not None

    def record_event(self, event: PaymentEvent, applied: bool, received_at: datetime) -> None:
        self.db.add(ProcessedEvent(
            event_id=event.event_id,
            event_type=event.event_type,
            applied=applied,
            received_at=received_at,
        ))


class SubscriptionLedger:
    def __init__(
        self,
        db: Session,
        gateway: Optional[PaymentGateway] = None,
        repository: Optional[SubscriptionRepository] = None,
        period_days: int = SUBSCRIPTION_PERIOD_DAYS,
    ):
        self.db = db
        self.gateway = gateway
        self.repository = repository or SubscriptionRepository(db)
        self.period = timedelta(days=period_days)
        self._handlers = {
            PaymentEventKind.CHECKOUT_COMPLETED: self._activate,
            PaymentEventKind.CHECKOUT_EXPIRED: self._abandon_checkout,
            PaymentEventKind.PAYMENT_SUCCEEDED: self._renew,
            PaymentEventKind.PAYMENT_FAILED: self._mark_payment_failed,
            PaymentEventKind.SUBSCRIPTION_DELETED: self._provider_cancel,
        }

    def start_checkout(self, user: User, plan_id: int, now: Optional[datetime] = None) -> CheckoutResult:
        """
        Create a pending subscription and a provider checkout session for it.

        A subscription left in payment_failed is cancelled first. If the provider
        call fails the pending row is deleted again so the user can retry
        straight away.
        """
        now = now or utcnow()

        plan = self.repository.get_plan(plan_id)
        if plan is None:
            raise NotFound(f"Plan {plan_id} not found")

        current = self.repository.find_open(user.id)
        if current is not None and self._expire_if_lapsed(current, now):
            current = None
        if current is not None:
            raise DuplicateSubscription()

        self._close_failed(user.id, now)

        subscription = self.repository.insert_pending(user.id, plan.id, now, now + self.period)
        subscription_id = subscription.id
        logger.info(f"Pending subscription created: subscription_id={subscription_id}, user_id={user.id}, plan_id={plan.id}")

        try:
            session = self.gateway.create_checkout_session(subscription, plan, user)
        except Exception as e:
            self.repository.delete_pending(subscription_id)
            logger.warning(f"Checkout failed, pending subscription rolled back: subscription_id={subscription_id}")
            if isinstance(e, PaymentGatewayError):
                raise
            raise PaymentGatewayError() from e

        subscription.stripe_session_id = session.session_id
        self.db.commit()

        return CheckoutResult(
            subscription_id=subscription_id,
            session_id=session.session_id,
            checkout_url=session.url,
        )

    def cancel(self, user_id: int, now: Optional[datetime] = None) -> Subscription:
        """
        Cancel the user's active subscription, ending access now.

        The provider is told first; if that fails nothing changes locally. If a
        provider event already cancelled the row, the stored row is returned.
        """
        now = now or utcnow()

        subscription = self.repository.find_active(user_id)
        if subscription is not None and self._expire_if_lapsed(subscription, now):
            subscription = None
        if subscription is None:
            raise NotFound("No active subscription to cancel")

        if subscription.stripe_subscription_id and self.gateway is not None:
            self.gateway.cancel_subscription(subscription.stripe_subscription_id)

        changed = self.repository.transition(subscription.id, (ACTIVE,), self._cancel_values(now))
        self.db.commit()
        if changed:
            logger.info(f"Subscription cancelled by user: subscription_id={subscription.id}, user_id={user_id}")
        else:
            logger.info(f"Cancel found subscription already closed: subscription_id={subscription.id}")

        self.db.refresh(subscription)
        return subscription

    def status(self, user_id: int, now: Optional[datetime] = None) -> dict:
        """Current subscription view. An active row past its end date is expired on the way out."""
        now = now or utcnow()

        subscription = self.repository.latest(user_id)
        if subscription is None:
            return {
                "is_premium": False,
                "status": None,
                "subscription_id": None,
                "plan_id": None,
                "plan_name": None,
                "start_date": None,
                "end_date": None,
            }

        self._expire_if_lapsed(subscription, now)
        plan = self.repository.get_plan(subscription.plan_id)

        return {
            "is_premium": subscription.status == ACTIVE and subscription.end_date >= now,
            "status": subscription.status,
            "subscription_id": subscription.id,
            "plan_id": subscription.plan_id,
            "plan_name": plan.name if plan else None,
            "start_date": subscription.start_date,
            "end_date": subscription.end_date,
        }

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Bulk active -> expired for every row past its end date."""
        now = now or utcnow()
        changed = self.repository.expire_lapsed(now)
        logger.info(f"Expiry sweep finished: expired={changed}")
        return changed

    def apply_event(self, event: PaymentEvent, now: Optional[datetime] = None) -> EventOutcome:
        """
        Apply one authenticated provider event.

        Never raises for duplicates, stale or unknown events; the caller always
        acknowledges the delivery.
        """
        now = now or utcnow()

        if self.repository.is_event_processed(event.event_id):
            logger.info(f"Duplicate webhook event ignored: {event.event_type}, id={event.event_id}")
            return EventOutcome(event.event_id, event.event_type, applied=False, duplicate=True, reason="duplicate")

        handler = self._handlers.get(event.kind)
        subscription_id = None
        reason = None
        if handler is None:
            logger.debug(f"Unhandled webhook event type: {event.event_type}, id={event.event_id}")
            applied = False
            reason = "ignored"
        else:
            try:
                subscription_id = handler(event, now)
                applied = True
            except StaleTransition as e:
                self.db.rollback()
                logger.info(f"Stale webhook event dropped: {event.event_type}, id={event.event_id}: {e.message}")
                applied = False
                reason = "stale"

        self.repository.record_event(event, applied, now)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent delivery of the same event committed first
            self.db.rollback()
            logger.info(f"Concurrent duplicate webhook event: {event.event_type}, id={event.event_id}")
            return EventOutcome(event.event_id, event.event_type, applied=False, duplicate=True, reason="duplicate")

        if applied:
            logger.info(f"Webhook event applied: {event.event_type}, id={event.event_id}, subscription_id={subscription_id}")
        return EventOutcome(
            event.event_id,
            event.event_type,
            applied=applied,
            subscription_id=subscription_id,
            reason=reason,
        )

    def _require_change(self, changed: int, event: PaymentEvent, subscription_id: Optional[int], expected: Sequence[str]) -> int:
        if not changed:
            raise StaleTransition(
                f"subscription_id={subscription_id} not in {list(expected)} for {event.kind.value}"
            )
        return subscription_id

    def _by_stripe_subscription(self, event: PaymentEvent) -> Subscription:
        if not event.stripe_subscription_id:
            raise StaleTransition("event carries no provider subscription id")
        subscription = self.repository.find_by_stripe_subscription(event.stripe_subscription_id)
        if subscription is None:
            raise StaleTransition(f"no subscription for provider id {event.stripe_subscription_id}")
        return subscription

    def _activate(self, event: PaymentEvent, now: datetime) -> int:
        if event.subscription_id is None:
            raise StaleTransition("checkout event carries no subscription reference")
        expected = (PENDING,)
        changed = self.repository.transition(event.subscription_id, expected, {
            Subscription.status: ACTIVE,
            Subscription.stripe_subscription_id: event.stripe_subscription_id,
            Subscription.stripe_customer_id: event.stripe_customer_id,
        })
        return self._require_change(changed, event, event.subscription_id, expected)

    def _abandon_checkout(self, event: PaymentEvent, now: datetime) -> int:
        if event.subscription_id is None:
            raise StaleTransition("checkout event carries no subscription reference")
        expected = (PENDING,)
        changed = self.repository.transition(event.subscription_id, expected, {Subscription.status: EXPIRED})
        return self._require_change(changed, event, event.subscription_id, expected)

    def _renew(self, event: PaymentEvent, now: datetime) -> int:
        subscription = self._by_stripe_subscription(event)
        new_end = now + self.period
        expected = (ACTIVE, PAYMENT_FAILED)
        try:
            changed = self.repository.transition(subscription.id, expected, {
                Subscription.status: ACTIVE,
                Subscription.end_date: case(
                    (Subscription.end_date < new_end, new_end),
                    else_=Subscription.end_date,
                ),
            })
        except IntegrityError:
            # The user already opened a newer subscription; this one stays closed
            self.db.rollback()
            raise StaleTransition(f"user {subscription.user_id} already has an open subscription")
        return self._require_change(changed, event, subscription.id, expected)

    def _mark_payment_failed(self, event: PaymentEvent, now: datetime) -> int:
        subscription = self._by_stripe_subscription(event)
        expected = (ACTIVE,)
        changed = self.repository.transition(subscription.id, expected, {Subscription.status: PAYMENT_FAILED})
        return self._require_change(changed, event, subscription.id, expected)

    def _provider_cancel(self, event: PaymentEvent, now: datetime) -> int:
        subscription = self._by_stripe_subscription(event)
        expected = (ACTIVE,)
        changed = self.repository.transition(subscription.id, expected, self._cancel_values(now))
        return self._require_change(changed, event, subscription.id, expected)

    @staticmethod
    def _cancel_values(now: datetime) -> Dict:
        # end_date is clamped to now, never pushed later
        return {
            Subscription.status: CANCELLED,
            Subscription.end_date: case(
                (Subscription.end_date > now, now),
                else_=Subscription.end_date,
            ),
        }

    def _expire_if_lapsed(self, subscription: Subscription, now: datetime) -> bool:
        """Lazy expiry. Returns True if the row is (now) expired."""
        if subscription.status != ACTIVE or subscription.end_date >= now:
            return subscription.status == EXPIRED

        changed = self.repository.transition(
            subscription.id, (ACTIVE,), {Subscription.status: EXPIRED},
            Subscription.end_date < now,
        )
        self.db.commit()
        self.db.refresh(subscription)
        if changed:
            logger.info(f"Subscription expired on read: subscription_id={subscription.id}")
        return subscription.status == EXPIRED

    def _close_failed(self, user_id: int, now: datetime) -> None:
        """Cancel a payment_failed subscription, at the provider first, before a new checkout opens."""
        failed = self.repository.find_payment_failed(user_id)
        if failed is None:
            return

        failed_id = failed.id
        if failed.stripe_subscription_id and self.gateway is not None:
            self.gateway.cancel_subscription(failed.stripe_subscription_id)

        changed = self.repository.transition(failed_id, (PAYMENT_FAILED,), self._cancel_values(now))
        self.db.commit()
        if changed:
            logger.info(f"Failed subscription cancelled before new checkout: subscription_id={failed_id}, user_id={user_id}")
