"""
Stripe service for checkout, webhook verification and subscription cancellation.

This is the boundary to the payment provider. Webhook payloads are
signature-checked against the raw body and turned into PaymentEvent values here;
the subscription ledger never sees raw provider JSON.
"""
import enum
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from sportmatch.core.config import (
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    STRIPE_CURRENCY,
    FRONTEND_URL,
)
from sportmatch.core.errors import InvalidSignature, PaymentGatewayError
from sportmatch.db.models.subscription import Plan, Subscription
from sportmatch.db.models.user import User

logger = logging.getLogger(__name__)

# Initialize Stripe client
if STRIPE_SECRET_KEY:
    stripe.api_key = STRIPE_SECRET_KEY
else:
    logger.warning("STRIPE_SECRET_KEY not configured - Stripe features disabled")


class PaymentEventKind(str, enum.Enum):
    """Provider events the subscription ledger reacts to."""
    CHECKOUT_COMPLETED = "checkout_completed"
    CHECKOUT_EXPIRED = "checkout_expired"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    SUBSCRIPTION_DELETED = "subscription_deleted"
    IGNORED = "ignored"


STRIPE_EVENT_KINDS: Dict[str, PaymentEventKind] = {
    "checkout.session.completed": PaymentEventKind.CHECKOUT_COMPLETED,
    "checkout.session.expired": PaymentEventKind.CHECKOUT_EXPIRED,
    "invoice.payment_succeeded": PaymentEventKind.PAYMENT_SUCCEEDED,
    "invoice.payment_failed": PaymentEventKind.PAYMENT_FAILED,
    "customer.subscription.deleted": PaymentEventKind.SUBSCRIPTION_DELETED,
}


@dataclass(frozen=True)
class PaymentEvent:
    """An authenticated, parsed provider event."""
    event_id: str
    event_type: str
    kind: PaymentEventKind
    subscription_id: Optional[int] = None  # our subscriptions.id (checkout events)
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: Optional[str]


class PaymentGateway(ABC):
    """Abstract payment provider used by the subscription ledger."""

    @abstractmethod
    def create_checkout_session(self, subscription: Subscription, plan: Plan, user: User) -> CheckoutSession:
        """Open a hosted checkout for a pending subscription row."""

    @abstractmethod
    def parse_event(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        """Verify a webhook delivery and convert it to a PaymentEvent."""

    @abstractmethod
    def cancel_subscription(self, stripe_subscription_id: str) -> None:
        """Stop billing for a provider subscription."""


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    """Invoices carry the subscription at the top level on older API versions, under parent on newer ones."""
    subscription_id = invoice.get("subscription")
    if subscription_id:
        return subscription_id if isinstance(subscription_id, str) else subscription_id.get("id")

    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return details.get("subscription")


def event_from_payload(data: Dict[str, Any]) -> PaymentEvent:
    """Map a decoded Stripe event body onto a PaymentEvent."""
    event_id = data.get("id")
    event_type = data.get("type")
    if not event_id or not event_type:
        raise InvalidSignature("Invalid webhook payload: missing event id or type")

    kind = STRIPE_EVENT_KINDS.get(event_type, PaymentEventKind.IGNORED)
    obj = (data.get("data") or {}).get("object") or {}

    if kind in (PaymentEventKind.CHECKOUT_COMPLETED, PaymentEventKind.CHECKOUT_EXPIRED):
        metadata = obj.get("metadata") or {}
        return PaymentEvent(
            event_id=event_id,
            event_type=event_type,
            kind=kind,
            subscription_id=_as_int(obj.get("client_reference_id") or metadata.get("subscription_id")),
            stripe_subscription_id=obj.get("subscription"),
            stripe_customer_id=obj.get("customer"),
        )

    if kind in (PaymentEventKind.PAYMENT_SUCCEEDED, PaymentEventKind.PAYMENT_FAILED):
        return PaymentEvent(
            event_id=event_id,
            event_type=event_type,
            kind=kind,
            stripe_subscription_id=_invoice_subscription_id(obj),
            stripe_customer_id=obj.get("customer"),
        )

    if kind == PaymentEventKind.SUBSCRIPTION_DELETED:
        return PaymentEvent(
            event_id=event_id,
            event_type=event_type,
            kind=kind,
            stripe_subscription_id=obj.get("id"),
            stripe_customer_id=obj.get("customer"),
        )

    return PaymentEvent(event_id=event_id, event_type=event_type, kind=kind)


class StripeGateway(PaymentGateway):
    def __init__(
        self,
        webhook_secret: Optional[str] = STRIPE_WEBHOOK_SECRET,
        currency: str = STRIPE_CURRENCY,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ):
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.success_url = success_url or f"{FRONTEND_URL}/subscription?checkout=success"
        self.cancel_url = cancel_url or f"{FRONTEND_URL}/subscription?checkout=cancelled"

    def _line_item(self, plan: Plan) -> dict:
        if plan.stripe_price_id:
            return {"price": plan.stripe_price_id, "quantity": 1}
        return {
            "price_data": {
                "currency": plan.currency or self.currency,
                "unit_amount": int(round(float(plan.price) * 100)),
                "product_data": {"name": plan.name},
                "recurring": {"interval": "month"},
            },
            "quantity": 1,
        }

    def create_checkout_session(self, subscription: Subscription, plan: Plan, user: User) -> CheckoutSession:
        """
        Create a Stripe Checkout session for a pending subscription.

        The subscription row id travels as client_reference_id so the
        checkout.session.completed event can find the row it activates.
        """
        try:
            session = stripe.checkout.Session.create(
                mode="subscription",
                customer_email=user.email,
                line_items=[self._line_item(plan)],
                client_reference_id=str(subscription.id),
                success_url=self.success_url,
                cancel_url=self.cancel_url,
                metadata={
                    "subscription_id": str(subscription.id),
                    "user_id": str(user.id),
                    "plan_id": str(plan.id),
                },
                subscription_data={
                    "metadata": {
                        "subscription_id": str(subscription.id),
                        "user_id": str(user.id),
                    }
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: subscription_id={subscription.id}: {e}")
            raise PaymentGatewayError(f"Failed to create checkout session: {e.user_message or 'provider error'}") from e

        logger.info(f"Created checkout session: session_id={session.id}, subscription_id={subscription.id}")
        return CheckoutSession(session_id=session.id, url=session.url)

    def parse_event(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        """
        Verify and parse a Stripe webhook delivery.

        Raises:
            InvalidSignature: missing/invalid signature or malformed body
            PaymentGatewayError: webhook secret not configured
        """
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET not configured - rejecting webhook")
            raise PaymentGatewayError("Webhook secret not configured")

        if not signature:
            raise InvalidSignature("Missing Stripe-Signature header")

        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        try:
            stripe.Webhook.construct_event(body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise InvalidSignature() from e
        except ValueError as e:
            logger.warning(f"Invalid webhook payload: {e}")
            raise InvalidSignature("Invalid webhook payload") from e

        # Map from the verified body as plain JSON rather than StripeObject
        event = event_from_payload(json.loads(body))
        logger.info(f"Verified webhook event: {event.event_type}, id={event.event_id}")
        return event

    def cancel_subscription(self, stripe_subscription_id: str) -> None:
        try:
            stripe.Subscription.cancel(stripe_subscription_id)
        except stripe.InvalidRequestError as e:
            # Already cancelled at the provider
            if getattr(e, "code", None) == "resource_missing":
                logger.info(f"Stripe subscription already gone: subscription_id={stripe_subscription_id}")
                return
            logger.error(f"Stripe error cancelling subscription {stripe_subscription_id}: {e}")
            raise PaymentGatewayError("Failed to cancel subscription with the payment provider") from e
        except stripe.StripeError as e:
            logger.error(f"Stripe error cancelling subscription {stripe_subscription_id}: {e}")
            raise PaymentGatewayError("Failed to cancel subscription with the payment provider") from e

        logger.info(f"Cancelled Stripe subscription: subscription_id={stripe_subscription_id}")
