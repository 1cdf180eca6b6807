"""
Stripe webhook endpoint.

The raw body is verified against the Stripe-Signature header before anything
is parsed. Every authenticated event is acknowledged with 200, including
duplicates and events that no longer apply.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request

from sportmatch.api.dependencies import get_payment_gateway, get_subscription_ledger
from sportmatch.schemas.subscription import ErrorResponse, WebhookResponse
from sportmatch.services.stripe_service import PaymentGateway
from sportmatch.services.subscription_service import SubscriptionLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["Subscription Webhook"])


async def raw_body(request: Request) -> bytes:
    """Undecoded request body, as signed by Stripe."""
    return await request.body()


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid signature or payload"}},
)
def stripe_webhook(
    payload: bytes = Depends(raw_body),
    stripe_signature: Optional[str] = Header(None),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    ledger: SubscriptionLedger = Depends(get_subscription_ledger),
):
    # Raises InvalidSignature (400) before any state is touched
    event = gateway.parse_event(payload, stripe_signature)

    outcome = ledger.apply_event(event)
    if outcome.reason:
        logger.info(f"Webhook event not applied: {event.event_type}, id={event.event_id}, reason={outcome.reason}")

    return {"received": True, "applied": outcome.applied}
