"""
Subscription endpoints: checkout, cancel, status and the expiry sweep.
"""
import logging
from fastapi import APIRouter, Depends

from sportmatch.api.dependencies import get_subscription_ledger
from sportmatch.core.auth_dependency import get_current_user
from sportmatch.core.plan_guard import require_admin
from sportmatch.db.models.user import User
from sportmatch.schemas.subscription import (
    CheckoutRequest,
    CheckoutResponse,
    CancelResponse,
    ErrorResponse,
    SubscriptionStatusResponse,
    SweepResponse,
)
from sportmatch.services.subscription_service import SubscriptionLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["Subscription"])


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    status_code=201,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown plan"},
        409: {"model": ErrorResponse, "description": "Pending or active subscription exists"},
        503: {"model": ErrorResponse, "description": "Payment provider unavailable"},
    },
)
def create_checkout(
    request: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    ledger: SubscriptionLedger = Depends(get_subscription_ledger),
):
    """
    Start a Premium subscription.

    Creates a pending subscription and a Stripe Checkout session for it.
    Fails with 409 while the user already has a pending or active subscription.
    """
    result = ledger.start_checkout(current_user, request.plan_id)
    return {
        "subscription_id": result.subscription_id,
        "session_id": result.session_id,
        "checkout_url": result.checkout_url,
    }


@router.post(
    "/cancel",
    response_model=CancelResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No active subscription"},
        503: {"model": ErrorResponse, "description": "Payment provider unavailable"},
    },
)
def cancel_subscription(
    current_user: User = Depends(get_current_user),
    ledger: SubscriptionLedger = Depends(get_subscription_ledger),
):
    """Cancel the active subscription. Premium access ends immediately."""
    subscription = ledger.cancel(current_user.id)
    return {
        "subscription_id": subscription.id,
        "status": subscription.status,
        "end_date": subscription.end_date,
    }


@router.get("/status", response_model=SubscriptionStatusResponse)
def subscription_status(
    current_user: User = Depends(get_current_user),
    ledger: SubscriptionLedger = Depends(get_subscription_ledger),
):
    """Most recent subscription and whether it currently grants Premium."""
    return ledger.status(current_user.id)


@router.post("/sweep-expired", response_model=SweepResponse)
def sweep_expired(
    admin: User = Depends(require_admin),
    ledger: SubscriptionLedger = Depends(get_subscription_ledger),
):
    """Expire every active subscription past its end date (admin only)."""
    expired = ledger.sweep_expired()
    logger.info(f"Expiry sweep triggered by admin user_id={admin.id}: expired={expired}")
    return {"expired": expired}
