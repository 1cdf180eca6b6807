"""
Pydantic schemas for subscription endpoints.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    """Request schema for creating checkout session."""
    plan_id: int = Field(..., description="Plan to subscribe to")

    class Config:
        json_schema_extra = {
            "example": {
                "plan_id": 1
            }
        }


class CheckoutResponse(BaseModel):
    """Response schema for checkout session creation."""
    subscription_id: int = Field(..., description="Pending subscription ID")
    session_id: str = Field(..., description="Stripe checkout session ID")
    checkout_url: Optional[str] = Field(None, description="Stripe checkout session URL")

    class Config:
        json_schema_extra = {
            "example": {
                "subscription_id": 12,
                "session_id": "cs_test_...",
                "checkout_url": "https://checkout.stripe.com/c/pay/cs_test_..."
            }
        }


class SubscriptionStatusResponse(BaseModel):
    """Response schema for GET /subscription/status."""
    is_premium: bool
    status: Optional[str] = Field(None, description="pending, active, cancelled, expired or payment_failed")
    subscription_id: Optional[int] = None
    plan_id: Optional[int] = None
    plan_name: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CancelResponse(BaseModel):
    subscription_id: int
    status: str
    end_date: datetime


class WebhookResponse(BaseModel):
    received: bool = True
    applied: bool = Field(..., description="Whether the event changed subscription state")


class SweepResponse(BaseModel):
    expired: int = Field(..., description="Subscriptions moved from active to expired")


class ErrorDetail(BaseModel):
    error: str = Field(..., description="Stable error code")
    message: str = Field(..., description="human-readable error message")


class ErrorResponse(BaseModel):
    """Error body rendered for every SportMatchError."""
    detail: ErrorDetail

    class Config:
        json_schema_extra = {
            "example": {
                "detail": {
                    "error": "duplicate_subscription",
                    "message": "You already have a pending or active subscription."
                }
            }
        }
