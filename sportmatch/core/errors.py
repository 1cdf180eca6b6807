"""
Domain errors for the matching engine and subscription ledger.

Every error carries a stable ``code`` that clients can switch on and the HTTP
status the API layer renders it with.
"""
from typing import Optional


class SportMatchError(Exception):
    """Base class for client-facing and service errors."""
    code = "error"
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_detail(self) -> dict:
        return {"error": self.code, "message": self.message}


class SelfInteraction(SportMatchError):
    """You cannot interact with yourself."""
    code = "self_interaction"
    status_code = 400


class InvalidAction(SportMatchError):
    """Action must be 'interest' or 'pass'."""
    code = "invalid_action"
    status_code = 400


class SportMismatch(SportMatchError):
    """Both profiles must belong to the same sport."""
    code = "sport_mismatch"
    status_code = 400


class DuplicateInteraction(SportMatchError):
    """You already interacted with this user."""
    code = "duplicate_interaction"
    status_code = 409


class RateLimited(SportMatchError):
    """Daily interaction limit reached. Upgrade to Premium for unlimited interactions."""
    code = "rate_limited"
    status_code = 403


class EntitlementDenied(SportMatchError):
    """This feature requires an active Premium subscription."""
    code = "entitlement_denied"
    status_code = 403


class DuplicateSubscription(SportMatchError):
    """You already have a pending or active subscription."""
    code = "duplicate_subscription"
    status_code = 409


class NotFound(SportMatchError):
    """Resource not found."""
    code = "not_found"
    status_code = 404


class InvalidSignature(SportMatchError):
    """Webhook signature verification failed."""
    code = "invalid_signature"
    status_code = 400


class ProfileDirectoryUnavailable(SportMatchError):
    """Profile directory is unavailable. Try again later."""
    code = "profile_directory_unavailable"
    status_code = 503


class PaymentGatewayError(SportMatchError):
    """Payment provider request failed. Try again later."""
    code = "payment_gateway_error"
    status_code = 503


class StaleTransition(SportMatchError):
    """
    Raised internally when a conditional status update matched no row.

    Never rendered to a payment provider; the ledger logs it and acknowledges
    the event.
    """
    code = "stale_transition"
    status_code = 409
