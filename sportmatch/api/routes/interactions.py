"""
Interaction endpoints: swipes and swipe statistics.
"""
import logging
from fastapi import APIRouter, Depends

from sportmatch.api.dependencies import get_interaction_ledger
from sportmatch.core.auth_dependency import get_current_user
from sportmatch.db.models.user import User
from sportmatch.schemas.interaction import (
    InteractionCreate,
    InteractionResponse,
    InteractionStatsResponse,
)
from sportmatch.services.interaction_service import InteractionLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interactions", tags=["Interactions"])


@router.post("", response_model=InteractionResponse, status_code=201)
def create_interaction(
    request: InteractionCreate,
    current_user: User = Depends(get_current_user),
    ledger: InteractionLedger = Depends(get_interaction_ledger),
):
    """
    Record interest or pass on another user.

    Free users are limited to a number of interactions per trailing 24 hours.
    Returns whether this swipe completed a mutual interest.
    """
    result = ledger.record_interaction(current_user.id, request.target_user_id, request.action)
    return {
        "match_created": result.match_created,
        "match_id": result.match_id,
        "remaining": result.remaining,
        "is_premium": result.is_premium,
    }


@router.get("/stats", response_model=InteractionStatsResponse)
def interaction_stats(
    current_user: User = Depends(get_current_user),
    ledger: InteractionLedger = Depends(get_interaction_ledger),
):
    """Swipes sent and received, active matches and today's allowance."""
    return ledger.stats(current_user.id)
