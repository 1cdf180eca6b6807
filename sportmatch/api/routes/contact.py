"""
Direct contact endpoint (Premium).
"""
import logging
from fastapi import APIRouter, Depends

from sportmatch.api.dependencies import get_profile_directory
from sportmatch.core.logging_config import sanitize_log_data
from sportmatch.core.plan_guard import require_premium
from sportmatch.core.plan_limits import DIRECT_CONTACT
from sportmatch.db.models.user import User
from sportmatch.schemas.match import ContactResponse
from sportmatch.services.profile_directory import ProfileDirectory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["Contact"])


@router.get("/{target_user_id}", response_model=ContactResponse)
def get_contact(
    target_user_id: int,
    current_user: User = Depends(require_premium(DIRECT_CONTACT)),
    directory: ProfileDirectory = Depends(get_profile_directory),
):
    """Email, phone and profile-specific contact details of another user."""
    card = directory.contact(target_user_id)
    logger.debug(f"Contact card for user_id={target_user_id}: {sanitize_log_data(card['contact'])}")
    logger.info(f"Contact details served: user_id={current_user.id}, target_user_id={target_user_id}")
    return card
