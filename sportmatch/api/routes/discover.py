"""
Discovery endpoint: candidate profiles to swipe on.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from sportmatch.api.dependencies import get_entitlement_gate, get_profile_directory, get_interaction_ledger
from sportmatch.core.auth_dependency import get_current_user
from sportmatch.core.gating import EntitlementGate
from sportmatch.core.plan_limits import ADVANCED_FILTERS
from sportmatch.db.models.profile import ProfileKind
from sportmatch.db.models.user import User
from sportmatch.schemas.match import DiscoverResponse
from sportmatch.services.interaction_service import InteractionLedger
from sportmatch.services.profile_directory import ProfileDirectory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/discover", tags=["Discover"])


@router.get("", response_model=DiscoverResponse)
def discover(
    profile_type: Optional[str] = Query(None, description="Narrow to one profile type (Premium)"),
    location_id: Optional[int] = Query(None, description="Only profiles in this location (Premium)"),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    directory: ProfileDirectory = Depends(get_profile_directory),
    gate: EntitlementGate = Depends(get_entitlement_gate),
    ledger: InteractionLedger = Depends(get_interaction_ledger),
):
    """
    Same-sport profiles the user has not swiped on yet.

    Athletes see teams and agents; teams and agents see athletes.
    """
    viewer = directory.resolve(current_user.id)
    kinds = list(viewer.variant.discovers)

    if profile_type is not None or location_id is not None:
        gate.require_premium(current_user.id, ADVANCED_FILTERS)

    if profile_type is not None:
        allowed = [kind.value for kind in kinds]
        if profile_type not in allowed:
            raise HTTPException(
                status_code=400,
                detail=f"profile_type must be one of {allowed} for a {viewer.kind.value} profile"
            )
        kinds = [ProfileKind(profile_type)]

    swiped = ledger.swiped_ids(current_user.id)
    found = directory.candidates(
        viewer,
        kinds,
        exclude_user_ids=swiped,
        location_id=location_id,
        limit=limit,
    )

    logger.debug(f"Discover: user_id={current_user.id}, kinds={[k.value for k in kinds]}, found={len(found)}")

    return {
        "users": [profile.to_dict() for profile in found],
        "user_profile_type": viewer.kind.value,
        "count": len(found),
    }
