"""
Match endpoints.
"""
from fastapi import APIRouter, Depends

from sportmatch.api.dependencies import get_match_store
from sportmatch.core.auth_dependency import get_current_user
from sportmatch.db.models.user import User
from sportmatch.schemas.match import MatchListResponse
from sportmatch.services.match_service import MatchStore

router = APIRouter(prefix="/matches", tags=["Matches"])


@router.get("", response_model=MatchListResponse)
def list_matches(
    current_user: User = Depends(get_current_user),
    matches: MatchStore = Depends(get_match_store),
):
    """Active matches, newest first, with the other user's profile."""
    items = matches.list_active(current_user.id)
    return {"matches": items, "count": len(items)}
