"""
Pydantic schemas for match and discovery endpoints.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class ProfileSummaryResponse(BaseModel):
    user_id: int
    profile_type: str = Field(..., description="athlete, agent or team")
    profile_id: int
    name: str
    last_name: Optional[str] = None
    sport_id: int
    location_id: Optional[int] = None


class MatchedUser(BaseModel):
    id: int
    profile_type: Optional[str] = None
    profile: Optional[ProfileSummaryResponse] = None


class MatchResponse(BaseModel):
    match_id: int
    created_at: datetime
    other_user: MatchedUser


class MatchListResponse(BaseModel):
    matches: List[MatchResponse]
    count: int


class DiscoverResponse(BaseModel):
    """Response schema for GET /discover."""
    users: List[ProfileSummaryResponse]
    user_profile_type: str = Field(..., description="Profile type of the requesting user")
    count: int


class ContactResponse(BaseModel):
    """Contact card for another user (Premium)."""
    user_id: int
    profile_type: str
    name: str
    last_name: Optional[str] = None
    contact: dict = Field(..., description="email plus profile-type specific contact fields")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 42,
                "profile_type": "team",
                "name": "CD Leganés",
                "last_name": None,
                "contact": {
                    "email": "scouting@example.com",
                    "phone": "+34 600 000 000",
                    "website": "https://example.com"
                }
            }
        }
