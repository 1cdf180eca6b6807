"""
Pydantic schemas for interaction endpoints.
"""
from typing import Optional
from pydantic import BaseModel, Field


class InteractionCreate(BaseModel):
    """Request schema for recording a swipe."""
    target_user_id: int = Field(..., description="User being swiped on")
    action: str = Field(..., description="Swipe action: 'interest' or 'pass'")

    class Config:
        json_schema_extra = {
            "example": {
                "target_user_id": 42,
                "action": "interest"
            }
        }


class InteractionResponse(BaseModel):
    """Response schema for a recorded swipe."""
    match_created: bool = Field(..., description="Whether this swipe completed a mutual interest")
    match_id: Optional[int] = Field(None, description="Match ID when a match exists for the pair")
    remaining: Optional[int] = Field(None, description="Interactions left in the trailing 24h (None for Premium)")
    is_premium: bool = Field(..., description="Whether the user currently has Premium")

    class Config:
        json_schema_extra = {
            "example": {
                "match_created": True,
                "match_id": 7,
                "remaining": 8,
                "is_premium": False
            }
        }


class ActionTotals(BaseModel):
    total: int
    interest: int
    pass_: int = Field(..., alias="pass")

    class Config:
        populate_by_name = True


class AllowanceResponse(BaseModel):
    allowed: bool
    used: int = Field(..., description="Interactions in the trailing 24h")
    limit: Optional[int] = Field(None, description="Daily limit (None for Premium)")
    remaining: Optional[int] = Field(None, description="Remaining interactions (None for Premium)")
    is_premium: bool


class InteractionStatsResponse(BaseModel):
    """Response schema for GET /interactions/stats."""
    sent: ActionTotals
    received: ActionTotals
    matches: int = Field(..., description="Active matches")
    allowance: AllowanceResponse
