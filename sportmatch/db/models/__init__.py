"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from sportmatch.db.models.user import User
from sportmatch.db.models.profile import ProfileKind, Athlete, Agent, Team
from sportmatch.db.models.interaction import Interaction, InteractionAction
from sportmatch.db.models.match import Match, MatchState
from sportmatch.db.models.subscription import Plan, Subscription, SubscriptionStatus
from sportmatch.db.models.payment_event import ProcessedEvent

__all__ = [
    "User",
    "ProfileKind",
    "Athlete",
    "Agent",
    "Team",
    "Interaction",
    "InteractionAction",
    "Match",
    "MatchState",
    "Plan",
    "Subscription",
    "SubscriptionStatus",
    "ProcessedEvent",
]
