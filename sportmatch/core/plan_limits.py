"""
Entitlement limits configuration.

Single source of truth for what free users may do and which features need Premium.
"""
from typing import List

from sportmatch.core.config import DAILY_INTERACTION_LIMIT

# Interactions per sliding 24h window for non-premium users.
FREE_DAILY_INTERACTIONS: int = DAILY_INTERACTION_LIMIT
ALLOWANCE_WINDOW_HOURS: int = 24

# Features only an active Premium subscription unlocks
ADVANCED_FILTERS = "advanced_filters"
DIRECT_CONTACT = "direct_contact"

PREMIUM_FEATURES: List[str] = [
    ADVANCED_FILTERS,
    DIRECT_CONTACT,
]


def is_premium_feature(feature: str) -> bool:
    """Check if a feature is gated behind Premium."""
    return feature in PREMIUM_FEATURES
