"""
Entitlement gating.

Premium status is derived from the subscription table on every call; nothing is
cached, so a subscription that lapses is reflected on the very next check.
Free users get a sliding daily allowance of interactions.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from sportmatch.core.errors import EntitlementDenied
from sportmatch.core.plan_limits import FREE_DAILY_INTERACTIONS, ALLOWANCE_WINDOW_HOURS, is_premium_feature
from sportmatch.db.base import utcnow
from sportmatch.db.models.interaction import Interaction
from sportmatch.db.models.subscription import Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)


@dataclass
class Allowance:
    allowed: bool
    used: int
    limit: int
    remaining: Optional[int]  # None means unrestricted (premium)
    is_premium: bool

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "used": self.used,
            "limit": None if self.is_premium else self.limit,
            "remaining": self.remaining,
            "is_premium": self.is_premium,
        }


class EntitlementGate:
    def __init__(self, db: Session, daily_limit: int = FREE_DAILY_INTERACTIONS):
        self.db = db
        self.daily_limit = daily_limit

    def is_premium(self, user_id: int, now: Optional[datetime] = None) -> bool:
        """True iff the user has an active subscription whose end date has not passed."""
        now = now or utcnow()
        found = self.db.query(Subscription.id).filter(
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.ACTIVE.value,
            Subscription.end_date >= now,
        ).first()
        return found is not None

    def count_recent_interactions(self, user_id: int, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        since = now - timedelta(hours=ALLOWANCE_WINDOW_HOURS)
        return self.db.query(func.count(Interaction.id)).filter(
            Interaction.swiper_id == user_id,
            Interaction.created_at >= since,
        ).scalar() or 0

    def check_allowance(self, user_id: int, now: Optional[datetime] = None) -> Allowance:
        """
        Remaining interactions in the trailing 24h window.

        The window slides with ``now``; it is not reset at midnight.
        """
        now = now or utcnow()
        premium = self.is_premium(user_id, now)
        used = self.count_recent_interactions(user_id, now)

        if premium:
            return Allowance(allowed=True, used=used, limit=self.daily_limit, remaining=None, is_premium=True)

        return Allowance(
            allowed=used < self.daily_limit,
            used=used,
            limit=self.daily_limit,
            remaining=max(0, self.daily_limit - used),
            is_premium=False,
        )

    def require_premium(self, user_id: int, feature: str, now: Optional[datetime] = None) -> None:
        """
        Enforce Premium for a gated feature.
        
        Raises EntitlementDenied if the user is not premium.
        """
        if not is_premium_feature(feature):
            logger.warning(f"require_premium called for ungated feature={feature}")

        if self.is_premium(user_id, now):
            return

        logger.info(f"Feature access denied: user_id={user_id}, feature={feature}")
        raise EntitlementDenied(f"'{feature}' requires an active Premium subscription")
