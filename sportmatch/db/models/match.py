"""
Match model: a symmetric record for two users with mutual interest.
"""
import enum
from typing import Tuple

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sportmatch.db.base import Base, utcnow


class MatchState(str, enum.Enum):
    ACTIVE = "active"
    ENDED = "ended"


class Match(Base):
    """Stored once per unordered pair as (user_lo, user_hi) with user_lo < user_hi."""
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    user_lo = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_hi = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    state = Column(String(16), default=MatchState.ACTIVE.value, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("user_lo", "user_hi", name="uq_match_pair"),
        CheckConstraint("user_lo < user_hi", name="chk_match_canonical_pair"),
    )

    @staticmethod
    def canonical_pair(user_a: int, user_b: int) -> Tuple[int, int]:
        return (user_a, user_b) if user_a < user_b else (user_b, user_a)

    def counterpart(self, user_id: int) -> int:
        return self.user_hi if self.user_lo == user_id else self.user_lo

    def __repr__(self) -> str:
        return f"<Match(id={self.id}, user_lo={self.user_lo}, user_hi={self.user_hi}, state={self.state})>"
