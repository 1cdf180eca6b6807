"""
Interaction model: a directional interest/pass signal from one user to another.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint
from sportmatch.db.base import Base, utcnow


class InteractionAction(str, enum.Enum):
    INTEREST = "interest"
    PASS = "pass"


class Interaction(Base):
    """
    Immutable once written. The unique constraint on the ordered pair is what
    rejects a concurrent duplicate swipe.
    """
    __tablename__ = "interactions"

    id = Column(Integer, primary_key=True, index=True)
    swiper_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    swiped_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(16), nullable=False)  # interest | pass
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("swiper_id", "swiped_id", name="uq_interaction_pair"),
        CheckConstraint("swiper_id <> swiped_id", name="chk_interaction_no_self"),
        # Sliding-window allowance counts
        Index("idx_interaction_swiper_created", "swiper_id", "created_at"),
    )
