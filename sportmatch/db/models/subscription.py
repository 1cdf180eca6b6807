"""
Subscription and plan models.

A subscription row is one checkout attempt. Rows are kept after they reach a
terminal status so the table doubles as billing history.
"""
import enum

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index, text
from sportmatch.db.base import Base, utcnow


class SubscriptionStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PAYMENT_FAILED = "payment_failed"


# Statuses covered by the one-open-subscription-per-user index
OPEN_STATUSES = (SubscriptionStatus.PENDING.value, SubscriptionStatus.ACTIVE.value)
_OPEN_STATUS_SQL = text("status IN ('pending', 'active')")


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=True)
    stripe_price_id = Column(String, nullable=True)  # Stripe price; inline price_data is used when empty


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False)

    status = Column(String(32), default=SubscriptionStatus.PENDING.value, nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False, index=True)

    stripe_session_id = Column(String, nullable=True, index=True)
    stripe_subscription_id = Column(String, nullable=True, index=True)
    stripe_customer_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index(
            "uq_subscription_user_open",
            "user_id",
            unique=True,
            postgresql_where=_OPEN_STATUS_SQL,
            sqlite_where=_OPEN_STATUS_SQL,
        ),
    )

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, user_id={self.user_id}, status={self.status})>"
