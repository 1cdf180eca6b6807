from sqlalchemy import Column, String, Boolean, DateTime
from sportmatch.db.base import Base, utcnow


class ProcessedEvent(Base):
    """
    Processed payment-provider events.

    The provider delivers at least once; the primary key on the event id turns a
    second delivery of the same event into a no-op.
    """
    __tablename__ = "payment_events"

    event_id = Column(String, primary_key=True)  # Stripe event id (evt_*)
    event_type = Column(String, nullable=False, index=True)
    applied = Column(Boolean, default=False, nullable=False)
    received_at = Column(DateTime, default=utcnow, nullable=False)
