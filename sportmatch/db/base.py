from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Note: Models are imported in sportmatch.db.models to avoid circular imports
# All models must import Base from this module


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column in this schema stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
