from sportmatch.db.session import engine
from sportmatch.db.base import Base
import sportmatch.db.models  # noqa: F401  registers every table on Base.metadata


def init_db():
    """Create all tables directly, for local development without Alembic."""
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
