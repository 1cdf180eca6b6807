"""
Script to expire every active subscription past its end date.
Meant for a scheduled job; reads do the same lazily.
Run: python -m scripts.sweep_expired
"""
import logging

from sportmatch.core.config import LOG_LEVEL, LOG_DIR
from sportmatch.core.logging_config import setup_logging
from sportmatch.db.session import SessionLocal
from sportmatch.services.subscription_service import SubscriptionLedger

logger = logging.getLogger(__name__)


def main() -> int:
    db = SessionLocal()
    try:
        return SubscriptionLedger(db).sweep_expired()
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging(LOG_LEVEL, LOG_DIR)
    expired = main()
    logger.info(f"Expired subscriptions: {expired}")
