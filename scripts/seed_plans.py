"""
Script to create the Premium plan if it does not exist yet.
Run: python -m scripts.seed_plans [--price 9.99] [--stripe-price-id price_...]
"""
import argparse
import logging
from decimal import Decimal

from sportmatch.core.config import STRIPE_CURRENCY
from sportmatch.db.session import SessionLocal
from sportmatch.db.models.subscription import Plan

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_premium_plan(price: str = "9.99", stripe_price_id: str = None) -> int:
    """Create or update the Premium plan. Returns its id."""
    db = SessionLocal()
    try:
        plan = db.query(Plan).filter(Plan.name == "Premium").first()
        if plan is None:
            plan = Plan(name="Premium", price=Decimal(price), currency=STRIPE_CURRENCY)
            db.add(plan)
            logger.info(f"Creating Premium plan at {price} {STRIPE_CURRENCY}")
        else:
            plan.price = Decimal(price)
            logger.info(f"Updating Premium plan {plan.id} to {price}")

        if stripe_price_id:
            plan.stripe_price_id = stripe_price_id

        db.commit()
        db.refresh(plan)
        return plan.id
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Premium plan")
    parser.add_argument("--price", default="9.99")
    parser.add_argument("--stripe-price-id", default=None)
    args = parser.parse_args()

    plan_id = seed_premium_plan(args.price, args.stripe_price_id)
    logger.info(f"Premium plan id: {plan_id}")
