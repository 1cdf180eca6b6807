"""
Shared fixtures: in-memory SQLite database and small record factories.
"""
import hashlib
import hmac
import time
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sportmatch.db.base import Base
import sportmatch.db.models  # noqa: F401
from sportmatch.db.models.profile import Athlete, Agent, Team
from sportmatch.db.models.subscription import Plan, Subscription
from sportmatch.db.models.user import User


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

NOW = datetime(2026, 3, 14, 12, 0, 0)
WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def now():
    return NOW


def create_user(db, email, role="user"):
    user = User(email=email, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_profile(db, model, email, name="Test", sport_id=1, location_id=None, **fields):
    """Create a user together with one profile row of the given model."""
    user = create_user(db, email)
    profile = model(user_id=user.id, name=name, sport_id=sport_id, location_id=location_id, **fields)
    db.add(profile)
    db.commit()
    return user


def create_plan(db, name="Premium", price="9.99", stripe_price_id=None):
    plan = Plan(name=name, price=Decimal(price), currency="eur", stripe_price_id=stripe_price_id)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


def create_subscription(db, user, plan, status="active", start=NOW - timedelta(days=1), end=NOW + timedelta(days=29), **fields):
    sub = Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=status,
        start_date=start,
        end_date=end,
        **fields
    )
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


@pytest.fixture
def athlete(db):
    return create_profile(db, Athlete, "athlete@example.com", name="Lucia", last_name="Ruiz", phone="+34 611 111 111", location_id=28)


@pytest.fixture
def team(db):
    return create_profile(db, Team, "team@example.com", name="CD Norte", phone="+34 622 222 222", website="https://cdnorte.example.com", location_id=28)


@pytest.fixture
def agent(db):
    return create_profile(db, Agent, "agent@example.com", name="Marc", last_name="Soler", agency="Soler Sports", location_id=8)


@pytest.fixture
def plan(db):
    return create_plan(db)


def sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def stripe_event(event_type, obj, event_id="evt_1"):
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}
