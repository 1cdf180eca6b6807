"""
Unit tests for entitlement gating: premium status and the sliding daily allowance.
"""
from datetime import timedelta

import pytest

from sportmatch.core.errors import EntitlementDenied
from sportmatch.core.gating import EntitlementGate
from sportmatch.core.plan_limits import ADVANCED_FILTERS, DIRECT_CONTACT, is_premium_feature
from sportmatch.db.models.interaction import Interaction
from sportmatch.db.models.profile import Team

from conftest import create_profile, create_subscription


def add_interactions(db, swiper, targets, created_at):
    for target in targets:
        db.add(Interaction(swiper_id=swiper.id, swiped_id=target.id, action="pass", created_at=created_at))
    db.commit()


@pytest.fixture
def teams(db):
    return [create_profile(db, Team, f"team{i}@example.com", name=f"Team {i}") for i in range(12)]


def test_free_user_gets_full_allowance(db, athlete, now):
    allowance = EntitlementGate(db).check_allowance(athlete.id, now)

    assert allowance.allowed is True
    assert allowance.used == 0
    assert allowance.limit == 10
    assert allowance.remaining == 10
    assert allowance.is_premium is False


def test_allowance_denied_at_limit(db, athlete, teams, now):
    add_interactions(db, athlete, teams[:10], now - timedelta(hours=1))

    allowance = EntitlementGate(db).check_allowance(athlete.id, now)

    assert allowance.allowed is False
    assert allowance.used == 10
    assert allowance.remaining == 0


def test_allowance_window_slides(db, athlete, teams, now):
    add_interactions(db, athlete, teams[:10], now - timedelta(hours=25))

    allowance = EntitlementGate(db).check_allowance(athlete.id, now)

    assert allowance.allowed is True
    assert allowance.used == 0


def test_interaction_exactly_24h_old_still_counts(db, athlete, teams, now):
    add_interactions(db, athlete, teams[:1], now - timedelta(hours=24))

    assert EntitlementGate(db).count_recent_interactions(athlete.id, now) == 1


def test_premium_user_is_unrestricted(db, athlete, teams, plan, now):
    create_subscription(db, athlete, plan, status="active")
    add_interactions(db, athlete, teams[:11], now - timedelta(minutes=5))

    allowance = EntitlementGate(db).check_allowance(athlete.id, now)

    assert allowance.allowed is True
    assert allowance.is_premium is True
    assert allowance.remaining is None
    assert allowance.to_dict()["limit"] is None


def test_lapsed_active_subscription_is_not_premium(db, athlete, plan, now):
    create_subscription(db, athlete, plan, status="active", end=now - timedelta(seconds=1))

    assert EntitlementGate(db).is_premium(athlete.id, now) is False


def test_subscription_ending_now_is_still_premium(db, athlete, plan, now):
    create_subscription(db, athlete, plan, status="active", end=now)

    assert EntitlementGate(db).is_premium(athlete.id, now) is True


@pytest.mark.parametrize("status", ["pending", "cancelled", "expired", "payment_failed"])
def test_non_active_statuses_are_not_premium(db, athlete, plan, now, status):
    create_subscription(db, athlete, plan, status=status)

    assert EntitlementGate(db).is_premium(athlete.id, now) is False


def test_require_premium_denies_free_user(db, athlete, now):
    with pytest.raises(EntitlementDenied) as exc_info:
        EntitlementGate(db).require_premium(athlete.id, DIRECT_CONTACT, now)

    assert exc_info.value.code == "entitlement_denied"
    assert exc_info.value.status_code == 403


def test_require_premium_allows_premium_user(db, athlete, plan, now):
    create_subscription(db, athlete, plan, status="active")

    EntitlementGate(db).require_premium(athlete.id, ADVANCED_FILTERS, now)


def test_premium_features():
    assert is_premium_feature(ADVANCED_FILTERS)
    assert is_premium_feature(DIRECT_CONTACT)
    assert not is_premium_feature("discover")
