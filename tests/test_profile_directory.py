"""
Unit tests for profile resolution, discovery candidates and contact cards.
"""
import pytest
from sqlalchemy.exc import OperationalError

from sportmatch.core.errors import NotFound, ProfileDirectoryUnavailable
from sportmatch.db.models.profile import ProfileKind, Athlete, Team
from sportmatch.services.profile_directory import ProfileDirectory, PROFILE_VARIANTS

from conftest import create_profile, create_user


def test_variants_discover_complementary_types():
    assert PROFILE_VARIANTS[ProfileKind.ATHLETE].discovers == (ProfileKind.TEAM, ProfileKind.AGENT)
    assert PROFILE_VARIANTS[ProfileKind.AGENT].discovers == (ProfileKind.ATHLETE,)
    assert PROFILE_VARIANTS[ProfileKind.TEAM].discovers == (ProfileKind.ATHLETE,)


def test_resolve_each_kind(db, athlete, team, agent):
    directory = ProfileDirectory(db)

    assert directory.resolve(athlete.id).kind == ProfileKind.ATHLETE
    assert directory.resolve(agent.id).kind == ProfileKind.AGENT

    team_profile = directory.resolve(team.id)
    assert team_profile.kind == ProfileKind.TEAM
    assert team_profile.last_name is None
    assert team_profile.to_dict()["profile_type"] == "team"


def test_resolve_many_batches(db, athlete, team):
    ghost = create_user(db, "ghost@example.com")

    found = ProfileDirectory(db).resolve_many([athlete.id, team.id, ghost.id])

    assert set(found) == {athlete.id, team.id}


def test_resolve_missing_profile(db):
    user = create_user(db, "noprofile@example.com")

    with pytest.raises(NotFound):
        ProfileDirectory(db).resolve(user.id)


def test_store_failure_fails_whole_lookup(db, athlete, monkeypatch):
    directory = ProfileDirectory(db)
    user_id = athlete.id

    def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    monkeypatch.setattr(db, "execute", broken_execute)

    with pytest.raises(ProfileDirectoryUnavailable) as exc_info:
        directory.resolve_many([user_id])

    assert exc_info.value.status_code == 503


def test_candidates_same_sport_complementary_kinds(db, athlete, team, agent):
    create_profile(db, Team, "hoops@example.com", name="Hoops", sport_id=2)
    create_profile(db, Athlete, "peer@example.com", name="Peer")
    directory = ProfileDirectory(db)

    viewer = directory.resolve(athlete.id)
    found = directory.candidates(viewer, viewer.variant.discovers)

    assert {p.user_id for p in found} == {team.id, agent.id}


def test_candidates_exclude_swiped_and_filter_location(db, athlete, team, agent):
    directory = ProfileDirectory(db)
    viewer = directory.resolve(athlete.id)

    assert [p.user_id for p in directory.candidates(viewer, viewer.variant.discovers, exclude_user_ids=[team.id])] == [agent.id]
    assert [p.user_id for p in directory.candidates(viewer, viewer.variant.discovers, location_id=8)] == [agent.id]


def test_candidates_respect_limit(db, athlete):
    for i in range(5):
        create_profile(db, Team, f"team{i}@example.com", name=f"Team {i}")
    directory = ProfileDirectory(db)
    viewer = directory.resolve(athlete.id)

    assert len(directory.candidates(viewer, [ProfileKind.TEAM], limit=3)) == 3


def test_contact_card_fields_per_kind(db, athlete, team, agent):
    directory = ProfileDirectory(db)

    team_card = directory.contact(team.id)
    assert team_card["contact"] == {
        "phone": "+34 622 222 222",
        "website": "https://cdnorte.example.com",
        "email": "team@example.com",
    }

    agent_card = directory.contact(agent.id)
    assert agent_card["contact"]["agency"] == "Soler Sports"
    assert agent_card["last_name"] == "Soler"

    athlete_card = directory.contact(athlete.id)
    assert set(athlete_card["contact"]) == {"phone", "email"}
