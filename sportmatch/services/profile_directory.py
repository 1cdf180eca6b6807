"""
Profile directory.

Resolves user ids to their profile across the athlete, agent and team tables.
A user's profile type is a tagged variant: PROFILE_VARIANTS is the single
dispatch table for everything that differs per type (which table, who can
discover whom, which contact fields are exposed).
"""
import logging
import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import String, cast, literal, null, select, union_all
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sportmatch.core.errors import NotFound, ProfileDirectoryUnavailable
from sportmatch.db.models.profile import ProfileKind, Athlete, Agent, Team
from sportmatch.db.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileVariant:
    kind: ProfileKind
    model: type
    discovers: Tuple[ProfileKind, ...]
    contact_fields: Tuple[str, ...]


# Resolution order also breaks ties if a user somehow owns rows in two tables
PROFILE_VARIANTS: Dict[ProfileKind, ProfileVariant] = {
    ProfileKind.ATHLETE: ProfileVariant(
        kind=ProfileKind.ATHLETE,
        model=Athlete,
        discovers=(ProfileKind.TEAM, ProfileKind.AGENT),
        contact_fields=("phone",),
    ),
    ProfileKind.AGENT: ProfileVariant(
        kind=ProfileKind.AGENT,
        model=Agent,
        discovers=(ProfileKind.ATHLETE,),
        contact_fields=("phone", "agency"),
    ),
    ProfileKind.TEAM: ProfileVariant(
        kind=ProfileKind.TEAM,
        model=Team,
        discovers=(ProfileKind.ATHLETE,),
        contact_fields=("phone", "website"),
    ),
}


@dataclass
class ProfileSummary:
    user_id: int
    kind: ProfileKind
    profile_id: int
    name: str
    last_name: Optional[str]
    sport_id: int
    location_id: Optional[int]

    @property
    def variant(self) -> ProfileVariant:
        return PROFILE_VARIANTS[self.kind]

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "profile_type": self.kind.value,
            "profile_id": self.profile_id,
            "name": self.name,
            "last_name": self.last_name,
            "sport_id": self.sport_id,
            "location_id": self.location_id,
        }


def _summary_select(variant: ProfileVariant):
    model = variant.model
    last_name = model.last_name if hasattr(model, "last_name") else cast(null(), String)
    return select(
        literal(variant.kind.value, String).label("kind"),
        model.user_id.label("user_id"),
        model.id.label("profile_id"),
        model.name.label("name"),
        last_name.label("last_name"),
        model.sport_id.label("sport_id"),
        model.location_id.label("location_id"),
    )


def _to_summary(row) -> ProfileSummary:
    return ProfileSummary(
        user_id=row.user_id,
        kind=ProfileKind(row.kind),
        profile_id=row.profile_id,
        name=row.name,
        last_name=row.last_name,
        sport_id=row.sport_id,
        location_id=row.location_id,
    )


class ProfileDirectory:
    """
    Read-only view over the profile tables.

    Every lookup fans out to all three tables in one UNION ALL round trip, so a
    store failure fails the whole lookup rather than returning a partial answer.
    """

    def __init__(self, db: Session):
        self.db = db

    def _execute(self, stmt, what: str):
        try:
            return self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"Profile directory lookup failed ({what}): {e}")
            raise ProfileDirectoryUnavailable() from e

    def resolve_many(self, user_ids: Iterable[int]) -> Dict[int, ProfileSummary]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}

        stmt = union_all(*[
            _summary_select(variant).where(variant.model.user_id.in_(ids))
            for variant in PROFILE_VARIANTS.values()
        ])
        rows = self._execute(stmt, f"resolve {len(ids)} users")

        order = list(PROFILE_VARIANTS)
        resolved: Dict[int, ProfileSummary] = {}
        for row in sorted(rows, key=lambda r: order.index(ProfileKind(r.kind))):
            if row.user_id in resolved:
                logger.warning(
                    f"User has more than one profile: user_id={row.user_id}, "
                    f"kept={resolved[row.user_id].kind.value}, ignored={row.kind}"
                )
                continue
            resolved[row.user_id] = _to_summary(row)
        return resolved

    def find(self, user_id: int) -> Optional[ProfileSummary]:
        return self.resolve_many([user_id]).get(user_id)

    def resolve(self, user_id: int) -> ProfileSummary:
        profile = self.find(user_id)
        if profile is None:
            raise NotFound(f"Profile not found for user {user_id}")
        return profile

    def contact(self, user_id: int) -> dict:
        """Contact card for a user: account email plus the type-specific contact fields."""
        summary = self.resolve(user_id)
        variant = summary.variant
        try:
            profile = self.db.get(variant.model, summary.profile_id)
            user = self.db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Profile directory contact lookup failed: user_id={user_id}: {e}")
            raise ProfileDirectoryUnavailable() from e

        contact = {field: getattr(profile, field) for field in variant.contact_fields}
        contact["email"] = user.email if user else None
        return {
            "user_id": user_id,
            "profile_type": summary.kind.value,
            "name": summary.name,
            "last_name": summary.last_name,
            "contact": contact,
        }

    def candidates(
        self,
        viewer: ProfileSummary,
        kinds: Iterable[ProfileKind],
        exclude_user_ids: Iterable[int] = (),
        location_id: Optional[int] = None,
        limit: int = 10,
    ) -> List[ProfileSummary]:
        """
        Discoverable profiles of the given kinds in the viewer's sport.

        Takes up to ``limit`` per kind, then shuffles and trims the merged list.
        """
        excluded = set(exclude_user_ids)
        excluded.add(viewer.user_id)

        selects = []
        for kind in kinds:
            variant = PROFILE_VARIANTS[kind]
            model = variant.model
            stmt = _summary_select(variant).where(
                model.sport_id == viewer.sport_id,
                model.user_id.notin_(excluded),
            )
            if location_id is not None:
                stmt = stmt.where(model.location_id == location_id)
            selects.append(stmt.limit(limit).subquery().select())
        if not selects:
            return []

        rows = self._execute(union_all(*selects), f"candidates for user {viewer.user_id}")
        found = [_to_summary(row) for row in rows]
        random.shuffle(found)
        return found[:limit]
