"""
Match store.

Matches are keyed by the canonical (low, high) user pair. Creation is
idempotent: when two users reciprocate at the same moment both requests may try
to insert, the unique constraint lets exactly one through and the loser reads
back the winner's row.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sportmatch.db.base import utcnow
from sportmatch.db.models.match import Match, MatchState
from sportmatch.services.profile_directory import ProfileDirectory

logger = logging.getLogger(__name__)


class MatchRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_pair(self, user_lo: int, user_hi: int) -> Optional[Match]:
        return self.db.query(Match).filter(
            Match.user_lo == user_lo,
            Match.user_hi == user_hi,
        ).first()

    def insert(self, user_lo: int, user_hi: int, created_at: datetime) -> Match:
        """Insert and commit. Raises IntegrityError if the pair already exists."""
        match = Match(user_lo=user_lo, user_hi=user_hi, state=MatchState.ACTIVE.value, created_at=created_at)
        self.db.add(match)
        self.db.commit()
        self.db.refresh(match)
        return match

    def list_active(self, user_id: int) -> List[Match]:
        return self.db.query(Match).filter(
            or_(Match.user_lo == user_id, Match.user_hi == user_id),
            Match.state == MatchState.ACTIVE.value,
        ).order_by(Match.created_at.desc(), Match.id.desc()).all()

    def count_active(self, user_id: int) -> int:
        return self.db.query(func.count(Match.id)).filter(
            or_(Match.user_lo == user_id, Match.user_hi == user_id),
            Match.state == MatchState.ACTIVE.value,
        ).scalar() or 0


class MatchStore:
    def __init__(
        self,
        db: Session,
        directory: Optional[ProfileDirectory] = None,
        repository: Optional[MatchRepository] = None,
    ):
        self.db = db
        self.directory = directory or ProfileDirectory(db)
        self.repository = repository or MatchRepository(db)

    def create_if_absent(self, user_a: int, user_b: int, now: Optional[datetime] = None) -> Tuple[Match, bool]:
        """
        Create an active match for the pair unless one exists.

        Returns (match, created). "Already exists" is never an error.
        """
        user_lo, user_hi = Match.canonical_pair(user_a, user_b)

        existing = self.repository.get_pair(user_lo, user_hi)
        if existing is not None:
            return existing, False

        try:
            match = self.repository.insert(user_lo, user_hi, now or utcnow())
        except IntegrityError:
            # Lost the race against the other participant's request
            self.db.rollback()
            match = self.repository.get_pair(user_lo, user_hi)
            if match is None:
                raise
            logger.info(f"Concurrent match creation collapsed: match_id={match.id}, pair=({user_lo}, {user_hi})")
            return match, False

        logger.info(f"Match created: match_id={match.id}, pair=({user_lo}, {user_hi})")
        return match, True

    def list_active(self, user_id: int) -> List[dict]:
        """Active matches for a user, newest first, with the other user's profile."""
        matches = self.repository.list_active(user_id)
        profiles = self.directory.resolve_many(m.counterpart(user_id) for m in matches)

        results = []
        for match in matches:
            other_id = match.counterpart(user_id)
            profile = profiles.get(other_id)
            results.append({
                "match_id": match.id,
                "created_at": match.created_at,
                "other_user": {
                    "id": other_id,
                    "profile_type": profile.kind.value if profile else None,
                    "profile": profile.to_dict() if profile else None,
                },
            })
        return results

    def count_active(self, user_id: int) -> int:
        return self.repository.count_active(user_id)
