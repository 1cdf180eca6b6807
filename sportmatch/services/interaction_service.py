"""
Interaction ledger.

Records interest/pass swipes and turns mutual interest into a match. There is
no application lock: the unique constraint on the ordered (swiper, swiped) pair
rejects duplicate swipes, and MatchStore.create_if_absent absorbs the race
where both users reciprocate at the same time.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sportmatch.core.errors import (
    SelfInteraction,
    InvalidAction,
    SportMismatch,
    DuplicateInteraction,
    RateLimited,
)
from sportmatch.core.gating import EntitlementGate
from sportmatch.db.base import utcnow
from sportmatch.db.models.interaction import Interaction, InteractionAction
from sportmatch.services.match_service import MatchStore
from sportmatch.services.profile_directory import ProfileDirectory

logger = logging.getLogger(__name__)

VALID_ACTIONS = [action.value for action in InteractionAction]


@dataclass
class InteractionResult:
    interaction_id: int
    action: str
    match_created: bool
    match_id: Optional[int]
    remaining: Optional[int]
    is_premium: bool


class InteractionRepository:
    def __init__(self, db: Session):
        self.db = db

    def exists(self, swiper_id: int, swiped_id: int) -> bool:
        return self.db.query(Interaction.id).filter(
            Interaction.swiper_id == swiper_id,
            Interaction.swiped_id == swiped_id,
        ).first() is not None

    def has_interest(self, swiper_id: int, swiped_id: int) -> bool:
        return self.db.query(Interaction.id).filter(
            Interaction.swiper_id == swiper_id,
            Interaction.swiped_id == swiped_id,
            Interaction.action == InteractionAction.INTEREST.value,
        ).first() is not None

    def add(self, swiper_id: int, swiped_id: int, action: str, created_at: datetime) -> Interaction:
        """Insert and commit. A concurrent duplicate surfaces as DuplicateInteraction."""
        interaction = Interaction(
            swiper_id=swiper_id,
            swiped_id=swiped_id,
            action=action,
            created_at=created_at,
        )
        self.db.add(interaction)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateInteraction()
        self.db.refresh(interaction)
        return interaction

    def swiped_ids(self, swiper_id: int) -> List[int]:
        rows = self.db.query(Interaction.swiped_id).filter(Interaction.swiper_id == swiper_id).all()
        return [row[0] for row in rows]

    def action_counts(self, column, user_id: int) -> Dict[str, int]:
        """Per-action totals where ``column`` (swiper_id or swiped_id) equals user_id."""
        rows = self.db.query(
            Interaction.action,
            func.count(Interaction.id),
        ).filter(column == user_id).group_by(Interaction.action).all()
        return {action: int(total) for action, total in rows}


class InteractionLedger:
    def __init__(
        self,
        db: Session,
        directory: Optional[ProfileDirectory] = None,
        gate: Optional[EntitlementGate] = None,
        matches: Optional[MatchStore] = None,
        repository: Optional[InteractionRepository] = None,
    ):
        self.db = db
        self.directory = directory or ProfileDirectory(db)
        self.gate = gate or EntitlementGate(db)
        self.matches = matches or MatchStore(db, self.directory)
        self.repository = repository or InteractionRepository(db)

    def record_interaction(
        self,
        swiper_id: int,
        swiped_id: int,
        action: str,
        now: Optional[datetime] = None,
    ) -> InteractionResult:
        """
        Record a swipe and create the match if it completes a mutual interest.

        All validation and the allowance check happen before the first write.
        """
        now = now or utcnow()

        if swiper_id == swiped_id:
            raise SelfInteraction()

        if action not in VALID_ACTIONS:
            raise InvalidAction(f"action must be one of {VALID_ACTIONS}, got '{action}'")

        swiper = self.directory.resolve(swiper_id)
        swiped = self.directory.resolve(swiped_id)
        if swiper.sport_id != swiped.sport_id:
            raise SportMismatch()

        if self.repository.exists(swiper_id, swiped_id):
            raise DuplicateInteraction()

        allowance = self.gate.check_allowance(swiper_id, now)
        if not allowance.allowed:
            logger.warning(
                f"Interaction limit reached: user_id={swiper_id}, "
                f"used={allowance.used}, limit={allowance.limit}"
            )
            raise RateLimited()

        interaction = self.repository.add(swiper_id, swiped_id, action, now)

        match_id = None
        match_created = False
        if action == InteractionAction.INTEREST.value and self.repository.has_interest(swiped_id, swiper_id):
            match, _ = self.matches.create_if_absent(swiper_id, swiped_id, now)
            # Whoever observes reciprocity reports the match, including the race loser
            match_id = match.id
            match_created = True

        after = self.gate.check_allowance(swiper_id, now)

        logger.info(
            f"Interaction recorded: swiper_id={swiper_id}, swiped_id={swiped_id}, "
            f"action={action}, match_created={match_created}"
        )

        return InteractionResult(
            interaction_id=interaction.id,
            action=action,
            match_created=match_created,
            match_id=match_id,
            remaining=after.remaining,
            is_premium=after.is_premium,
        )

    def swiped_ids(self, user_id: int) -> List[int]:
        """Users this user already swiped on, whatever the action."""
        return self.repository.swiped_ids(user_id)

    def stats(self, user_id: int, now: Optional[datetime] = None) -> dict:
        """Sent/received swipe totals, active match count and today's allowance."""
        sent = self.repository.action_counts(Interaction.swiper_id, user_id)
        received = self.repository.action_counts(Interaction.swiped_id, user_id)
        allowance = self.gate.check_allowance(user_id, now)

        def _totals(counts: Dict[str, int]) -> dict:
            return {
                "total": sum(counts.values()),
                "interest": counts.get(InteractionAction.INTEREST.value, 0),
                "pass": counts.get(InteractionAction.PASS.value, 0),
            }

        return {
            "sent": _totals(sent),
            "received": _totals(received),
            "matches": self.matches.count_active(user_id),
            "allowance": allowance.to_dict(),
        }
