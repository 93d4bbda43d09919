"""
Group challenges.
Participants submit a completion, another participant validates it, and an
approved completion pays CHALLENGE_BASE_POINTS scaled by the multiplier.

Participant states: active -> pending_validation -> completed
                                         |-> active (rejected)
                    active / pending_validation -> failed (expired)
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from focusbot.constants import (
    CHALLENGE_BASE_POINTS,
    CHALLENGE_DEFAULT_MULTIPLIER,
    CHALLENGE_MAX_MULTIPLIER,
    CHALLENGE_STATUS_ACTIVE,
    CHALLENGE_STATUS_COMPLETED,
    CHALLENGE_STATUS_FAILED,
    PARTICIPANT_STATUS_ACTIVE,
    PARTICIPANT_STATUS_COMPLETED,
    PARTICIPANT_STATUS_FAILED,
    PARTICIPANT_STATUS_PENDING_VALIDATION,
)
from focusbot.database import unit_of_work
from focusbot.exceptions import (
    ChallengeNotFoundError, ChallengeStateError, UserNotFoundError, ValidationException,
)
from focusbot.models import Challenge, ChallengeParticipant
from focusbot.repositories.social_repository import ChallengeRepository
from focusbot.repositories.user_repository import UserRepository
from focusbot.services.date_service import DateService
from focusbot.services.points_service import PointsService

logger = logging.getLogger("focusbot.challenges")


def clamp_multiplier(multiplier: Optional[float]) -> float:
    """Non-positive or missing multipliers use the default; large ones are capped"""
    if multiplier is None or multiplier <= 0:
        return CHALLENGE_DEFAULT_MULTIPLIER
    return min(multiplier, CHALLENGE_MAX_MULTIPLIER)


def challenge_reward(multiplier: float) -> int:
    return int(CHALLENGE_BASE_POINTS * multiplier)


class ChallengeService:
    """Service for challenges and their participants"""

    def __init__(self, db: Session):
        self.db = db
        self.challenge_repo = ChallengeRepository()
        self.user_repo = UserRepository()
        self.points_service = PointsService(db)
        self.date_service = DateService()

    def get_challenge(self, challenge_id: int) -> Challenge:
        challenge = self.challenge_repo.get_by_id(self.db, challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(challenge_id)
        return challenge

    def create_challenge(
        self,
        creator_id: int,
        title: str,
        days: int,
        description: str = "",
        participant_ids: Optional[List[int]] = None,
        multiplier: Optional[float] = None,
        now: Optional[datetime] = None
    ) -> Challenge:
        """
        Create a challenge starting at today's midnight and lasting `days` days.
        The creator always participates.
        """
        if days < 1:
            raise ValidationException("days", "must be at least 1")

        now = self.date_service.resolve(now)
        start = self.date_service.start_of_day(now)

        with unit_of_work(self.db, "create_challenge"):
            creator = self.user_repo.get_by_id(self.db, creator_id)
            if creator is None:
                raise UserNotFoundError(creator_id)

            challenge = self.challenge_repo.create(self.db, Challenge(
                creator_id=creator_id,
                community_id=creator.community_id,
                title=title,
                description=description,
                start_date=start,
                end_date=start + timedelta(days=days),
                status=CHALLENGE_STATUS_ACTIVE,
                points_multiplier=clamp_multiplier(multiplier)
            ))

            seen = set()
            for user_id in [creator_id] + list(participant_ids or []):
                if user_id in seen:
                    continue
                seen.add(user_id)
                if self.user_repo.get_by_id(self.db, user_id) is None:
                    raise UserNotFoundError(user_id)
                self.challenge_repo.add_participant(self.db, ChallengeParticipant(
                    challenge_id=challenge.id,
                    user_id=user_id,
                    status=PARTICIPANT_STATUS_ACTIVE
                ))

        logger.info(f"Challenge {challenge.id} created by user {creator_id} with {len(seen)} participants")
        return challenge

    def submit_completion(self, challenge_id: int, user_id: int, proof_url: str = "") -> ChallengeParticipant:
        """Move an active participant to pending validation"""
        with unit_of_work(self.db, "submit_completion"):
            challenge = self.get_challenge(challenge_id)
            if challenge.status != CHALLENGE_STATUS_ACTIVE:
                raise ChallengeStateError("This challenge is no longer active")

            participant = self.challenge_repo.get_participant(self.db, challenge_id, user_id, for_update=True)
            if participant is None:
                raise ChallengeStateError("You're not a participant in this challenge")
            if participant.status != PARTICIPANT_STATUS_ACTIVE:
                raise ChallengeStateError("You've already submitted or this challenge is no longer active")

            participant.status = PARTICIPANT_STATUS_PENDING_VALIDATION
            participant.proof_url = proof_url

        logger.info(f"User {user_id} submitted completion for challenge {challenge_id}")
        return participant

    def validate_completion(
        self,
        challenge_id: int,
        validator_id: int,
        target_user_id: int,
        approved: bool = True,
        now: Optional[datetime] = None
    ) -> int:
        """
        Approve or reject another participant's submission.

        Returns:
            Points awarded (0 on rejection)
        """
        if validator_id == target_user_id:
            raise ChallengeStateError("You can't validate your own submission")

        now = self.date_service.resolve(now)

        with unit_of_work(self.db, "validate_completion"):
            challenge = self.get_challenge(challenge_id)

            participant = self.challenge_repo.get_participant(self.db, challenge_id, target_user_id, for_update=True)
            if participant is None:
                raise ChallengeStateError("Participant not found")
            if participant.status != PARTICIPANT_STATUS_PENDING_VALIDATION:
                raise ChallengeStateError("This participant hasn't submitted completion yet")

            if self.challenge_repo.get_participant(self.db, challenge_id, validator_id) is None:
                raise ChallengeStateError("You're not a participant in this challenge")

            awarded = 0
            if approved:
                participant.status = PARTICIPANT_STATUS_COMPLETED
                participant.completed_at = now
                awarded = challenge_reward(challenge.points_multiplier)
                self.points_service.credit_active_period(target_user_id, awarded, now)
            else:
                participant.status = PARTICIPANT_STATUS_ACTIVE
                participant.proof_url = ""

        logger.info(
            f"User {validator_id} {'approved' if approved else 'rejected'} "
            f"user {target_user_id} in challenge {challenge_id}"
        )
        return awarded

    def expire_challenges(self, now: Optional[datetime] = None) -> int:
        """
        Close active challenges whose end has passed.
        Unfinished participants fail; the challenge completes only if everyone finished.

        Returns:
            Number of challenges closed
        """
        now = self.date_service.resolve(now)
        closed = 0

        for challenge in self.challenge_repo.get_expired(self.db, now):
            with unit_of_work(self.db, "expire_challenge"):
                for participant in challenge.participants:
                    if participant.status in (PARTICIPANT_STATUS_ACTIVE, PARTICIPANT_STATUS_PENDING_VALIDATION):
                        participant.status = PARTICIPANT_STATUS_FAILED

                everyone_done = all(
                    p.status == PARTICIPANT_STATUS_COMPLETED for p in challenge.participants
                )
                challenge.status = CHALLENGE_STATUS_COMPLETED if everyone_done else CHALLENGE_STATUS_FAILED
            closed += 1
            logger.info(f"Challenge {challenge.id} closed as {challenge.status}")

        return closed
