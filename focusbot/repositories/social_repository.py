"""
Social repository - wins, challenges and buddy pairs.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload

from focusbot.models import (
    Win, Challenge, ChallengeParticipant, BuddyPair,
)
from focusbot.constants import CHALLENGE_STATUS_ACTIVE


class WinRepository:
    """Repository for Win data access"""

    @staticmethod
    def create(db: Session, win: Win) -> Win:
        db.add(win)
        db.flush()
        return win

    @staticmethod
    def get_between(db: Session, community_id: str, start: datetime, end: datetime, limit: int) -> List[Win]:
        return db.query(Win).options(selectinload(Win.user)).filter(
            Win.community_id == community_id,
            Win.created_at >= start,
            Win.created_at < end
        ).order_by(Win.created_at.desc()).limit(limit).all()


class ChallengeRepository:
    """Repository for Challenge and ChallengeParticipant data access"""

    @staticmethod
    def get_by_id(db: Session, challenge_id: int) -> Optional[Challenge]:
        return db.query(Challenge).filter(Challenge.id == challenge_id).first()

    @staticmethod
    def get_participant(
        db: Session,
        challenge_id: int,
        user_id: int,
        for_update: bool = False
    ) -> Optional[ChallengeParticipant]:
        query = db.query(ChallengeParticipant).filter(
            ChallengeParticipant.challenge_id == challenge_id,
            ChallengeParticipant.user_id == user_id
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_expired(db: Session, now: datetime) -> List[Challenge]:
        """Active challenges whose end has passed"""
        return db.query(Challenge).options(
            selectinload(Challenge.participants)
        ).filter(
            Challenge.status == CHALLENGE_STATUS_ACTIVE,
            Challenge.end_date < now
        ).order_by(Challenge.id).all()

    @staticmethod
    def create(db: Session, challenge: Challenge) -> Challenge:
        db.add(challenge)
        db.flush()
        return challenge

    @staticmethod
    def add_participant(db: Session, participant: ChallengeParticipant) -> ChallengeParticipant:
        db.add(participant)
        db.flush()
        return participant


class BuddyRepository:
    """Repository for BuddyPair data access"""

    @staticmethod
    def get(db: Session, user_id: int, buddy_id: int) -> Optional[BuddyPair]:
        return db.query(BuddyPair).filter(
            BuddyPair.user_id == user_id,
            BuddyPair.buddy_id == buddy_id
        ).first()

    @staticmethod
    def get_watchers(db: Session, user_id: int) -> List[BuddyPair]:
        """Pairs whose owner wants to hear about user_id's progress"""
        return db.query(BuddyPair).options(selectinload(BuddyPair.user)).filter(
            BuddyPair.buddy_id == user_id,
            BuddyPair.notify == True
        ).all()

    @staticmethod
    def get_buddies(db: Session, user_id: int) -> List[BuddyPair]:
        return db.query(BuddyPair).options(selectinload(BuddyPair.buddy)).filter(
            BuddyPair.user_id == user_id
        ).all()

    @staticmethod
    def create(db: Session, pair: BuddyPair) -> BuddyPair:
        db.add(pair)
        db.flush()
        return pair

    @staticmethod
    def delete(db: Session, pair: BuddyPair) -> None:
        db.delete(pair)
        db.flush()
