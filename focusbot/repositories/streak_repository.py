"""
Streak repository - Data access layer for check-ins and streak state.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from focusbot.models import CheckIn, StreakState, User


class CheckInRepository:
    """Repository for CheckIn data access"""

    @staticmethod
    def exists_for_day(db: Session, user_id: int, community_id: str, day: date) -> bool:
        return db.query(CheckIn.id).filter(
            CheckIn.user_id == user_id,
            CheckIn.community_id == community_id,
            CheckIn.day == day
        ).first() is not None

    @staticmethod
    def create(db: Session, check_in: CheckIn) -> CheckIn:
        db.add(check_in)
        db.flush()
        return check_in


class StreakRepository:
    """Repository for StreakState data access"""

    @staticmethod
    def get(db: Session, user_id: int, community_id: str, for_update: bool = False) -> Optional[StreakState]:
        query = db.query(StreakState).filter(
            StreakState.user_id == user_id,
            StreakState.community_id == community_id
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def create(db: Session, state: StreakState) -> StreakState:
        db.add(state)
        db.flush()
        return state

    @staticmethod
    def get_streak_leaders(db: Session, community_id: str, limit: int) -> list:
        """Rows: (user_id, account_id, username, current, longest, total)"""
        return db.query(
            User.id,
            User.account_id,
            User.username,
            StreakState.current_streak,
            StreakState.longest_streak,
            StreakState.total_check_ins,
        ).select_from(
            StreakState
        ).join(
            User, User.id == StreakState.user_id
        ).filter(
            StreakState.community_id == community_id,
            StreakState.total_check_ins > 0
        ).order_by(
            StreakState.current_streak.desc(),
            StreakState.total_check_ins.desc(),
            User.id.asc()
        ).limit(limit).all()

    @staticmethod
    def get_active_streaks(db: Session, community_id: str) -> List[StreakState]:
        """Streak states with a running streak, for absence reminders"""
        return db.query(StreakState).filter(
            StreakState.community_id == community_id,
            StreakState.current_streak > 0,
            StreakState.last_check_in_at.isnot(None)
        ).all()
