"""
Period repository - Data access layer for focus periods and their goals.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func

from focusbot.models import FocusPeriod, Goal


class FocusPeriodRepository:
    """Repository for FocusPeriod data access"""

    @staticmethod
    def get_by_id(db: Session, period_id: int) -> Optional[FocusPeriod]:
        return db.query(FocusPeriod).filter(FocusPeriod.id == period_id).first()

    @staticmethod
    def get_active_for_user(db: Session, user_id: int, now: datetime) -> Optional[FocusPeriod]:
        """Period whose [start, end) contains now"""
        return db.query(FocusPeriod).options(
            selectinload(FocusPeriod.goals)
        ).filter(
            FocusPeriod.user_id == user_id,
            FocusPeriod.start_date <= now,
            FocusPeriod.end_date > now
        ).order_by(FocusPeriod.start_date.desc()).first()

    @staticmethod
    def get_active_in_community(db: Session, community_id: str, now: datetime) -> List[FocusPeriod]:
        """All running periods in a community, with owners and goals loaded"""
        return db.query(FocusPeriod).options(
            selectinload(FocusPeriod.goals),
            selectinload(FocusPeriod.user)
        ).filter(
            FocusPeriod.community_id == community_id,
            FocusPeriod.start_date <= now,
            FocusPeriod.end_date > now
        ).order_by(FocusPeriod.id).all()

    @staticmethod
    def get_ended_unfinalized(db: Session, community_id: str, now: datetime) -> List[FocusPeriod]:
        """Periods that ended before now and haven't had their leaderboard posted"""
        return db.query(FocusPeriod).filter(
            FocusPeriod.community_id == community_id,
            FocusPeriod.end_date < now,
            FocusPeriod.leaderboard_finalized == False
        ).order_by(FocusPeriod.end_date).all()

    @staticmethod
    def mark_finalized(db: Session, period_id: int) -> int:
        """
        Flip the finalized flag if it is still unset.

        Returns:
            1 if this call finalized the period, 0 if it was already final
        """
        return db.query(FocusPeriod).filter(
            FocusPeriod.id == period_id,
            FocusPeriod.leaderboard_finalized == False
        ).update({FocusPeriod.leaderboard_finalized: True}, synchronize_session=False)

    @staticmethod
    def create(db: Session, period: FocusPeriod) -> FocusPeriod:
        db.add(period)
        db.flush()
        return period


class GoalRepository:
    """Repository for Goal data access"""

    @staticmethod
    def get_by_position(db: Session, period_id: int, position: int) -> Optional[Goal]:
        return db.query(Goal).filter(
            Goal.period_id == period_id,
            Goal.position == position
        ).first()

    @staticmethod
    def next_position(db: Session, period_id: int) -> int:
        """max(position) + 1 within the period"""
        current = db.query(func.max(Goal.position)).filter(
            Goal.period_id == period_id
        ).scalar()
        return (current or 0) + 1

    @staticmethod
    def mark_completed(db: Session, goal_id: int, now: datetime) -> int:
        """
        Complete a goal only if it's still pending.

        Returns:
            1 if this call completed the goal, 0 if someone else already did
        """
        return db.query(Goal).filter(
            Goal.id == goal_id,
            Goal.completed == False
        ).update(
            {Goal.completed: True, Goal.completed_at: now},
            synchronize_session=False
        )

    @staticmethod
    def create(db: Session, goal: Goal) -> Goal:
        db.add(goal)
        db.flush()
        return goal
