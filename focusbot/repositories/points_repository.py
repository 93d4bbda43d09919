"""
Points repository - Data access layer for sprint subtotals and leaderboard reads.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_, func

from focusbot.models import User, FocusPeriod, Goal, SprintPoints


class SprintPointsRepository:
    """Repository for SprintPoints data access"""

    @staticmethod
    def get(db: Session, period_id: int, user_id: int) -> Optional[SprintPoints]:
        """Get sprint subtotal for a (period, user) pair"""
        return db.query(SprintPoints).filter(
            SprintPoints.period_id == period_id,
            SprintPoints.user_id == user_id
        ).first()

    @staticmethod
    def add_points(db: Session, period_id: int, user_id: int, amount: int, now: datetime) -> int:
        """
        Increment an existing sprint row in a single UPDATE.

        Returns:
            Number of rows updated (0 when the row doesn't exist yet)
        """
        return db.query(SprintPoints).filter(
            SprintPoints.period_id == period_id,
            SprintPoints.user_id == user_id
        ).update(
            {
                SprintPoints.points: SprintPoints.points + amount,
                SprintPoints.points_updated_at: now,
            },
            synchronize_session=False
        )

    @staticmethod
    def create(db: Session, sprint: SprintPoints) -> SprintPoints:
        db.add(sprint)
        db.flush()
        return sprint


class LeaderboardRepository:
    """Aggregating reads behind the leaderboards"""

    @staticmethod
    def all_time_rows(db: Session, community_id: str, limit: int) -> list:
        """
        Users with positive lifetime points, best first.

        Rows: (user_id, account_id, username, points, reached_at,
               goals_completed, last_completed_at)
        """
        goals_completed = func.count(func.distinct(Goal.id))
        last_completed_at = func.max(Goal.completed_at)

        return db.query(
            User.id,
            User.account_id,
            User.username,
            User.total_points,
            User.points_updated_at,
            goals_completed,
            last_completed_at,
        ).outerjoin(
            FocusPeriod, FocusPeriod.user_id == User.id
        ).outerjoin(
            Goal, and_(Goal.period_id == FocusPeriod.id, Goal.completed == True)
        ).filter(
            User.community_id == community_id,
            User.total_points > 0
        ).group_by(
            User.id, User.account_id, User.username,
            User.total_points, User.points_updated_at
        ).order_by(
            User.total_points.desc(),
            User.points_updated_at.asc(),
            User.id.asc()
        ).limit(limit).all()

    @staticmethod
    def sprint_rows(db: Session, community_id: str, as_of: datetime, limit: int) -> list:
        """
        Sprint subtotals whose cached window contains `as_of`, best first.

        Rows: (user_id, account_id, username, points, reached_at,
               goals_completed, last_completed_at)
        """
        goals_completed = func.count(func.distinct(Goal.id))
        last_completed_at = func.max(Goal.completed_at)

        return db.query(
            User.id,
            User.account_id,
            User.username,
            SprintPoints.points,
            SprintPoints.points_updated_at,
            goals_completed,
            last_completed_at,
        ).select_from(
            SprintPoints
        ).join(
            User, User.id == SprintPoints.user_id
        ).outerjoin(
            Goal, and_(Goal.period_id == SprintPoints.period_id, Goal.completed == True)
        ).filter(
            SprintPoints.community_id == community_id,
            SprintPoints.window_start <= as_of,
            SprintPoints.window_end > as_of,
            SprintPoints.points > 0
        ).group_by(
            SprintPoints.id, User.id, User.account_id, User.username,
            SprintPoints.points, SprintPoints.points_updated_at
        ).order_by(
            SprintPoints.points.desc(),
            SprintPoints.points_updated_at.asc(),
            User.id.asc()
        ).limit(limit).all()
