"""
User repository - Data access layer for User model.
Methods flush but never commit; the calling service owns the transaction.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from focusbot.models import User


class UserRepository:
    """Repository for User data access"""

    @staticmethod
    def get_by_id(db: Session, user_id: int, for_update: bool = False) -> Optional[User]:
        """Get user by ID, optionally locking the row"""
        query = db.query(User).filter(User.id == user_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_by_account(db: Session, account_id: str, community_id: str) -> Optional[User]:
        """Get user by external account within a community"""
        return db.query(User).filter(
            User.account_id == account_id,
            User.community_id == community_id
        ).first()

    @staticmethod
    def create(db: Session, user: User) -> User:
        db.add(user)
        db.flush()
        return user

    @staticmethod
    def add_points(db: Session, user_id: int, amount: int, now: datetime) -> int:
        """
        Increment a user's lifetime total in a single UPDATE.

        Returns:
            Number of rows updated (0 if the user doesn't exist)
        """
        return db.query(User).filter(User.id == user_id).update(
            {
                User.total_points: User.total_points + amount,
                User.points_updated_at: now,
            },
            synchronize_session=False
        )

    @staticmethod
    def get_community_ids(db: Session) -> List[str]:
        """All communities that have at least one user"""
        rows = db.query(User.community_id).distinct().order_by(User.community_id).all()
        return [row[0] for row in rows]
