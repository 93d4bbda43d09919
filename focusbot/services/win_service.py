"""
Win sharing.
A shared win is a small point source and feeds the monthly digest.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from focusbot.constants import DIGEST_WINS_LIMIT, WIN_CATEGORIES, WIN_CATEGORY_OTHER, WIN_POINTS
from focusbot.database import unit_of_work
from focusbot.exceptions import UserNotFoundError, ValidationException
from focusbot.models import Win
from focusbot.repositories.social_repository import WinRepository
from focusbot.repositories.user_repository import UserRepository
from focusbot.services.date_service import DateService
from focusbot.services.points_service import PointsService

logger = logging.getLogger("focusbot.wins")


def normalize_category(category: Optional[str]) -> str:
    """Unknown or empty categories become 'other'"""
    category = (category or "").strip().lower()
    return category if category in WIN_CATEGORIES else WIN_CATEGORY_OTHER


class WinService:
    """Service for shared wins"""

    def __init__(self, db: Session):
        self.db = db
        self.win_repo = WinRepository()
        self.user_repo = UserRepository()
        self.points_service = PointsService(db)
        self.date_service = DateService()

    def share_win(self, user_id: int, message: str, category: str = WIN_CATEGORY_OTHER, now: Optional[datetime] = None) -> Win:
        """Record a win and award WIN_POINTS in the same transaction"""
        message = (message or "").strip()
        if not message:
            raise ValidationException("message", "must not be empty")

        now = self.date_service.resolve(now)

        with unit_of_work(self.db, "share_win"):
            user = self.user_repo.get_by_id(self.db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)

            win = self.win_repo.create(self.db, Win(
                user_id=user_id,
                community_id=user.community_id,
                message=message,
                category=normalize_category(category),
                created_at=now
            ))
            self.points_service.credit_active_period(user_id, WIN_POINTS, now)

        logger.info(f"User {user_id} shared a {win.category} win (+{WIN_POINTS})")
        return win

    def monthly_top_wins(
        self,
        community_id: str,
        now: Optional[datetime] = None,
        limit: int = DIGEST_WINS_LIMIT
    ) -> List[Win]:
        """Most recent wins of the previous calendar month"""
        start, end = self.date_service.previous_month_range(self.date_service.resolve(now))
        return self.win_repo.get_between(self.db, community_id, start, end, limit)
