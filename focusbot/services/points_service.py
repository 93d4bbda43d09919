"""
Points ledger service.
Keeps a user's lifetime total and per-period sprint subtotal in step.
Decides nothing about *when* points are earned; callers pass the amount.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from focusbot.database import unit_of_work
from focusbot.exceptions import UserNotFoundError, ValidationException
from focusbot.models import FocusPeriod, SprintPoints
from focusbot.repositories.user_repository import UserRepository
from focusbot.repositories.points_repository import SprintPointsRepository
from focusbot.repositories.period_repository import FocusPeriodRepository
from focusbot.schemas import PointsBalance
from focusbot.services.date_service import DateService

logger = logging.getLogger("focusbot.points")


class PointsService:
    """Service for the point ledger"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository()
        self.sprint_repo = SprintPointsRepository()
        self.period_repo = FocusPeriodRepository()
        self.date_service = DateService()

    def add_points(
        self,
        user_id: int,
        amount: int,
        period_id: Optional[int] = None,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> None:
        """
        Credit points to a user as one transaction.

        Args:
            user_id: User receiving the points
            amount: Positive number of points
            period_id: Focus period to credit the sprint subtotal of (optional)
            window_start: Period start, cached on a new sprint row
            window_end: Period end, cached on a new sprint row
            now: Award time (defaults to current local time)

        Raises:
            ValidationException: amount is not a positive integer
            UserNotFoundError: user doesn't exist
            StorageFailure: persistence failed, nothing was credited
        """
        with unit_of_work(self.db, "add_points"):
            self.credit(user_id, amount, period_id, window_start, window_end, now)

    def credit(
        self,
        user_id: int,
        amount: int,
        period_id: Optional[int] = None,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> None:
        """
        Same as add_points, but inside the caller's open transaction.
        The caller commits or rolls back.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationException("amount", "must be a positive integer")

        now = self.date_service.resolve(now)

        if not self.user_repo.add_points(self.db, user_id, amount, now):
            raise UserNotFoundError(user_id)

        if period_id is None:
            logger.info(f"Credited {amount} lifetime points to user {user_id}")
            return

        if not self.sprint_repo.add_points(self.db, period_id, user_id, amount, now):
            period = self.period_repo.get_by_id(self.db, period_id)
            if period is None:
                raise ValidationException("period_id", f"period {period_id} not found")
            self.sprint_repo.create(self.db, SprintPoints(
                period_id=period_id,
                user_id=user_id,
                community_id=period.community_id,
                points=amount,
                window_start=window_start or period.start_date,
                window_end=window_end or period.end_date,
                points_updated_at=now
            ))

        logger.info(f"Credited {amount} points to user {user_id} (period {period_id})")

    def credit_active_period(self, user_id: int, amount: int, now: Optional[datetime] = None) -> Optional[FocusPeriod]:
        """
        Credit points to the user's running sprint if there is one,
        lifetime only otherwise. Runs inside the caller's transaction.

        Returns:
            The period that received the sprint credit, if any
        """
        now = self.date_service.resolve(now)
        period = self.period_repo.get_active_for_user(self.db, user_id, now)
        if period is None:
            self.credit(user_id, amount, now=now)
            return None

        self.credit(user_id, amount, period.id, period.start_date, period.end_date, now)
        return period

    def award(self, user_id: int, amount: int, now: Optional[datetime] = None) -> Optional[FocusPeriod]:
        """Manual award as its own transaction, credited to the running sprint if any"""
        with unit_of_work(self.db, "award_points"):
            period = self.credit_active_period(user_id, amount, now)
        return period

    def get_balance(self, user_id: int, period_id: Optional[int] = None) -> PointsBalance:
        """Current lifetime total and, optionally, one sprint subtotal"""
        user = self.user_repo.get_by_id(self.db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        sprint_points = None
        if period_id is not None:
            sprint = self.sprint_repo.get(self.db, period_id, user_id)
            sprint_points = sprint.points if sprint else 0

        return PointsBalance(
            user_id=user.id,
            total_points=user.total_points,
            sprint_points=sprint_points
        )
