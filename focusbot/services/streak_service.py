"""
Streak tracking service.
One check-in per user per local calendar day; consecutive days grow the
streak, any gap resets it to 1. Exact streak lengths earn milestone bonuses.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from focusbot.constants import CHECK_IN_BASE_POINTS, STREAK_MILESTONES
from focusbot.database import unit_of_work
from focusbot.exceptions import DuplicateCheckInError, StorageFailure
from focusbot.models import CheckIn, StreakState
from focusbot.repositories.streak_repository import CheckInRepository, StreakRepository
from focusbot.schemas import CheckInResult, StreakResponse
from focusbot.services.date_service import DateService
from focusbot.services.points_service import PointsService

logger = logging.getLogger("focusbot.streaks")


def milestone_bonus(streak: int) -> int:
    """Bonus for reaching exactly `streak` days; 0 when it isn't a milestone"""
    return STREAK_MILESTONES.get(streak, 0)


def next_streak_value(current: int, last_check_in: Optional[datetime], day_start: datetime) -> int:
    """
    Streak value after a check-in on the day starting at `day_start`.

    Same-day check-ins never get here; they are rejected first.
    """
    if last_check_in is None:
        return 1
    yesterday = day_start - timedelta(days=1)
    if DateService.start_of_day(last_check_in) == yesterday:
        return current + 1
    return 1


class StreakService:
    """Service for daily check-ins and streak state"""

    def __init__(self, db: Session):
        self.db = db
        self.check_in_repo = CheckInRepository()
        self.streak_repo = StreakRepository()
        self.points_service = PointsService(db)
        self.date_service = DateService()

    def record_check_in(
        self,
        user_id: int,
        community_id: str,
        when: Optional[datetime] = None,
        working_on: str = "",
        accomplished: str = "",
        blockers: str = ""
    ) -> CheckInResult:
        """
        Record a daily check-in, advance the streak and award points.

        The check-in row, streak state and point award commit together.

        Raises:
            DuplicateCheckInError: user already checked in on that day
            StorageFailure: persistence failed, nothing was applied
        """
        when = self.date_service.resolve(when)
        day_start = self.date_service.start_of_day(when)
        day = day_start.date()

        try:
            with unit_of_work(self.db, "record_check_in"):
                if self.check_in_repo.exists_for_day(self.db, user_id, community_id, day):
                    raise DuplicateCheckInError(user_id, day)

                state = self.streak_repo.get(self.db, user_id, community_id, for_update=True)
                if state is None:
                    state = self.streak_repo.create(self.db, StreakState(
                        user_id=user_id,
                        community_id=community_id,
                        current_streak=0,
                        longest_streak=0,
                        total_check_ins=0,
                        last_check_in_at=None
                    ))

                state.current_streak = next_streak_value(
                    state.current_streak, state.last_check_in_at, day_start
                )
                state.longest_streak = max(state.longest_streak, state.current_streak)
                state.total_check_ins += 1
                state.last_check_in_at = when

                bonus = milestone_bonus(state.current_streak)

                self.check_in_repo.create(self.db, CheckIn(
                    user_id=user_id,
                    community_id=community_id,
                    day=day,
                    created_at=when,
                    working_on=working_on,
                    accomplished=accomplished,
                    blockers=blockers
                ))

                points = CHECK_IN_BASE_POINTS + bonus
                self.points_service.credit_active_period(user_id, points, when)
                self.db.flush()
                streak = StreakResponse.model_validate(state)
        except StorageFailure as e:
            # Duplicate only if a check-in for that day actually committed
            if isinstance(e.__cause__, IntegrityError) and \
                    self.check_in_repo.exists_for_day(self.db, user_id, community_id, day):
                raise DuplicateCheckInError(user_id, day) from e
            raise

        if bonus:
            logger.info(f"User {user_id} hit a {streak.current_streak}-day streak (+{bonus} bonus)")
        logger.info(f"Check-in recorded for user {user_id} on {day}, streak {streak.current_streak}")

        return CheckInResult(
            day=day,
            streak=streak,
            bonus_points=bonus,
            points_awarded=points
        )

    def get_streak_state(self, user_id: int, community_id: str) -> StreakResponse:
        """Streak state for a user; zeroed when they never checked in"""
        state = self.streak_repo.get(self.db, user_id, community_id)
        if state is None:
            return StreakResponse(user_id=user_id, community_id=community_id)
        return StreakResponse.model_validate(state)

    def has_checked_in(self, user_id: int, community_id: str, now: Optional[datetime] = None) -> bool:
        now = self.date_service.resolve(now)
        return self.check_in_repo.exists_for_day(self.db, user_id, community_id, now.date())
