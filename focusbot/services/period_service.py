"""
Focus period service.
Lifecycle of two-week periods: start, goals, completion and the exactly-once
leaderboard finalization after a period ends.

States: none -> active (start <= now < end) -> ended -> finalized (terminal)
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from focusbot.constants import DEFAULT_LEADERBOARD_LIMIT
from focusbot.database import unit_of_work
from focusbot.exceptions import (
    AlreadyActiveError, AlreadyCompletedError, GoalNotFoundError,
    NoActivePeriodError, ValidationException,
)
from focusbot.models import FocusPeriod, Goal
from focusbot.repositories.period_repository import FocusPeriodRepository, GoalRepository
from focusbot.repositories.settings_repository import CommunityConfigRepository
from focusbot.repositories.user_repository import UserRepository
from focusbot.schemas import CompletionResponse, GoalResponse, PeriodResponse, SweepResult
from focusbot.services.buddy_service import BuddyService
from focusbot.services.date_service import DateService
from focusbot.services.estimator_service import TaskEstimator
from focusbot.services.leaderboard_service import LeaderboardService, format_leaderboard
from focusbot.services.notification_service import Notification, NotificationService
from focusbot.services.points_service import PointsService

logger = logging.getLogger("focusbot.periods")


class PeriodService:
    """Service for focus periods and their goals"""

    def __init__(
        self,
        db: Session,
        estimator: Optional[TaskEstimator] = None,
        notifier: Optional[NotificationService] = None
    ):
        self.db = db
        self._estimator = estimator
        self.notifier = notifier or NotificationService(asynchronous=False)
        self.period_repo = FocusPeriodRepository()
        self.goal_repo = GoalRepository()
        self.user_repo = UserRepository()
        self.config_repo = CommunityConfigRepository()
        self.points_service = PointsService(db)
        self.date_service = DateService()

    @property
    def estimator(self) -> TaskEstimator:
        if self._estimator is None:
            self._estimator = TaskEstimator()
        return self._estimator

    def get_active_period(self, user_id: int, now: Optional[datetime] = None) -> Optional[FocusPeriod]:
        """The user's period whose [start, end) contains now, if any"""
        now = self.date_service.resolve(now)
        return self.period_repo.get_active_for_user(self.db, user_id, now)

    def require_active_period(self, user_id: int, now: Optional[datetime] = None) -> FocusPeriod:
        """Call-site guard for goal operations"""
        period = self.get_active_period(user_id, now)
        if period is None:
            raise NoActivePeriodError(user_id)
        return period

    def start_period(self, user_id: int, now: Optional[datetime] = None) -> FocusPeriod:
        """
        Start a new two-week period beginning at today's midnight.

        Raises:
            AlreadyActiveError: the user already has a running period
        """
        now = self.date_service.resolve(now)

        with unit_of_work(self.db, "start_period"):
            user = self.user_repo.get_by_id(self.db, user_id, for_update=True)
            if user is None:
                raise ValidationException("user_id", f"user {user_id} not found")

            existing = self.period_repo.get_active_for_user(self.db, user_id, now)
            if existing is not None:
                raise AlreadyActiveError(
                    existing.id,
                    self.date_service.days_remaining(existing.end_date, now)
                )

            start, end = self.date_service.period_window(now)
            period = self.period_repo.create(self.db, FocusPeriod(
                user_id=user_id,
                community_id=user.community_id,
                start_date=start,
                end_date=end,
                leaderboard_finalized=False
            ))

        logger.info(f"User {user_id} started focus period {period.id} ({start:%Y-%m-%d} - {end:%Y-%m-%d})")
        return period

    def add_goal(self, period_id: int, title: str, description: str = "") -> Goal:
        """
        Append a goal to a period. Points come from the estimator, which
        falls back to its default value and never blocks goal creation.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationException("title", "must not be empty")

        # Estimate outside the transaction; it's a network call
        points = self.estimator.estimate(title, description)

        with unit_of_work(self.db, "add_goal"):
            period = self.period_repo.get_by_id(self.db, period_id)
            if period is None:
                raise ValidationException("period_id", f"period {period_id} not found")

            goal = self.goal_repo.create(self.db, Goal(
                period_id=period_id,
                title=title,
                description=description,
                completed=False,
                position=self.goal_repo.next_position(self.db, period_id),
                points=points
            ))

        logger.info(f"Added goal #{goal.position} ({points} pts) to period {period_id}")
        return goal

    def complete_goal(self, period_id: int, position: int, now: Optional[datetime] = None) -> CompletionResponse:
        """
        Mark the goal at `position` done and credit its points to the period.

        Raises:
            GoalNotFoundError: no goal at that position
            AlreadyCompletedError: goal was already done (or a concurrent call won)
        """
        now = self.date_service.resolve(now)

        with unit_of_work(self.db, "complete_goal"):
            goal = self.goal_repo.get_by_position(self.db, period_id, position)
            if goal is None:
                raise GoalNotFoundError(period_id, position)
            if goal.completed or not self.goal_repo.mark_completed(self.db, goal.id, now):
                raise AlreadyCompletedError(period_id, position)

            period = goal.period
            self.points_service.credit(
                period.user_id, goal.points, period.id,
                period.start_date, period.end_date, now
            )

            remaining = sum(
                1 for g in period.goals if g.id != goal.id and not g.completed
            )
            response = CompletionResponse(
                goal=GoalResponse(
                    id=goal.id,
                    position=goal.position,
                    title=goal.title,
                    description=goal.description,
                    points=goal.points,
                    completed=True,
                    completed_at=now
                ),
                points_awarded=goal.points,
                all_goals_completed=remaining == 0
            )
            owner_id = period.user_id
            community_id = period.community_id

        logger.info(f"User {owner_id} completed goal #{position} in period {period_id} (+{response.points_awarded})")
        self._notify_buddies(owner_id, community_id, response)
        return response

    def _notify_buddies(self, user_id: int, community_id: str, completion: CompletionResponse) -> None:
        """Tell accountability buddies about a completion; failures only get logged"""
        try:
            watchers = BuddyService(self.db).buddies_to_notify(user_id)
            if not watchers:
                return
            owner = self.user_repo.get_by_id(self.db, user_id)
            destination = self.config_repo.get_reminder_destination(self.db, community_id)
            name = owner.username or owner.account_id
            self.notifier.publish(destination, Notification(
                kind="buddy_progress",
                title="Buddy Progress",
                lines=[f"Your buddy **{name}** just completed: {completion.goal.title}"],
                mentions=[watcher.account_id for watcher in watchers]
            ))
        except Exception as e:
            logger.error(f"Buddy notification for user {user_id} failed: {e}")

    def describe(self, period: FocusPeriod, now: Optional[datetime] = None) -> PeriodResponse:
        """Period with its day counters filled in"""
        now = self.date_service.resolve(now)
        response = PeriodResponse.model_validate(period)
        response.day_number = self.date_service.day_number(period.start_date, period.end_date, now)
        response.days_remaining = self.date_service.days_remaining(period.end_date, now)
        return response

    def sweep_ended_periods(
        self,
        community_id: str,
        now: Optional[datetime] = None,
        limit: int = DEFAULT_LEADERBOARD_LIMIT
    ) -> SweepResult:
        """
        Post one sprint leaderboard for periods that ended and mark them finalized.

        Without a configured leaderboard destination nothing is posted or
        finalized. Running it again finalizes and posts nothing new.
        """
        now = self.date_service.resolve(now)
        result = SweepResult(community_id=community_id)

        periods = self.period_repo.get_ended_unfinalized(self.db, community_id, now)
        if not periods:
            return result

        destination = self.config_repo.get_leaderboard_destination(self.db, community_id)
        if not destination:
            logger.info(f"No leaderboard destination for community {community_id}, skipping")
            result.skipped_reason = "no_leaderboard_destination"
            return result

        logger.info(f"Found {len(periods)} ended periods needing leaderboard in community {community_id}")

        # Last instant of the most recently ended sprint
        as_of = max(p.end_date for p in periods) - timedelta(microseconds=1)
        entries = LeaderboardService(self.db).current_sprint(community_id, limit, as_of=as_of)
        if entries:
            result.leaderboard_posted = self.notifier.publish(destination, format_leaderboard(
                entries,
                kind="sprint_leaderboard",
                title="Sprint Leaderboard - Focus Period Completed!",
                intro="Here are the top performers from the recently completed sprint:",
                footer="Congratulations to all participants! Start a new Focus Period to keep your momentum."
            ))
        else:
            logger.info(f"No entries for sprint leaderboard in community {community_id}")

        with unit_of_work(self.db, "sweep_ended_periods"):
            for period in periods:
                if self.period_repo.mark_finalized(self.db, period.id):
                    result.period_ids.append(period.id)

        result.periods_finalized = len(result.period_ids)
        logger.info(f"Finalized {result.periods_finalized} periods in community {community_id}")
        return result
