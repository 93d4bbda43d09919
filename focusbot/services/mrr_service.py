"""
Revenue (MRR) tracking.
Founders log their monthly recurring revenue. Crossing a milestone is reported
once, the first time it (or anything above it) is reached, and only public
numbers show up on the MRR leaderboard.
"""
import logging
import math
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from focusbot.constants import (
    DEFAULT_LEADERBOARD_LIMIT, MRR_DEFAULT_CURRENCY, MRR_DEFAULT_HISTORY_MONTHS, MRR_MILESTONES,
)
from focusbot.database import unit_of_work
from focusbot.exceptions import StorageFailure, UserNotFoundError, ValidationException
from focusbot.models import MrrEntry, MrrSettings, User
from focusbot.repositories.mrr_repository import MrrEntryRepository, MrrSettingsRepository
from focusbot.repositories.settings_repository import CommunityConfigRepository
from focusbot.repositories.user_repository import UserRepository
from focusbot.schemas import MrrEntryResponse, MrrLeaderboardEntry, MrrStats, MrrUpdateResult
from focusbot.services.date_service import DateService
from focusbot.services.notification_service import Notification, NotificationService

logger = logging.getLogger("focusbot.mrr")


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


def mrr_growth(current: float, previous: Optional[float]) -> float:
    """Percentage change from previous to current; 0 without a previous value"""
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def highest_new_milestone(amount_cents: int, last_reached: int) -> int:
    """Highest milestone covered by the amount that beats the last one recorded, else 0"""
    reached = 0
    for milestone in MRR_MILESTONES:
        if last_reached < milestone <= amount_cents:
            reached = milestone
    return reached


def format_milestone(cents: int) -> str:
    dollars = cents / 100
    if dollars >= 1000:
        return f"${dollars / 1000:.0f}K"
    return f"${dollars:.0f}"


class MrrService:
    """Service for revenue tracking"""

    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier or NotificationService(asynchronous=False)
        self.entry_repo = MrrEntryRepository()
        self.settings_repo = MrrSettingsRepository()
        self.user_repo = UserRepository()
        self.config_repo = CommunityConfigRepository()
        self.date_service = DateService()

    def _require_user(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(self.db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def record(
        self,
        user_id: int,
        amount: float,
        currency: str = MRR_DEFAULT_CURRENCY,
        note: str = "",
        now: Optional[datetime] = None
    ) -> MrrUpdateResult:
        """
        Log the user's current MRR.

        Logging a lower amount later never re-arms a milestone; the recorded
        milestone only grows, through a conditional update.

        Raises:
            ValidationException: amount is negative or not a finite number
            UserNotFoundError: user doesn't exist
            StorageFailure: persistence failed, nothing was recorded
        """
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) \
                or not math.isfinite(amount) or amount < 0:
            raise ValidationException("amount", "must be a non-negative number")

        currency = (currency or MRR_DEFAULT_CURRENCY).strip().upper()
        now = self.date_service.resolve(now)

        with unit_of_work(self.db, "record_mrr"):
            user = self._require_user(user_id)
            community_id = user.community_id

            previous = self.entry_repo.get_latest(self.db, user_id, community_id)
            previous_amount = previous.amount if previous else None

            entry = self.entry_repo.create(self.db, MrrEntry(
                user_id=user_id,
                community_id=community_id,
                amount=float(amount),
                currency=currency,
                note=note,
                recorded_at=now
            ))

            settings = self.settings_repo.get_or_create(self.db, user_id, community_id)
            milestone = highest_new_milestone(to_cents(amount), settings.last_milestone_reached)
            if milestone and not self.settings_repo.raise_milestone(self.db, settings.id, milestone):
                # A concurrent update already recorded it
                milestone = 0
            is_public = settings.is_public

            result = MrrUpdateResult(
                entry=MrrEntryResponse.model_validate(entry),
                previous_amount=previous_amount,
                growth_percent=mrr_growth(amount, previous_amount),
                milestone_reached=milestone,
                milestone_label=format_milestone(milestone) if milestone else None
            )

        logger.info(f"User {user_id} logged MRR {amount:.2f} {currency}")
        if milestone:
            logger.info(f"User {user_id} reached the {result.milestone_label} MRR milestone")
            if is_public:
                self._announce_milestone(user_id, community_id, result.milestone_label)
        return result

    def _announce_milestone(self, user_id: int, community_id: str, label: str) -> None:
        """Celebrate a public milestone in the community's MRR channel; failures only get logged"""
        try:
            user = self.user_repo.get_by_id(self.db, user_id)
            destination = self.config_repo.get_mrr_destination(self.db, community_id)
            name = user.username or user.account_id
            self.notifier.publish(destination, Notification(
                kind="mrr_milestone",
                title="🎉 MRR Milestone!",
                lines=[f"**{name}** just hit **{label} MRR**!", "", "Congratulations!"],
                mentions=[user.account_id],
                footer="Track your MRR with /mrr update"
            ))
        except Exception as e:
            logger.error(f"MRR milestone announcement for user {user_id} failed: {e}")

    def set_visibility(self, user_id: int, is_public: bool) -> MrrSettings:
        """Show or hide the user's MRR on the leaderboard"""
        with unit_of_work(self.db, "set_mrr_visibility"):
            user = self._require_user(user_id)
            settings = self.settings_repo.get_or_create(self.db, user_id, user.community_id)
            settings.is_public = is_public

        logger.info(f"User {user_id} made their MRR {'public' if is_public else 'private'}")
        return settings

    def history(
        self,
        user_id: int,
        months: int = MRR_DEFAULT_HISTORY_MONTHS,
        now: Optional[datetime] = None
    ) -> List[MrrEntry]:
        """Entries from the last `months` calendar months, newest first"""
        if months < 1:
            raise ValidationException("months", "must be at least 1")
        user = self._require_user(user_id)
        since = self.date_service.months_before(self.date_service.resolve(now), months)
        return self.entry_repo.get_since(self.db, user_id, user.community_id, since)

    def stats(self, user_id: int, now: Optional[datetime] = None) -> MrrStats:
        """Current MRR, all-time high, growth over the last month and milestone progress"""
        now = self.date_service.resolve(now)
        user = self._require_user(user_id)
        community_id = user.community_id

        stats = MrrStats(user_id=user_id, community_id=community_id)
        latest = self.entry_repo.get_latest(self.db, user_id, community_id)
        if latest is not None:
            stats.current_mrr = latest.amount
            stats.currency = latest.currency

            month_ago = self.entry_repo.get_latest(
                self.db, user_id, community_id,
                before=self.date_service.months_before(now, 1)
            )
            if month_ago is not None:
                stats.monthly_growth = mrr_growth(latest.amount, month_ago.amount)

            first = self.entry_repo.get_first(self.db, user_id, community_id)
            stats.first_entry_at = first.recorded_at

        stats.total_entries, stats.all_time_high = self.entry_repo.get_summary(self.db, user_id, community_id)

        settings = self.settings_repo.get(self.db, user_id, community_id)
        stats.is_public = bool(settings and settings.is_public)

        current_cents = to_cents(stats.current_mrr)
        stats.milestones_hit = sum(1 for milestone in MRR_MILESTONES if milestone <= current_cents)
        stats.next_milestone = next(
            (milestone for milestone in MRR_MILESTONES if milestone > current_cents), None
        )
        return stats

    def leaderboard(self, community_id: str, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> List[MrrLeaderboardEntry]:
        """
        Latest public MRR per user, highest first.

        Ties go to whoever logged that amount first, then the lower user id.
        """
        if limit < 1:
            raise ValidationException("limit", "must be at least 1")
        try:
            rows = self.entry_repo.leaderboard_rows(self.db, community_id, limit)
        except SQLAlchemyError as e:
            logger.error(f"MRR leaderboard query failed for {community_id}: {e}")
            raise StorageFailure("mrr_leaderboard", str(e)) from e

        return [
            MrrLeaderboardEntry(
                rank=rank,
                user_id=row[0],
                account_id=row[1],
                username=row[2],
                amount=row[3],
                currency=row[4],
                recorded_at=row[5]
            )
            for rank, row in enumerate(rows, start=1)
        ]
