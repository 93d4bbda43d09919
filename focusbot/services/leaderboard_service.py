"""
Leaderboard queries.
Read-only rankings over the ledger: all-time, current sprint and streaks.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from focusbot.constants import DEFAULT_LEADERBOARD_LIMIT
from focusbot.exceptions import StorageFailure, ValidationException
from focusbot.repositories.points_repository import LeaderboardRepository
from focusbot.repositories.streak_repository import StreakRepository
from focusbot.schemas import LeaderboardEntry, StreakLeaderboardEntry
from focusbot.services.date_service import DateService
from focusbot.services.notification_service import Notification

logger = logging.getLogger("focusbot.leaderboards")

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}


def rank_label(rank: int) -> str:
    return MEDALS.get(rank, f"{rank}.")


def format_leaderboard(
    entries: List[LeaderboardEntry],
    kind: str = "leaderboard",
    title: str = "Leaderboard",
    intro: Optional[str] = None,
    footer: Optional[str] = None
) -> Notification:
    """Render ranked entries as a chat message"""
    lines = [intro] if intro else []
    for entry in entries:
        name = entry.username or entry.account_id
        line = f"{rank_label(entry.rank)} **{name}** - {entry.points} points"
        if entry.goals_completed:
            line += f" ({entry.goals_completed} goals)"
        lines.append(line)
    if not entries:
        lines.append("No points earned yet. Be the first!")
    return Notification(kind=kind, title=title, lines=lines, footer=footer)


def format_streak_leaderboard(entries: List[StreakLeaderboardEntry]) -> Notification:
    lines = []
    for entry in entries:
        name = entry.username or entry.account_id
        lines.append(
            f"{rank_label(entry.rank)} **{name}** - {entry.current_streak} days "
            f"(best: {entry.longest_streak})"
        )
    if not entries:
        lines.append("No streaks yet. Check in today to start one!")
    return Notification(kind="streak_leaderboard", title="Streak Leaderboard", lines=lines)


class LeaderboardService:
    """Service for ranked views of points and streaks"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LeaderboardRepository()
        self.streak_repo = StreakRepository()
        self.date_service = DateService()

    @staticmethod
    def _check_limit(limit: int) -> None:
        if limit < 1:
            raise ValidationException("limit", "must be at least 1")

    @staticmethod
    def _to_entries(rows) -> List[LeaderboardEntry]:
        return [
            LeaderboardEntry(
                rank=rank,
                user_id=row[0],
                account_id=row[1],
                username=row[2],
                points=row[3],
                reached_at=row[4],
                goals_completed=row[5] or 0,
                last_completed_at=row[6]
            )
            for rank, row in enumerate(rows, start=1)
        ]

    def all_time(self, community_id: str, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> List[LeaderboardEntry]:
        """
        Top users by lifetime points.

        Ties go to whoever reached their total first, then the lower user id.
        """
        self._check_limit(limit)
        try:
            rows = self.repo.all_time_rows(self.db, community_id, limit)
        except SQLAlchemyError as e:
            logger.error(f"All-time leaderboard query failed for {community_id}: {e}")
            raise StorageFailure("all_time_leaderboard", str(e)) from e
        return self._to_entries(rows)

    def current_sprint(
        self,
        community_id: str,
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
        as_of: Optional[datetime] = None
    ) -> List[LeaderboardEntry]:
        """
        Top users by points earned in the sprint window containing `as_of`.
        Only subtotals whose cached window covers that instant are ranked.
        """
        self._check_limit(limit)
        as_of = self.date_service.resolve(as_of)
        try:
            rows = self.repo.sprint_rows(self.db, community_id, as_of, limit)
        except SQLAlchemyError as e:
            logger.error(f"Sprint leaderboard query failed for {community_id}: {e}")
            raise StorageFailure("sprint_leaderboard", str(e)) from e
        return self._to_entries(rows)

    def streaks(self, community_id: str, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> List[StreakLeaderboardEntry]:
        """Top users by current streak"""
        self._check_limit(limit)
        try:
            rows = self.streak_repo.get_streak_leaders(self.db, community_id, limit)
        except SQLAlchemyError as e:
            logger.error(f"Streak leaderboard query failed for {community_id}: {e}")
            raise StorageFailure("streak_leaderboard", str(e)) from e

        return [
            StreakLeaderboardEntry(
                rank=rank,
                user_id=row[0],
                account_id=row[1],
                username=row[2],
                current_streak=row[3],
                longest_streak=row[4],
                total_check_ins=row[5]
            )
            for rank, row in enumerate(rows, start=1)
        ]
