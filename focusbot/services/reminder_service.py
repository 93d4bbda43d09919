"""
Reminder and digest messages sent by the scheduler.
Each method covers one community and returns how much it sent.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from focusbot.constants import (
    DIGEST_LEADERBOARD_LIMIT,
    INSUFFICIENT_GOALS_DAYS,
    MINIMUM_GOALS_REQUIRED,
    REMINDER_DAYS,
)
from focusbot.models import FocusPeriod
from focusbot.repositories.period_repository import FocusPeriodRepository
from focusbot.repositories.settings_repository import CommunityConfigRepository
from focusbot.repositories.streak_repository import StreakRepository
from focusbot.repositories.user_repository import UserRepository
from focusbot.services.date_service import DateService
from focusbot.services.leaderboard_service import LeaderboardService, rank_label
from focusbot.services.notification_service import Notification, NotificationService
from focusbot.services.win_service import WinService

logger = logging.getLogger("focusbot.reminders")

URGENCY_MESSAGES = {
    3: "**Day 3 check-in.** Building momentum!",
    7: "**Halfway through!** How are those goals coming along?",
    10: "**4 days remaining.** Great time to make progress!",
    12: "**Only 2 days left!** Let's finish strong!",
    13: "**Final day tomorrow!** Time for a last push!",
}


class ReminderService:
    """Builds and publishes scheduled reminders"""

    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier or NotificationService(asynchronous=False)
        self.period_repo = FocusPeriodRepository()
        self.config_repo = CommunityConfigRepository()
        self.streak_repo = StreakRepository()
        self.user_repo = UserRepository()
        self.date_service = DateService()

    def _reminder_destination(self, community_id: str, what: str) -> Optional[str]:
        destination = self.config_repo.get_reminder_destination(self.db, community_id)
        if not destination:
            logger.info(f"No reminder destination for community {community_id}, skipping {what}")
        return destination

    def send_daily_reminders(self, community_id: str, now: Optional[datetime] = None) -> int:
        """Progress reminders on the reminder days, only for users with pending goals"""
        now = self.date_service.resolve(now)
        destination = self._reminder_destination(community_id, "daily reminders")
        if not destination:
            return 0

        sent = 0
        for period in self.period_repo.get_active_in_community(self.db, community_id, now):
            day = self.date_service.day_number(period.start_date, period.end_date, now)
            if day not in REMINDER_DAYS or period.pending_goal_count == 0:
                continue
            if self.notifier.publish(destination, self._progress_reminder(period, day, now)):
                sent += 1
                logger.info(f"Sent day {day} reminder to user {period.user.account_id}")
        return sent

    def _progress_reminder(self, period: FocusPeriod, day: int, now: datetime) -> Notification:
        remaining = self.date_service.days_remaining(period.end_date, now)
        return Notification(
            kind="reminder",
            title=f"Focus Period Reminder - Day {day}",
            lines=[
                URGENCY_MESSAGES.get(day, "Keep pushing towards your goals!"),
                f"✅ {period.completed_goal_count} completed | ⏳ {period.pending_goal_count} pending",
                f"{remaining} days remaining",
            ],
            mentions=[period.user.account_id]
        )

    def send_insufficient_goal_nudges(self, community_id: str, now: Optional[datetime] = None) -> int:
        """Nudge users below the recommended goal count early in their period"""
        now = self.date_service.resolve(now)
        destination = self._reminder_destination(community_id, "insufficient goal nudges")
        if not destination:
            return 0

        sent = 0
        for period in self.period_repo.get_active_in_community(self.db, community_id, now):
            day = self.date_service.day_number(period.start_date, period.end_date, now)
            count = len(period.goals)
            if day not in INSUFFICIENT_GOALS_DAYS or count >= MINIMUM_GOALS_REQUIRED:
                continue
            needed = MINIMUM_GOALS_REQUIRED - count
            notification = Notification(
                kind="insufficient_goals",
                title="Set Your Focus Period Goals",
                lines=[
                    f"You currently have **{count} goal(s)** set for this Focus Period.",
                    f"Consider adding **{needed} more goal(s)** to reach the recommended minimum of {MINIMUM_GOALS_REQUIRED}.",
                ],
                mentions=[period.user.account_id]
            )
            if self.notifier.publish(destination, notification):
                sent += 1
        return sent

    def send_streak_absence_reminders(self, community_id: str, now: Optional[datetime] = None) -> int:
        """Remind users whose streak breaks unless they check in today"""
        now = self.date_service.resolve(now)
        destination = self._reminder_destination(community_id, "streak reminders")
        if not destination:
            return 0

        yesterday = self.date_service.start_of_day(now) - timedelta(days=1)
        sent = 0
        for state in self.streak_repo.get_active_streaks(self.db, community_id):
            if self.date_service.start_of_day(state.last_check_in_at) != yesterday:
                continue
            user = self.user_repo.get_by_id(self.db, state.user_id)
            notification = Notification(
                kind="streak_reminder",
                title="Keep Your Streak Alive",
                lines=[f"You're on a **{state.current_streak}-day** streak. Check in today to keep it going!"],
                mentions=[user.account_id]
            )
            if self.notifier.publish(destination, notification):
                sent += 1
        return sent

    def send_monthly_digest(self, community_id: str, now: Optional[datetime] = None) -> bool:
        """Last month's wins plus the all-time top five, to the leaderboard destination"""
        now = self.date_service.resolve(now)
        destination = self.config_repo.get_leaderboard_destination(self.db, community_id)
        if not destination:
            logger.info(f"No leaderboard destination for community {community_id}, skipping digest")
            return False

        start, _ = self.date_service.previous_month_range(now)
        wins = WinService(self.db).monthly_top_wins(community_id, now)
        leaders = LeaderboardService(self.db).all_time(community_id, DIGEST_LEADERBOARD_LIMIT)

        lines = [f"**Wins in {start:%B %Y}**"]
        if wins:
            for win in wins:
                name = win.user.username or win.user.account_id
                lines.append(f"• **{name}** ({win.category}): {win.message}")
        else:
            lines.append("No wins shared last month.")

        lines.append("**All-time leaders**")
        for entry in leaders:
            lines.append(f"{rank_label(entry.rank)} **{entry.username or entry.account_id}** - {entry.points} points")
        if not leaders:
            lines.append("No points earned yet.")

        return self.notifier.publish(destination, Notification(
            kind="digest",
            title="Monthly Digest",
            lines=lines
        ))
