"""
Background scheduler for the periodic sweeps
Handles:
- Daily progress reminders and insufficient-goal nudges
- Sprint leaderboard for ended focus periods
- Streak absence reminders
- Expiring finished challenges
- Monthly digest on the first of the month
"""

import logging
import os
import time
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session, sessionmaker

from focusbot.constants import DEFAULT_DIGEST_HOUR, DEFAULT_RUN_HOUR, SWEEP_TIME_BUDGET_SECONDS
from focusbot.repositories.user_repository import UserRepository
from focusbot.services.challenge_service import ChallengeService
from focusbot.services.date_service import DateService
from focusbot.services.notification_service import NotificationService
from focusbot.services.period_service import PeriodService
from focusbot.services.reminder_service import ReminderService

logger = logging.getLogger("focusbot.scheduler")

CommunitySweep = Callable[[Session, str, datetime], object]


def get_run_hour() -> int:
    return int(os.getenv("FOCUSBOT_RUN_HOUR", DEFAULT_RUN_HOUR))


def get_digest_hour() -> int:
    return int(os.getenv("FOCUSBOT_DIGEST_HOUR", DEFAULT_DIGEST_HOUR))


class FocusScheduler:
    """Hourly tick that runs each sweep in its own session"""

    def __init__(
        self,
        session_factory: sessionmaker,
        notifier: Optional[NotificationService] = None,
        time_budget: float = SWEEP_TIME_BUDGET_SECONDS
    ):
        self.session_factory = session_factory
        self.notifier = notifier or NotificationService()
        self.time_budget = time_budget
        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults={"coalesce": True, "max_instances": 1}
        )

        # Run in this order at the daily run hour
        self.daily_sweeps: List[Tuple[str, CommunitySweep]] = [
            ("daily_reminders", self._daily_reminders),
            ("insufficient_goals", self._insufficient_goals),
            ("ended_periods", self._ended_periods),
            ("streak_reminders", self._streak_reminders),
        ]

    def _daily_reminders(self, db: Session, community_id: str, now: datetime):
        return ReminderService(db, self.notifier).send_daily_reminders(community_id, now)

    def _insufficient_goals(self, db: Session, community_id: str, now: datetime):
        return ReminderService(db, self.notifier).send_insufficient_goal_nudges(community_id, now)

    def _ended_periods(self, db: Session, community_id: str, now: datetime):
        return PeriodService(db, notifier=self.notifier).sweep_ended_periods(community_id, now)

    def _streak_reminders(self, db: Session, community_id: str, now: datetime):
        return ReminderService(db, self.notifier).send_streak_absence_reminders(community_id, now)

    def _monthly_digest(self, db: Session, community_id: str, now: datetime):
        return ReminderService(db, self.notifier).send_monthly_digest(community_id, now)

    def run_community_sweep(self, name: str, sweep: CommunitySweep, now: datetime) -> int:
        """
        Run one sweep over every community in a fresh session.
        A failing community is logged and skipped; nothing propagates.

        Returns:
            Number of communities the sweep completed for
        """
        started = time.monotonic()
        done = 0
        db = self.session_factory()
        try:
            for community_id in UserRepository.get_community_ids(db):
                if time.monotonic() - started > self.time_budget:
                    logger.warning(f"Sweep {name} exceeded its time budget, stopping before {community_id}")
                    break
                try:
                    sweep(db, community_id, now)
                    done += 1
                except Exception as e:
                    db.rollback()
                    logger.error(f"Scheduler Error ({name}) in community {community_id}: {e}")
        except Exception as e:
            logger.error(f"Scheduler Error ({name}): {e}")
        finally:
            db.close()
        return done

    def run_challenge_expiry(self, now: datetime) -> int:
        db = self.session_factory()
        try:
            return ChallengeService(db).expire_challenges(now)
        except Exception as e:
            logger.error(f"Scheduler Error (challenge_expiry): {e}")
            return 0
        finally:
            db.close()

    def run_tick(self, now: Optional[datetime] = None) -> List[str]:
        """
        One hourly tick. Daily sweeps run at the run hour, the digest on the
        first of the month at the digest hour.

        Returns:
            Names of the sweeps that ran
        """
        now = DateService.resolve(now)
        ran = []

        if now.hour == get_run_hour():
            logger.info("Running scheduled checks...")
            for name, sweep in self.daily_sweeps:
                self.run_community_sweep(name, sweep, now)
                ran.append(name)
            self.run_challenge_expiry(now)
            ran.append("challenge_expiry")

        if now.day == 1 and now.hour == get_digest_hour():
            self.run_community_sweep("monthly_digest", self._monthly_digest, now)
            ran.append("monthly_digest")

        return ran

    def start(self) -> None:
        """Start the background scheduler"""
        logger.info("Starting focus bot background scheduler")

        # Every hour on the hour; run_tick decides what is due
        self.scheduler.add_job(
            self.run_tick,
            CronTrigger(minute=0),
            id="hourly_tick",
            replace_existing=True
        )

        self.scheduler.start()
        logger.info("Background scheduler started successfully")

    def stop(self) -> None:
        """Stop the background scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Background scheduler stopped")
