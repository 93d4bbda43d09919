"""
Tests for the scheduled sweeps.

Tests cover:
1. Which reminders go out on which period day
2. Streak absence reminders and the monthly digest
3. The hourly tick: run hour gating, ordering and failure isolation
"""
import pytest
from datetime import datetime, timedelta

from focusbot.scheduler import FocusScheduler
from focusbot.services.period_service import PeriodService
from focusbot.services.reminder_service import ReminderService
from focusbot.services.streak_service import StreakService
from focusbot.services.win_service import WinService

COMMUNITY = "guild-1"


@pytest.fixture(autouse=True)
def default_hours(monkeypatch):
    monkeypatch.delenv("FOCUSBOT_RUN_HOUR", raising=False)
    monkeypatch.delenv("FOCUSBOT_DIGEST_HOUR", raising=False)


class TestDailyReminders:
    """Tests for send_daily_reminders and send_insufficient_goal_nudges"""

    def test_reminder_on_day_three_with_pending_goals(self, db_session, make_user, estimator, notifier, sink, configured_community, now):
        alice = make_user("alice")
        periods = PeriodService(db_session, estimator=estimator)
        period = periods.start_period(alice.id, now)
        periods.add_goal(period.id, "Ship v1")

        sent = ReminderService(db_session, notifier).send_daily_reminders(COMMUNITY, datetime(2026, 3, 4, 9, 0))

        assert sent == 1
        destination, notification = sink.sent[0]
        assert destination == "reminder-channel"
        assert notification.title == "Focus Period Reminder - Day 3"
        assert notification.mentions == ["alice"]

    def test_no_reminder_on_other_days(self, db_session, make_user, estimator, notifier, sink, configured_community, now):
        alice = make_user("alice")
        periods = PeriodService(db_session, estimator=estimator)
        period = periods.start_period(alice.id, now)
        periods.add_goal(period.id, "Ship v1")

        sent = ReminderService(db_session, notifier).send_daily_reminders(COMMUNITY, datetime(2026, 3, 5, 9, 0))

        assert sent == 0

    def test_no_reminder_when_everything_is_done(self, db_session, make_user, estimator, notifier, sink, configured_community, now):
        alice = make_user("alice")
        periods = PeriodService(db_session, estimator=estimator, notifier=notifier)
        period = periods.start_period(alice.id, now)
        periods.add_goal(period.id, "Ship v1")
        periods.complete_goal(period.id, 1, now)

        sent = ReminderService(db_session, notifier).send_daily_reminders(COMMUNITY, datetime(2026, 3, 4, 9, 0))

        assert sent == 0

    def test_no_destination_sends_nothing(self, db_session, make_user, estimator, notifier, sink, now):
        alice = make_user("alice")
        periods = PeriodService(db_session, estimator=estimator)
        period = periods.start_period(alice.id, now)
        periods.add_goal(period.id, "Ship v1")

        sent = ReminderService(db_session, notifier).send_daily_reminders(COMMUNITY, datetime(2026, 3, 4, 9, 0))

        assert sent == 0
        assert sink.sent == []

    def test_nudge_below_minimum_goals(self, db_session, make_user, estimator, notifier, sink, configured_community, now):
        alice = make_user("alice")
        periods = PeriodService(db_session, estimator=estimator)
        period = periods.start_period(alice.id, now)
        periods.add_goal(period.id, "Ship v1")

        service = ReminderService(db_session, notifier)

        assert service.send_insufficient_goal_nudges(COMMUNITY, datetime(2026, 3, 3, 9, 0)) == 1
        assert "2 more goal(s)" in sink.sent[0][1].lines[1]
        assert service.send_insufficient_goal_nudges(COMMUNITY, datetime(2026, 3, 6, 9, 0)) == 0


class TestStreakAndDigest:
    """Tests for streak absence reminders and the monthly digest"""

    def test_streak_at_risk_gets_reminder(self, db_session, make_user, notifier, sink, configured_community, now):
        alice = make_user("alice")
        bob = make_user("bob")
        streaks = StreakService(db_session)
        streaks.record_check_in(alice.id, COMMUNITY, now)
        streaks.record_check_in(bob.id, COMMUNITY, now)
        streaks.record_check_in(bob.id, COMMUNITY, now + timedelta(days=1))

        sent = ReminderService(db_session, notifier).send_streak_absence_reminders(
            COMMUNITY, datetime(2026, 3, 3, 9, 0)
        )

        assert sent == 1
        assert sink.sent[0][1].mentions == ["alice"]

    def test_monthly_digest(self, db_session, make_user, notifier, sink, configured_community):
        alice = make_user("alice")
        WinService(db_session).share_win(alice.id, "Hit $1k MRR", "revenue", datetime(2026, 2, 14, 12, 0))

        posted = ReminderService(db_session, notifier).send_monthly_digest(COMMUNITY, datetime(2026, 3, 1, 10, 0))

        assert posted is True
        destination, notification = sink.sent[0]
        assert destination == "leaderboard-channel"
        assert notification.kind == "digest"
        assert any("Hit $1k MRR" in line for line in notification.lines)
        assert any("alice" in line and "2 points" in line for line in notification.lines)


class TestTick:
    """Tests for FocusScheduler.run_tick"""

    def _ended_period(self, db_session, make_user, make_estimator, now):
        alice = make_user("alice")
        periods = PeriodService(db_session, estimator=make_estimator([4]))
        period = periods.start_period(alice.id, now)
        periods.add_goal(period.id, "Ship v1")
        periods.complete_goal(period.id, 1, now)
        return period

    def test_outside_run_hour_nothing_runs(self, session_factory, notifier):
        scheduler = FocusScheduler(session_factory, notifier)
        assert scheduler.run_tick(datetime(2026, 3, 17, 14, 0)) == []

    def test_run_hour_runs_sweeps_in_order(self, session_factory, notifier):
        scheduler = FocusScheduler(session_factory, notifier)

        ran = scheduler.run_tick(datetime(2026, 3, 17, 9, 0))

        assert ran == [
            "daily_reminders", "insufficient_goals", "ended_periods",
            "streak_reminders", "challenge_expiry",
        ]

    def test_digest_on_first_of_month(self, session_factory, notifier):
        scheduler = FocusScheduler(session_factory, notifier)
        assert scheduler.run_tick(datetime(2026, 4, 1, 10, 0)) == ["monthly_digest"]

    def test_run_hour_from_environment(self, session_factory, notifier, monkeypatch):
        monkeypatch.setenv("FOCUSBOT_RUN_HOUR", "6")
        scheduler = FocusScheduler(session_factory, notifier)

        assert scheduler.run_tick(datetime(2026, 3, 17, 9, 0)) == []
        assert "ended_periods" in scheduler.run_tick(datetime(2026, 3, 17, 6, 0))

    def test_tick_posts_ended_sprint(self, db_session, session_factory, make_user, make_estimator, notifier, sink, configured_community, now):
        self._ended_period(db_session, make_user, make_estimator, now)
        scheduler = FocusScheduler(session_factory, notifier)

        scheduler.run_tick(datetime(2026, 3, 17, 9, 0))

        assert "sprint_leaderboard" in sink.kinds()

    def test_failing_sweep_does_not_stop_later_ones(self, db_session, session_factory, make_user, make_estimator, notifier, sink, configured_community, now):
        self._ended_period(db_session, make_user, make_estimator, now)
        scheduler = FocusScheduler(session_factory, notifier)

        def broken(db, community_id, when):
            raise RuntimeError("reminder backend down")

        scheduler.daily_sweeps[0] = ("daily_reminders", broken)
        scheduler.run_tick(datetime(2026, 3, 17, 9, 0))

        assert "sprint_leaderboard" in sink.kinds()

    def test_time_budget_stops_visiting_communities(self, db_session, session_factory, make_user, notifier):
        make_user("alice")
        make_user("zed", community_id="guild-2")
        visited = []
        scheduler = FocusScheduler(session_factory, notifier, time_budget=-1)

        done = scheduler.run_community_sweep("probe", lambda db, c, when: visited.append(c), datetime(2026, 3, 17, 9, 0))

        assert done == 0
        assert visited == []
