"""
Tests for StreakService.

Tests cover:
1. Streak continuity across consecutive days and resets after gaps
2. Duplicate check-ins on the same day
3. Exact-match milestone bonuses
4. Check-in points reaching the ledger
"""
import pytest
from datetime import datetime, timedelta

from focusbot.exceptions import DuplicateCheckInError, StorageFailure
from focusbot.models import CheckIn
from focusbot.services.period_service import PeriodService
from focusbot.services.points_service import PointsService
from focusbot.services.streak_service import StreakService, milestone_bonus, next_streak_value

COMMUNITY = "guild-1"


class TestNextStreakValue:
    """Tests for the pure streak transition"""

    def test_first_check_in_starts_at_one(self):
        assert next_streak_value(0, None, datetime(2026, 3, 2)) == 1

    def test_yesterday_extends(self):
        assert next_streak_value(4, datetime(2026, 3, 1, 23, 59), datetime(2026, 3, 2)) == 5

    def test_gap_resets(self):
        assert next_streak_value(4, datetime(2026, 2, 27, 9, 0), datetime(2026, 3, 2)) == 1

    def test_future_last_check_in_resets(self):
        assert next_streak_value(4, datetime(2026, 3, 5, 9, 0), datetime(2026, 3, 2)) == 1


class TestMilestones:
    """Bonuses only on exact streak lengths"""

    @pytest.mark.parametrize("streak,bonus", [(7, 10), (14, 25), (30, 50), (60, 100), (90, 200)])
    def test_milestone_values(self, streak, bonus):
        assert milestone_bonus(streak) == bonus

    @pytest.mark.parametrize("streak", [1, 6, 8, 13, 15, 31, 100])
    def test_non_milestones_pay_nothing(self, streak):
        assert milestone_bonus(streak) == 0


class TestRecordCheckIn:
    """Tests for record_check_in"""

    def test_first_check_in(self, db_session, make_user, now):
        user = make_user("alice")

        result = StreakService(db_session).record_check_in(user.id, COMMUNITY, now)

        assert result.streak.current_streak == 1
        assert result.streak.longest_streak == 1
        assert result.streak.total_check_ins == 1
        assert result.points_awarded == 1
        assert result.day == now.date()

    def test_consecutive_days_grow_streak(self, db_session, make_user, now):
        user = make_user("alice")
        service = StreakService(db_session)

        for offset in range(3):
            result = service.record_check_in(user.id, COMMUNITY, now + timedelta(days=offset))

        assert result.streak.current_streak == 3

    def test_late_night_then_early_morning_counts_as_consecutive(self, db_session, make_user):
        """Days are calendar days, not 24-hour spans"""
        user = make_user("alice")
        service = StreakService(db_session)

        service.record_check_in(user.id, COMMUNITY, datetime(2026, 3, 2, 23, 59))
        result = service.record_check_in(user.id, COMMUNITY, datetime(2026, 3, 3, 0, 1))

        assert result.streak.current_streak == 2

    def test_gap_resets_but_keeps_longest(self, db_session, make_user, now):
        user = make_user("alice")
        service = StreakService(db_session)

        service.record_check_in(user.id, COMMUNITY, now)
        service.record_check_in(user.id, COMMUNITY, now + timedelta(days=1))
        result = service.record_check_in(user.id, COMMUNITY, now + timedelta(days=3))

        assert result.streak.current_streak == 1
        assert result.streak.longest_streak == 2
        assert result.streak.total_check_ins == 3

    def test_duplicate_same_day_rejected(self, db_session, make_user, now):
        """Second check-in on the same day changes nothing"""
        user = make_user("alice")
        service = StreakService(db_session)
        service.record_check_in(user.id, COMMUNITY, now)

        with pytest.raises(DuplicateCheckInError):
            service.record_check_in(user.id, COMMUNITY, now + timedelta(hours=5))

        state = service.get_streak_state(user.id, COMMUNITY)
        assert state.total_check_ins == 1
        assert PointsService(db_session).get_balance(user.id).total_points == 1

    def test_duplicate_caught_by_unique_constraint(self, db_session, make_user, now, monkeypatch):
        """A racing check-in that slips past the pre-check still gets rejected"""
        user = make_user("alice")
        db_session.add(CheckIn(user_id=user.id, community_id=COMMUNITY, day=now.date(), created_at=now))
        db_session.commit()

        service = StreakService(db_session)
        real_exists = service.check_in_repo.exists_for_day
        calls = []

        def misses_first_lookup(*args):
            calls.append(args)
            return len(calls) > 1 and real_exists(*args)

        monkeypatch.setattr(service.check_in_repo, "exists_for_day", misses_first_lookup)

        with pytest.raises(DuplicateCheckInError):
            service.record_check_in(user.id, COMMUNITY, now)

        assert PointsService(db_session).get_balance(user.id).total_points == 0

    def test_racing_sprint_credit_is_retryable_not_duplicate(self, db_session, make_user, estimator, now, monkeypatch):
        """A sprint row created concurrently by another award is a storage failure, not a second check-in"""
        user = make_user("alice")
        period = PeriodService(db_session, estimator=estimator).start_period(user.id, now)
        PointsService(db_session).add_points(user.id, 3, period.id, now=now)

        service = StreakService(db_session)
        # The increment misses, as if the row appeared after our lookup
        monkeypatch.setattr(service.points_service.sprint_repo, "add_points", lambda *args: 0)

        with pytest.raises(StorageFailure):
            service.record_check_in(user.id, COMMUNITY, now)

        assert not service.has_checked_in(user.id, COMMUNITY, now)
        assert service.get_streak_state(user.id, COMMUNITY).total_check_ins == 0
        balance = PointsService(db_session).get_balance(user.id, period.id)
        assert balance.total_points == 3
        assert balance.sprint_points == 3

    def test_milestone_needs_an_exact_hit(self, db_session, make_user, now):
        """After a gap the streak restarts; only its seventh day pays, the eighth doesn't"""
        user = make_user("alice")
        service = StreakService(db_session)

        service.record_check_in(user.id, COMMUNITY, now)
        results = [
            service.record_check_in(user.id, COMMUNITY, now + timedelta(days=offset))
            for offset in range(2, 10)
        ]

        assert [r.streak.current_streak for r in results] == list(range(1, 9))
        assert results[-1].bonus_points == 0
        assert results[5].bonus_points == 0
        assert results[6].bonus_points == 10

    def test_seventh_day_pays_milestone_once(self, db_session, make_user, now):
        user = make_user("alice")
        service = StreakService(db_session)

        results = [
            service.record_check_in(user.id, COMMUNITY, now + timedelta(days=offset))
            for offset in range(8)
        ]

        assert results[6].streak.current_streak == 7
        assert results[6].bonus_points == 10
        assert results[6].points_awarded == 11
        assert results[7].bonus_points == 0
        assert PointsService(db_session).get_balance(user.id).total_points == 8 + 10

    def test_check_in_credits_running_sprint(self, db_session, make_user, estimator, now):
        user = make_user("alice")
        period = PeriodService(db_session, estimator=estimator).start_period(user.id, now)

        StreakService(db_session).record_check_in(user.id, COMMUNITY, now)

        assert PointsService(db_session).get_balance(user.id, period.id).sprint_points == 1


class TestStreakQueries:
    """Tests for get_streak_state and has_checked_in"""

    def test_unknown_user_gets_zeroed_state(self, db_session):
        state = StreakService(db_session).get_streak_state(42, COMMUNITY)

        assert state.current_streak == 0
        assert state.last_check_in_at is None

    def test_has_checked_in(self, db_session, make_user, now):
        user = make_user("alice")
        service = StreakService(db_session)

        assert not service.has_checked_in(user.id, COMMUNITY, now)
        service.record_check_in(user.id, COMMUNITY, now)
        assert service.has_checked_in(user.id, COMMUNITY, now + timedelta(hours=2))
        assert not service.has_checked_in(user.id, COMMUNITY, now + timedelta(days=1))
