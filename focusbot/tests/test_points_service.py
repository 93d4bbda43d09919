"""
Tests for PointsService.

Tests cover:
1. Lifetime and sprint increments
2. Sprint row creation with a cached window
3. Rejected amounts and unknown users leave the ledger untouched
4. Crediting whatever period is currently running
5. All-or-nothing commits and concurrent credits
"""
import threading
import pytest
from datetime import timedelta
from sqlalchemy.exc import OperationalError

from focusbot.database import make_session_factory
from focusbot.exceptions import StorageFailure, UserNotFoundError, ValidationException
from focusbot.models import SprintPoints, User
from focusbot.services.notification_service import NotificationService
from focusbot.services.period_service import PeriodService
from focusbot.services.points_service import PointsService


class TestAddPoints:
    """Tests for add_points"""

    def test_increments_lifetime_total(self, db_session, make_user, now):
        """Points accumulate on the user"""
        user = make_user("alice")
        service = PointsService(db_session)

        service.add_points(user.id, 5, now=now)
        service.add_points(user.id, 3, now=now + timedelta(minutes=1))

        assert service.get_balance(user.id).total_points == 8

    def test_records_when_total_was_reached(self, db_session, make_user, now):
        user = make_user("alice")
        service = PointsService(db_session)

        service.add_points(user.id, 5, now=now)

        db_session.expire_all()
        assert db_session.get(User, user.id).points_updated_at == now

    def test_creates_sprint_row_with_cached_window(self, db_session, make_user, estimator, now):
        """First credit for a period creates the subtotal and caches its window"""
        user = make_user("alice")
        period = PeriodService(db_session, estimator=estimator).start_period(user.id, now)
        service = PointsService(db_session)

        service.add_points(user.id, 4, period.id, period.start_date, period.end_date, now)

        sprint = db_session.query(SprintPoints).filter_by(period_id=period.id).one()
        assert sprint.points == 4
        assert sprint.window_start == period.start_date
        assert sprint.window_end == period.end_date

    def test_second_credit_increments_existing_sprint_row(self, db_session, make_user, estimator, now):
        user = make_user("alice")
        period = PeriodService(db_session, estimator=estimator).start_period(user.id, now)
        service = PointsService(db_session)

        service.add_points(user.id, 4, period.id, now=now)
        service.add_points(user.id, 6, period.id, now=now)

        balance = service.get_balance(user.id, period.id)
        assert balance.total_points == 10
        assert balance.sprint_points == 10
        assert db_session.query(SprintPoints).count() == 1

    @pytest.mark.parametrize("amount", [0, -3, True])
    def test_rejects_non_positive_amounts(self, db_session, make_user, now, amount):
        """Zero, negative and boolean amounts never reach the ledger"""
        user = make_user("alice")
        service = PointsService(db_session)

        with pytest.raises(ValidationException):
            service.add_points(user.id, amount, now=now)

        assert service.get_balance(user.id).total_points == 0

    def test_unknown_user_raises(self, db_session, now):
        service = PointsService(db_session)

        with pytest.raises(UserNotFoundError):
            service.add_points(999, 5, now=now)

    def test_totals_never_decrease(self, db_session, make_user, now):
        """Every successful credit leaves a larger total than before"""
        user = make_user("alice")
        service = PointsService(db_session)
        previous = 0

        for amount in (1, 10, 2, 7):
            service.add_points(user.id, amount, now=now)
            total = service.get_balance(user.id).total_points
            assert total > previous
            previous = total


class TestCreditActivePeriod:
    """Tests for crediting the running sprint"""

    def test_without_period_credits_lifetime_only(self, db_session, make_user, now):
        user = make_user("alice")
        service = PointsService(db_session)

        period = service.award(user.id, 2, now)

        assert period is None
        assert service.get_balance(user.id).total_points == 2
        assert db_session.query(SprintPoints).count() == 0

    def test_with_period_credits_both(self, db_session, make_user, estimator, now):
        user = make_user("alice")
        started = PeriodService(db_session, estimator=estimator).start_period(user.id, now)
        service = PointsService(db_session)

        period = service.award(user.id, 2, now + timedelta(days=3))

        assert period.id == started.id
        balance = service.get_balance(user.id, started.id)
        assert balance.total_points == 2
        assert balance.sprint_points == 2

    def test_after_period_ends_credits_lifetime_only(self, db_session, make_user, estimator, now):
        user = make_user("alice")
        started = PeriodService(db_session, estimator=estimator).start_period(user.id, now)
        service = PointsService(db_session)

        service.award(user.id, 2, now + timedelta(days=15))

        balance = service.get_balance(user.id, started.id)
        assert balance.total_points == 2
        assert balance.sprint_points == 0


class TestAtomicity:
    """The lifetime and sprint increments commit together or not at all"""

    def test_sprint_failure_rolls_back_lifetime_increment(self, db_session, make_user, estimator, now, monkeypatch):
        user = make_user("alice")
        period = PeriodService(db_session, estimator=estimator).start_period(user.id, now)
        service = PointsService(db_session)
        service.add_points(user.id, 4, period.id, now=now)

        def locked(*args):
            raise OperationalError("UPDATE sprint_points", {}, Exception("database is locked"))

        monkeypatch.setattr(service.sprint_repo, "add_points", locked)

        with pytest.raises(StorageFailure) as exc_info:
            service.add_points(user.id, 6, period.id, now=now)

        assert exc_info.value.operation == "add_points"
        db_session.expire_all()
        balance = PointsService(db_session).get_balance(user.id, period.id)
        assert balance.total_points == 4
        assert balance.sprint_points == 4


class TestConcurrentCredits:
    """Interleaved credits from separate sessions all land"""

    def test_parallel_awards_and_completions_sum_up(self, tmp_path, make_estimator, now):
        factory = make_session_factory(f"sqlite:///{tmp_path / 'ledger.db'}")
        setup = factory()
        user = User(account_id="alice", community_id="guild-1", username="alice", total_points=0)
        setup.add(user)
        setup.commit()

        periods = PeriodService(setup, estimator=make_estimator(default=3))
        period = periods.start_period(user.id, now)
        for n in range(8):
            periods.add_goal(period.id, f"Goal {n + 1}")
        PointsService(setup).add_points(user.id, 1, period.id, now=now)
        user_id, period_id = user.id, period.id
        setup.close()

        errors = []

        def award_many():
            db = factory()
            try:
                for _ in range(10):
                    PointsService(db).add_points(user_id, 2, period_id, now=now)
            except Exception as e:
                errors.append(e)
            finally:
                db.close()

        def complete(positions):
            db = factory()
            try:
                service = PeriodService(db, estimator=make_estimator(), notifier=NotificationService(asynchronous=False))
                for position in positions:
                    service.complete_goal(period_id, position, now)
            except Exception as e:
                errors.append(e)
            finally:
                db.close()

        threads = [threading.Thread(target=award_many) for _ in range(4)]
        threads.append(threading.Thread(target=complete, args=([1, 2, 3, 4],)))
        threads.append(threading.Thread(target=complete, args=([5, 6, 7, 8],)))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []

        db = factory()
        try:
            balance = PointsService(db).get_balance(user_id, period_id)
        finally:
            db.close()
        expected = 1 + 4 * 10 * 2 + 8 * 3
        assert balance.total_points == expected
        assert balance.sprint_points == expected
