"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database and a fixed clock.
"""
import pytest
from datetime import datetime
from types import SimpleNamespace

from focusbot.database import make_session_factory
from focusbot.models import CommunityConfig, User
from focusbot.services.notification_service import NotificationService, NotificationSink

COMMUNITY = "guild-1"


class RecordingSink(NotificationSink):
    """Keeps every delivered notification for assertions"""

    def __init__(self):
        self.sent = []

    def send(self, destination, notification):
        self.sent.append((destination, notification))

    def kinds(self):
        return [notification.kind for _, notification in self.sent]


class StubEstimator:
    """Hands out preset point values in order, then a fixed fallback"""

    def __init__(self, points=None, default=5):
        self.points = list(points or [])
        self.default = default
        self.calls = []

    def estimate(self, title, description=""):
        self.calls.append(title)
        if self.points:
            return self.points.pop(0)
        return self.default


class FakeOpenAI:
    """Mimics client.chat.completions.create with canned replies"""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.reply is None:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def session_factory():
    return make_session_factory("sqlite://")


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def now():
    """Monday morning, fixed"""
    return datetime(2026, 3, 2, 10, 0, 0)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def notifier(sink):
    return NotificationService(sink, asynchronous=False)


@pytest.fixture
def estimator():
    return StubEstimator()


@pytest.fixture
def make_estimator():
    """Estimator returning the given point values in order"""
    return StubEstimator


@pytest.fixture
def fake_openai():
    return FakeOpenAI


@pytest.fixture
def make_user(db_session):
    """Factory creating committed users in the test community"""
    def _make_user(account_id, community_id=COMMUNITY, username=None):
        user = User(
            account_id=account_id,
            community_id=community_id,
            username=username or account_id,
            total_points=0
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def configured_community(db_session):
    """Community with both leaderboard and reminder destinations set"""
    config = CommunityConfig(
        community_id=COMMUNITY,
        leaderboard_destination="leaderboard-channel",
        reminder_destination="reminder-channel"
    )
    db_session.add(config)
    db_session.commit()
    return config
