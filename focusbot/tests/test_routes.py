"""
Tests for the HTTP API.

Tests cover:
1. API key protection
2. Period, goal and check-in flows over HTTP
3. Domain errors mapped to status codes and error bodies
4. Revenue tracking over HTTP
"""
import pytest
from fastapi.testclient import TestClient

from focusbot.main import create_app

API_KEY = "test-key"
ALICE = {"account_id": "alice", "community_id": "guild-1", "username": "Alice"}
BOB = {"account_id": "bob", "community_id": "guild-1", "username": "Bob"}


@pytest.fixture
def client(session_factory, notifier, make_estimator, monkeypatch, tmp_path):
    monkeypatch.setenv("FOCUSBOT_API_KEY", API_KEY)
    monkeypatch.setenv("FOCUSBOT_LOG_DIR", str(tmp_path))
    app = create_app(
        session_factory=session_factory,
        notifier=notifier,
        estimator=make_estimator([5, 2]),
        start_scheduler=False
    )
    client = TestClient(app)
    client.headers.update({"X-API-Key": API_KEY})
    return client


class TestAuth:
    def test_health_check_is_public(self, client):
        response = client.get("/", headers={"X-API-Key": ""})
        assert response.status_code == 200

    def test_missing_key_rejected(self, client):
        response = client.get("/api/leaderboards/all-time", params={"community_id": "guild-1"}, headers={"X-API-Key": ""})
        assert response.status_code == 401

    def test_wrong_key_rejected(self, client):
        response = client.get("/api/leaderboards/all-time", params={"community_id": "guild-1"}, headers={"X-API-Key": "nope"})
        assert response.status_code == 401


class TestPeriodFlow:
    def test_start_add_complete(self, client):
        response = client.post("/api/periods/start", json=ALICE)
        assert response.status_code == 201
        assert response.json()["day_number"] == 1

        response = client.post("/api/periods/goals", json={"user": ALICE, "title": "Ship v1"})
        assert response.status_code == 201
        assert response.json()["points"] == 5

        response = client.post("/api/periods/goals/complete", json={"user": ALICE, "position": 1})
        assert response.status_code == 200
        assert response.json()["points_awarded"] == 5

        response = client.get("/api/leaderboards/sprint", params={"community_id": "guild-1"})
        assert [(e["username"], e["points"]) for e in response.json()] == [("Alice", 5)]

    def test_second_start_conflicts(self, client):
        client.post("/api/periods/start", json=ALICE)

        response = client.post("/api/periods/start", json=ALICE)

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_ACTIVE"

    def test_goal_without_period(self, client):
        response = client.post("/api/periods/goals", json={"user": ALICE, "title": "Ship v1"})

        assert response.status_code == 404
        assert response.json()["code"] == "NO_ACTIVE_PERIOD"

    def test_completing_twice_conflicts(self, client):
        client.post("/api/periods/start", json=ALICE)
        client.post("/api/periods/goals", json={"user": ALICE, "title": "Ship v1"})
        client.post("/api/periods/goals/complete", json={"user": ALICE, "position": 1})

        response = client.post("/api/periods/goals/complete", json={"user": ALICE, "position": 1})

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_COMPLETED"

    def test_unknown_position(self, client):
        client.post("/api/periods/start", json=ALICE)

        response = client.post("/api/periods/goals/complete", json={"user": ALICE, "position": 4})

        assert response.status_code == 404
        assert response.json()["code"] == "GOAL_NOT_FOUND"


class TestCheckIns:
    def test_check_in_then_duplicate(self, client):
        response = client.post("/api/checkins", json={"user": ALICE, "working_on": "Landing page"})
        assert response.status_code == 201
        assert response.json()["streak"]["current_streak"] == 1

        response = client.post("/api/checkins", json={"user": ALICE})
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_CHECK_IN"

        response = client.get("/api/points", params={"account_id": "alice", "community_id": "guild-1"})
        assert response.json()["total_points"] == 1


class TestSocial:
    def test_win_and_config(self, client):
        response = client.put("/api/communities/guild-1/config", json={"leaderboard_destination": "lb"})
        assert response.status_code == 200
        assert response.json()["leaderboard_destination"] == "lb"
        assert response.json()["reminder_destination"] is None

        response = client.post("/api/wins", json={"user": ALICE, "message": "First sale", "category": "Revenue"})
        assert response.status_code == 201
        assert response.json()["category"] == "revenue"

    def test_challenge_over_http(self, client):
        response = client.post("/api/challenges", json={
            "creator": ALICE, "title": "Ship daily", "days": 7, "participant_account_ids": ["bob"],
        })
        assert response.status_code == 201
        challenge_id = response.json()["id"]

        response = client.post(f"/api/challenges/{challenge_id}/submit", json={"user": BOB, "proof_url": "https://x.io"})
        assert response.json()["status"] == "pending_validation"

        response = client.post(f"/api/challenges/{challenge_id}/validate", json={
            "validator": ALICE, "target_account_id": "bob", "approved": True,
        })
        assert response.json()["points_awarded"] == 15

    def test_unknown_challenge(self, client):
        response = client.get("/api/challenges/999")
        assert response.status_code == 404
        assert response.json()["code"] == "CHALLENGE_NOT_FOUND"

    def test_manual_sweep_without_ended_periods(self, client):
        response = client.post("/api/sweeps/guild-1/ended-periods")

        assert response.status_code == 200
        assert response.json()["periods_finalized"] == 0

    def test_buddies_over_http(self, client):
        response = client.post("/api/buddies", json={"user": ALICE, "buddy_account_id": "bob"})
        assert response.status_code == 201

        response = client.get("/api/buddies", params={"account_id": "alice", "community_id": "guild-1"})
        assert [b["account_id"] for b in response.json()] == ["bob"]

        response = client.post("/api/buddies/remove", json={"user": ALICE, "buddy_account_id": "bob"})
        assert response.json() == {"removed": True}


class TestMrr:
    def test_mrr_over_http(self, client, sink):
        client.put("/api/communities/guild-1/config", json={"mrr_destination": "mrr"})
        response = client.put("/api/mrr/visibility", json={"user": ALICE, "is_public": True})
        assert response.status_code == 200
        assert response.json()["is_public"] is True

        response = client.post("/api/mrr", json={"user": ALICE, "amount": 1200})
        assert response.status_code == 201
        assert response.json()["milestone_label"] == "$1K"
        assert ("mrr", "mrr_milestone") in [(d, n.kind) for d, n in sink.sent]

        client.post("/api/mrr", json={"user": BOB, "amount": 5000})

        response = client.get("/api/mrr/leaderboard", params={"community_id": "guild-1"})
        assert [(e["account_id"], e["amount"]) for e in response.json()] == [("alice", 1200)]

        response = client.get("/api/mrr/stats", params={"account_id": "alice", "community_id": "guild-1"})
        assert response.json()["current_mrr"] == 1200
        assert response.json()["next_milestone"] == 500_000

    def test_negative_amount_rejected(self, client):
        response = client.post("/api/mrr", json={"user": ALICE, "amount": -5})
        assert response.status_code == 422
