"""Tests for the XP, progress, league and sync endpoints."""
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from progress_engine.api.deps import get_progression_service
from progress_engine.api.main import create_app
from progress_engine.domain.leagues import LEAGUES


@pytest.fixture
def client(service):
    app = create_app()
    app.dependency_overrides[get_progression_service] = lambda: service
    return TestClient(app)


def test_problem_completion_awards_xp(client):
    response = client.post(
        "/api/v1/xp/problem",
        json={"topic_id": "fractions", "difficulty": "medium", "mode": "independent", "accuracy": 100},
        headers={"X-User-Id": "u1"}
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["gain"]["amount"] == 155
    assert payload["xp"]["total_xp"] == 155
    assert payload["weekly_xp"] == 155
    assert payload["sync_pending"] is True


def test_xp_summary_reflects_awards(client):
    client.post("/api/v1/xp/arithmetic", json={"correct_answers": 12, "streak": 7}, headers={"X-User-Id": "u1"})
    client.post("/api/v1/xp/multiplayer", json={"won": True}, headers={"X-User-Id": "u1"})

    response = client.get("/api/v1/xp", headers={"X-User-Id": "u1"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_xp"] == 245
    assert payload["level"] == 1
    assert payload["xp_to_next_level"] == 37
    assert payload["title"] == "Novice"


def test_duplicate_mastery_is_not_an_error(client):
    body = {"kind": "subtopic", "mastery_id": "fractions"}

    first = client.post("/api/v1/xp/mastery", json=body, headers={"X-User-Id": "u1"})
    second = client.post("/api/v1/xp/mastery", json=body, headers={"X-User-Id": "u1"})

    assert first.json()["awarded"] is True
    assert second.status_code == 200
    assert second.json()["awarded"] is False
    assert second.json()["xp"]["total_xp"] == 200


def test_missing_header_uses_guest(client):
    client.post("/api/v1/xp/multiplayer", json={"won": False})

    guest = client.get("/api/v1/xp").json()
    user = client.get("/api/v1/xp", headers={"X-User-Id": "u1"}).json()

    assert guest["total_xp"] == 25
    assert user["total_xp"] == 0


def test_invalid_identity_is_rejected(client):
    response = client.get("/api/v1/xp", headers={"X-User-Id": "a:b"})

    assert response.status_code == 400
    assert "X-User-Id" in response.json()["error"]


def test_invalid_event_returns_structured_validation_error(client):
    response = client.post("/api/v1/xp/problem", json={"topic_id": "", "accuracy": 140})

    assert response.status_code == 422
    payload = response.json()
    assert payload["error"] == "Validation error"
    fields = {detail["field"] for detail in payload["details"]}
    assert "body.topic_id" in fields
    assert "body.accuracy" in fields


def test_progress_and_league(client):
    client.post("/api/v1/xp/problem", json={"topic_id": "algebra"}, headers={"X-User-Id": "u1"})

    progress = client.get("/api/v1/progress", headers={"X-User-Id": "u1"}).json()
    league = client.get("/api/v1/league", headers={"X-User-Id": "u1"}).json()

    assert progress["progress"]["total_problems_completed"] == 1
    assert progress["today"]["problems_completed"] == 1
    assert league["league"]["id"] == "bronze"
    assert league["zone"] == "promote"
    assert league["weekly_xp"] == 155


def test_sync_and_reset(client, remote):
    client.post("/api/v1/xp/multiplayer", json={"won": True}, headers={"X-User-Id": "u1"})

    synced = client.post("/api/v1/sync", json={"force": True}, headers={"X-User-Id": "u1"})
    assert synced.status_code == 200
    assert synced.json()["status"] == "synced"
    assert remote.snapshots["u1"].xp.total_xp == 100

    guest = client.post("/api/v1/sync")
    assert guest.json()["status"] == "skipped"

    reset = client.post("/api/v1/reset", headers={"X-User-Id": "u1"})
    assert reset.status_code == 200
    assert reset.json()["identity"] == "u1"
    assert client.get("/api/v1/xp", headers={"X-User-Id": "u1"}).json()["total_xp"] == 0


def test_unreachable_store_returns_503(client, fake_redis):
    fake_redis.fail = True

    response = client.get("/api/v1/xp", headers={"X-User-Id": "u1"})

    assert response.status_code == 503
    assert response.json()["error_code"] == "snapshot_store_unavailable"


def test_health_reports_degraded_without_remote():
    app = create_app()
    with patch("progress_engine.api.main.check_redis_health", AsyncMock()), \
            patch("progress_engine.api.main.check_database_health", AsyncMock(side_effect=RuntimeError("down"))):
        response = TestClient(app).get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["services"]["redis"] == "healthy"


def test_status_lists_league_ladder():
    response = TestClient(create_app()).get("/status")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "running"
    assert payload["leagues"][0] == "bronze"
    assert payload["leagues"][-1] == LEAGUES[-1].id.value


def test_league_rank_query(client):
    response = client.get("/api/v1/league", params={"rank": 15}, headers={"X-User-Id": "u1"})

    assert response.status_code == 200
    assert response.json()["rank"] == 15
    assert response.json()["zone"] == "safe"
    assert client.get("/api/v1/league", params={"rank": 0}).status_code == 422
