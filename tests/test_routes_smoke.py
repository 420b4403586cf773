"""Smoke tests for API routes."""

from datetime import date
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from learning_league.api import tutor_routes
from learning_league.api.routes import get_registry, router
from learning_league.clock import FixedClock
from learning_league.config import load_catalog
from learning_league.storage.users import JsonUserRepository
from learning_league.store.registry import SessionRegistry

THURSDAY = date(2026, 10, 22)
CATALOG_PATH = Path(__file__).resolve().parent.parent / "config" / "catalog.yaml"


@pytest.fixture
def registry(tmp_path):
    records_dir = tmp_path / "records"
    records_dir.mkdir()
    return SessionRegistry(
        JsonUserRepository(tmp_path / "users"),
        clock=FixedClock(THURSDAY),
        catalog=load_catalog(CATALOG_PATH),
        records_dir=records_dir,
    )


@pytest.fixture
def client(registry):
    app = FastAPI()
    app.include_router(router)
    app.include_router(tutor_routes.router)
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as c:
        yield c


def _provision(client, **body):
    response = client.post("/api/users", json=body)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def student(client):
    return _provision(client, id="ada", name="Ada", role="student", tutor_id="marianna")


@pytest.fixture
def tutor(client):
    return _provision(client, id="marianna", name="Marianna", role="tutor")


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestUsers:
    def test_provision_student(self, student):
        assert student["user"]["level"] == 1
        assert student["user"]["role"] == "student"
        assert student["restricted"] is False
        assert student["progress"]["next_level_xp"] == 100

    def test_provision_duplicate(self, client, student):
        response = client.post("/api/users", json={"id": "ada", "name": "Ada", "role": "student"})
        assert response.status_code == 409

    def test_provision_bad_id(self, client):
        response = client.post("/api/users", json={"id": "../x", "name": "X", "role": "student"})
        assert response.status_code == 422

    def test_unknown_user(self, client):
        assert client.get("/api/users/ghost").status_code == 404

    def test_corrupt_user_record(self, client, registry):
        registry.repository.path_for("broken").write_text("{not json")
        response = client.get("/api/users/broken")
        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "CorruptRecord"

    def test_session_start_on_thursday_penalizes_idle_student(self, client, student):
        data = client.post("/api/users/ada/session").json()
        assert data["user"]["penalty_box"]["is_active"] is True
        assert data["user"]["login_streak"] == 1
        assert data["restricted"] is True

    def test_tutor_session_has_no_progress(self, client, tutor):
        data = client.post("/api/users/marianna/session").json()
        assert "progress" not in data
        assert client.get("/api/users/marianna/progress").status_code == 400


class TestCommands:
    def test_complete_lesson_redeems(self, client, student):
        client.post("/api/users/ada/session")
        response = client.post(
            "/api/users/ada/commands",
            json={"type": "COMPLETE_LESSON", "lesson_id": "math-101-1", "xp": 120, "gems": 30},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["xp"] == 120
        assert data["user"]["level"] == 2
        assert data["user"]["penalty_box"]["is_active"] is False
        assert data["restricted"] is False

    def test_insufficient_funds(self, client, student):
        response = client.post(
            "/api/users/ada/commands",
            json={"type": "PURCHASE_ITEM", "item_id": "avatar-fox", "price": 50},
        )
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "InsufficientFunds"
        assert client.get("/api/users/ada").json()["user"]["gems"] == 0

    def test_already_owned(self, client, student):
        client.post(
            "/api/users/ada/commands",
            json={"type": "COMPLETE_GOAL", "goal_id": "ixl-fractions", "xp": 40, "gems": 200},
        )
        buy = {"type": "PURCHASE_ITEM", "item_id": "avatar-fox", "price": 50}
        assert client.post("/api/users/ada/commands", json=buy).status_code == 200
        response = client.post("/api/users/ada/commands", json=buy)
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "AlreadyOwned"
        assert client.get("/api/users/ada").json()["user"]["gems"] == 150

    def test_unknown_lesson(self, client, student):
        response = client.post(
            "/api/users/ada/commands",
            json={"type": "COMPLETE_LESSON", "lesson_id": "nope", "xp": 10, "gems": 1},
        )
        assert response.status_code == 404

    def test_invalid_reward(self, client, student):
        response = client.post(
            "/api/users/ada/commands",
            json={"type": "COMPLETE_LESSON", "lesson_id": "math-101-1", "xp": -10, "gems": 1},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "InvalidReward"

    def test_malformed_command(self, client, student):
        response = client.post("/api/users/ada/commands", json={"type": "FLY"})
        assert response.status_code == 422

    def test_logout(self, client, student):
        assert client.post("/api/users/ada/logout").json() == {"status": "logged_out"}


class TestReports:
    def test_catalog(self, client):
        data = client.get("/api/catalog").json()
        assert any(item["id"] == "avatar-fox" for item in data["shop_items"])

    def test_leaderboard(self, client, student, tutor):
        _provision(client, id="bo", name="Bo", role="student")
        client.post(
            "/api/users/bo/commands",
            json={"type": "COMPLETE_LESSON", "lesson_id": "math-101-1", "xp": 30, "gems": 1},
        )
        board = client.get("/api/leaderboard").json()
        assert [e["user_id"] for e in board] == ["bo", "ada"]
        assert board[0]["rank"] == 1

    def test_weekly_summary(self, client, student):
        client.post(
            "/api/users/ada/commands",
            json={"type": "COMPLETE_LESSON", "lesson_id": "math-101-1", "xp": 30, "gems": 1},
        )
        data = client.get("/api/students/ada/weekly-summary").json()
        assert data["lessons_completed_this_week"] == 1
        assert data["weekly_xp"] == 30
        assert data["week_start"] == "2026-10-18"


class TestTutorRoutes:
    def test_roster(self, client, student, tutor):
        _provision(client, id="bo", name="Bo", role="student")
        roster = client.get("/api/tutors/marianna/students").json()
        assert [s["id"] for s in roster] == ["ada"]

    def test_custom_goal_flow(self, client, student, tutor):
        response = client.post(
            "/api/tutors/marianna/students/ada/goals",
            json={"title": "Read chapter 3", "xp": 25, "gems": 10},
        )
        assert response.status_code == 201
        goal_id = response.json()["id"]

        done = client.post(f"/api/students/ada/goals/{goal_id}/complete")
        assert done.status_code == 200
        assert done.json()["user"]["xp"] == 25
        assert goal_id in done.json()["user"]["completed_goals"]

        again = client.post(f"/api/students/ada/goals/{goal_id}/complete")
        assert again.json()["user"]["xp"] == 25

        goals = client.get("/api/tutors/marianna/students/ada/goals").json()
        assert goals[0]["is_completed"] is True

    def test_goal_without_reward_rejected(self, client, student, tutor):
        response = client.post(
            "/api/tutors/marianna/students/ada/goals",
            json={"title": "Nothing to win", "xp": 0, "gems": 0},
        )
        assert response.status_code == 422
        assert client.get("/api/tutors/marianna/students/ada/goals").json() == []

    def test_gems_only_goal_accepted(self, client, student, tutor):
        response = client.post(
            "/api/tutors/marianna/students/ada/goals",
            json={"title": "Tidy the desk", "xp": 0, "gems": 5},
        )
        assert response.status_code == 201

    def test_unknown_custom_goal(self, client, student):
        assert client.post("/api/students/ada/goals/custom-x/complete").status_code == 404

    def test_notes(self, client, student, tutor):
        client.post("/api/tutors/marianna/students/ada/notes", json={"note": "Great focus today"})
        notes = client.get("/api/tutors/marianna/students/ada/notes").json()
        assert [n["note"] for n in notes] == ["Great focus today"]

    def test_other_tutor_forbidden(self, client, student):
        _provision(client, id="other", name="Other", role="tutor")
        response = client.post("/api/tutors/other/students/ada/notes", json={"note": "hi"})
        assert response.status_code == 403

    def test_student_cannot_act_as_tutor(self, client, student):
        assert client.get("/api/tutors/ada/students").status_code == 403

    def test_tutor_assigns_penalty(self, client, student, tutor):
        response = client.post(
            "/api/tutors/marianna/students/ada/penalty",
            json={"reason": "Missed two sessions"},
        )
        data = response.json()
        assert data["user"]["penalty_box"]["reason"] == "Missed two sessions"
        assert data["restricted"] is True
