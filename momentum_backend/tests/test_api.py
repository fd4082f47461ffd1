"""
HTTP tests through FastAPI's TestClient.
"""
import uuid
import pytest
from fastapi.testclient import TestClient

from momentum_backend.auth import ADMIN_KEY, API_KEY
from momentum_backend.database import get_db
from momentum_backend.main import app


@pytest.fixture
def client(db_session, default_settings, catalog):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def headers(user_id=None):
    result = {"X-API-Key": API_KEY}
    if user_id:
        result["X-User-Id"] = user_id
    return result


def signup(client, username, is_public=True):
    user_id = str(uuid.uuid4())
    response = client.post(
        "/api/profiles",
        json={"username": username, "is_public": is_public},
        headers=headers(user_id)
    )
    assert response.status_code == 201
    return user_id


class TestAuth:
    """API key and caller identity"""

    def test_health_check_is_public(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "active"

    def test_missing_api_key(self, client):
        response = client.get("/api/catalog")
        assert response.status_code == 401

    def test_missing_caller_identity(self, client):
        response = client.get("/api/status", headers=headers())
        assert response.status_code == 401
        assert response.json()["error"] == "not_authenticated"


class TestCatalogApi:

    def test_grouped_catalog(self, client):
        response = client.get("/api/catalog/grouped", headers=headers())

        assert response.status_code == 200
        grouped = response.json()
        assert set(grouped) == {"Strength", "Speed", "Balance", "Skill", "Extreme"}
        running = next(a for a in grouped["Speed"] if a["activity_label"] == "Running")
        assert running["allowed_units"] == ["km", "mi", "min"]


class TestActivityFlowApi:
    """Goal creation, logging and status through HTTP"""

    def test_run_three_times_scenario(self, client, catalog):
        user_id = signup(client, "httprunner")

        goal = client.post(
            "/api/goals",
            json={"activity_id": catalog["Running"].id, "frequency": 3},
            headers=headers(user_id)
        )
        assert goal.status_code == 201
        goal_id = goal.json()["id"]

        energies = []
        for _ in range(3):
            response = client.post(
                "/api/activities",
                json={"goal_id": goal_id, "details_value": 5, "details_units": "km"},
                headers=headers(user_id)
            )
            assert response.status_code == 201
            energies.append(response.json()["energy_gained"])
        assert energies == [20, 40, 80]

        status = client.get("/api/status", headers=headers(user_id)).json()
        assert status["current_momentum"] == 2
        assert status["current_energy"] == 40
        assert status["weekly_goals_progress"][0]["completions_this_week"] == 3

        feed = client.get("/api/feed?page_limit=2", headers=headers(user_id)).json()
        assert len(feed) == 2
        assert feed[0]["momentum"]["current_momentum"] == 2

    def test_capacity_conflict(self, client, catalog):
        user_id = signup(client, "greedy")
        payload = {"activity_id": catalog["Yoga"].id, "frequency": 2}

        assert client.post("/api/goals", json=payload, headers=headers(user_id)).status_code == 201
        response = client.post("/api/goals", json=payload, headers=headers(user_id))

        assert response.status_code == 409
        assert response.json()["error"] == "capacity_exceeded"

    def test_future_timestamp(self, client, catalog):
        user_id = signup(client, "future")
        response = client.post(
            "/api/activities",
            json={"activity_id": catalog["Yoga"].id, "timestamp": "2999-01-01T00:00:00Z"},
            headers=headers(user_id)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_timestamp"

    def test_delete_goal_flow(self, client, catalog):
        user_id = signup(client, "deleter")
        goal_id = client.post(
            "/api/goals",
            json={"activity_id": catalog["Yoga"].id, "frequency": 2},
            headers=headers(user_id)
        ).json()["id"]

        assert client.delete(f"/api/goals/{goal_id}", headers=headers(user_id)).status_code == 400
        toggle = client.post(
            f"/api/goals/{goal_id}/toggle", json={"is_active": False}, headers=headers(user_id)
        )
        assert toggle.json()["is_active"] is False

        response = client.delete(f"/api/goals/{goal_id}", headers=headers(user_id))
        assert response.json() == {"deleted_id": goal_id}


class TestSocialApi:
    """Follow requests and profile envelopes through HTTP"""

    def test_private_follow_and_envelope(self, client):
        alice = signup(client, "alice")
        carol = signup(client, "carol", is_public=False)

        follow = client.post("/api/follows", json={"target_id": carol}, headers=headers(alice))
        assert follow.json()["status"] == "pending"

        hidden = client.get("/api/profiles/by-username/carol", headers=headers(alice)).json()
        assert "momentum" not in hidden
        assert "activity_log" not in hidden

        requests = client.get("/api/follows/requests", headers=headers(carol)).json()
        assert [r["requestor_id"] for r in requests] == [alice]

        accepted = client.post(
            "/api/follows/requests",
            json={"requestor_id": alice, "action": "accept"},
            headers=headers(carol)
        )
        assert accepted.json()["status"] == "accepted"

        full = client.get("/api/profiles/by-username/carol", headers=headers(alice)).json()
        assert full["momentum"] == 1
        assert full["activity_log"] == []

    def test_duplicate_request_conflict(self, client):
        alice = signup(client, "alice")
        carol = signup(client, "carol", is_public=False)
        client.post("/api/follows", json={"target_id": carol}, headers=headers(alice))

        response = client.post("/api/follows", json={"target_id": carol}, headers=headers(alice))

        assert response.status_code == 409
        assert response.json()["error"] == "already_requested"

    def test_username_conflict(self, client):
        signup(client, "taken")
        response = client.post(
            "/api/profiles", json={"username": "TAKEN"}, headers=headers(str(uuid.uuid4()))
        )

        assert response.status_code == 409
        assert response.json()["error"] == "username_not_available"

        check = client.get("/api/profiles/check-username?username=Taken", headers=headers())
        assert check.json() == {"username": "Taken", "available": False}


class TestSettingsApi:

    def operator_headers(self):
        return {**headers(), "X-Admin-Key": ADMIN_KEY}

    def test_update_settings(self, client):
        response = client.put(
            "/api/settings", json={"base_energy": 25}, headers=self.operator_headers()
        )

        assert response.status_code == 200
        assert response.json()["base_energy"] == 25
        assert response.json()["multiplier_cap"] == 16

    def test_update_requires_operator_key(self, client):
        user_id = signup(client, "tinkerer")

        response = client.put(
            "/api/settings", json={"level_energy_base": 1}, headers=headers(user_id)
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"
        assert client.get("/api/settings", headers=headers()).json()["level_energy_base"] == 100

    def test_invalid_shield_bounds(self, client):
        response = client.put(
            "/api/settings",
            json={"shield_min_hours": 100, "shield_max_hours": 50},
            headers=self.operator_headers()
        )
        assert response.status_code == 400
