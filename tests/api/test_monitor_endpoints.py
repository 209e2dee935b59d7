"""
Integration tests for monitor management endpoints
"""
import pytest

MONITOR = {
    "name": "Nightly backup",
    "expected_interval": 3600,
    "grace_period": 300,
    "alert_email": "alerts@example.com",
}


@pytest.fixture
def created(client, auth_headers):
    response = client.post("/api/monitors", json=MONITOR, headers=auth_headers)
    assert response.status_code == 201
    return response.json()


class TestMonitorEndpoints:
    def test_create_monitor_success(self, created):
        assert created["name"] == "Nightly backup"
        assert created["expected_interval"] == 3600
        assert created["grace_period"] == 300
        assert created["status"] == "pending"
        assert created["last_ping"] is None
        assert len(created["token"]) >= 12
        assert created["ping_url"].endswith(f"/ping/{created['token']}")

    def test_create_monitor_no_auth(self, client):
        response = client.post("/api/monitors", json=MONITOR)
        assert response.status_code == 401

    def test_create_monitor_bad_token(self, client):
        response = client.post(
            "/api/monitors", json=MONITOR, headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 401

    @pytest.mark.parametrize(
        "overrides",
        [
            {"expected_interval": 0},
            {"expected_interval": -5},
            {"grace_period": -1},
            {"name": "   "},
        ],
    )
    def test_create_monitor_invalid_configuration(self, client, auth_headers, overrides):
        response = client.post(
            "/api/monitors", json={**MONITOR, **overrides}, headers=auth_headers
        )
        assert response.status_code == 400

    def test_create_monitor_schema_errors(self, client, auth_headers):
        response = client.post(
            "/api/monitors",
            json={**MONITOR, "alert_email": "not-an-email"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_name_is_sanitized(self, client, auth_headers):
        response = client.post(
            "/api/monitors",
            json={**MONITOR, "name": "<b>backup</b>"},
            headers=auth_headers,
        )
        assert response.json()["name"] == "backup"

    def test_grace_period_defaults(self, client, auth_headers):
        response = client.post(
            "/api/monitors",
            json={"name": "job", "expected_interval": 60},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["grace_period"] == 300

    def test_free_plan_quota(self, client, auth_headers):
        for i in range(2):
            response = client.post(
                "/api/monitors", json={**MONITOR, "name": f"job {i}"}, headers=auth_headers
            )
            assert response.status_code == 201
        response = client.post("/api/monitors", json=MONITOR, headers=auth_headers)
        assert response.status_code == 403

    def test_list_and_get(self, client, auth_headers, created):
        response = client.get("/api/monitors", headers=auth_headers)
        assert response.status_code == 200
        assert [m["id"] for m in response.json()] == [created["id"]]

        response = client.get(f"/api/monitors/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["token"] == created["token"]

    def test_update_monitor(self, client, auth_headers, created):
        response = client.put(
            f"/api/monitors/{created['id']}",
            json={"name": "Updated Job", "expected_interval": 7200},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Updated Job"
        assert data["expected_interval"] == 7200
        assert data["grace_period"] == 300
        assert data["token"] == created["token"]

    def test_update_rejects_bad_interval(self, client, auth_headers, created):
        response = client.put(
            f"/api/monitors/{created['id']}",
            json={"expected_interval": 0},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_oversized_interval_is_a_bad_request(self, client, auth_headers):
        response = client.post(
            "/api/monitors",
            json={"name": "x", "expected_interval": 10**20},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "cannot exceed" in response.json()["detail"]
        assert client.get("/api/monitors", headers=auth_headers).json() == []

    def test_update_clears_alert_email_with_null(self, client, auth_headers, created):
        response = client.put(
            f"/api/monitors/{created['id']}",
            json={"alert_email": None},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["alert_email"] is None
        assert data["name"] == "Nightly backup"
        assert data["expected_interval"] == 3600

    def test_update_keeps_omitted_alert_email(self, client, auth_headers, created):
        response = client.put(
            f"/api/monitors/{created['id']}",
            json={"name": "Renamed"},
            headers=auth_headers,
        )
        assert response.json()["alert_email"] == "alerts@example.com"

    def test_delete_monitor(self, client, auth_headers, created):
        response = client.delete(f"/api/monitors/{created['id']}", headers=auth_headers)
        assert response.status_code == 204

        assert client.get("/api/monitors", headers=auth_headers).json() == []
        assert client.get(f"/ping/{created['token']}").status_code == 404

    def test_missing_monitor(self, client, auth_headers):
        assert client.get("/api/monitors/999", headers=auth_headers).status_code == 404
        assert client.delete("/api/monitors/999", headers=auth_headers).status_code == 404
        assert client.get("/api/monitors/999/pings", headers=auth_headers).status_code == 404


class TestTenantIsolation:
    def test_other_owner_cannot_see_or_touch(self, client, login_as):
        alice = login_as("alice@example.com")
        bob = login_as("bob@example.com")
        alices = client.post("/api/monitors", json=MONITOR, headers=alice).json()
        client.post("/api/monitors", json=MONITOR, headers=bob)

        bob_list = client.get("/api/monitors", headers=bob).json()
        assert len(bob_list) == 1
        assert bob_list[0]["id"] != alices["id"]

        assert client.get(f"/api/monitors/{alices['id']}", headers=bob).status_code == 404
        assert client.put(
            f"/api/monitors/{alices['id']}", json={"name": "mine"}, headers=bob
        ).status_code == 404
        assert client.delete(f"/api/monitors/{alices['id']}", headers=bob).status_code == 404
        assert client.get(f"/api/monitors/{alices['id']}/pings", headers=bob).status_code == 404

        still_there = client.get(f"/api/monitors/{alices['id']}", headers=alice)
        assert still_there.status_code == 200
        assert still_there.json()["name"] == "Nightly backup"
