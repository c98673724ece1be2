"""
Integration tests for application-level endpoints and error handling.
"""


class TestHealth:
    """Tests for GET /health."""

    def test_health_reports_scheduler_state(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        # Automatic import is disabled in the test environment
        assert data["fixture_import"] == {"running": False, "cycle_in_progress": False}


class TestRequestValidation:
    """Malformed requests are rejected before reaching a service."""

    def test_missing_team_id(self, test_client, team_setup, auth_headers):
        response = test_client.get("/api/events", headers=auth_headers(team_setup['trainer']))

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["query", "team_id"]
