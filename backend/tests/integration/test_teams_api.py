"""
Integration tests for Teams API endpoints.

Tests end-to-end flows for team management:
- Reading and partially updating team settings
- Adding members (with invitations to upcoming events)
- Importing fixtures from the feed, including feed failures
- The league table
"""

import pytest
from datetime import datetime, timedelta
from fastapi import HTTPException

from backend.src.api.teams import get_feed_client
from backend.src.models import Event, EventResponse
from backend.src.services.exceptions import ExternalServiceError


EXTERNAL_ID = "011MIC9NDS000000VV0AG80NVV8OQVTB"


@pytest.fixture
def trainer_headers(team_setup, auth_headers):
    return auth_headers(team_setup['trainer'])


@pytest.fixture
def player_headers(team_setup, auth_headers):
    return auth_headers(team_setup['players'][0])


@pytest.fixture
def linked_team(test_db_session, team_setup):
    """The team_setup team linked to the fixture feed."""
    team = team_setup['team']
    team.external_team_id = EXTERNAL_ID
    test_db_session.commit()
    return team


class TestTeamSettings:
    """Tests for GET/PUT /api/teams/{id}/settings."""

    def test_member_reads_settings(self, test_client, team_setup, player_headers):
        response = test_client.get(
            f"/api/teams/{team_setup['team'].id}/settings", headers=player_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "SV Musterstadt"
        assert data["default_response"] == "pending"
        assert data["home_venues"] == []

    def test_outsider_cannot_read(self, test_client, team_setup, auth_headers, sample_user):
        response = test_client.get(
            f"/api/teams/{team_setup['team'].id}/settings",
            headers=auth_headers(sample_user(name='Outsider')),
        )

        assert response.status_code == 403

    def test_unknown_team(self, test_client, player_headers):
        response = test_client.get("/api/teams/9999/settings", headers=player_headers)

        assert response.status_code == 404

    def test_trainer_updates_partially(self, test_client, team_setup, trainer_headers):
        team_id = team_setup['team'].id
        test_client.put(f"/api/teams/{team_id}/settings", headers=trainer_headers, json={
            "default_arrival_minutes_match": 60,
        })

        response = test_client.put(f"/api/teams/{team_id}/settings", headers=trainer_headers, json={
            "default_rsvp_deadline_hours_match": 48,
            "external_team_id": EXTERNAL_ID.lower(),
            "home_venues": [{"name": "Sportpark", "street": "Am Anger 1", "pitch_type": "Kunstrasen"}],
            "default_home_venue_name": "Sportpark",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["default_rsvp_deadline_hours_match"] == 48
        assert data["default_arrival_minutes_match"] == 60
        assert data["external_team_id"] == EXTERNAL_ID
        assert data["home_venues"][0]["name"] == "Sportpark"
        assert data["default_home_venue_name"] == "Sportpark"

    def test_player_cannot_update(self, test_client, team_setup, player_headers):
        response = test_client.put(
            f"/api/teams/{team_setup['team'].id}/settings", headers=player_headers,
            json={"default_rsvp_deadline_hours_match": 48},
        )

        assert response.status_code == 403

    def test_unknown_default_venue(self, test_client, team_setup, trainer_headers):
        response = test_client.put(
            f"/api/teams/{team_setup['team'].id}/settings", headers=trainer_headers,
            json={"default_home_venue_name": "Nowhere"},
        )

        assert response.status_code == 400

    def test_out_of_range_value(self, test_client, team_setup, trainer_headers):
        response = test_client.put(
            f"/api/teams/{team_setup['team'].id}/settings", headers=trainer_headers,
            json={"default_rsvp_deadline_hours": 500},
        )

        assert response.status_code == 422


class TestAddMember:
    """Tests for POST /api/teams/{id}/members."""

    def test_trainer_adds_member(
        self, test_client, test_db_session, team_setup, trainer_headers, sample_user, sample_event
    ):
        team = team_setup['team']
        upcoming = sample_event(team, start=datetime.now() + timedelta(days=365))
        newcomer = sample_user(name='Newcomer')

        response = test_client.post(
            f"/api/teams/{team.id}/members", headers=trainer_headers,
            json={"user_id": newcomer.id},
        )

        assert response.status_code == 201
        assert response.json()["role"] == "player"
        rows = (
            test_db_session.query(EventResponse)
            .filter(EventResponse.event_id == upcoming.id, EventResponse.user_id == newcomer.id)
            .all()
        )
        assert len(rows) == 1

    def test_existing_member(self, test_client, team_setup, trainer_headers):
        response = test_client.post(
            f"/api/teams/{team_setup['team'].id}/members", headers=trainer_headers,
            json={"user_id": team_setup['players'][0].id},
        )

        assert response.status_code == 409

    def test_unknown_user(self, test_client, team_setup, trainer_headers):
        response = test_client.post(
            f"/api/teams/{team_setup['team'].id}/members", headers=trainer_headers,
            json={"user_id": 9999},
        )

        assert response.status_code == 404

    def test_player_cannot_add(self, test_client, team_setup, player_headers, sample_user):
        response = test_client.post(
            f"/api/teams/{team_setup['team'].id}/members", headers=player_headers,
            json={"user_id": sample_user(name='Friend').id},
        )

        assert response.status_code == 403


class TestFixtureImport:
    """Tests for POST /api/teams/{id}/fixtures/import."""

    @pytest.fixture
    def any_season(self, mocker):
        return mocker.patch(
            "backend.src.services.fixture_import_service.season_window",
            return_value=(datetime(2000, 1, 1), datetime(2100, 1, 1)),
        )

    def test_import(
        self, test_client, test_db_session, linked_team, trainer_headers, fake_feed, any_season
    ):
        fake_feed.team_info = {"data": {"nextGames": [
            {"id": "G1", "date": "10.08.2024", "time": "15:00",
             "homeTeam": "SV Musterstadt", "awayTeam": "FC Gast"},
            {"id": "G2", "date": "17.08.2024", "time": "13:00",
             "homeTeam": "TSV Anderswo", "awayTeam": "SV Musterstadt"},
        ]}}

        response = test_client.post(
            f"/api/teams/{linked_team.id}/fixtures/import", headers=trainer_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["imported"] == 2
        assert data["skipped"] == 0
        assert fake_feed.calls == [("info", EXTERNAL_ID)]
        assert test_db_session.query(Event).count() == 2

    def test_import_with_limit(
        self, test_client, linked_team, trainer_headers, fake_feed, any_season
    ):
        fake_feed.team_info = {"data": {"nextGames": [
            {"id": "G1", "date": "10.08.2024", "homeTeam": "SV Musterstadt", "awayTeam": "FC Gast"},
            {"id": "G2", "date": "17.08.2024", "homeTeam": "TSV Anderswo", "awayTeam": "SV Musterstadt"},
        ]}}

        response = test_client.post(
            f"/api/teams/{linked_team.id}/fixtures/import", headers=trainer_headers,
            json={"limit": 1},
        )

        assert response.json()["imported"] == 1

    def test_feed_failure(
        self, test_client, test_db_session, linked_team, trainer_headers, fake_feed
    ):
        fake_feed.team_info = ExternalServiceError("API token invalid or expired", upstream_status=401)

        response = test_client.post(
            f"/api/teams/{linked_team.id}/fixtures/import", headers=trainer_headers,
        )

        assert response.status_code == 502
        assert response.json()["detail"] == "Fixture feed error (401): API token invalid or expired"
        assert test_db_session.query(Event).count() == 0

    def test_team_without_feed_id(self, test_client, team_setup, trainer_headers):
        response = test_client.post(
            f"/api/teams/{team_setup['team'].id}/fixtures/import", headers=trainer_headers,
        )

        assert response.status_code == 400

    def test_player_cannot_import(self, test_client, linked_team, player_headers, fake_feed):
        response = test_client.post(
            f"/api/teams/{linked_team.id}/fixtures/import", headers=player_headers,
        )

        assert response.status_code == 403
        assert fake_feed.calls == []


class TestLeagueTable:
    """Tests for GET /api/teams/{id}/table."""

    def test_member_reads_table(self, test_client, linked_team, player_headers, fake_feed):
        fake_feed.team_table = {
            "success": True,
            "leagueName": "Kreisliga A",
            "data": [
                {"place": 1, "team": "SV Musterstadt", "games": 10, "points": 25},
                {"place": 2, "team": "FC Gast", "games": 10, "points": 21},
            ],
        }

        response = test_client.get(f"/api/teams/{linked_team.id}/table", headers=player_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["league_name"] == "Kreisliga A"
        assert [row["team"] for row in data["table"]] == ["SV Musterstadt", "FC Gast"]
        assert data["table"][0]["points"] == "25"

    def test_feed_failure(self, test_client, linked_team, player_headers):
        response = test_client.get(f"/api/teams/{linked_team.id}/table", headers=player_headers)

        assert response.status_code == 502
        assert response.json()["detail"] == "Fixture feed error (404): No table configured"

    def test_invalid_table_payload(self, test_client, linked_team, player_headers, fake_feed):
        fake_feed.team_table = {"success": False}

        response = test_client.get(f"/api/teams/{linked_team.id}/table", headers=player_headers)

        assert response.status_code == 502


class TestFeedClientDependency:
    """Tests for the per-request feed client."""

    def test_missing_token_is_unavailable(self, mocker):
        mocker.patch(
            "backend.src.api.teams.FixtureFeedClient.from_settings",
            side_effect=ExternalServiceError("Fixture feed token is not configured"),
        )

        with pytest.raises(HTTPException) as exc_info:
            next(get_feed_client())

        assert exc_info.value.status_code == 503

    def test_client_is_closed(self, mocker):
        client = mocker.Mock()
        mocker.patch("backend.src.api.teams.FixtureFeedClient.from_settings", return_value=client)

        dependency = get_feed_client()
        assert next(dependency) is client
        with pytest.raises(StopIteration):
            next(dependency)

        client.close.assert_called_once()
