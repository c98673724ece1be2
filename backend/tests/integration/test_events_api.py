"""
Integration tests for Events API endpoints.

Tests end-to-end flows for event management:
- Authentication and trainer/member checks
- Creating single events and series
- Listing with date range filtering and response visibility
- Updating and deleting events and series
- Answering events, including trainer answers on behalf of members
- The tentative sweep run before event operations
"""

import pytest
from datetime import datetime

from backend.src.models import Event, EventDeletion, EventResponse, ResponseStatus
from backend.src.services.invite_service import InviteService


@pytest.fixture
def trainer_headers(team_setup, auth_headers):
    return auth_headers(team_setup['trainer'])


@pytest.fixture
def player_headers(team_setup, auth_headers):
    return auth_headers(team_setup['players'][0])


@pytest.fixture
def invited_event(test_db_session, team_setup, sample_event):
    """A single event with pending rows for every member."""
    def _create(**kwargs):
        event = sample_event(team_setup['team'], **kwargs)
        InviteService(test_db_session).sync_invites(
            event,
            {team_setup['trainer'].id} | {p.id for p in team_setup['players']},
        )
        test_db_session.commit()
        return event
    return _create


class TestAuthentication:
    """Tests for the X-User-Id requirement."""

    def test_missing_header(self, test_client, team_setup):
        response = test_client.get(f"/api/events?team_id={team_setup['team'].id}")

        assert response.status_code == 401

    def test_unknown_user(self, test_client, team_setup):
        response = test_client.get(
            f"/api/events?team_id={team_setup['team'].id}",
            headers={"X-User-Id": "9999"},
        )

        assert response.status_code == 401

    def test_malformed_header(self, test_client, team_setup):
        response = test_client.get(
            f"/api/events?team_id={team_setup['team'].id}",
            headers={"X-User-Id": "abc"},
        )

        assert response.status_code == 401


class TestCreateEvent:
    """Tests for POST /api/events."""

    def test_create_series(self, test_client, test_db_session, team_setup, trainer_headers):
        response = test_client.post("/api/events", headers=trainer_headers, json={
            "team_id": team_setup['team'].id,
            "title": "Training",
            "start_time": "2031-01-06T18:00:00",
            "duration_minutes": 90,
            "repeat_type": "custom",
            "repeat_until": "2031-01-20",
            "repeat_days": [1, 3],
        })

        assert response.status_code == 201
        data = response.json()
        assert len(data["event_ids"]) == 5
        assert data["series_key"]
        assert test_db_session.query(EventResponse).count() == 15

    def test_create_single_event(self, test_client, team_setup, trainer_headers):
        response = test_client.post("/api/events", headers=trainer_headers, json={
            "team_id": team_setup['team'].id,
            "title": "Season opening",
            "category": "other",
            "start_time": "2031-07-01T19:00:00",
            "end_time": "2031-07-01T23:00:00",
        })

        assert response.status_code == 201
        assert response.json()["series_key"] is None

    def test_utc_timestamps_are_stored_in_club_time(
        self, test_client, test_db_session, team_setup, trainer_headers
    ):
        response = test_client.post("/api/events", headers=trainer_headers, json={
            "team_id": team_setup['team'].id,
            "title": "Cup match",
            "category": "match",
            "start_time": "2031-05-06T16:00:00Z",
            "end_time": "2031-05-06T18:00:00Z",
            "rsvp_deadline": "2031-05-05T16:00:00+00:00",
        })

        assert response.status_code == 201
        event = test_db_session.get(Event, response.json()["event_ids"][0])
        # Europe/Berlin is UTC+2 in May
        assert event.start_time == datetime(2031, 5, 6, 18, 0)
        assert event.end_time == datetime(2031, 5, 6, 20, 0)
        assert event.rsvp_deadline == datetime(2031, 5, 5, 18, 0)

    def test_player_cannot_create(self, test_client, team_setup, player_headers):
        response = test_client.post("/api/events", headers=player_headers, json={
            "team_id": team_setup['team'].id,
            "title": "Training",
            "start_time": "2031-01-06T18:00:00",
            "duration_minutes": 90,
        })

        assert response.status_code == 403

    def test_end_before_start(self, test_client, team_setup, trainer_headers):
        response = test_client.post("/api/events", headers=trainer_headers, json={
            "team_id": team_setup['team'].id,
            "title": "Training",
            "start_time": "2031-01-06T18:00:00",
            "end_time": "2031-01-06T17:00:00",
        })

        assert response.status_code == 400

    def test_only_non_members_invited(
        self, test_client, team_setup, trainer_headers, sample_user
    ):
        outsider = sample_user(name='Outsider')

        response = test_client.post("/api/events", headers=trainer_headers, json={
            "team_id": team_setup['team'].id,
            "title": "Training",
            "start_time": "2031-01-06T18:00:00",
            "duration_minutes": 90,
            "invited_user_ids": [outsider.id],
        })

        assert response.status_code == 400

    def test_blank_title_is_rejected(self, test_client, team_setup, trainer_headers):
        response = test_client.post("/api/events", headers=trainer_headers, json={
            "team_id": team_setup['team'].id,
            "title": "   ",
            "start_time": "2031-01-06T18:00:00",
            "duration_minutes": 90,
        })

        assert response.status_code == 422


class TestListAndGetEvents:
    """Tests for GET /api/events and GET /api/events/{id}."""

    def test_list_with_range(
        self, test_client, team_setup, player_headers, sample_event
    ):
        team = team_setup['team']
        sample_event(team, start=datetime(2031, 5, 1, 18, 0))
        sample_event(team, start=datetime(2031, 5, 8, 18, 0))
        sample_event(team, start=datetime(2031, 6, 1, 18, 0))

        response = test_client.get(
            f"/api/events?team_id={team.id}&start=2031-05-01T00:00:00&end=2031-05-31T23:59:59",
            headers=player_headers,
        )

        assert response.status_code == 200
        starts = [e["start_time"] for e in response.json()]
        assert starts == ["2031-05-01T18:00:00", "2031-05-08T18:00:00"]

    def test_outsider_cannot_list(self, test_client, team_setup, auth_headers, sample_user):
        outsider = sample_user(name='Outsider')

        response = test_client.get(
            f"/api/events?team_id={team_setup['team'].id}",
            headers=auth_headers(outsider),
        )

        assert response.status_code == 403

    def test_hidden_responses(
        self, test_client, team_setup, player_headers, trainer_headers, invited_event
    ):
        event = invited_event(visibility_all=False)

        as_player = test_client.get(f"/api/events/{event.id}", headers=player_headers).json()
        as_trainer = test_client.get(f"/api/events/{event.id}", headers=trainer_headers).json()

        assert [r["user_id"] for r in as_player["responses"]] == [team_setup['players'][0].id]
        assert len(as_trainer["responses"]) == 3

    def test_unknown_event(self, test_client, player_headers):
        response = test_client.get("/api/events/9999", headers=player_headers)

        assert response.status_code == 404


class TestUpdateAndDelete:
    """Tests for PUT and DELETE /api/events/{id}."""

    def test_update_single_event(
        self, test_client, test_db_session, trainer_headers, invited_event
    ):
        event = invited_event()

        response = test_client.put(f"/api/events/{event.id}", headers=trainer_headers, json={
            "title": "Training moved",
            "category": "training",
            "start_time": "2031-05-07T19:00:00",
            "duration_minutes": 60,
        })

        assert response.status_code == 200
        assert response.json()["updated"] == [event.id]
        test_db_session.refresh(event)
        assert event.start_time == datetime(2031, 5, 7, 19, 0)
        assert event.end_time == datetime(2031, 5, 7, 20, 0)

    def test_player_cannot_update(self, test_client, player_headers, invited_event):
        event = invited_event()

        response = test_client.put(f"/api/events/{event.id}", headers=player_headers, json={
            "title": "Mine now",
            "start_time": "2031-05-07T19:00:00",
            "duration_minutes": 60,
        })

        assert response.status_code == 403

    def test_update_unknown_event(self, test_client, trainer_headers):
        response = test_client.put("/api/events/9999", headers=trainer_headers, json={
            "title": "Training",
            "start_time": "2031-05-07T19:00:00",
            "duration_minutes": 60,
        })

        assert response.status_code == 404

    def test_delete_series(self, test_client, test_db_session, team_setup, trainer_headers):
        created = test_client.post("/api/events", headers=trainer_headers, json={
            "team_id": team_setup['team'].id,
            "title": "Training",
            "start_time": "2031-01-06T18:00:00",
            "duration_minutes": 90,
            "repeat_type": "weekly",
            "repeat_until": "2031-01-20",
        }).json()

        response = test_client.delete(
            f"/api/events/{created['event_ids'][1]}?delete_series=true",
            headers=trainer_headers,
        )

        assert response.status_code == 200
        assert response.json()["deleted"] == 3
        assert test_db_session.query(Event).count() == 0
        assert test_db_session.query(EventResponse).count() == 0
        assert test_db_session.query(EventDeletion).count() == 3

    def test_player_cannot_delete(self, test_client, player_headers, invited_event):
        event = invited_event()

        response = test_client.delete(f"/api/events/{event.id}", headers=player_headers)

        assert response.status_code == 403


class TestRespond:
    """Tests for the answer endpoints."""

    def test_accept(self, test_client, team_setup, player_headers, invited_event):
        event = invited_event()

        response = test_client.post(
            f"/api/events/{event.id}/response", headers=player_headers,
            json={"status": "accepted"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "accepted"
        assert data["user_id"] == team_setup['players'][0].id
        assert data["responded_at"] is not None

    def test_decline_without_comment(self, test_client, player_headers, invited_event):
        event = invited_event()

        response = test_client.post(
            f"/api/events/{event.id}/response", headers=player_headers,
            json={"status": "declined"},
        )

        assert response.status_code == 400

    def test_unknown_status(self, test_client, player_headers, invited_event):
        event = invited_event()

        response = test_client.post(
            f"/api/events/{event.id}/response", headers=player_headers,
            json={"status": "maybe"},
        )

        assert response.status_code == 422

    def test_trainer_answers_for_player(
        self, test_client, test_db_session, team_setup, trainer_headers, invited_event
    ):
        event = invited_event()
        player = team_setup['players'][1]

        response = test_client.post(
            f"/api/events/{event.id}/response/{player.id}", headers=trainer_headers,
            json={"status": "declined", "comment": "Injured"},
        )

        assert response.status_code == 200
        row = (
            test_db_session.query(EventResponse)
            .filter(EventResponse.event_id == event.id, EventResponse.user_id == player.id)
            .one()
        )
        test_db_session.refresh(row)
        assert row.status == ResponseStatus.DECLINED.value
        assert row.comment == "Injured"

    def test_player_cannot_answer_for_others(
        self, test_client, team_setup, player_headers, invited_event
    ):
        event = invited_event()

        response = test_client.post(
            f"/api/events/{event.id}/response/{team_setup['players'][1].id}",
            headers=player_headers, json={"status": "accepted"},
        )

        assert response.status_code == 403

    def test_answer_unknown_event(self, test_client, player_headers):
        response = test_client.post(
            "/api/events/9999/response", headers=player_headers, json={"status": "accepted"},
        )

        assert response.status_code == 404


class TestTentativeSweep:
    """Overdue tentative answers are declined before event operations."""

    def test_overdue_tentative_is_declined_on_read(
        self, test_client, test_db_session, team_setup, player_headers, invited_event
    ):
        event = invited_event(
            start=datetime(2020, 1, 2, 18, 0),
            rsvp_deadline=datetime(2020, 1, 1, 18, 0),
        )
        player = team_setup['players'][0]
        row = (
            test_db_session.query(EventResponse)
            .filter(EventResponse.event_id == event.id, EventResponse.user_id == player.id)
            .one()
        )
        row.status = ResponseStatus.TENTATIVE.value
        test_db_session.commit()

        response = test_client.get(f"/api/events/{event.id}", headers=player_headers)

        statuses = {r["user_id"]: r["status"] for r in response.json()["responses"]}
        assert statuses[player.id] == "declined"
