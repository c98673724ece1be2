"""
Unit tests for fixture record normalization.

Covers kickoff resolution (timestamps, combined and split date strings,
German formats), address assembly and title derivation.
"""

import pytest
from datetime import datetime
from zoneinfo import ZoneInfo

from backend.src.services.exceptions import FixtureRejected
from backend.src.services.fixture_normalizer import (
    FixtureField,
    normalize_fixture,
    parse_date_text,
    parse_kickoff,
    pick_first,
)


BERLIN = ZoneInfo("Europe/Berlin")

# 2024-08-01 16:00 UTC, 18:00 in Berlin (CEST)
EPOCH_SECONDS = 1722528000


class TestParseKickoff:
    """Tests for kickoff resolution order and formats."""

    def test_timestamp_in_seconds(self):
        assert parse_kickoff({"timestamp": EPOCH_SECONDS}, BERLIN) == datetime(2024, 8, 1, 18, 0)

    def test_timestamp_in_milliseconds(self):
        record = {"timestamp": str(EPOCH_SECONDS * 1000)}

        assert parse_kickoff(record, BERLIN) == datetime(2024, 8, 1, 18, 0)

    def test_timestamp_wins_over_date_strings(self):
        record = {"timestamp": EPOCH_SECONDS, "date": "02.08.2024", "time": "10:00"}

        assert parse_kickoff(record, BERLIN) == datetime(2024, 8, 1, 18, 0)

    def test_combined_iso_datetime_without_offset(self):
        record = {"datetime": "2024-08-01T15:30:00"}

        assert parse_kickoff(record, BERLIN) == datetime(2024, 8, 1, 15, 30)

    def test_combined_iso_datetime_with_utc_suffix(self):
        record = {"date_time": "2024-08-01T13:30:00Z"}

        assert parse_kickoff(record, BERLIN) == datetime(2024, 8, 1, 15, 30)

    def test_split_german_date_and_time(self):
        record = {"date": "01.08.2024", "time": "15:30 Uhr"}

        assert parse_kickoff(record, BERLIN) == datetime(2024, 8, 1, 15, 30)

    def test_date_alone_defaults_to_seven_pm(self):
        assert parse_kickoff({"datum": "2024-08-01"}, BERLIN) == datetime(2024, 8, 1, 19, 0)

    def test_no_date_at_all(self):
        assert parse_kickoff({"homeTeam": "SV Musterstadt"}, BERLIN) is None


class TestParseDateText:
    """Tests for the date string parser."""

    @pytest.mark.parametrize("text,expected", [
        ("01.08.2024", datetime(2024, 8, 1, 19, 0)),
        ("1.8.24", datetime(2024, 8, 1, 19, 0)),
        ("01-08-2024", datetime(2024, 8, 1, 19, 0)),
        ("01/08/24", datetime(2024, 8, 1, 19, 0)),
        ("01.08.2024 14:15", datetime(2024, 8, 1, 14, 15)),
        ("2024-8-1", datetime(2024, 8, 1, 19, 0)),
    ])
    def test_accepted_formats(self, text, expected):
        assert parse_date_text(text, tz=BERLIN) == expected

    @pytest.mark.parametrize("text", ["", "32.13.2024", "31.02.2024", "01.08.202", "tomorrow"])
    def test_rejected_values(self, text):
        assert parse_date_text(text, tz=BERLIN) is None

    def test_time_parts_are_clamped(self):
        assert parse_date_text("01.08.2024", "25:99", tz=BERLIN) == datetime(2024, 8, 1, 23, 59)


class TestNormalizeFixture:
    """Tests for the complete record mapping."""

    def test_flat_record(self):
        record = {
            "id": "MATCH123",
            "date": "03.08.2024",
            "time": "15:00",
            "homeTeam": "SV Musterstadt",
            "awayTeam": "FC Gast",
            "competition": "Kreisliga A",
            "homeLogo": "https://img.example/home.png",
            "awayLogo": "https://img.example/away.png",
        }

        fixture = normalize_fixture(record, BERLIN)

        assert fixture.external_id == "MATCH123"
        assert fixture.kickoff == datetime(2024, 8, 3, 15, 0)
        assert fixture.title == "SV Musterstadt - FC Gast"
        assert fixture.competition == "Kreisliga A"
        assert fixture.away_crest == "https://img.example/away.png"
        assert fixture.has_location is False

    def test_nested_teams_and_location(self):
        record = {
            "matchId": 99,
            "date": "2024-08-03",
            "homeTeam": {"name": "SV Musterstadt", "logo": "home.png"},
            "awayTeam": {"name": "FC Gast", "logo": "away.png"},
            "location": {
                "name": "Sportpark",
                "street": "Am Anger",
                "street_number": "1",
                "zip": "12345",
                "city": "Musterstadt",
            },
        }

        fixture = normalize_fixture(record, BERLIN)

        assert fixture.external_id == "99"
        assert fixture.home_team == "SV Musterstadt"
        assert fixture.home_crest == "home.png"
        assert fixture.venue == "Sportpark"
        assert fixture.street == "Am Anger 1"
        assert fixture.zip_city == "12345 Musterstadt"
        assert fixture.has_location is True

    def test_street_number_not_duplicated(self):
        record = {"date": "03.08.2024", "street": "Am Anger 1", "hausnummer": "1"}

        assert normalize_fixture(record, BERLIN).street == "Am Anger 1"

    @pytest.mark.parametrize("record,title", [
        ({"title": "Pokal", "homeTeam": "A", "awayTeam": "B"}, "Pokal"),
        ({"awayTeam": "FC Gast"}, "Spiel gegen FC Gast"),
        ({"homeTeam": "FC Heim"}, "Spiel: FC Heim"),
        ({}, "Spiel"),
    ])
    def test_title_derivation(self, record, title):
        record = dict(record, date="03.08.2024")

        assert normalize_fixture(record, BERLIN).title == title

    def test_blank_values_fall_through_to_next_candidate(self):
        record = {"id": "  ", "match_id": "M-7", "date": "03.08.2024"}

        assert pick_first(record, FixtureField.EXTERNAL_ID) == "M-7"
        assert normalize_fixture(record, BERLIN).external_id == "M-7"

    def test_invalid_date_is_rejected(self):
        with pytest.raises(FixtureRejected) as exc_info:
            normalize_fixture({"id": "X1", "date": "99.99.2024"}, BERLIN)

        assert exc_info.value.reason == "invalid_date"
        assert exc_info.value.label == "X1"
