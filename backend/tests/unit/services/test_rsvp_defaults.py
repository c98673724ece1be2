"""
Unit tests for RSVP deadline and arrival offset resolution.
"""

import pytest
from datetime import datetime, timedelta

from backend.src.models import EventCategory, Team
from backend.src.services.exceptions import ValidationError
from backend.src.services.rsvp_defaults import (
    RsvpDefaults,
    apply_deadline_offset,
    capture_deadline_offset,
    compute_rsvp_deadline,
    validate_arrival_minutes,
    validate_deadline_hours,
)


START = datetime(2031, 9, 14, 15, 0)


class TestFromTeam:
    """Tests for building the defaults snapshot."""

    def test_category_value_wins_over_legacy(self):
        team = Team(
            name="SV Musterstadt",
            default_rsvp_deadline_hours=24,
            default_rsvp_deadline_hours_match=48,
            default_arrival_minutes=15,
            default_arrival_minutes_match=60,
        )
        defaults = RsvpDefaults.from_team(team)

        assert defaults.resolve_deadline_hours(EventCategory.MATCH) == 48
        assert defaults.resolve_arrival_minutes(EventCategory.MATCH) == 60
        # No training specific values: legacy applies
        assert defaults.resolve_deadline_hours(EventCategory.TRAINING) == 24
        assert defaults.resolve_arrival_minutes(EventCategory.TRAINING) == 15

    def test_nothing_configured(self):
        defaults = RsvpDefaults.from_team(Team(name="SV Musterstadt"))

        timing = defaults.resolve_for_occurrence(EventCategory.OTHER, START)

        assert timing.rsvp_deadline is None
        assert timing.arrival_minutes is None

    def test_out_of_range_values_are_treated_as_unset(self):
        team = Team(
            name="SV Musterstadt",
            default_rsvp_deadline_hours=12,
            default_rsvp_deadline_hours_training=500,
            default_arrival_minutes_training=-5,
        )
        defaults = RsvpDefaults.from_team(team)

        assert defaults.resolve_deadline_hours(EventCategory.TRAINING) == 12
        assert defaults.resolve_arrival_minutes(EventCategory.TRAINING) is None

    def test_zero_is_a_valid_value(self):
        team = Team(
            name="SV Musterstadt",
            default_rsvp_deadline_hours=24,
            default_rsvp_deadline_hours_other=0,
        )
        defaults = RsvpDefaults.from_team(team)

        assert defaults.resolve_deadline_hours(EventCategory.OTHER) == 0


class TestResolveForOccurrence:
    """Tests for per-occurrence resolution."""

    def test_default_deadline_is_start_minus_hours(self):
        defaults = RsvpDefaults(deadline_hours={EventCategory.MATCH: 48})

        timing = defaults.resolve_for_occurrence(EventCategory.MATCH, START)

        assert timing.rsvp_deadline == START - timedelta(hours=48)

    def test_explicit_values_win(self):
        defaults = RsvpDefaults(
            deadline_hours={EventCategory.MATCH: 48},
            arrival_minutes={EventCategory.MATCH: 60},
        )
        explicit = START - timedelta(hours=3)

        timing = defaults.resolve_for_occurrence(
            EventCategory.MATCH, START,
            explicit_deadline=explicit,
            explicit_arrival_minutes=30,
        )

        assert timing.rsvp_deadline == explicit
        assert timing.arrival_minutes == 30

    def test_explicit_arrival_out_of_range(self):
        with pytest.raises(ValidationError):
            RsvpDefaults().resolve_for_occurrence(
                EventCategory.TRAINING, START, explicit_arrival_minutes=241
            )


class TestHelpers:
    """Tests for the validation and offset helpers."""

    @pytest.mark.parametrize("hours", [0, 1, 168])
    def test_deadline_hours_in_range(self, hours):
        assert validate_deadline_hours(hours) == hours

    @pytest.mark.parametrize("hours", [-1, 169])
    def test_deadline_hours_out_of_range(self, hours):
        with pytest.raises(ValidationError) as exc_info:
            validate_deadline_hours(hours)

        assert exc_info.value.field == "rsvp_deadline_hours"

    def test_arrival_minutes_none_passes(self):
        assert validate_arrival_minutes(None) is None

    def test_compute_deadline_without_hours(self):
        assert compute_rsvp_deadline(START, None) is None

    def test_offset_round_trip_to_new_start(self):
        offset = capture_deadline_offset(START, START - timedelta(hours=24))
        new_start = START + timedelta(days=2, hours=1)

        assert apply_deadline_offset(new_start, offset) == new_start - timedelta(hours=24)
        assert apply_deadline_offset(new_start, None) is None
