"""
Unit tests for recurrence date generation.

Covers weekly and custom walks, the inclusive end bound and the
validation errors of the generator.
"""

import pytest
from datetime import date, datetime, timedelta

from backend.src.services.exceptions import ValidationError
from backend.src.services.recurrence import (
    OccurrenceSlot,
    RecurrenceMode,
    generate_recurring_dates,
)


# 2024-01-01 is a Monday
MONDAY = datetime(2024, 1, 1, 18, 0)
MONDAY_END = datetime(2024, 1, 1, 19, 30)


def _days(slots):
    return [slot.start.day for slot in slots]


class TestWeeklyMode:
    """Tests for the week-by-week walk."""

    def test_monday_and_wednesday_until_inclusive_day(self):
        """Mon/Wed from Jan 1 until Jan 15 yields Jan 1, 3, 8, 10, 15."""
        slots = generate_recurring_dates(
            MONDAY, MONDAY_END, RecurrenceMode.WEEKLY, date(2024, 1, 15), [1, 3]
        )

        assert _days(slots) == [1, 3, 8, 10, 15]
        assert all(slot.start.time() == MONDAY.time() for slot in slots)

    def test_without_weekdays_uses_template_weekday(self):
        slots = generate_recurring_dates(
            MONDAY, MONDAY_END, "weekly", date(2024, 1, 29)
        )

        assert _days(slots) == [1, 8, 15, 22, 29]

    def test_duration_is_preserved(self):
        slots = generate_recurring_dates(
            MONDAY, MONDAY_END, RecurrenceMode.WEEKLY, date(2024, 1, 10), [1, 3]
        )

        for slot in slots:
            assert slot.end - slot.start == timedelta(minutes=90)

    def test_selected_weekday_before_template_weekday_starts_next_week(self):
        """A Wednesday template with Monday selected never yields a date before the template."""
        wednesday = datetime(2024, 1, 3, 18, 0)
        slots = generate_recurring_dates(
            wednesday, wednesday + timedelta(hours=1), RecurrenceMode.WEEKLY,
            date(2024, 1, 16), [1]
        )

        assert _days(slots) == [8, 15]

    def test_results_are_sorted_and_unique(self):
        slots = generate_recurring_dates(
            MONDAY, MONDAY_END, RecurrenceMode.WEEKLY, date(2024, 1, 14), [0, 1, 1, 6]
        )

        starts = [slot.start for slot in slots]
        assert starts == sorted(set(starts))
        assert _days(slots) == [1, 6, 7, 8, 13, 14]


class TestCustomMode:
    """Tests for the day-by-day walk."""

    def test_custom_matches_weekly_for_same_weekdays(self):
        weekly = generate_recurring_dates(
            MONDAY, MONDAY_END, RecurrenceMode.WEEKLY, date(2024, 1, 15), [1, 3]
        )
        custom = generate_recurring_dates(
            MONDAY, MONDAY_END, RecurrenceMode.CUSTOM, date(2024, 1, 15), [1, 3]
        )

        assert custom == weekly

    def test_custom_requires_weekdays(self):
        with pytest.raises(ValidationError) as exc_info:
            generate_recurring_dates(
                MONDAY, MONDAY_END, RecurrenceMode.CUSTOM, date(2024, 1, 15), []
            )

        assert exc_info.value.field == "repeat_days"

    def test_end_bound_datetime_is_inclusive(self):
        slots = generate_recurring_dates(
            MONDAY, MONDAY_END, RecurrenceMode.CUSTOM,
            datetime(2024, 1, 8, 18, 0), [1]
        )

        assert slots == [
            OccurrenceSlot(MONDAY, MONDAY_END),
            OccurrenceSlot(MONDAY + timedelta(days=7), MONDAY_END + timedelta(days=7)),
        ]

    def test_end_bound_before_slot_time_excludes_that_day(self):
        slots = generate_recurring_dates(
            MONDAY, MONDAY_END, RecurrenceMode.CUSTOM,
            datetime(2024, 1, 8, 17, 59), [1]
        )

        assert _days(slots) == [1]


class TestValidation:
    """Tests for rejected rules."""

    def test_unknown_mode(self):
        with pytest.raises(ValidationError):
            generate_recurring_dates(MONDAY, MONDAY_END, "monthly", date(2024, 2, 1))

    def test_end_before_start(self):
        with pytest.raises(ValidationError):
            generate_recurring_dates(
                MONDAY_END, MONDAY, RecurrenceMode.WEEKLY, date(2024, 2, 1)
            )

    def test_until_before_template_start(self):
        with pytest.raises(ValidationError) as exc_info:
            generate_recurring_dates(
                MONDAY, MONDAY_END, RecurrenceMode.WEEKLY, date(2023, 12, 31)
            )

        assert exc_info.value.field == "repeat_until"

    @pytest.mark.parametrize("weekdays", [[7], [-1], ["x"]])
    def test_invalid_weekdays(self, weekdays):
        with pytest.raises(ValidationError):
            generate_recurring_dates(
                MONDAY, MONDAY_END, RecurrenceMode.WEEKLY, date(2024, 2, 1), weekdays
            )
