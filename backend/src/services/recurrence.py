"""
Recurrence date generation.

Expands a template occurrence (its start/end define time-of-day and
duration) plus a recurrence rule into concrete occurrence slots.

Weekday numbers follow the 0=Sunday .. 6=Saturday convention used by the
clients. The end bound is inclusive; a bare date means the end of that day.

Modes:
- weekly: walk week by week from the template start; without weekdays the
  template's own weekday is used
- custom: walk day by day from the template's calendar day; an explicit,
  non-empty weekday set is required
"""

import enum
from datetime import date, datetime, timedelta
from typing import Iterable, List, NamedTuple, Optional, Set, Union

from backend.src.services.exceptions import ValidationError
from backend.src.utils.time_utils import end_of_day, start_of_day, sunday_based_weekday


class RecurrenceMode(str, enum.Enum):
    """Recurrence walk strategy."""
    WEEKLY = "weekly"
    CUSTOM = "custom"


class OccurrenceSlot(NamedTuple):
    """Start and end of one generated occurrence."""
    start: datetime
    end: datetime


def _parse_weekdays(weekdays: Optional[Iterable[int]]) -> Set[int]:
    selected = set()
    for day in weekdays or ():
        try:
            number = int(day)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid weekday: {day!r}", field="repeat_days")
        if number < 0 or number > 6:
            raise ValidationError(
                f"Weekday {number} out of range (0=Sunday .. 6=Saturday)",
                field="repeat_days"
            )
        selected.add(number)
    return selected


def generate_recurring_dates(
    template_start: datetime,
    template_end: datetime,
    mode: Union[RecurrenceMode, str],
    until: Union[date, datetime],
    weekdays: Optional[Iterable[int]] = None,
) -> List[OccurrenceSlot]:
    """
    Generate occurrence slots for a recurrence rule.

    Args:
        template_start: Start of the template occurrence
        template_end: End of the template occurrence
        mode: RecurrenceMode (weekly or custom)
        until: Inclusive end bound; a date means that day at 23:59:59.999
        weekdays: Selected weekdays (0=Sunday .. 6=Saturday)

    Returns:
        Slots sorted ascending by start. Every start lies within
        [template_start, until] and falls on a selected weekday.

    Raises:
        ValidationError: Unknown mode, end before start, bound before the
            template start, invalid weekdays, or custom mode without weekdays
    """
    try:
        mode = RecurrenceMode(mode)
    except ValueError:
        raise ValidationError(f"Unknown recurrence mode: {mode}", field="repeat_type")

    if template_end < template_start:
        raise ValidationError("End time must not be before start time", field="end_time")

    bound = end_of_day(until)
    if bound < template_start:
        raise ValidationError(
            "Repeat end date must not be before the first occurrence",
            field="repeat_until"
        )

    selected = _parse_weekdays(weekdays)
    duration = template_end - template_start

    if mode == RecurrenceMode.WEEKLY:
        if not selected:
            selected = {sunday_based_weekday(template_start)}
        starts = _walk_weekly(template_start, bound, selected)
    else:
        if not selected:
            raise ValidationError(
                "Select at least one weekday for a custom repetition",
                field="repeat_days"
            )
        starts = _walk_daily(template_start, bound, selected)

    return [OccurrenceSlot(start, start + duration) for start in sorted(set(starts))]


def _walk_weekly(template_start: datetime, bound: datetime, selected: Set[int]) -> List[datetime]:
    starts = []
    week_cursor = template_start
    while week_cursor <= bound:
        current = sunday_based_weekday(week_cursor)
        for weekday in selected:
            candidate = week_cursor + timedelta(days=(weekday - current + 7) % 7)
            if template_start <= candidate <= bound:
                starts.append(candidate)
        week_cursor += timedelta(days=7)
    return starts


def _walk_daily(template_start: datetime, bound: datetime, selected: Set[int]) -> List[datetime]:
    starts = []
    time_of_day = template_start.time()
    day_cursor = start_of_day(template_start)
    while day_cursor <= bound:
        if sunday_based_weekday(day_cursor) in selected:
            candidate = datetime.combine(day_cursor.date(), time_of_day)
            if template_start <= candidate <= bound:
                starts.append(candidate)
        day_cursor += timedelta(days=1)
    return starts
