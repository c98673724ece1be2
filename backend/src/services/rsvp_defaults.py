"""
RSVP deadline and arrival offset calculation.

Resolution order for both values:
1. An explicit per-event value supplied by the caller
2. The team's category-specific default (training, match, other)
3. The team's legacy team-wide default
4. Nothing (no deadline / no arrival offset)

Stored defaults outside their allowed range are treated as unset.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional

from backend.src.models import EventCategory, Team
from backend.src.services.exceptions import ValidationError


RSVP_DEADLINE_HOURS_RANGE = (0, 168)
ARRIVAL_MINUTES_RANGE = (0, 240)


def _in_range(value: Optional[int], bounds) -> Optional[int]:
    """Return value if it is an int within bounds, else None."""
    if value is None:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    low, high = bounds
    return number if low <= number <= high else None


def validate_deadline_hours(value: Optional[int], field_name: str = "rsvp_deadline_hours") -> Optional[int]:
    """Raise ValidationError unless value is None or within 0-168."""
    if value is None:
        return None
    hours = _in_range(value, RSVP_DEADLINE_HOURS_RANGE)
    if hours is None:
        raise ValidationError(
            f"{field_name} must be between {RSVP_DEADLINE_HOURS_RANGE[0]} "
            f"and {RSVP_DEADLINE_HOURS_RANGE[1]} hours",
            field=field_name
        )
    return hours


def validate_arrival_minutes(value: Optional[int], field_name: str = "arrival_minutes") -> Optional[int]:
    """Raise ValidationError unless value is None or within 0-240."""
    if value is None:
        return None
    minutes = _in_range(value, ARRIVAL_MINUTES_RANGE)
    if minutes is None:
        raise ValidationError(
            f"{field_name} must be between {ARRIVAL_MINUTES_RANGE[0]} "
            f"and {ARRIVAL_MINUTES_RANGE[1]} minutes",
            field=field_name
        )
    return minutes


@dataclass(frozen=True)
class ResolvedTiming:
    """Deadline and arrival offset computed for one occurrence."""
    rsvp_deadline: Optional[datetime]
    arrival_minutes: Optional[int]


@dataclass(frozen=True)
class RsvpDefaults:
    """
    Snapshot of a team's deadline and arrival defaults.

    Attributes:
        deadline_hours: Category-specific deadline hours
        arrival_minutes: Category-specific arrival minutes
        legacy_deadline_hours: Team-wide deadline hours
        legacy_arrival_minutes: Team-wide arrival minutes
    """
    deadline_hours: Dict[EventCategory, Optional[int]] = field(default_factory=dict)
    arrival_minutes: Dict[EventCategory, Optional[int]] = field(default_factory=dict)
    legacy_deadline_hours: Optional[int] = None
    legacy_arrival_minutes: Optional[int] = None

    @classmethod
    def from_team(cls, team: Team) -> "RsvpDefaults":
        """Build a snapshot from a Team row, dropping out-of-range values."""
        return cls(
            deadline_hours={
                EventCategory.TRAINING: _in_range(team.default_rsvp_deadline_hours_training, RSVP_DEADLINE_HOURS_RANGE),
                EventCategory.MATCH: _in_range(team.default_rsvp_deadline_hours_match, RSVP_DEADLINE_HOURS_RANGE),
                EventCategory.OTHER: _in_range(team.default_rsvp_deadline_hours_other, RSVP_DEADLINE_HOURS_RANGE),
            },
            arrival_minutes={
                EventCategory.TRAINING: _in_range(team.default_arrival_minutes_training, ARRIVAL_MINUTES_RANGE),
                EventCategory.MATCH: _in_range(team.default_arrival_minutes_match, ARRIVAL_MINUTES_RANGE),
                EventCategory.OTHER: _in_range(team.default_arrival_minutes_other, ARRIVAL_MINUTES_RANGE),
            },
            legacy_deadline_hours=_in_range(team.default_rsvp_deadline_hours, RSVP_DEADLINE_HOURS_RANGE),
            legacy_arrival_minutes=_in_range(team.default_arrival_minutes, ARRIVAL_MINUTES_RANGE),
        )

    def resolve_deadline_hours(self, category: EventCategory) -> Optional[int]:
        value = self.deadline_hours.get(category)
        return value if value is not None else self.legacy_deadline_hours

    def resolve_arrival_minutes(self, category: EventCategory) -> Optional[int]:
        value = self.arrival_minutes.get(category)
        return value if value is not None else self.legacy_arrival_minutes

    def resolve_for_occurrence(
        self,
        category: EventCategory,
        start: datetime,
        explicit_deadline: Optional[datetime] = None,
        explicit_arrival_minutes: Optional[int] = None,
    ) -> ResolvedTiming:
        """
        Resolve deadline and arrival offset for one occurrence.

        Explicit values win outright; an explicit arrival offset outside
        0-240 raises ValidationError.
        """
        if explicit_arrival_minutes is not None:
            arrival = validate_arrival_minutes(explicit_arrival_minutes)
        else:
            arrival = self.resolve_arrival_minutes(category)

        if explicit_deadline is not None:
            deadline = explicit_deadline
        else:
            deadline = compute_rsvp_deadline(start, self.resolve_deadline_hours(category))

        return ResolvedTiming(rsvp_deadline=deadline, arrival_minutes=arrival)


def compute_rsvp_deadline(start: datetime, hours: Optional[int]) -> Optional[datetime]:
    """Deadline = start - hours, or None when no deadline hours apply."""
    if hours is None:
        return None
    return start - timedelta(hours=hours)


def capture_deadline_offset(start: datetime, deadline: Optional[datetime]) -> Optional[timedelta]:
    """Offset between an occurrence's start and its deadline (None without deadline)."""
    if deadline is None:
        return None
    return start - deadline


def apply_deadline_offset(start: datetime, offset: Optional[timedelta]) -> Optional[datetime]:
    """Re-derive a deadline for a new start from a captured offset."""
    if offset is None:
        return None
    return start - offset
