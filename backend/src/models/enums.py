"""
Closed value sets shared by models, services and schemas.

Values are stored as plain strings; parsing happens once at the boundary
through the ``parse`` classmethods so services only ever handle members.
"""

import enum
from typing import Any, Optional


class _ParsableEnum(str, enum.Enum):
    """String enum with lenient boundary parsing."""

    @classmethod
    def parse(cls, value: Any) -> "_ParsableEnum":
        """
        Parse a raw value (member or string, any case, surrounding spaces).

        Raises:
            ValueError: If the value is not one of the members
        """
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid {cls.__name__} '{value}'. Allowed: {allowed}")

    @classmethod
    def parse_optional(cls, value: Any) -> Optional["_ParsableEnum"]:
        """Like parse(), but returns None instead of raising."""
        try:
            return cls.parse(value)
        except ValueError:
            return None


class EventCategory(_ParsableEnum):
    """Kind of occurrence; selects which team defaults apply."""
    TRAINING = "training"
    MATCH = "match"
    OTHER = "other"


class ResponseStatus(_ParsableEnum):
    """RSVP answer of one member for one occurrence."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    TENTATIVE = "tentative"
    DECLINED = "declined"


class MemberRole(_ParsableEnum):
    """Role of a user within a team."""
    TRAINER = "trainer"
    PLAYER = "player"
