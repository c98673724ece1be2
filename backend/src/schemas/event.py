"""
Pydantic schemas for event API request/response validation.

Provides data validation and serialization for:
- Event creation requests (single and recurring)
- Event update requests (single, whole series, series reshape)
- RSVP answers
- Event API responses

Design:
- Timestamps are naive wall-clock times in the club timezone
- Range checks (arrival 0-240, deadline hours 0-168) are repeated in the
  service layer, which is the authority for non-HTTP callers
- Weekdays use 0=Sunday .. 6=Saturday
"""

import enum
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from backend.src.models import EventCategory, ResponseStatus
from backend.src.utils.time_utils import to_local_naive


# ============================================================================
# Enums
# ============================================================================


class RepeatType(str, enum.Enum):
    """Recurrence selector of the create form."""
    NONE = "none"
    WEEKLY = "weekly"
    CUSTOM = "custom"


# ============================================================================
# Request Schemas
# ============================================================================


class _EventFields(BaseModel):
    """Fields shared by create and update requests."""

    title: str = Field(..., min_length=1, max_length=255)
    category: EventCategory = Field(default=EventCategory.TRAINING)
    description: Optional[str] = Field(default=None)

    location_venue: Optional[str] = Field(default=None, max_length=255)
    location_street: Optional[str] = Field(default=None, max_length=255)
    location_zip_city: Optional[str] = Field(default=None, max_length=255)
    pitch_type: Optional[str] = Field(default=None, max_length=100)
    meeting_point: Optional[str] = Field(default=None, max_length=255)
    arrival_minutes: Optional[int] = Field(default=None, ge=0, le=240)

    start_time: datetime = Field(..., description="Start (club-local)")
    end_time: Optional[datetime] = Field(default=None, description="End (club-local)")
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    rsvp_deadline: Optional[datetime] = Field(default=None)

    visibility_all: bool = Field(default=True)
    invited_user_ids: Optional[List[int]] = Field(default=None)

    @field_validator("title")
    @classmethod
    def validate_title_not_whitespace(cls, v: str) -> str:
        """Ensure title is not just whitespace."""
        if not v.strip():
            raise ValueError("Title cannot be empty or whitespace")
        return v.strip()

    @field_validator("start_time", "end_time", "rsvp_deadline")
    @classmethod
    def to_club_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Timestamps are club wall-clock values; offset input is converted."""
        if v is None:
            return None
        return to_local_naive(v)


class EventCreate(_EventFields):
    """
    Schema for creating an event or a recurring series.

    Required:
        title: Event title
        start_time: Start of the (first) occurrence
        end_time or duration_minutes

    Recurrence:
        repeat_type: none, weekly or custom
        repeat_until: Inclusive last day
        repeat_days: Weekdays (0=Sunday .. 6=Saturday); weekly defaults to
            the start's weekday, custom requires at least one
    """

    team_id: int = Field(..., description="Owning team")
    rsvp_deadline_hours: Optional[int] = Field(default=None, ge=0, le=168)
    invite_all: bool = Field(default=True)

    repeat_type: RepeatType = Field(default=RepeatType.NONE)
    repeat_until: Optional[date] = Field(default=None)
    repeat_days: Optional[List[int]] = Field(default=None)

    model_config = {
        "json_schema_extra": {
            "example": {
                "team_id": 1,
                "title": "Training",
                "category": "training",
                "start_time": "2024-01-01T18:00:00",
                "duration_minutes": 90,
                "repeat_type": "custom",
                "repeat_until": "2024-03-31",
                "repeat_days": [1, 3],
            }
        }
    }


class EventUpdate(_EventFields):
    """
    Schema for editing an event.

    Modes:
        update_series false: only this occurrence
        update_series true: every occurrence of the series shifts
        update_series true with repeat_days and repeat_until: the series
            is regenerated and reconciled

    Invitations change only when invite_all or invited_user_ids is given.
    """

    invite_all: Optional[bool] = Field(default=None)
    clear_rsvp_deadline: bool = Field(default=False)
    update_series: bool = Field(default=False)
    repeat_until: Optional[date] = Field(default=None)
    repeat_days: Optional[List[int]] = Field(default=None)


class ResponseSubmit(BaseModel):
    """Schema for an RSVP answer."""

    status: ResponseStatus
    comment: Optional[str] = Field(default=None, max_length=1000)


# ============================================================================
# Response Schemas
# ============================================================================


class EventResponseItem(BaseModel):
    """One RSVP answer as visible to the viewer."""

    user_id: int
    status: ResponseStatus
    comment: Optional[str] = None
    responded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EventDetailResponse(BaseModel):
    """Schema for event API responses."""

    id: int
    team_id: int
    category: EventCategory
    title: str
    description: Optional[str] = None

    location_venue: Optional[str] = None
    location_street: Optional[str] = None
    location_zip_city: Optional[str] = None
    pitch_type: Optional[str] = None
    meeting_point: Optional[str] = None
    arrival_minutes: Optional[int] = None

    start_time: datetime
    end_time: datetime
    rsvp_deadline: Optional[datetime] = None
    duration_minutes: Optional[int] = None

    visibility_all: bool
    invite_all: bool
    series_key: Optional[str] = None
    external_fixture_key: Optional[str] = None
    is_home_match: Optional[bool] = None
    opponent_crest_url: Optional[str] = None
    created_by_user_id: Optional[int] = None

    responses: List[EventResponseItem] = Field(default_factory=list)


class EventCreateResponse(BaseModel):
    """Ids created by an event create request."""

    event_ids: List[int]
    series_key: Optional[str] = None


class EventChangeResponse(BaseModel):
    """Ids touched by an event update."""

    series_key: Optional[str] = None
    updated: List[int] = Field(default_factory=list)
    created: List[int] = Field(default_factory=list)
    deleted: List[int] = Field(default_factory=list)


class EventDeleteResponse(BaseModel):
    """Number of deleted events."""

    deleted: int
