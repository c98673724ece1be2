"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.event import (
    RepeatType,
    EventCreate,
    EventUpdate,
    ResponseSubmit,
    EventResponseItem,
    EventDetailResponse,
    EventCreateResponse,
    EventChangeResponse,
    EventDeleteResponse,
)
from backend.src.schemas.team import (
    HomeVenueSchema,
    TeamSettingsUpdate,
    TeamSettingsResponse,
    MemberAdd,
    MemberResponse,
    FixtureImportRequest,
    FixtureImportResponse,
    LeagueTableRow,
    LeagueTableResponse,
)

__all__ = [
    "RepeatType",
    "EventCreate",
    "EventUpdate",
    "ResponseSubmit",
    "EventResponseItem",
    "EventDetailResponse",
    "EventCreateResponse",
    "EventChangeResponse",
    "EventDeleteResponse",
    "HomeVenueSchema",
    "TeamSettingsUpdate",
    "TeamSettingsResponse",
    "MemberAdd",
    "MemberResponse",
    "FixtureImportRequest",
    "FixtureImportResponse",
    "LeagueTableRow",
    "LeagueTableResponse",
]
