"""
Team Pydantic schemas for API request/response validation.

Defines schemas for team settings, membership and fixture import
operations.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from backend.src.models import MemberRole, ResponseStatus


# ============================================================================
# Request Schemas
# ============================================================================


class HomeVenueSchema(BaseModel):
    """A home venue of a team."""

    name: str = Field(..., min_length=1, max_length=255)
    street: Optional[str] = Field(default=None, max_length=255)
    zip_city: Optional[str] = Field(default=None, max_length=255)
    pitch_type: Optional[str] = Field(default=None, max_length=100)

    model_config = {"from_attributes": True}


class TeamSettingsUpdate(BaseModel):
    """
    Request schema for a partial team settings update.

    Only fields present in the request body are changed; send null to
    clear an optional value.
    """

    name: Optional[str] = Field(default=None, max_length=255)
    default_response: Optional[ResponseStatus] = Field(default=None)
    external_team_id: Optional[str] = Field(default=None, max_length=40)

    default_rsvp_deadline_hours: Optional[int] = Field(default=None, ge=0, le=168)
    default_rsvp_deadline_hours_training: Optional[int] = Field(default=None, ge=0, le=168)
    default_rsvp_deadline_hours_match: Optional[int] = Field(default=None, ge=0, le=168)
    default_rsvp_deadline_hours_other: Optional[int] = Field(default=None, ge=0, le=168)

    default_arrival_minutes: Optional[int] = Field(default=None, ge=0, le=240)
    default_arrival_minutes_training: Optional[int] = Field(default=None, ge=0, le=240)
    default_arrival_minutes_match: Optional[int] = Field(default=None, ge=0, le=240)
    default_arrival_minutes_other: Optional[int] = Field(default=None, ge=0, le=240)

    home_venues: Optional[List[HomeVenueSchema]] = Field(default=None)
    default_home_venue_name: Optional[str] = Field(default=None, max_length=255)

    model_config = {
        "json_schema_extra": {
            "example": {
                "default_rsvp_deadline_hours_match": 48,
                "default_arrival_minutes_match": 60,
                "home_venues": [
                    {"name": "Sportpark", "street": "Am Anger 1", "zip_city": "12345 Musterstadt", "pitch_type": "Kunstrasen"}
                ],
                "default_home_venue_name": "Sportpark",
            }
        }
    }


class MemberAdd(BaseModel):
    """Request schema for adding a member to a team."""

    user_id: int
    role: MemberRole = Field(default=MemberRole.PLAYER)


class FixtureImportRequest(BaseModel):
    """Request schema for a manual fixture import."""

    limit: Optional[int] = Field(default=None, ge=1, le=20)


# ============================================================================
# Response Schemas
# ============================================================================


class TeamSettingsResponse(BaseModel):
    """Response schema for team settings."""

    id: int
    name: str
    external_team_id: Optional[str] = None
    default_response: ResponseStatus

    default_rsvp_deadline_hours: Optional[int] = None
    default_rsvp_deadline_hours_training: Optional[int] = None
    default_rsvp_deadline_hours_match: Optional[int] = None
    default_rsvp_deadline_hours_other: Optional[int] = None

    default_arrival_minutes: Optional[int] = None
    default_arrival_minutes_training: Optional[int] = None
    default_arrival_minutes_match: Optional[int] = None
    default_arrival_minutes_other: Optional[int] = None

    home_venues: List[HomeVenueSchema] = Field(default_factory=list)
    default_home_venue_name: Optional[str] = None

    model_config = {"from_attributes": True}


class MemberResponse(BaseModel):
    """Response schema for a team membership."""

    team_id: int
    user_id: int
    role: MemberRole
    joined_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ImportedFixtureItem(BaseModel):
    event_id: int
    title: str
    start_time: datetime


class SkippedFixtureItem(BaseModel):
    reason: str
    fixture: str


class FixtureImportResponse(BaseModel):
    """Outcome of a fixture import."""

    team_id: int
    imported: int
    updated: int
    skipped: int
    created_items: List[ImportedFixtureItem] = Field(default_factory=list)
    updated_items: List[ImportedFixtureItem] = Field(default_factory=list)
    skipped_details: List[SkippedFixtureItem] = Field(default_factory=list)


class LeagueTableRow(BaseModel):
    place: Optional[str] = None
    team: Optional[str] = None
    crest: Optional[str] = None
    games: Optional[str] = None
    won: Optional[str] = None
    draw: Optional[str] = None
    lost: Optional[str] = None
    goal: Optional[str] = None
    goal_difference: Optional[str] = None
    points: Optional[str] = None


class LeagueTableResponse(BaseModel):
    """League table of the team's group."""

    league_name: Optional[str] = None
    table: List[LeagueTableRow] = Field(default_factory=list)
