"""
Event model: one concrete occurrence of a training, match or other activity.

Occurrences generated from the same recurrence definition share a
series_key. Occurrences imported from the fixture feed carry an
external_fixture_key that is unique per team, so re-imports update the
existing row instead of inserting a duplicate.

Design Rationale:
- start_time/end_time are naive wall-clock datetimes in the club timezone
- duration_minutes caches end - start for display
- rsvp_deadline is absolute; series reshapes preserve start - deadline
- is_home_match and opponent_crest_url are only set for match events
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text,
    ForeignKey, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.enums import EventCategory


class Event(Base):
    """
    Event occurrence model.

    Attributes:
        id: Primary key
        team_id: Owning team
        category: EventCategory value (training, match, other)
        title: Display title
        description: Free text
        location_venue/location_street/location_zip_city: Optional address parts
        pitch_type: Must match a pitch type of one of the team's home venues
        meeting_point: Free text
        arrival_minutes: Minutes before start players should arrive (0-240)
        start_time: Start (club-local)
        end_time: End (club-local), never before start_time
        rsvp_deadline: Last moment to answer (club-local, nullable)
        duration_minutes: Cached end - start
        visibility_all: Whether all members see every response
        invite_all: Whether every team member is invited
        created_by_user_id: Creator
        series_key: Shared by all occurrences of one recurrence definition
        external_fixture_key: Stable fixture feed key (unique per team)
        is_home_match: Home/away flag for imported matches (nullable)
        opponent_crest_url: Crest of the opponent for imported matches

    Relationships:
        team: Owning Team
        responses: EventResponse rows, deleted together with the event
    """

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)

    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    category = Column(
        String(20),
        default=EventCategory.TRAINING.value,
        nullable=False
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Location
    location_venue = Column(String(255), nullable=True)
    location_street = Column(String(255), nullable=True)
    location_zip_city = Column(String(255), nullable=True)
    pitch_type = Column(String(100), nullable=True)
    meeting_point = Column(String(255), nullable=True)
    arrival_minutes = Column(Integer, nullable=True)

    # Timing
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    rsvp_deadline = Column(DateTime, nullable=True, index=True)
    duration_minutes = Column(Integer, nullable=True)

    # Audience
    visibility_all = Column(Boolean, default=True, nullable=False)
    invite_all = Column(Boolean, default=True, nullable=False)

    created_by_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Series and fixture identity
    series_key = Column(String(64), nullable=True, index=True)
    external_fixture_key = Column(String(128), nullable=True)
    is_home_match = Column(Boolean, nullable=True)
    opponent_crest_url = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    team = relationship("Team", back_populates="events")
    created_by = relationship("User")
    responses = relationship(
        "EventResponse",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventResponse.id"
    )

    __table_args__ = (
        UniqueConstraint(
            "team_id", "external_fixture_key",
            name="uq_events_team_external_fixture_key"
        ),
        CheckConstraint("end_time >= start_time", name="ck_events_end_after_start"),
        Index("ix_events_team_start", "team_id", "start_time"),
    )

    @property
    def category_enum(self) -> EventCategory:
        return EventCategory.parse(self.category)

    @property
    def is_series(self) -> bool:
        return self.series_key is not None

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Event("
            f"id={self.id}, "
            f"title='{self.title}', "
            f"category='{self.category}', "
            f"start={self.start_time}, "
            f"series_key={self.series_key!r}"
            f")>"
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"{self.title} ({self.start_time:%Y-%m-%d %H:%M})"
