"""
Team, membership and home venue models.

A team owns its events and carries the defaults the scheduling engine
consults when it creates occurrences: per-category RSVP deadline hours and
arrival minutes (each with a legacy team-wide fallback), the initial
response status for new invitations, and a list of named home venues with
one designated default.

Design Rationale:
- Category-specific defaults override the legacy team-wide columns
- external_team_id ties the team to the fixture feed (upper-case, 16-40 chars)
- Home venues are a child table so pitch types can be validated per team
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.enums import MemberRole, ResponseStatus


class Team(Base):
    """
    Team model.

    Attributes:
        id: Primary key
        name: Team display name, also used to detect the home side of fixtures
        external_team_id: Fixture feed team id (nullable)
        default_response: Initial status of new response rows
        default_rsvp_deadline_hours: Legacy team-wide deadline (0-168)
        default_rsvp_deadline_hours_training/_match/_other: Per-category deadline
        default_arrival_minutes: Legacy team-wide arrival offset (0-240)
        default_arrival_minutes_training/_match/_other: Per-category arrival offset
        default_home_venue_name: Name of the venue used for home fixtures
        created_at: Creation timestamp
        updated_at: Last update timestamp

    Relationships:
        members: TeamMember rows (one-to-many)
        home_venues: HomeVenue rows (one-to-many)
        events: Events of this team (one-to-many)
    """

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    external_team_id = Column(String(64), nullable=True, index=True)

    default_response = Column(
        String(20),
        default=ResponseStatus.PENDING.value,
        nullable=False
    )

    # RSVP deadline defaults in hours before start
    default_rsvp_deadline_hours = Column(Integer, nullable=True)
    default_rsvp_deadline_hours_training = Column(Integer, nullable=True)
    default_rsvp_deadline_hours_match = Column(Integer, nullable=True)
    default_rsvp_deadline_hours_other = Column(Integer, nullable=True)

    # Arrival offsets in minutes before start
    default_arrival_minutes = Column(Integer, nullable=True)
    default_arrival_minutes_training = Column(Integer, nullable=True)
    default_arrival_minutes_match = Column(Integer, nullable=True)
    default_arrival_minutes_other = Column(Integer, nullable=True)

    default_home_venue_name = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    members = relationship(
        "TeamMember",
        back_populates="team",
        cascade="all, delete-orphan",
        order_by="TeamMember.id"
    )
    home_venues = relationship(
        "HomeVenue",
        back_populates="team",
        cascade="all, delete-orphan",
        order_by="HomeVenue.id"
    )
    events = relationship(
        "Event",
        back_populates="team",
        lazy="dynamic",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Team("
            f"id={self.id}, "
            f"name='{self.name}', "
            f"external_team_id={self.external_team_id!r}"
            f")>"
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        return self.name


class TeamMember(Base):
    """
    Membership of a user in a team.

    Constraints:
        - (team_id, user_id) unique
        - role is one of MemberRole
    """

    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    role = Column(String(20), default=MemberRole.PLAYER.value, nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    @property
    def is_trainer(self) -> bool:
        return self.role == MemberRole.TRAINER.value

    def __repr__(self) -> str:
        return (
            f"<TeamMember(team_id={self.team_id}, "
            f"user_id={self.user_id}, role='{self.role}')>"
        )


class HomeVenue(Base):
    """
    A named home ground of a team.

    The pitch types of a team's venues form the set of pitch types an event
    of that team may use.
    """

    __tablename__ = "home_venues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(255), nullable=False)
    street = Column(String(255), nullable=True)
    zip_city = Column(String(255), nullable=True)
    pitch_type = Column(String(100), nullable=True)

    team = relationship("Team", back_populates="home_venues")

    __table_args__ = (
        UniqueConstraint("team_id", "name", name="uq_home_venues_team_name"),
    )

    def __repr__(self) -> str:
        return f"<HomeVenue(id={self.id}, team_id={self.team_id}, name='{self.name}')>"
