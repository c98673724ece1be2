"""
Team service for memberships and scheduling defaults.

Provides business logic for:
- Reading teams and memberships, role checks
- Updating team settings (response defaults, RSVP deadline and arrival
  defaults per category, fixture feed id, home venues)
- Adding members, which invites them to every upcoming event

Design:
- Settings updates are partial: only supplied fields change
- Numeric defaults are range-checked here; the scheduling engine treats
  out-of-range stored values as unset anyway
- Home venues are replaced as a whole list
"""

import re
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.src.models import HomeVenue, MemberRole, ResponseStatus, Team, TeamMember, User
from backend.src.services.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from backend.src.services.invite_service import InviteService
from backend.src.services.rsvp_defaults import validate_arrival_minutes, validate_deadline_hours
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

EXTERNAL_TEAM_ID_RE = re.compile(r"^[A-Z0-9]{16,40}$")

DEADLINE_FIELDS = (
    "default_rsvp_deadline_hours",
    "default_rsvp_deadline_hours_training",
    "default_rsvp_deadline_hours_match",
    "default_rsvp_deadline_hours_other",
)
ARRIVAL_FIELDS = (
    "default_arrival_minutes",
    "default_arrival_minutes_training",
    "default_arrival_minutes_match",
    "default_arrival_minutes_other",
)


def normalize_external_team_id(value: Optional[str]) -> Optional[str]:
    """
    Upper-case and validate a fixture feed team id.

    Returns None for empty input.

    Raises:
        ValidationError: If the id is not 16-40 upper-case alphanumerics
    """
    normalized = str(value or "").strip().upper()
    if not normalized:
        return None
    if not EXTERNAL_TEAM_ID_RE.match(normalized):
        raise ValidationError("Invalid fixture feed team id format", field="external_team_id")
    return normalized


class TeamService:
    """
    Service for teams, memberships and team-level defaults.

    Usage:
        >>> service = TeamService(db_session)
        >>> service.require_trainer(team_id=1, user_id=5)
        >>> service.update_settings(1, {"default_rsvp_deadline_hours_match": 48})
    """

    def __init__(self, db: Session):
        """
        Initialize team service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get(self, team_id: int) -> Team:
        """
        Get a team by id.

        Raises:
            NotFoundError: If the team does not exist
        """
        team = self.db.query(Team).filter(Team.id == team_id).first()
        if not team:
            raise NotFoundError("Team", team_id)
        return team

    def create(self, name: str, trainer_user_id: Optional[int] = None) -> Team:
        """Create a team, optionally with a first trainer."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Team name is required", field="name")

        team = Team(name=name, default_response=ResponseStatus.PENDING.value)
        self.db.add(team)
        self.db.flush()
        if trainer_user_id is not None:
            self.db.add(TeamMember(
                team_id=team.id,
                user_id=trainer_user_id,
                role=MemberRole.TRAINER.value,
            ))
        self.db.commit()
        self.db.refresh(team)

        logger.info(f"Created team: {team.name} (id={team.id})")
        return team

    def get_membership(self, team_id: int, user_id: int) -> Optional[TeamMember]:
        return (
            self.db.query(TeamMember)
            .filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
            .first()
        )

    def require_member(self, team_id: int, user_id: int) -> TeamMember:
        """
        Raises:
            ForbiddenError: If the user is not a member of the team
        """
        membership = self.get_membership(team_id, user_id)
        if not membership:
            raise ForbiddenError("Not a team member")
        return membership

    def require_trainer(self, team_id: int, user_id: int) -> TeamMember:
        """
        Raises:
            ForbiddenError: If the user is not a trainer of the team
        """
        membership = self.get_membership(team_id, user_id)
        if not membership or not membership.is_trainer:
            raise ForbiddenError("Only trainers can perform this action")
        return membership

    def acting_user_for_import(self, team: Team) -> Optional[int]:
        """
        User on whose behalf scheduled imports create events.

        The trainer with the lowest user id, else the member with the lowest
        user id, else None.
        """
        members = sorted(team.members, key=lambda m: m.user_id)
        trainers = [m for m in members if m.is_trainer]
        if trainers:
            return trainers[0].user_id
        if members:
            return members[0].user_id
        return None

    @staticmethod
    def default_response(team: Team) -> ResponseStatus:
        """Initial status for new response rows (pending when unset or invalid)."""
        return ResponseStatus.parse_optional(team.default_response) or ResponseStatus.PENDING

    @staticmethod
    def default_home_venue(team: Team) -> Optional[HomeVenue]:
        """The venue named by default_home_venue_name, if any."""
        if not team.default_home_venue_name:
            return None
        for venue in team.home_venues:
            if venue.name == team.default_home_venue_name:
                return venue
        return None

    @staticmethod
    def pitch_types(team: Team) -> Set[str]:
        return {v.pitch_type for v in team.home_venues if v.pitch_type}

    def validate_pitch_type(self, team: Team, pitch_type: Optional[str]) -> Optional[str]:
        """
        Check a pitch type against the team's home venues.

        Raises:
            ValidationError: If no home venue has this pitch type
        """
        if not pitch_type:
            return None
        if pitch_type not in self.pitch_types(team):
            raise ValidationError(
                f"Pitch type '{pitch_type}' does not match any home venue",
                field="pitch_type"
            )
        return pitch_type

    def update_settings(self, team_id: int, updates: Dict[str, Any]) -> Team:
        """
        Update team settings.

        Args:
            team_id: Team to update
            updates: Supplied fields only. Supported keys: name,
                default_response, external_team_id, the four
                default_rsvp_deadline_hours* keys, the four
                default_arrival_minutes* keys, home_venues (list of dicts
                with name, street, zip_city, pitch_type) and
                default_home_venue_name

        Returns:
            Updated Team

        Raises:
            NotFoundError: If team not found
            ValidationError: If any value is invalid (nothing is changed)
        """
        team = self.get(team_id)
        changes: Dict[str, Any] = {}

        if "name" in updates:
            name = (updates["name"] or "").strip()
            if not name:
                raise ValidationError("Team name is required", field="name")
            changes["name"] = name

        if "default_response" in updates:
            raw = str(updates["default_response"] or "").strip() or ResponseStatus.PENDING.value
            try:
                changes["default_response"] = ResponseStatus.parse(raw).value
            except ValueError:
                raise ValidationError("Invalid default response", field="default_response")

        if "external_team_id" in updates:
            changes["external_team_id"] = normalize_external_team_id(updates["external_team_id"])

        for field_name in DEADLINE_FIELDS:
            if field_name in updates:
                changes[field_name] = validate_deadline_hours(updates[field_name], field_name)
        for field_name in ARRIVAL_FIELDS:
            if field_name in updates:
                changes[field_name] = validate_arrival_minutes(updates[field_name], field_name)

        venues = None
        if "home_venues" in updates:
            venues = self._parse_venues(updates["home_venues"] or [])

        venue_names = (
            {v["name"] for v in venues} if venues is not None
            else {v.name for v in team.home_venues}
        )
        if "default_home_venue_name" in updates:
            default_name = (updates["default_home_venue_name"] or "").strip() or None
            if default_name and default_name not in venue_names:
                raise ValidationError(
                    f"Default home venue '{default_name}' is not a home venue",
                    field="default_home_venue_name"
                )
            changes["default_home_venue_name"] = default_name
        elif venues is not None and team.default_home_venue_name not in venue_names:
            changes["default_home_venue_name"] = None

        try:
            for field_name, value in changes.items():
                setattr(team, field_name, value)
            if venues is not None:
                team.home_venues.clear()
                self.db.flush()
                for venue in venues:
                    team.home_venues.append(HomeVenue(**venue))
            self.db.commit()
            self.db.refresh(team)
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to update settings of team {team_id}: {e}")
            raise ConflictError("Team settings conflict with existing data")

        logger.info(
            f"Updated settings of team {team_id}",
            extra={"team_id": team_id, "fields": sorted(set(changes) | ({"home_venues"} if venues is not None else set()))},
        )
        return team

    @staticmethod
    def _parse_venues(raw_venues: List[Any]) -> List[Dict[str, Optional[str]]]:
        parsed = []
        seen = set()
        for raw in raw_venues:
            data = raw if isinstance(raw, dict) else dict(raw)
            name = (data.get("name") or "").strip()
            if not name:
                raise ValidationError("Home venue name is required", field="home_venues")
            if name in seen:
                raise ValidationError(f"Duplicate home venue '{name}'", field="home_venues")
            seen.add(name)
            parsed.append({
                "name": name,
                "street": (data.get("street") or "").strip() or None,
                "zip_city": (data.get("zip_city") or "").strip() or None,
                "pitch_type": (data.get("pitch_type") or "").strip() or None,
            })
        return parsed

    def add_member(
        self,
        team_id: int,
        user_id: int,
        role: str = MemberRole.PLAYER.value,
    ) -> TeamMember:
        """
        Add a user to a team and invite them to all upcoming events.

        Raises:
            NotFoundError: If team or user does not exist
            ValidationError: If the role is invalid
            ConflictError: If the user is already a member
        """
        team = self.get(team_id)
        if not self.db.query(User).filter(User.id == user_id).first():
            raise NotFoundError("User", user_id)
        try:
            parsed_role = MemberRole.parse(role)
        except ValueError:
            raise ValidationError("Invalid role", field="role")
        if self.get_membership(team_id, user_id):
            raise ConflictError("User is already a team member")

        membership = TeamMember(team_id=team.id, user_id=user_id, role=parsed_role.value)
        try:
            self.db.add(membership)
            self.db.flush()
            invited = InviteService(self.db).add_member_to_future_events(team.id, user_id)
            self.db.commit()
            self.db.refresh(membership)
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to add user {user_id} to team {team_id}: {e}")
            raise ConflictError("User is already a team member")

        logger.info(
            f"Added user {user_id} to team {team_id}",
            extra={"team_id": team_id, "user_id": user_id, "invited_events": invited},
        )
        return membership
