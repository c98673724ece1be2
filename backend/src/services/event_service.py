"""
Event service for creating, editing and deleting team events.

Provides business logic for single events and recurring series:
- create: one event, or a series expanded from a weekly/custom rule
- update: one occurrence, a whole-series shift, or a series reshape
- delete: one occurrence or the whole series, leaving tombstones
- list/get and response visibility for the API layer

Design:
- All validation happens before the first write
- Each operation commits once; failures roll the session back
- New occurrences get RSVP deadline and arrival offset from the team
  defaults unless the caller supplies explicit values
- Every new occurrence is invite-synced with the team's default status
"""

import secrets
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Session, joinedload

from backend.src.models import Event, EventCategory, EventDeletion
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.invite_service import InviteService
from backend.src.services.recurrence import RecurrenceMode, generate_recurring_dates
from backend.src.services.rsvp_defaults import (
    RsvpDefaults,
    capture_deadline_offset,
    compute_rsvp_deadline,
    validate_arrival_minutes,
    validate_deadline_hours,
)
from backend.src.services.series_service import EventContent, SeriesChangeResult, SeriesService
from backend.src.services.team_service import TeamService
from backend.src.utils.logging_config import get_logger
from backend.src.utils.time_utils import local_now, minutes_between


logger = get_logger("services")

REPEAT_NONE = "none"


@dataclass
class EventCreateResult:
    """Ids of the created events and the series key (None for single events)."""
    event_ids: List[int] = field(default_factory=list)
    series_key: Optional[str] = None


def resolve_end_time(
    start_time: datetime,
    end_time: Optional[datetime],
    duration_minutes: Optional[int],
) -> datetime:
    """
    End from an explicit duration, else the given end.

    Raises:
        ValidationError: Neither supplied, negative duration, or end before start
    """
    if duration_minutes is not None:
        if duration_minutes < 0:
            raise ValidationError("Duration must not be negative", field="duration_minutes")
        end_time = start_time + timedelta(minutes=duration_minutes)
    if end_time is None:
        raise ValidationError("Either end_time or duration_minutes is required", field="end_time")
    if end_time < start_time:
        raise ValidationError("End time must not be before start time", field="end_time")
    return end_time


def parse_category(value: Union[EventCategory, str, None]) -> EventCategory:
    try:
        return EventCategory.parse(value)
    except ValueError:
        raise ValidationError(f"Invalid event category: {value}", field="category")


class EventService:
    """
    Service for managing team events.

    Usage:
        >>> service = EventService(db_session)
        >>> result = service.create(
        ...     team_id=1, created_by_user_id=4, title="Training",
        ...     category="training", start_time=datetime(2024, 1, 1, 18),
        ...     duration_minutes=90, repeat_type="weekly",
        ...     repeat_until=date(2024, 3, 31), repeat_days=[1, 3],
        ... )
        >>> len(result.event_ids)
    """

    def __init__(self, db: Session):
        """
        Initialize event service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self.teams = TeamService(db)
        self.invites = InviteService(db)
        self.series = SeriesService(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, event_id: int) -> Event:
        """
        Get an event by id.

        Raises:
            NotFoundError: If the event does not exist
        """
        event = (
            self.db.query(Event)
            .options(joinedload(Event.responses))
            .filter(Event.id == event_id)
            .first()
        )
        if not event:
            raise NotFoundError("Event", event_id)
        return event

    def list_for_team(
        self,
        team_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Event]:
        """Events of a team ordered by start, optionally within [start, end]."""
        query = self.db.query(Event).filter(Event.team_id == team_id)
        if start is not None:
            query = query.filter(Event.start_time >= start)
        if end is not None:
            query = query.filter(Event.start_time <= end)
        return query.order_by(Event.start_time, Event.id).all()

    def build_event_response(
        self,
        event: Event,
        viewer_user_id: int,
        viewer_is_trainer: bool,
    ) -> Dict[str, Any]:
        """
        Serialize an event for the API.

        Trainers, and everyone when visibility_all is set, see all
        responses; other members only see their own.
        """
        responses = list(event.responses)
        if not (viewer_is_trainer or event.visibility_all):
            responses = [r for r in responses if r.user_id == viewer_user_id]

        return {
            "id": event.id,
            "team_id": event.team_id,
            "category": event.category,
            "title": event.title,
            "description": event.description,
            "location_venue": event.location_venue,
            "location_street": event.location_street,
            "location_zip_city": event.location_zip_city,
            "pitch_type": event.pitch_type,
            "meeting_point": event.meeting_point,
            "arrival_minutes": event.arrival_minutes,
            "start_time": event.start_time,
            "end_time": event.end_time,
            "rsvp_deadline": event.rsvp_deadline,
            "duration_minutes": event.duration_minutes,
            "visibility_all": event.visibility_all,
            "invite_all": event.invite_all,
            "series_key": event.series_key,
            "external_fixture_key": event.external_fixture_key,
            "is_home_match": event.is_home_match,
            "opponent_crest_url": event.opponent_crest_url,
            "created_by_user_id": event.created_by_user_id,
            "responses": [
                {
                    "user_id": r.user_id,
                    "status": r.status,
                    "comment": r.comment,
                    "responded_at": r.responded_at,
                }
                for r in responses
            ],
        }

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        team_id: int,
        created_by_user_id: Optional[int],
        title: str,
        category: Union[EventCategory, str],
        start_time: datetime,
        end_time: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        description: Optional[str] = None,
        location_venue: Optional[str] = None,
        location_street: Optional[str] = None,
        location_zip_city: Optional[str] = None,
        pitch_type: Optional[str] = None,
        meeting_point: Optional[str] = None,
        arrival_minutes: Optional[int] = None,
        rsvp_deadline: Optional[datetime] = None,
        rsvp_deadline_hours: Optional[int] = None,
        visibility_all: bool = True,
        invite_all: bool = True,
        invited_user_ids: Optional[Iterable[int]] = None,
        repeat_type: Optional[str] = None,
        repeat_until: Optional[Union[date, datetime]] = None,
        repeat_days: Optional[Iterable[int]] = None,
    ) -> EventCreateResult:
        """
        Create a single event or a recurring series.

        Args:
            team_id: Owning team
            created_by_user_id: Creator
            title: Event title (required)
            category: training, match or other
            start_time: Start of the (first) occurrence
            end_time: End of the (first) occurrence
            duration_minutes: Overrides end_time when given
            arrival_minutes: Explicit arrival offset (0-240)
            rsvp_deadline: Explicit deadline of the first occurrence; later
                occurrences keep the same offset to their start
            rsvp_deadline_hours: Explicit deadline hours (0-168)
            invite_all: Invite every member when no explicit list is given
            invited_user_ids: Explicit invitee list (filtered to members)
            repeat_type: none, weekly or custom
            repeat_until: Inclusive end bound of the repetition
            repeat_days: Weekdays (0=Sunday .. 6=Saturday)

        Returns:
            EventCreateResult with the new ids and the series key

        Raises:
            NotFoundError: If team not found
            ValidationError: Invalid times, ranges, pitch type, recurrence,
                or nobody to invite
        """
        team = self.teams.get(team_id)

        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")
        parsed_category = parse_category(category)
        end_time = resolve_end_time(start_time, end_time, duration_minutes)
        explicit_hours = validate_deadline_hours(rsvp_deadline_hours, "rsvp_deadline_hours")
        explicit_arrival = validate_arrival_minutes(arrival_minutes)
        self.teams.validate_pitch_type(team, pitch_type)

        invitees = self.invites.resolve_invitees(team.id, invite_all, invited_user_ids)
        if not invitees:
            raise ValidationError("At least one invited user is required", field="invited_user_ids")

        mode = (repeat_type or REPEAT_NONE).strip().lower()
        if mode == REPEAT_NONE:
            slots = [(start_time, end_time)]
            series_key = None
        else:
            if repeat_until is None:
                raise ValidationError("repeat_until is required for repeating events", field="repeat_until")
            try:
                RecurrenceMode(mode)
            except ValueError:
                raise ValidationError(f"Unknown repeat type: {repeat_type}", field="repeat_type")
            slots = generate_recurring_dates(start_time, end_time, mode, repeat_until, repeat_days)
            if not slots:
                raise ValidationError("No valid dates generated for recurring event", field="repeat_days")
            series_key = secrets.token_hex(16)

        defaults = RsvpDefaults.from_team(team)
        deadline_offset = capture_deadline_offset(start_time, rsvp_deadline)
        default_status = self.teams.default_response(team)
        content = EventContent(
            title=title,
            category=parsed_category,
            description=description,
            location_venue=location_venue,
            location_street=location_street,
            location_zip_city=location_zip_city,
            pitch_type=pitch_type,
            meeting_point=meeting_point,
            visibility_all=visibility_all,
            invite_all=invite_all,
        )

        result = EventCreateResult(series_key=series_key)
        try:
            for slot_start, slot_end in slots:
                if deadline_offset is not None:
                    explicit_deadline = slot_start - deadline_offset
                else:
                    explicit_deadline = compute_rsvp_deadline(slot_start, explicit_hours)
                timing = defaults.resolve_for_occurrence(
                    parsed_category, slot_start, explicit_deadline, explicit_arrival
                )

                event = Event(
                    team_id=team.id,
                    created_by_user_id=created_by_user_id,
                    series_key=series_key,
                    start_time=slot_start,
                    end_time=slot_end,
                    duration_minutes=minutes_between(slot_start, slot_end),
                    rsvp_deadline=timing.rsvp_deadline,
                )
                content.arrival_minutes = timing.arrival_minutes
                content.apply_to(event)
                self.db.add(event)
                self.db.flush()

                self.invites.sync_invites(event, invitees, default_status)
                result.event_ids.append(event.id)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Created {len(result.event_ids)} event(s) for team {team.id}",
            extra={"team_id": team.id, "series_key": series_key, "count": len(result.event_ids)},
        )
        return result

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(
        self,
        event_id: int,
        title: str,
        category: Union[EventCategory, str],
        start_time: datetime,
        end_time: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        description: Optional[str] = None,
        location_venue: Optional[str] = None,
        location_street: Optional[str] = None,
        location_zip_city: Optional[str] = None,
        pitch_type: Optional[str] = None,
        meeting_point: Optional[str] = None,
        arrival_minutes: Optional[int] = None,
        rsvp_deadline: Optional[datetime] = None,
        clear_rsvp_deadline: bool = False,
        visibility_all: bool = True,
        invite_all: Optional[bool] = None,
        invited_user_ids: Optional[Iterable[int]] = None,
        update_series: bool = False,
        repeat_until: Optional[Union[date, datetime]] = None,
        repeat_days: Optional[Iterable[int]] = None,
    ) -> SeriesChangeResult:
        """
        Edit an event, optionally together with its whole series.

        Modes:
        - single (default): only this occurrence changes
        - update_series without repeat parameters: every occurrence shifts
          by this occurrence's start delta and takes the new duration and
          content
        - update_series with repeat_days and repeat_until: the series is
          reshaped (see SeriesService.reshape)

        The RSVP deadline keeps the occurrence's current offset to its start
        unless rsvp_deadline is given; clear_rsvp_deadline removes it.
        Invitations change only when invite_all or invited_user_ids is given.

        Returns:
            SeriesChangeResult with updated, created and deleted ids

        Raises:
            NotFoundError: If event not found
            ValidationError: Invalid values, series operation on an event
                without series, or incomplete reshape parameters
        """
        event = self.get(event_id)
        team = self.teams.get(event.team_id)

        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")
        parsed_category = parse_category(category)
        end_time = resolve_end_time(start_time, end_time, duration_minutes)
        arrival = validate_arrival_minutes(arrival_minutes)
        self.teams.validate_pitch_type(team, pitch_type)

        repeat_days = list(repeat_days or [])
        wants_reshape = repeat_until is not None or bool(repeat_days)
        if wants_reshape and not update_series:
            raise ValidationError(
                "Repeat parameters require update_series",
                field="update_series"
            )
        if wants_reshape and (repeat_until is None or not repeat_days):
            raise ValidationError(
                "Reshaping a series requires repeat_days and repeat_until",
                field="repeat_days"
            )
        if update_series and not event.series_key:
            raise ValidationError("Event is not part of a series", field="update_series")

        desired_invitees = None
        if invite_all is not None or invited_user_ids is not None:
            desired_invitees = self.invites.resolve_invitees(
                team.id, bool(invite_all), invited_user_ids
            )
            if not desired_invitees:
                raise ValidationError("At least one invited user is required", field="invited_user_ids")

        if clear_rsvp_deadline:
            deadline_offset = None
        elif rsvp_deadline is not None:
            deadline_offset = capture_deadline_offset(start_time, rsvp_deadline)
        else:
            deadline_offset = capture_deadline_offset(event.start_time, event.rsvp_deadline)

        content = EventContent(
            title=title,
            category=parsed_category,
            description=description,
            location_venue=location_venue,
            location_street=location_street,
            location_zip_city=location_zip_city,
            pitch_type=pitch_type,
            meeting_point=meeting_point,
            arrival_minutes=arrival,
            visibility_all=visibility_all,
            invite_all=invite_all,
        )
        default_status = self.teams.default_response(team)

        if wants_reshape:
            return self.series.reshape(
                event, content, start_time, end_time,
                weekdays=repeat_days,
                until=repeat_until,
                deadline_offset=deadline_offset,
                desired_invitees=desired_invitees,
                default_status=default_status,
            )
        if update_series:
            return self.series.shift_series(
                event, content, start_time, end_time,
                deadline_offset=deadline_offset,
                desired_invitees=desired_invitees,
                default_status=default_status,
            )

        try:
            content.apply_to(event)
            event.start_time = start_time
            event.end_time = end_time
            event.duration_minutes = minutes_between(start_time, end_time)
            event.rsvp_deadline = (
                start_time - deadline_offset if deadline_offset is not None else None
            )
            event.updated_at = datetime.utcnow()
            if desired_invitees is not None:
                self.invites.sync_invites(event, desired_invitees, default_status)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Updated event {event_id}", extra={"event_id": event_id})
        return SeriesChangeResult(series_key=event.series_key, updated=[event_id])

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(
        self,
        event_id: int,
        delete_series: bool = False,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Delete an event (or its whole series) and write tombstones.

        Returns:
            Number of deleted events

        Raises:
            NotFoundError: If event not found
        """
        event = self.get(event_id)
        if delete_series and event.series_key:
            targets = self.series.get_series(event)
        else:
            targets = [event]

        deleted_at = now or local_now()
        try:
            for target in targets:
                self.db.add(EventDeletion(
                    team_id=target.team_id,
                    event_id=target.id,
                    title=target.title,
                    start_time=target.start_time,
                    end_time=target.end_time,
                    deleted_at=deleted_at,
                ))
                self.db.delete(target)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Deleted {len(targets)} event(s)",
            extra={"event_id": event_id, "delete_series": delete_series, "count": len(targets)},
        )
        return len(targets)
