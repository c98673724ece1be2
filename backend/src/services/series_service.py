"""
Series maintenance for recurring events.

Two whole-series edits exist besides editing a single occurrence:

- shift: every occurrence moves by the start delta of the edited
  occurrence and takes its new duration and content
- reshape: the date set is regenerated from a new weekday set and end
  bound, then reconciled against the stored occurrences

Reshape reconciliation:
1. The earliest stored occurrence's calendar day anchors the new rule,
   combined with the requested time-of-day and duration
2. Each generated start is matched against an unconsumed stored
   occurrence with exactly the same start; a match is updated in place
   and keeps its responses
3. Unmatched starts become new occurrences with invite-sync applied
4. Stored occurrences left unmatched are deleted with their responses
   (no deletion tombstone)

A reshape that only changes time-of-day therefore recreates every
occurrence. Each public operation commits once and rolls back on failure.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Set, Union

from sqlalchemy.orm import Session

from backend.src.models import Event, EventCategory, ResponseStatus
from backend.src.services.exceptions import ValidationError
from backend.src.services.invite_service import InviteService
from backend.src.services.recurrence import RecurrenceMode, generate_recurring_dates
from backend.src.services.rsvp_defaults import apply_deadline_offset
from backend.src.utils.logging_config import get_logger
from backend.src.utils.time_utils import minutes_between


logger = get_logger("services")


@dataclass
class EventContent:
    """
    Editable, non-temporal content of an event.

    invite_all is None when the edit does not touch invitations.
    """
    title: str
    category: EventCategory
    description: Optional[str] = None
    location_venue: Optional[str] = None
    location_street: Optional[str] = None
    location_zip_city: Optional[str] = None
    pitch_type: Optional[str] = None
    meeting_point: Optional[str] = None
    arrival_minutes: Optional[int] = None
    visibility_all: bool = True
    invite_all: Optional[bool] = None

    def apply_to(self, event: Event) -> None:
        event.title = self.title
        event.category = self.category.value
        event.description = self.description
        event.location_venue = self.location_venue
        event.location_street = self.location_street
        event.location_zip_city = self.location_zip_city
        event.pitch_type = self.pitch_type
        event.meeting_point = self.meeting_point
        event.arrival_minutes = self.arrival_minutes
        event.visibility_all = self.visibility_all
        if self.invite_all is not None:
            event.invite_all = self.invite_all


@dataclass
class SeriesChangeResult:
    """Ids of occurrences touched by a series operation."""
    series_key: Optional[str] = None
    updated: List[int] = field(default_factory=list)
    created: List[int] = field(default_factory=list)
    deleted: List[int] = field(default_factory=list)


class SeriesService:
    """
    Service for whole-series edits of recurring events.

    Usage:
        >>> service = SeriesService(db_session)
        >>> result = service.reshape(
        ...     event, content, new_start, new_end,
        ...     weekdays=[1, 3], until=date(2024, 3, 31),
        ...     deadline_offset=timedelta(hours=24),
        ... )
        >>> result.created, result.deleted
    """

    def __init__(self, db: Session):
        """
        Initialize series service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self.invites = InviteService(db)

    def get_series(self, event: Event) -> List[Event]:
        """All occurrences sharing the event's series key, ordered by start."""
        if not event.series_key:
            raise ValidationError("Event is not part of a series", field="update_series")
        return (
            self.db.query(Event)
            .filter(Event.team_id == event.team_id, Event.series_key == event.series_key)
            .order_by(Event.start_time, Event.id)
            .all()
        )

    def shift_series(
        self,
        event: Event,
        content: EventContent,
        new_start: datetime,
        new_end: datetime,
        deadline_offset: Optional[timedelta],
        desired_invitees: Optional[Set[int]] = None,
        default_status: ResponseStatus = ResponseStatus.PENDING,
    ) -> SeriesChangeResult:
        """
        Move every occurrence by the edited occurrence's start delta.

        Args:
            event: The occurrence the user edited
            content: New content for every occurrence
            new_start: New start of the edited occurrence
            new_end: New end of the edited occurrence
            deadline_offset: start - deadline applied to every occurrence
                (None removes deadlines)
            desired_invitees: New invitee set, or None to keep invitations
            default_status: Status of rows created by invite-sync

        Returns:
            SeriesChangeResult with the updated occurrence ids
        """
        series = self.get_series(event)
        delta = new_start - event.start_time
        duration = new_end - new_start
        result = SeriesChangeResult(series_key=event.series_key)

        try:
            for occurrence in series:
                start = occurrence.start_time + delta
                self._apply(occurrence, content, start, start + duration, deadline_offset)
                if desired_invitees is not None:
                    self.invites.sync_invites(occurrence, desired_invitees, default_status)
                result.updated.append(occurrence.id)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Shifted series {event.series_key} by {delta}",
            extra={"series_key": event.series_key, "count": len(result.updated)},
        )
        return result

    def reshape(
        self,
        event: Event,
        content: EventContent,
        new_start: datetime,
        new_end: datetime,
        weekdays: Iterable[int],
        until: Union[date, datetime],
        deadline_offset: Optional[timedelta],
        desired_invitees: Optional[Set[int]] = None,
        default_status: ResponseStatus = ResponseStatus.PENDING,
    ) -> SeriesChangeResult:
        """
        Regenerate the series date set and reconcile stored occurrences.

        Args:
            event: The occurrence the user edited
            content: New content for every occurrence
            new_start: Requested start (its time-of-day is used)
            new_end: Requested end (new_end - new_start is the duration)
            weekdays: New weekday set (0=Sunday .. 6=Saturday)
            until: Inclusive end bound
            deadline_offset: start - deadline for every occurrence
            desired_invitees: Explicit invitee set; None derives it from
                the edited occurrence for new occurrences and leaves
                matched occurrences alone
            default_status: Status of rows created by invite-sync

        Returns:
            SeriesChangeResult with updated, created and deleted ids

        Raises:
            ValidationError: Event without series, empty weekday set,
                bound before the anchor
        """
        weekdays = list(weekdays or [])
        if not weekdays:
            raise ValidationError(
                "Select at least one weekday to reshape the series",
                field="repeat_days"
            )

        series = self.get_series(event)
        anchor = datetime.combine(series[0].start_time.date(), new_start.time())
        duration = new_end - new_start
        slots = generate_recurring_dates(
            anchor, anchor + duration, RecurrenceMode.CUSTOM, until, weekdays
        )
        if not slots:
            raise ValidationError("No valid dates generated for the series", field="repeat_days")

        invitees_for_new = desired_invitees
        if invitees_for_new is None:
            if event.invite_all:
                invitees_for_new = set(self.invites.team_member_ids(event.team_id))
            else:
                invitees_for_new = self.invites.current_invitees(event)

        result = SeriesChangeResult(series_key=event.series_key)
        pool = list(series)
        template = event

        try:
            for slot in slots:
                match = next((o for o in pool if o.start_time == slot.start), None)
                if match is not None:
                    pool.remove(match)
                    self._apply(match, content, slot.start, slot.end, deadline_offset)
                    if desired_invitees is not None:
                        self.invites.sync_invites(match, desired_invitees, default_status)
                    result.updated.append(match.id)
                    continue

                occurrence = Event(
                    team_id=template.team_id,
                    series_key=template.series_key,
                    created_by_user_id=template.created_by_user_id,
                    invite_all=template.invite_all,
                )
                self._apply(occurrence, content, slot.start, slot.end, deadline_offset)
                self.db.add(occurrence)
                self.db.flush()
                self.invites.sync_invites(occurrence, invitees_for_new, default_status)
                result.created.append(occurrence.id)

            for leftover in pool:
                result.deleted.append(leftover.id)
                self.db.delete(leftover)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Reshaped series {result.series_key}",
            extra={
                "series_key": result.series_key,
                "updated": len(result.updated),
                "created_count": len(result.created),
                "deleted": len(result.deleted),
            },
        )
        return result

    @staticmethod
    def _apply(
        occurrence: Event,
        content: EventContent,
        start: datetime,
        end: datetime,
        deadline_offset: Optional[timedelta],
    ) -> None:
        content.apply_to(occurrence)
        occurrence.start_time = start
        occurrence.end_time = end
        occurrence.duration_minutes = minutes_between(start, end)
        occurrence.rsvp_deadline = apply_deadline_offset(start, deadline_offset)
        occurrence.updated_at = datetime.utcnow()
