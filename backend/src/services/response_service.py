"""
Response service for RSVP answers.

Provides:
- set_response: member (or trainer on behalf of a member) answers an event
- expire_tentative_responses: sweep turning tentative answers into declined
  once the event's deadline has passed

Rules:
- A declined answer needs a non-empty comment
- Tentative can no longer be chosen from one hour before the deadline on
- One row per (event, member); answering again updates that row
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.src.models import Event, EventResponse, ResponseStatus, TeamMember
from backend.src.services.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from backend.src.utils.logging_config import get_logger
from backend.src.utils.time_utils import local_now


logger = get_logger("services")

TENTATIVE_CUTOFF = timedelta(hours=1)


def tentative_allowed(deadline: Optional[datetime], now: datetime) -> bool:
    """Tentative is allowed strictly before (deadline - 1h), or without deadline."""
    if deadline is None:
        return True
    return now < deadline - TENTATIVE_CUTOFF


class ResponseService:
    """
    Service for reading and writing RSVP answers.

    Usage:
        >>> service = ResponseService(db_session)
        >>> service.expire_tentative_responses()
        >>> service.set_response(event_id=3, acting_user_id=7, status="accepted")
    """

    def __init__(self, db: Session):
        """
        Initialize response service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def _membership(self, team_id: int, user_id: int) -> Optional[TeamMember]:
        return (
            self.db.query(TeamMember)
            .filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
            .first()
        )

    def set_response(
        self,
        event_id: int,
        acting_user_id: int,
        status: str,
        comment: Optional[str] = None,
        target_user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> EventResponse:
        """
        Create or update the response of a member for an event.

        Args:
            event_id: Event to answer
            acting_user_id: User performing the change
            status: Raw status string (parsed case-insensitively)
            comment: Optional comment, required for declined
            target_user_id: Member to answer for (trainers only); defaults
                to the acting user
            now: Current club-local time (injectable for tests)

        Returns:
            The stored EventResponse

        Raises:
            ValidationError: Missing/invalid status, declined without
                comment, tentative too close to the deadline
            NotFoundError: Event missing, or target not a team member
            ForbiddenError: Acting user not a member, or answering for
                someone else without trainer role
        """
        if not str(status or "").strip():
            raise ValidationError("Status is required", field="status")
        try:
            parsed = ResponseStatus.parse(status)
        except ValueError:
            raise ValidationError("Invalid status", field="status")

        normalized_comment = comment.strip() if isinstance(comment, str) else ""
        if parsed == ResponseStatus.DECLINED and not normalized_comment:
            raise ValidationError(
                "A reason is required when declining",
                field="comment"
            )

        event = self.db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise NotFoundError("Event", event_id)

        current = now or local_now()
        if parsed == ResponseStatus.TENTATIVE and not tentative_allowed(event.rsvp_deadline, current):
            raise ValidationError(
                "Tentative is only possible until one hour before the RSVP deadline",
                field="status"
            )

        acting = self._membership(event.team_id, acting_user_id)
        if not acting:
            raise ForbiddenError("Not a team member")

        user_id = acting_user_id
        if target_user_id is not None and target_user_id != acting_user_id:
            if not acting.is_trainer:
                raise ForbiddenError("Only trainers can update player responses")
            if not self._membership(event.team_id, target_user_id):
                raise NotFoundError("Team member", target_user_id)
            user_id = target_user_id

        response = (
            self.db.query(EventResponse)
            .filter(EventResponse.event_id == event.id, EventResponse.user_id == user_id)
            .first()
        )
        if response is None:
            response = EventResponse(event_id=event.id, user_id=user_id)
            self.db.add(response)

        response.status = parsed.value
        response.comment = normalized_comment or None
        response.responded_at = current

        self.db.commit()
        self.db.refresh(response)

        logger.info(
            f"Set response for event {event.id}",
            extra={"event_id": event.id, "user_id": user_id, "status": parsed.value},
        )
        return response

    def expire_tentative_responses(self, now: Optional[datetime] = None) -> int:
        """
        Turn tentative answers into declined for every event whose RSVP
        deadline is at or before now.

        Idempotent: a second run finds nothing left to change.

        Returns:
            Number of responses changed
        """
        current = now or local_now()
        expired_events = (
            select(Event.id)
            .where(Event.rsvp_deadline.is_not(None), Event.rsvp_deadline <= current)
        )
        result = self.db.execute(
            update(EventResponse)
            .where(
                EventResponse.status == ResponseStatus.TENTATIVE.value,
                EventResponse.event_id.in_(expired_events),
            )
            .values(status=ResponseStatus.DECLINED.value, responded_at=current)
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount or 0
        if changed:
            self.db.commit()
            logger.info(
                f"Expired {changed} tentative responses",
                extra={"count": changed},
            )
        return changed
