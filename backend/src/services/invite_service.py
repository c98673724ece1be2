"""
Invite synchronization.

Keeps the response rows of an event equal to its desired invitee set:
rows of members no longer invited are deleted (their answer is lost),
rows for newly invited members are inserted with the team's default
status, and rows of members in both sets are left untouched so their
answer survives the edit.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from backend.src.models import Event, EventResponse, ResponseStatus, TeamMember
from backend.src.utils.logging_config import get_logger
from backend.src.utils.time_utils import local_now


logger = get_logger("services")


@dataclass
class InviteSyncResult:
    """Member ids whose response rows were added, removed or kept."""
    added: List[int] = field(default_factory=list)
    removed: List[int] = field(default_factory=list)
    kept: List[int] = field(default_factory=list)


class InviteService:
    """
    Service for keeping event response rows in line with invitations.

    Does not commit; callers own the transaction so invite changes are
    applied atomically with the event write that triggered them.

    Usage:
        >>> service = InviteService(db_session)
        >>> desired = service.resolve_invitees(team_id=1, invite_all=True)
        >>> service.sync_invites(event, desired, ResponseStatus.PENDING)
    """

    def __init__(self, db: Session):
        """
        Initialize invite service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def team_member_ids(self, team_id: int) -> List[int]:
        """User ids of all members of a team, in join order."""
        rows = (
            self.db.query(TeamMember.user_id)
            .filter(TeamMember.team_id == team_id)
            .order_by(TeamMember.id)
            .all()
        )
        return [row.user_id for row in rows]

    def resolve_invitees(
        self,
        team_id: int,
        invite_all: bool,
        invited_user_ids: Optional[Iterable[int]] = None,
    ) -> Set[int]:
        """
        Compute the desired invitee set.

        An explicit, non-empty list wins and is filtered to current team
        members; otherwise invite_all selects every member and anything
        else selects nobody.
        """
        member_ids = self.team_member_ids(team_id)
        explicit = list(invited_user_ids or [])
        if explicit:
            return {user_id for user_id in explicit if user_id in set(member_ids)}
        if invite_all:
            return set(member_ids)
        return set()

    def current_invitees(self, event: Event) -> Set[int]:
        rows = (
            self.db.query(EventResponse.user_id)
            .filter(EventResponse.event_id == event.id)
            .all()
        )
        return {row.user_id for row in rows}

    def sync_invites(
        self,
        event: Event,
        desired_user_ids: Iterable[int],
        default_status: ResponseStatus = ResponseStatus.PENDING,
        now: Optional[datetime] = None,
    ) -> InviteSyncResult:
        """
        Make the event's response rows match the desired invitee set.

        Args:
            event: Event (must be flushed so it has an id)
            desired_user_ids: Members who should be invited
            default_status: Status of newly inserted rows
            now: responded_at of new rows (defaults to club-local now)

        Returns:
            InviteSyncResult listing added, removed and kept member ids
        """
        desired = set(desired_user_ids)
        existing = self.current_invitees(event)
        timestamp = now or local_now()

        to_remove = sorted(existing - desired)
        to_add = sorted(desired - existing)

        if to_remove:
            (
                self.db.query(EventResponse)
                .filter(
                    EventResponse.event_id == event.id,
                    EventResponse.user_id.in_(to_remove),
                )
                .delete(synchronize_session="fetch")
            )

        for user_id in to_add:
            self.db.add(EventResponse(
                event_id=event.id,
                user_id=user_id,
                status=default_status.value,
                responded_at=timestamp,
            ))

        if to_add or to_remove:
            self.db.flush()
            self.db.expire(event, ["responses"])
            logger.info(
                f"Synced invites for event {event.id}",
                extra={"event_id": event.id, "added": len(to_add), "removed": len(to_remove)},
            )

        return InviteSyncResult(
            added=to_add,
            removed=to_remove,
            kept=sorted(existing & desired),
        )

    def add_member_to_future_events(
        self,
        team_id: int,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Invite a newly joined member to every upcoming event of the team.

        Creates pending rows only where the member has none yet.

        Returns:
            Number of rows created
        """
        timestamp = now or local_now()
        already = {
            row.event_id
            for row in self.db.query(EventResponse.event_id)
            .join(Event, Event.id == EventResponse.event_id)
            .filter(Event.team_id == team_id, EventResponse.user_id == user_id)
            .all()
        }
        upcoming = (
            self.db.query(Event.id)
            .filter(Event.team_id == team_id, Event.start_time >= timestamp)
            .all()
        )

        created = 0
        for row in upcoming:
            if row.id in already:
                continue
            self.db.add(EventResponse(
                event_id=row.id,
                user_id=user_id,
                status=ResponseStatus.PENDING.value,
                responded_at=timestamp,
            ))
            created += 1

        if created:
            self.db.flush()
        return created
