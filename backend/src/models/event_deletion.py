"""
EventDeletion model: tombstone of an explicitly deleted event.

Written whenever a user deletes an occurrence so calendar subscribers can
cancel it. Series reshapes do not write tombstones. The scheduling engine
never reads these rows.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from backend.src.models import Base


class EventDeletion(Base):
    """Tombstone row keeping the identity and original time of a deleted event."""

    __tablename__ = "event_deletions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    # Not a foreign key: the event row is gone
    event_id = Column(Integer, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    deleted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<EventDeletion(event_id={self.event_id}, "
            f"title='{self.title}', deleted_at={self.deleted_at})>"
        )
