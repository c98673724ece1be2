"""
EventResponse model: the RSVP of one member for one occurrence.

Exactly one row exists per (event, user). Rows are created when a member is
invited, mutated when the member or a trainer answers, and removed only with
their event or when invite-sync finds the member is no longer invited.
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.enums import ResponseStatus


class EventResponse(Base):
    """
    Response row.

    Attributes:
        id: Primary key
        event_id: Event the response belongs to
        user_id: Responding member
        status: ResponseStatus value
        comment: Optional comment (required for declined answers)
        responded_at: Last time the status was set
    """

    __tablename__ = "event_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    status = Column(String(20), default=ResponseStatus.PENDING.value, nullable=False)
    comment = Column(Text, nullable=True)
    responded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    event = relationship("Event", back_populates="responses")
    user = relationship("User", back_populates="responses")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_responses_event_user"),
        Index("ix_event_responses_status", "status"),
    )

    @property
    def status_enum(self) -> ResponseStatus:
        return ResponseStatus.parse(self.status)

    def __repr__(self) -> str:
        return (
            f"<EventResponse(event_id={self.event_id}, "
            f"user_id={self.user_id}, status='{self.status}')>"
        )
