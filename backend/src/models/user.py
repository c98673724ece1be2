"""
User model.

Users are provisioned by the upstream authentication gateway; this backend
only stores the identity it needs to attach memberships and responses.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from backend.src.models import Base


class User(Base):
    """
    A person who can belong to teams and answer invitations.

    Attributes:
        id: Primary key
        name: Display name
        email: Unique email address (optional)
        created_at: Creation timestamp

    Relationships:
        memberships: Team memberships (one-to-many)
        responses: RSVP rows across all events (one-to-many)
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    memberships = relationship(
        "TeamMember",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    responses = relationship(
        "EventResponse",
        back_populates="user",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<User(id={self.id}, name='{self.name}')>"

    def __str__(self) -> str:
        """Human-readable string representation."""
        return self.name
