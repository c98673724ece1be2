"""
SQLAlchemy models for the TeamRSVP application.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# All models inherit from this Base class
Base = declarative_base()


# Import all models here so they are registered with Base.metadata
# This is required for Alembic autogenerate to detect models
from backend.src.models.enums import EventCategory, ResponseStatus, MemberRole
from backend.src.models.user import User
from backend.src.models.team import Team, TeamMember, HomeVenue
from backend.src.models.event import Event
from backend.src.models.event_response import EventResponse
from backend.src.models.event_deletion import EventDeletion

__all__ = [
    "Base",
    "EventCategory",
    "ResponseStatus",
    "MemberRole",
    "User",
    "Team",
    "TeamMember",
    "HomeVenue",
    "Event",
    "EventResponse",
    "EventDeletion",
]
