"""
Service layer for business logic.

This module exports all service classes for use in API endpoints.
"""

from backend.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ConflictError,
    ValidationError,
    ForbiddenError,
    ExternalServiceError,
    FixtureRejected,
)
from backend.src.services.event_service import EventService
from backend.src.services.invite_service import InviteService
from backend.src.services.response_service import ResponseService
from backend.src.services.series_service import SeriesService
from backend.src.services.team_service import TeamService
# Fixture feed
from backend.src.services.fixture_feed_client import FixtureFeedClient
from backend.src.services.fixture_import_service import FixtureImportService
from backend.src.services.fixture_import_scheduler import FixtureImportScheduler

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "ForbiddenError",
    "ExternalServiceError",
    "FixtureRejected",
    "EventService",
    "InviteService",
    "ResponseService",
    "SeriesService",
    "TeamService",
    # Fixture feed
    "FixtureFeedClient",
    "FixtureImportService",
    "FixtureImportScheduler",
]
