"""
Teams API endpoints for settings, members and fixture feed access.

Provides endpoints for:
- Reading and updating team settings (response and RSVP defaults,
  fixture feed id, home venues)
- Adding members (they are invited to all upcoming events)
- Triggering a fixture import
- Reading the league table of the team's group

Design:
- Reading requires team membership, changing requires the trainer role
- Fixture feed failures are reported as 502 with the upstream reason
"""

from typing import Iterator, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import RequestContext, require_auth
from backend.src.schemas.team import (
    FixtureImportRequest,
    FixtureImportResponse,
    LeagueTableResponse,
    MemberAdd,
    MemberResponse,
    TeamSettingsResponse,
    TeamSettingsUpdate,
)
from backend.src.services.exceptions import (
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from backend.src.services.fixture_feed_client import FixtureFeedClient
from backend.src.services.fixture_import_service import FixtureImportService
from backend.src.services.team_service import TeamService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/teams",
    tags=["Teams"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_team_service(db: Session = Depends(get_db)) -> TeamService:
    """Create TeamService instance with database session."""
    return TeamService(db=db)


def get_feed_client() -> Iterator[FixtureFeedClient]:
    """Create a fixture feed client for the request and close it afterwards."""
    try:
        client = FixtureFeedClient.from_settings()
    except ExternalServiceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    try:
        yield client
    finally:
        client.close()


def _feed_error(e: ExternalServiceError) -> HTTPException:
    detail = e.message
    if e.upstream_status is not None:
        detail = f"Fixture feed error ({e.upstream_status}): {e.message}"
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


# ============================================================================
# API Endpoints
# ============================================================================


@router.get(
    "/{team_id}/settings",
    response_model=TeamSettingsResponse,
    summary="Get team settings",
)
def get_team_settings(
    team_id: int,
    ctx: RequestContext = Depends(require_auth),
    team_service: TeamService = Depends(get_team_service),
) -> TeamSettingsResponse:
    """
    Get the settings of a team.

    Raises:
        403: Caller is not a team member
        404: Team not found
    """
    try:
        team = team_service.get(team_id)
        team_service.require_member(team_id, ctx.user_id)
        return TeamSettingsResponse.model_validate(team)

    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Team {team_id} not found")
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting settings of team {team_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get team settings: {str(e)}",
        )


@router.put(
    "/{team_id}/settings",
    response_model=TeamSettingsResponse,
    summary="Update team settings",
)
def update_team_settings(
    team_id: int,
    settings_data: TeamSettingsUpdate,
    ctx: RequestContext = Depends(require_auth),
    team_service: TeamService = Depends(get_team_service),
) -> TeamSettingsResponse:
    """
    Partially update team settings (trainers only).

    Request Body:
        TeamSettingsUpdate; only fields present in the body change

    Raises:
        400: Invalid value (range, id format, unknown default venue)
        403: Caller is not a trainer of the team
        404: Team not found
        409: Settings conflict with existing data

    Example:
        PUT /teams/1/settings
        {"default_rsvp_deadline_hours_match": 48}
    """
    try:
        team_service.get(team_id)
        team_service.require_trainer(team_id, ctx.user_id)
        updates = settings_data.model_dump(exclude_unset=True, mode="json")
        team = team_service.update_settings(team_id, updates)
        return TeamSettingsResponse.model_validate(team)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Team {team_id} not found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating settings of team {team_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update team settings: {str(e)}",
        )


@router.post(
    "/{team_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add team member",
)
def add_team_member(
    team_id: int,
    member_data: MemberAdd,
    ctx: RequestContext = Depends(require_auth),
    team_service: TeamService = Depends(get_team_service),
) -> MemberResponse:
    """
    Add a user to the team (trainers only).

    The new member gets a pending answer for every upcoming event.

    Raises:
        403: Caller is not a trainer of the team
        404: Team or user not found
        409: User is already a member
    """
    try:
        team_service.get(team_id)
        team_service.require_trainer(team_id, ctx.user_id)
        membership = team_service.add_member(team_id, member_data.user_id, member_data.role.value)
        return MemberResponse.model_validate(membership)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception as e:
        logger.error(f"Error adding member to team {team_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to add team member: {str(e)}",
        )


@router.post(
    "/{team_id}/fixtures/import",
    response_model=FixtureImportResponse,
    summary="Import fixtures from the feed",
)
def import_fixtures(
    team_id: int,
    import_data: Optional[FixtureImportRequest] = None,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
    team_service: TeamService = Depends(get_team_service),
    feed_client: FixtureFeedClient = Depends(get_feed_client),
) -> FixtureImportResponse:
    """
    Import the current season's fixtures of a team (trainers only).

    Request Body:
        limit: Optional cap (1-20) on the number of fixtures processed

    Returns:
        Created, updated and skipped fixtures

    Raises:
        400: Team has no fixture feed id
        403: Caller is not a trainer of the team
        404: Team not found
        502: Fixture feed failed (nothing was imported)
    """
    try:
        team_service.get(team_id)
        team_service.require_trainer(team_id, ctx.user_id)
        summary = FixtureImportService(db, feed_client).import_for_team(
            team_id, ctx.user_id, limit=import_data.limit if import_data else None
        )
        return FixtureImportResponse(**summary.to_dict())

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Team {team_id} not found")
    except ExternalServiceError as e:
        raise _feed_error(e)
    except Exception as e:
        logger.error(f"Error importing fixtures for team {team_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to import fixtures: {str(e)}",
        )


@router.get(
    "/{team_id}/table",
    response_model=LeagueTableResponse,
    summary="Get league table",
)
def get_league_table(
    team_id: int,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
    team_service: TeamService = Depends(get_team_service),
    feed_client: FixtureFeedClient = Depends(get_feed_client),
) -> LeagueTableResponse:
    """
    Get the league table of the team's group.

    Raises:
        400: Team has no fixture feed id
        403: Caller is not a team member
        404: Team not found
        502: Fixture feed failed or returned an invalid table
    """
    try:
        team_service.get(team_id)
        team_service.require_member(team_id, ctx.user_id)
        table = FixtureImportService(db, feed_client).get_league_table(team_id)
        return LeagueTableResponse(league_name=table.league_name, table=table.rows)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Team {team_id} not found")
    except ExternalServiceError as e:
        raise _feed_error(e)
    except Exception as e:
        logger.error(f"Error getting league table of team {team_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get league table: {str(e)}",
        )
