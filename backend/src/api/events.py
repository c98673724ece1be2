"""
Events API endpoints for team events and RSVP answers.

Provides endpoints for:
- Listing a team's events and getting event details
- Creating single events and recurring series
- Updating events (single, whole series, series reshape)
- Deleting events (single or whole series)
- Answering events, for oneself or (trainers) for a member

Design:
- Uses dependency injection for services
- Every route first runs the tentative auto-expiry sweep
- Creating, editing and deleting events requires the trainer role
- Comprehensive error handling with meaningful HTTP status codes
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import RequestContext, require_auth
from backend.src.schemas.event import (
    EventChangeResponse,
    EventCreate,
    EventCreateResponse,
    EventDeleteResponse,
    EventDetailResponse,
    EventResponseItem,
    EventUpdate,
    ResponseSubmit,
)
from backend.src.services.event_service import EventService
from backend.src.services.exceptions import ForbiddenError, NotFoundError, ValidationError
from backend.src.services.response_service import ResponseService
from backend.src.services.team_service import TeamService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")


# ============================================================================
# Dependencies
# ============================================================================


def run_tentative_sweep(db: Session = Depends(get_db)) -> int:
    """Expire overdue tentative answers before any event operation."""
    return ResponseService(db=db).expire_tentative_responses()


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Create EventService instance with database session."""
    return EventService(db=db)


def get_response_service(db: Session = Depends(get_db)) -> ResponseService:
    """Create ResponseService instance with database session."""
    return ResponseService(db=db)


def get_team_service(db: Session = Depends(get_db)) -> TeamService:
    """Create TeamService instance with database session."""
    return TeamService(db=db)


router = APIRouter(
    prefix="/events",
    tags=["Events"],
    dependencies=[Depends(run_tentative_sweep)],
)


# ============================================================================
# API Endpoints
# ============================================================================


@router.get(
    "",
    response_model=List[EventDetailResponse],
    summary="List team events",
)
def list_events(
    team_id: int = Query(..., description="Team whose events to list"),
    start: Optional[datetime] = Query(None, description="Earliest start (inclusive)"),
    end: Optional[datetime] = Query(None, description="Latest start (inclusive)"),
    ctx: RequestContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
    team_service: TeamService = Depends(get_team_service),
) -> List[EventDetailResponse]:
    """
    List the events of a team, ordered by start.

    Query Parameters:
        team_id: Team id (the caller must be a member)
        start: Only events starting at or after this time
        end: Only events starting at or before this time

    Returns:
        List of events with the responses visible to the caller

    Raises:
        403: Caller is not a team member

    Example:
        GET /events?team_id=1&start=2024-01-01T00:00:00
    """
    try:
        membership = team_service.require_member(team_id, ctx.user_id)
        events = event_service.list_for_team(team_id, start=start, end=end)
        return [
            EventDetailResponse(**event_service.build_event_response(
                event, ctx.user_id, membership.is_trainer
            ))
            for event in events
        ]

    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except Exception as e:
        logger.error(f"Error listing events: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list events: {str(e)}",
        )


@router.get(
    "/{event_id}",
    response_model=EventDetailResponse,
    summary="Get event details",
)
def get_event(
    event_id: int,
    ctx: RequestContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
    team_service: TeamService = Depends(get_team_service),
) -> EventDetailResponse:
    """
    Get a single event.

    Returns:
        Event with the responses visible to the caller

    Raises:
        403: Caller is not a member of the event's team
        404: Event not found
    """
    try:
        event = event_service.get(event_id)
        membership = team_service.require_member(event.team_id, ctx.user_id)
        return EventDetailResponse(**event_service.build_event_response(
            event, ctx.user_id, membership.is_trainer
        ))

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except Exception as e:
        logger.error(f"Error getting event {event_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get event: {str(e)}",
        )


@router.post(
    "",
    response_model=EventCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create event or series",
)
def create_event(
    event_data: EventCreate,
    ctx: RequestContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
    team_service: TeamService = Depends(get_team_service),
) -> EventCreateResponse:
    """
    Create a single event or a recurring series.

    Request Body:
        EventCreate schema; repeat_type weekly/custom with repeat_until
        (and repeat_days for custom) creates a series

    Returns:
        Ids of the created events and the series key

    Raises:
        400: Invalid times, ranges, pitch type, recurrence or invitees
        403: Caller is not a trainer of the team
        404: Team not found

    Example:
        POST /events
        {
          "team_id": 1,
          "title": "Training",
          "start_time": "2024-01-01T18:00:00",
          "duration_minutes": 90,
          "repeat_type": "custom",
          "repeat_until": "2024-03-31",
          "repeat_days": [1, 3]
        }
    """
    try:
        team_service.require_trainer(event_data.team_id, ctx.user_id)
        result = event_service.create(
            team_id=event_data.team_id,
            created_by_user_id=ctx.user_id,
            title=event_data.title,
            category=event_data.category,
            start_time=event_data.start_time,
            end_time=event_data.end_time,
            duration_minutes=event_data.duration_minutes,
            description=event_data.description,
            location_venue=event_data.location_venue,
            location_street=event_data.location_street,
            location_zip_city=event_data.location_zip_city,
            pitch_type=event_data.pitch_type,
            meeting_point=event_data.meeting_point,
            arrival_minutes=event_data.arrival_minutes,
            rsvp_deadline=event_data.rsvp_deadline,
            rsvp_deadline_hours=event_data.rsvp_deadline_hours,
            visibility_all=event_data.visibility_all,
            invite_all=event_data.invite_all,
            invited_user_ids=event_data.invited_user_ids,
            repeat_type=event_data.repeat_type.value,
            repeat_until=event_data.repeat_until,
            repeat_days=event_data.repeat_days,
        )

        logger.info(
            f"Created {len(result.event_ids)} event(s)",
            extra={"team_id": event_data.team_id, "series_key": result.series_key},
        )
        return EventCreateResponse(event_ids=result.event_ids, series_key=result.series_key)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating event: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create event: {str(e)}",
        )


@router.put(
    "/{event_id}",
    response_model=EventChangeResponse,
    summary="Update event or series",
)
def update_event(
    event_id: int,
    event_data: EventUpdate,
    ctx: RequestContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
    team_service: TeamService = Depends(get_team_service),
) -> EventChangeResponse:
    """
    Update an event, optionally its whole series.

    Request Body:
        EventUpdate schema; update_series shifts the series, adding
        repeat_days and repeat_until reshapes it

    Returns:
        Updated, created and deleted event ids

    Raises:
        400: Invalid values or series parameters
        403: Caller is not a trainer of the team
        404: Event not found
    """
    try:
        event = event_service.get(event_id)
        team_service.require_trainer(event.team_id, ctx.user_id)
        result = event_service.update(
            event_id=event_id,
            title=event_data.title,
            category=event_data.category,
            start_time=event_data.start_time,
            end_time=event_data.end_time,
            duration_minutes=event_data.duration_minutes,
            description=event_data.description,
            location_venue=event_data.location_venue,
            location_street=event_data.location_street,
            location_zip_city=event_data.location_zip_city,
            pitch_type=event_data.pitch_type,
            meeting_point=event_data.meeting_point,
            arrival_minutes=event_data.arrival_minutes,
            rsvp_deadline=event_data.rsvp_deadline,
            clear_rsvp_deadline=event_data.clear_rsvp_deadline,
            visibility_all=event_data.visibility_all,
            invite_all=event_data.invite_all,
            invited_user_ids=event_data.invited_user_ids,
            update_series=event_data.update_series,
            repeat_until=event_data.repeat_until,
            repeat_days=event_data.repeat_days,
        )
        return EventChangeResponse(
            series_key=result.series_key,
            updated=result.updated,
            created=result.created,
            deleted=result.deleted,
        )

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    except Exception as e:
        logger.error(f"Error updating event {event_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update event: {str(e)}",
        )


@router.delete(
    "/{event_id}",
    response_model=EventDeleteResponse,
    summary="Delete event or series",
)
def delete_event(
    event_id: int,
    delete_series: bool = Query(False, description="Delete every occurrence of the series"),
    ctx: RequestContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
    team_service: TeamService = Depends(get_team_service),
) -> EventDeleteResponse:
    """
    Delete an event or its whole series.

    Returns:
        Number of deleted events

    Raises:
        403: Caller is not a trainer of the team
        404: Event not found
    """
    try:
        event = event_service.get(event_id)
        team_service.require_trainer(event.team_id, ctx.user_id)
        deleted = event_service.delete(event_id, delete_series=delete_series)
        return EventDeleteResponse(deleted=deleted)

    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    except Exception as e:
        logger.error(f"Error deleting event {event_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete event: {str(e)}",
        )


@router.post(
    "/{event_id}/response",
    response_model=EventResponseItem,
    summary="Answer an event",
)
def respond_to_event(
    event_id: int,
    response_data: ResponseSubmit,
    ctx: RequestContext = Depends(require_auth),
    response_service: ResponseService = Depends(get_response_service),
) -> EventResponseItem:
    """
    Set the caller's answer for an event.

    Request Body:
        status: accepted, tentative, declined or pending
        comment: Required for declined

    Raises:
        400: Missing comment, or tentative too close to the deadline
        403: Caller is not a team member
        404: Event not found
    """
    return _submit_response(event_id, response_data, ctx, response_service)


@router.post(
    "/{event_id}/response/{user_id}",
    response_model=EventResponseItem,
    summary="Answer an event for a member",
)
def respond_for_member(
    event_id: int,
    user_id: int,
    response_data: ResponseSubmit,
    ctx: RequestContext = Depends(require_auth),
    response_service: ResponseService = Depends(get_response_service),
) -> EventResponseItem:
    """
    Set a member's answer on their behalf (trainers only).

    Raises:
        400: Invalid answer
        403: Caller is not a trainer of the team
        404: Event or member not found
    """
    return _submit_response(event_id, response_data, ctx, response_service, target_user_id=user_id)


def _submit_response(
    event_id: int,
    response_data: ResponseSubmit,
    ctx: RequestContext,
    response_service: ResponseService,
    target_user_id: Optional[int] = None,
) -> EventResponseItem:
    try:
        response = response_service.set_response(
            event_id=event_id,
            acting_user_id=ctx.user_id,
            status=response_data.status.value,
            comment=response_data.comment,
            target_user_id=target_user_id,
        )
        return EventResponseItem.model_validate(response)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ForbiddenError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error answering event {event_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save response: {str(e)}",
        )
