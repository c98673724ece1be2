"""
FastAPI application entry point for the TeamRSVP backend.

Wires together:
- Logging (initialized before the app object exists)
- The periodic fixture import scheduler, owned by the app lifespan
- Error handlers translating failures that escape the routers
- The events and teams routers under /api, plus /health

Environment Variables:
    TEAMRSVP_DB_URL: Database URL (default: sqlite:///./teamrsvp.db)
    TEAMRSVP_ENV: production or development (default: development)
    TEAMRSVP_LOG_LEVEL: Root log level (default: INFO)
    TEAMRSVP_TIMEZONE: Club wall-clock zone (default: Europe/Berlin)
    FIXTURE_FEED_*: Feed URL and token (see config.settings)
    AUTO_GAME_IMPORT_*: Scheduler settings (see config.settings)
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from backend.src.config.settings import get_settings
from backend.src.db.database import SessionLocal, dispose_engine
from backend.src.services.exceptions import (
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from backend.src.services.fixture_import_scheduler import FixtureImportScheduler
from backend.src.utils.logging_config import get_logger, init_logging


APP_VERSION = "1.0.0"

# Status for service errors that reach the app without a router mapping
SERVICE_ERROR_STATUS: Dict[Type[ServiceError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ExternalServiceError: status.HTTP_502_BAD_GATEWAY,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Own the fixture import scheduler for the lifetime of the app.

    The scheduler only starts when automatic import is enabled and a feed
    token is configured; either way it is stopped and the engine disposed
    on shutdown.
    """
    logger = get_logger("api")
    settings = get_settings()
    logger.info(
        "Starting TeamRSVP backend",
        extra={"timezone": settings.timezone, "feed_configured": settings.feed_configured},
    )

    scheduler = FixtureImportScheduler(SessionLocal, settings)
    app.state.fixture_import_scheduler = scheduler
    scheduler.start()

    yield

    logger.info("Shutting down TeamRSVP backend")
    await scheduler.stop()
    dispose_engine()


init_logging()

app = FastAPI(
    title="TeamRSVP API",
    description="Team events with RSVP answers, recurring series and "
                "fixture feed import.",
    version=APP_VERSION,
    lifespan=lifespan,
)


# ============================================================================
# Error handlers
# ============================================================================


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Reject malformed bodies and query parameters with field details."""
    get_logger("api").warning(
        f"Rejected request to {request.url.path}",
        extra={"method": request.method, "errors": len(exc.errors())},
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    code = next(
        (code for cls, code in SERVICE_ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(status_code=code, content={"detail": str(exc)})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    A concurrent writer inserted the same row first.

    Happens when two requests answer the same event for the same member,
    or two imports create the same fixture key at once.
    """
    get_logger("db").warning(
        f"Integrity conflict on {request.url.path}",
        extra={"method": request.method, "error": str(exc.orig)},
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "The change conflicts with a concurrent update, please retry"},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    get_logger("db").error(
        f"Database error on {request.url.path}",
        extra={"method": request.method, "error": str(exc)},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error"},
    )


# ============================================================================
# Health
# ============================================================================


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """Liveness plus the state of the fixture import scheduler."""
    scheduler = getattr(app.state, "fixture_import_scheduler", None)
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "fixture_import": {
            "running": bool(scheduler and scheduler.is_running),
            "cycle_in_progress": bool(scheduler and scheduler.cycle_in_progress),
        },
    }


# API routers
from backend.src.api import events, teams  # noqa: E402

app.include_router(events.router, prefix="/api")
app.include_router(teams.router, prefix="/api")
