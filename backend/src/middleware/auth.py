"""
Authentication dependencies for API routes.

Provides:
- RequestContext: The acting user of a request
- require_auth: FastAPI dependency resolving the acting user

Authentication itself happens in the upstream gateway, which forwards the
authenticated user id in the X-User-Id header. This module only resolves
that id to a known user.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.models import User
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

USER_ID_HEADER = "X-User-Id"


@dataclass
class RequestContext:
    """
    Represents the acting user of a request.

    Attributes:
        user_id: Internal user id
        user_name: Display name of the user

    Usage:
        @router.get("/items")
        def list_items(ctx: RequestContext = Depends(require_auth)):
            items = service.list_items(user_id=ctx.user_id)
    """
    user_id: int
    user_name: Optional[str] = None


def require_auth(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> RequestContext:
    """
    FastAPI dependency that requires an authenticated user.

    Args:
        x_user_id: Value of the X-User-Id header set by the gateway
        db: Database session

    Returns:
        RequestContext for the acting user

    Raises:
        HTTPException 401: If the header is missing, malformed, or names
            an unknown user
    """
    if not x_user_id or not x_user_id.strip().isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    user = db.query(User).filter(User.id == int(x_user_id.strip())).first()
    if not user:
        logger.warning("Request with unknown user id", extra={"user_id": x_user_id})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    return RequestContext(user_id=user.id, user_name=user.name)


__all__ = [
    "RequestContext",
    "require_auth",
    "USER_ID_HEADER",
]
