"""
Middleware components for the TeamRSVP backend.

This module provides:
- RequestContext: Dataclass representing the acting user of a request
- require_auth: FastAPI dependency for requiring an authenticated user
"""

from backend.src.middleware.auth import RequestContext, require_auth

__all__ = [
    "RequestContext",
    "require_auth",
]
