"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two access-token sources are checked in priority order:
  1. "access_token" cookie -- set by POST /users/login for browser clients.
  2. Authorization: Bearer <token> header -- API and mobile clients.

Both converge on IdentityService.get_current_user(), so token verification
and the user lookup happen in exactly one place. Typed IdentityErrors
propagate to the exception handler in api/main.py, which turns them into 401s.

Layer rule: no imports from api/. This module may import from fastapi because
it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import UnauthorizedError
from auth.models import UserProfile
from auth.service import IdentityService

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity


def extract_access_token(request: Request) -> str | None:
    """Return the raw access token from cookie or Bearer header, or None."""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user(request: Request) -> UserProfile:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: UserProfile = Depends(get_current_user)): ...

    Raises:
        UnauthorizedError: No token was presented.
        InvalidTokenError / TokenExpiredError: The token failed verification.
    """
    token = extract_access_token(request)
    if not token:
        raise UnauthorizedError("Authentication required.")
    return get_identity_service(request).get_current_user(token)
