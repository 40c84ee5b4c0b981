"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST  /api/v1/users/register        -- create account; 201 + profile
  POST  /api/v1/users/login           -- password login; sets both token cookies
  POST  /api/v1/users/refresh-token   -- rotate tokens (body, else cookie)
  POST  /api/v1/users/logout          -- clear stored refresh token and cookies
  GET   /api/v1/users/me              -- current profile
  POST  /api/v1/users/change-password -- verify old password, set new one
  PATCH /api/v1/users/account         -- update full_name / email
  PATCH /api/v1/users/avatar          -- replace avatar URL
  PATCH /api/v1/users/cover-image     -- replace cover image URL
  GET   /api/v1/users/history         -- watch history, oldest first
  POST  /api/v1/users/history         -- append a watched video id

Every route maps to exactly one IdentityService call. Routes never touch
UserStore. Failures are typed IdentityErrors and are turned into the
ErrorResponse envelope by the handler in api/main.py, so no route catches them.

Security:
  Tokens are written as httpOnly cookies (JS cannot read them) with
  samesite="lax"; secure is driven by SECURE_COOKIES. Cookie max_age matches
  the token expiry so both expire together.
  [M5] Cache-Control: no-store on every response that carries tokens.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from api.models import (
    AccountUpdateRequest,
    AvatarUpdateRequest,
    ChangePasswordRequest,
    CoverImageUpdateRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    UserResponse,
    WatchHistoryResponse,
    WatchRequest,
)
from auth.dependencies import ACCESS_COOKIE, REFRESH_COOKIE, get_current_user, get_identity_service
from auth.models import LoginResult, UserProfile
from auth.service import IdentityService
from core.config import get_settings

# Auth policy:
# - register, login, refresh-token: public
# - everything else: requires auth (get_current_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def _set_token_cookies(response: Response, result: LoginResult) -> None:
    settings = get_settings()
    response.set_cookie(
        ACCESS_COOKIE,
        value=result.tokens.access_token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.access_token_expire_seconds,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        value=result.tokens.refresh_token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.refresh_token_expire_seconds,
    )
    response.headers["Cache-Control"] = "no-store"  # [M5]


def _token_response(result: LoginResult) -> JSONResponse:
    resp = JSONResponse(status_code=200, content=LoginResponse.from_result(result).model_dump())
    _set_token_cookies(resp, result)
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users/register", response_model=UserResponse, status_code=201)
def register(body: RegisterRequest, identity: IdentityService = Depends(get_identity_service)) -> UserResponse:
    """Create an account. Returns the public profile, never the password hash."""
    profile = identity.register(
        username=body.username,
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        avatar_url=body.avatar_url,
        cover_image_url=body.cover_image_url,
    )
    return UserResponse.from_profile(profile)


@router.post("/users/login", response_model=LoginResponse)
def login(body: LoginRequest, identity: IdentityService = Depends(get_identity_service)) -> JSONResponse:
    """Authenticate with username or email plus password; set both token cookies."""
    return _token_response(identity.login(body.identifier, body.password))


@router.post("/users/refresh-token", response_model=LoginResponse)
def refresh_token(
    request: Request,
    body: RefreshRequest | None = None,
    identity: IdentityService = Depends(get_identity_service),
) -> JSONResponse:
    """Rotate the token pair. A token in the body wins over the refresh_token cookie."""
    presented = (body.refresh_token if body else None) or request.cookies.get(REFRESH_COOKIE)
    return _token_response(identity.refresh(presented or ""))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/users/logout", response_model=MessageResponse)
def logout(
    current_user: UserProfile = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> JSONResponse:
    """Clear the stored refresh token and both cookies."""
    identity.logout(current_user.id)
    resp = JSONResponse(content=MessageResponse(message="User logged out.").model_dump())
    resp.delete_cookie(ACCESS_COOKIE)
    resp.delete_cookie(REFRESH_COOKIE)
    return resp


@router.get("/users/me", response_model=UserResponse)
def me(current_user: UserProfile = Depends(get_current_user)) -> UserResponse:
    return UserResponse.from_profile(current_user)


@router.post("/users/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    current_user: UserProfile = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    identity.change_password(current_user.id, body.old_password, body.new_password)
    return MessageResponse(message="Password changed.")


@router.patch("/users/account", response_model=UserResponse)
def update_account(
    body: AccountUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    profile = identity.update_account_details(current_user.id, full_name=body.full_name, email=body.email)
    return UserResponse.from_profile(profile)


@router.patch("/users/avatar", response_model=UserResponse)
def update_avatar(
    body: AvatarUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    return UserResponse.from_profile(identity.update_avatar(current_user.id, body.avatar_url))


@router.patch("/users/cover-image", response_model=UserResponse)
def update_cover_image(
    body: CoverImageUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    return UserResponse.from_profile(identity.update_cover_image(current_user.id, body.cover_image_url))


@router.get("/users/history", response_model=WatchHistoryResponse)
def watch_history(
    current_user: UserProfile = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> WatchHistoryResponse:
    return WatchHistoryResponse(video_ids=identity.get_watch_history(current_user.id))


@router.post("/users/history", response_model=WatchHistoryResponse, status_code=201)
def record_watch(
    body: WatchRequest,
    current_user: UserProfile = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity_service),
) -> WatchHistoryResponse:
    return WatchHistoryResponse(video_ids=identity.record_watch(current_user.id, body.video_id))
