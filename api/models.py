"""
API request and response models for VidTube Identity REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field validation here is limited to shape and length. Business validation
(blank fields, email format, uniqueness) lives in IdentityService so it holds
for every caller, not only HTTP ones.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import LoginResult, TokenPair, UserProfile

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/users/register.

    Text fields are trimmed by IdentityService. The password is taken verbatim.
    """

    username: str = Field(max_length=255)
    email: str = Field(max_length=255)
    # bcrypt ignores bytes past 72; the cap keeps inputs close to that.
    password: str = Field(max_length=255)
    full_name: str = Field(max_length=255)
    avatar_url: str = Field(max_length=2048)
    cover_image_url: Optional[str] = Field(default=None, max_length=2048)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login. identifier is a username or email."""

    identifier: str = Field(max_length=255)
    password: str = Field(max_length=255)


class RefreshRequest(BaseModel):
    """Optional body for POST /api/v1/users/refresh-token.

    Browser clients rely on the refresh_token cookie and may send no body.
    """

    refresh_token: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(max_length=255)
    new_password: str = Field(max_length=255)


class AccountUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)


class AvatarUpdateRequest(BaseModel):
    avatar_url: str = Field(max_length=2048)


class CoverImageUpdateRequest(BaseModel):
    cover_image_url: str = Field(max_length=2048)


class WatchRequest(BaseModel):
    video_id: str = Field(max_length=64)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public profile. Never includes password or token hashes."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str
    full_name: str
    avatar_url: str
    cover_image_url: Optional[str]
    watch_history: list[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserResponse":
        return cls(
            id=profile.id,
            username=profile.username,
            email=profile.email,
            full_name=profile.full_name,
            avatar_url=profile.avatar_url,
            cover_image_url=profile.cover_image_url,
            watch_history=list(profile.watch_history),
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenResponse":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_type=pair.token_type,
            expires_in=pair.expires_in,
        )


class LoginResponse(BaseModel):
    """Response for login and refresh: the new token pair plus the profile."""

    model_config = ConfigDict(frozen=True)

    tokens: TokenResponse
    user: UserResponse

    @classmethod
    def from_result(cls, result: LoginResult) -> "LoginResponse":
        return cls(tokens=TokenResponse.from_pair(result.tokens), user=UserResponse.from_profile(result.user))


class WatchHistoryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    video_ids: list[str]


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
