"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; UserStore and IdentityService do the work. In particular User has no
pre-save hooks and no token helpers: hashing is an explicit step in the
service and signing lives in auth/tokens.TokenIssuer.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """One registered account as persisted by UserStore.

    username and email are stored normalized (trimmed, lowercase) and are each
    unique. password_hash is a bcrypt digest and is only ever written by
    IdentityService.register() and IdentityService.change_password().

    refresh_token_hash holds the SHA-256 of the single active refresh token.
    A new login or refresh overwrites it, so signing in on a second device
    ends the first device's session. None means logged out.

    watch_history is an ordered list of external video ids (oldest first).
    The video entities themselves are owned elsewhere.

    id is None before the record is written to the database.
    """

    username: str
    email: str
    full_name: str
    password_hash: str
    avatar_url: str
    cover_image_url: str | None = None
    refresh_token_hash: str | None = None
    watch_history: list[str] = field(default_factory=list)
    id: str | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set by store on every save


@dataclass(frozen=True)
class UserProfile:
    """Public projection of a User. Never carries password or token hashes."""

    id: str
    username: str
    email: str
    full_name: str
    avatar_url: str
    cover_image_url: str | None
    watch_history: list[str]
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class TokenPair:
    """Freshly issued access and refresh tokens.

    expires_in is the access-token lifetime in seconds.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login or refresh."""

    tokens: TokenPair
    user: UserProfile
