"""
auth/service.py -- Identity service: registration, login, refresh, logout.

The only component with business rules. It consults UserStore, delegates
hashing to PasswordHasher and signing to TokenIssuer, and writes mutations
back to the store. It raises typed errors from auth/errors.py and performs no
logging or HTTP formatting -- that belongs to the api/ layer.

Session model per account:
    Anonymous --login--> Authenticated --refresh--> Authenticated ...
                              |
                            logout --> LoggedOut (until the next login)

A single refresh-token hash is stored per user. Each login or refresh
overwrites it, so a login on another device invalidates the previous
device's refresh token, and two concurrent refreshes for one account resolve
last-writer-wins.

Password hashing runs only in register() and change_password(). Every other
save passes the stored digest through untouched.
"""

from __future__ import annotations

import hmac
import re

from auth.errors import (
    ConflictError,
    ConstraintViolation,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from auth.models import LoginResult, TokenPair, User, UserProfile
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenIssuer, hash_token

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def _require(value: str | None, name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{name} is required.")
    return cleaned


def _check_email(email: str) -> str:
    if not _EMAIL_RE.match(email):
        raise ValidationError("email is not a valid address.")
    return email


def to_profile(user: User) -> UserProfile:
    """Project a User onto its public fields."""
    return UserProfile(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        avatar_url=user.avatar_url,
        cover_image_url=user.cover_image_url,
        watch_history=list(user.watch_history),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class IdentityService:
    """Orchestrates the credential and session-token lifecycle."""

    def __init__(self, store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        # Verified against when the identifier is unknown so login takes the
        # same time whether or not the account exists.
        self._dummy_hash = hasher.hash("vidtube_timing_dummy")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        username: str,
        email: str,
        password: str,
        full_name: str,
        avatar_url: str,
        cover_image_url: str | None = None,
    ) -> UserProfile:
        """Create a new account and return its public profile.

        Raises:
            ValidationError: A required field is blank or malformed.
            ConflictError: username or email is already registered.
        """
        username = _normalize(_require(username, "username"))
        email = _check_email(_normalize(_require(email, "email")))
        if not password:
            raise ValidationError("password is required.")
        full_name = _require(full_name, "full_name")
        avatar_url = _require(avatar_url, "avatar_url")
        if any(ch.isspace() for ch in username):
            raise ValidationError("username must not contain whitespace.")
        if "@" in username:
            raise ValidationError("username must not contain '@'.")

        if self.store.find_by_identifier(username) or self.store.find_by_identifier(email):
            raise ConflictError("User with this username or email already exists.")

        user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=self.hasher.hash(password),
            avatar_url=avatar_url,
            cover_image_url=(cover_image_url or "").strip() or None,
        )
        try:
            self.store.save(user)
        except ConstraintViolation as exc:
            # Lost a race with a concurrent registration.
            raise ConflictError("User with this username or email already exists.", detail=exc.field) from exc
        return to_profile(user)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def login(self, identifier: str, password: str) -> LoginResult:
        """Authenticate by username or email and issue a fresh token pair.

        Raises:
            ValidationError: identifier or password is blank.
            NotFoundError: No account matches identifier.
            UnauthorizedError: Password does not match.
        """
        if not _normalize(identifier):
            raise ValidationError("username or email is required.")
        if not password:
            raise ValidationError("password is required.")

        user = self.store.find_by_identifier(identifier)
        if user is None:
            self.hasher.verify(password, self._dummy_hash)
            raise NotFoundError("User does not exist.")
        if not self.hasher.verify(password, user.password_hash):
            raise UnauthorizedError("Invalid user credentials.")

        tokens = self._issue_and_store(user)
        return LoginResult(tokens=tokens, user=to_profile(user))

    def refresh(self, presented_refresh_token: str) -> LoginResult:
        """Exchange the current refresh token for a new pair (rotation).

        Raises:
            UnauthorizedError: Token missing, owner gone, or token is not the
                one currently stored (stale, reused or logged out).
            InvalidTokenError: Bad signature or structure.
            TokenExpiredError: Token is past its expiry.
        """
        if not presented_refresh_token:
            raise UnauthorizedError("Refresh token is required.")
        claims = self.issuer.verify_refresh_token(presented_refresh_token)

        user = self.store.get_by_id(claims["user_id"])
        if user is None:
            raise UnauthorizedError("Invalid refresh token.")
        stored = user.refresh_token_hash
        if stored is None or not hmac.compare_digest(stored, hash_token(presented_refresh_token)):
            raise UnauthorizedError("Refresh token is expired or used.")

        tokens = self._issue_and_store(user)
        return LoginResult(tokens=tokens, user=to_profile(user))

    def logout(self, user_id: str) -> None:
        """Clear the stored refresh token. Repeating it is not an error.

        Raises:
            NotFoundError: No account has user_id.
        """
        if not self.store.set_refresh_token_hash(user_id, None):
            raise NotFoundError("User does not exist.")

    def get_current_user(self, access_token: str) -> UserProfile:
        """Resolve an access token to the caller's profile.

        Raises:
            UnauthorizedError: Token missing or its owner no longer exists.
            InvalidTokenError / TokenExpiredError: from verification.
        """
        if not access_token:
            raise UnauthorizedError("Authentication required.")
        claims = self.issuer.verify_access_token(access_token)
        user = self.store.get_by_id(claims["user_id"])
        if user is None:
            raise UnauthorizedError("Invalid access token.")
        return to_profile(user)

    # ------------------------------------------------------------------
    # Account maintenance
    # ------------------------------------------------------------------

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        """Replace the password after checking the current one.

        The stored refresh token is left as is, so the current session survives.

        Raises:
            ValidationError: new_password is blank.
            NotFoundError: No account has user_id.
            UnauthorizedError: old_password is wrong.
        """
        if not new_password:
            raise ValidationError("new password is required.")
        user = self._get(user_id)
        if not self.hasher.verify(old_password, user.password_hash):
            raise UnauthorizedError("Invalid old password.")
        user.password_hash = self.hasher.hash(new_password)
        self.store.save(user)

    def update_account_details(
        self,
        user_id: str,
        full_name: str | None = None,
        email: str | None = None,
    ) -> UserProfile:
        """Edit display name and/or email. Never touches the password hash.

        Raises:
            ValidationError: Neither field given, or a given field is blank/malformed.
            NotFoundError: No account has user_id.
            ConflictError: email already belongs to another account.
        """
        if full_name is None and email is None:
            raise ValidationError("full_name or email is required.")
        user = self._get(user_id)
        if full_name is not None:
            user.full_name = _require(full_name, "full_name")
        if email is not None:
            new_email = _check_email(_normalize(_require(email, "email")))
            existing = self.store.find_by_identifier(new_email)
            if existing is not None and existing.id != user.id:
                raise ConflictError("Email already in use.")
            user.email = new_email
        return self._save_profile(user)

    def update_avatar(self, user_id: str, avatar_url: str) -> UserProfile:
        user = self._get(user_id)
        user.avatar_url = _require(avatar_url, "avatar_url")
        return self._save_profile(user)

    def update_cover_image(self, user_id: str, cover_image_url: str) -> UserProfile:
        user = self._get(user_id)
        user.cover_image_url = _require(cover_image_url, "cover_image_url")
        return self._save_profile(user)

    def record_watch(self, user_id: str, video_id: str) -> list[str]:
        """Append video_id to the watch history and return the full history."""
        video_id = _require(video_id, "video_id")
        self._get(user_id)
        self.store.append_watch_history(user_id, video_id)
        return self.store.get_watch_history(user_id)

    def get_watch_history(self, user_id: str) -> list[str]:
        return self._get(user_id).watch_history

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, user_id: str) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User does not exist.")
        return user

    def _save_profile(self, user: User) -> UserProfile:
        try:
            self.store.save(user)
        except ConstraintViolation as exc:
            raise ConflictError("Email already in use.", detail=exc.field) from exc
        return to_profile(user)

    def _issue_and_store(self, user: User) -> TokenPair:
        access_token = self.issuer.issue_access_token(
            {
                "user_id": user.id,
                "username": user.username,
                "email": user.email,
                "full_name": user.full_name,
            }
        )
        refresh_token = self.issuer.issue_refresh_token(user.id)
        self.store.set_refresh_token_hash(user.id, hash_token(refresh_token))
        user.refresh_token_hash = hash_token(refresh_token)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.issuer.access_expire_seconds,
        )
