"""
auth/tokens.py -- Access/refresh JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Access and refresh tokens are signed with
       independent secrets and carry a "type" claim, so neither can stand in
       for the other even if the secrets were misconfigured.

  Access tokens carry user_id, username, email and full_name and are
       short-lived (default one day). Refresh tokens carry user_id only, which
       limits what a leaked refresh token reveals, and are long-lived (default
       ten days).

  Every token gets a random jti. Two tokens issued for the same user within
       the same second would otherwise be byte-identical, which would defeat
       refresh-token rotation.

  Refresh tokens are stored as SHA-256 hex (hash_token) rather than raw. The
       token already has 256+ bits of signed entropy, so a fast deterministic
       hash is sufficient and allows a direct equality check on refresh.

  Verification raises instead of returning None: TokenExpiredError when the
       signature checks out but exp has passed, InvalidTokenError for
       everything else. The service lets both propagate.

TokenIssuer holds only read-only configuration and is safe to share across
threads.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from auth.errors import InvalidTokenError, TokenExpiredError

if TYPE_CHECKING:
    from core.config import Settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_ACCESS_CLAIMS = ("user_id", "username", "email", "full_name")


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest of a token for storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenIssuer:
    """Signs and verifies access and refresh tokens.

    Usage:
        issuer = TokenIssuer.from_settings(get_settings())
        access = issuer.issue_access_token({"user_id": ..., "username": ..., ...})
        claims = issuer.verify_access_token(access)
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expire_seconds: int = 86400,
        refresh_expire_seconds: int = 864000,
        algorithm: str = "HS256",
    ) -> None:
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_expire_seconds = access_expire_seconds
        self.refresh_expire_seconds = refresh_expire_seconds
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_expire_seconds=settings.access_token_expire_seconds,
            refresh_expire_seconds=settings.refresh_token_expire_seconds,
        )

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def _encode(self, claims: dict[str, Any], secret: str, expire_seconds: int, token_type: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "sub": str(claims["user_id"]),
            "type": token_type,
            "iat": now,
            "exp": now + timedelta(seconds=expire_seconds),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access_token(self, claims: dict[str, Any]) -> str:
        """Encode a signed access token.

        Args:
            claims: Must contain user_id, username, email and full_name.
                    Any other keys are ignored.

        Raises:
            ValueError: If a required claim is missing.
        """
        missing = [k for k in _ACCESS_CLAIMS if k not in claims]
        if missing:
            raise ValueError(f"access token claims missing: {', '.join(missing)}")
        body = {k: claims[k] for k in _ACCESS_CLAIMS}
        return self._encode(body, self.access_secret, self.access_expire_seconds, ACCESS_TOKEN_TYPE)

    def issue_refresh_token(self, user_id: str) -> str:
        """Encode a signed refresh token whose only identity claim is user_id."""
        return self._encode({"user_id": user_id}, self.refresh_secret, self.refresh_expire_seconds, REFRESH_TOKEN_TYPE)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, token: str, secret: str, expected_type: str | None = None) -> dict[str, Any]:
        """Decode and verify a token. Returns the claims dict.

        Raises:
            TokenExpiredError: Signature is valid but exp has passed.
            InvalidTokenError: Bad signature, malformed token, missing user_id,
                               or a type claim other than expected_type.
        """
        if not token:
            raise InvalidTokenError("Token is missing.")
        try:
            claims = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired.") from exc
        except JWTError as exc:
            raise InvalidTokenError("Token is invalid.", detail=str(exc)) from exc
        if "user_id" not in claims:
            raise InvalidTokenError("Token is invalid.", detail="missing user_id claim")
        if expected_type is not None and claims.get("type") != expected_type:
            raise InvalidTokenError("Token is invalid.", detail="unexpected token type")
        return claims

    def verify_access_token(self, token: str) -> dict[str, Any]:
        return self.verify(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> dict[str, Any]:
        return self.verify(token, self.refresh_secret, REFRESH_TOKEN_TYPE)
