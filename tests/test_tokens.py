"""Unit tests for auth/tokens.py -- TokenIssuer issue/verify.

Covers:
- access token carries user_id, username, email, full_name and type=access
- refresh token carries user_id only (no profile claims)
- consecutive tokens for the same user differ (jti)
- expired tokens raise TokenExpiredError
- tampered, foreign-secret and garbage tokens raise InvalidTokenError
- an access token is not accepted as a refresh token and vice versa
"""

from __future__ import annotations

import pytest
from jose import jwt

from auth.errors import InvalidTokenError, TokenExpiredError, UnauthorizedError
from auth.tokens import TokenIssuer, hash_token

ACCESS_SECRET = "a" * 64
REFRESH_SECRET = "r" * 64

CLAIMS = {
    "user_id": "u-123",
    "username": "alice",
    "email": "alice@x.com",
    "full_name": "Alice Liddell",
}


class TestIssue:
    def test_access_token_claims(self, issuer: TokenIssuer) -> None:
        claims = issuer.verify_access_token(issuer.issue_access_token(CLAIMS))
        for key, value in CLAIMS.items():
            assert claims[key] == value
        assert claims["sub"] == "u-123"
        assert claims["type"] == "access"
        assert claims["exp"] > claims["iat"]

    def test_access_token_ignores_extra_claims(self, issuer: TokenIssuer) -> None:
        token = issuer.issue_access_token({**CLAIMS, "password_hash": "nope"})
        assert "password_hash" not in issuer.verify_access_token(token)

    def test_access_token_requires_identity_claims(self, issuer: TokenIssuer) -> None:
        with pytest.raises(ValueError):
            issuer.issue_access_token({"user_id": "u-123"})

    def test_refresh_token_carries_user_id_only(self, issuer: TokenIssuer) -> None:
        claims = issuer.verify_refresh_token(issuer.issue_refresh_token("u-123"))
        assert claims["user_id"] == "u-123"
        assert claims["type"] == "refresh"
        for key in ("username", "email", "full_name"):
            assert key not in claims

    def test_expiries_follow_configuration(self) -> None:
        issuer = TokenIssuer(ACCESS_SECRET, REFRESH_SECRET, access_expire_seconds=60, refresh_expire_seconds=600)
        access = issuer.verify_access_token(issuer.issue_access_token(CLAIMS))
        refresh = issuer.verify_refresh_token(issuer.issue_refresh_token("u-123"))
        assert access["exp"] - access["iat"] == 60
        assert refresh["exp"] - refresh["iat"] == 600

    def test_consecutive_tokens_differ(self, issuer: TokenIssuer) -> None:
        assert issuer.issue_refresh_token("u-123") != issuer.issue_refresh_token("u-123")

    def test_refresh_token_signed_with_refresh_secret(self, issuer: TokenIssuer) -> None:
        token = issuer.issue_refresh_token("u-123")
        assert jwt.decode(token, REFRESH_SECRET, algorithms=["HS256"])["user_id"] == "u-123"


class TestVerify:
    def test_expired_access_token(self) -> None:
        issuer = TokenIssuer(ACCESS_SECRET, REFRESH_SECRET, access_expire_seconds=-10)
        with pytest.raises(TokenExpiredError):
            issuer.verify_access_token(issuer.issue_access_token(CLAIMS))

    def test_expired_refresh_token(self) -> None:
        issuer = TokenIssuer(ACCESS_SECRET, REFRESH_SECRET, refresh_expire_seconds=-10)
        with pytest.raises(TokenExpiredError):
            issuer.verify_refresh_token(issuer.issue_refresh_token("u-123"))

    def test_tampered_token(self, issuer: TokenIssuer) -> None:
        head, _body, sig = issuer.issue_access_token(CLAIMS).split(".")
        _head, other_body, _sig = issuer.issue_access_token({**CLAIMS, "user_id": "u-999"}).split(".")
        tampered = ".".join([head, other_body, sig])
        with pytest.raises(InvalidTokenError):
            issuer.verify_access_token(tampered)

    def test_foreign_secret(self, issuer: TokenIssuer) -> None:
        other = TokenIssuer("z" * 64, "y" * 64)
        with pytest.raises(InvalidTokenError):
            issuer.verify_access_token(other.issue_access_token(CLAIMS))

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c"])
    def test_garbage(self, issuer: TokenIssuer, garbage: str) -> None:
        with pytest.raises(InvalidTokenError):
            issuer.verify_access_token(garbage)

    def test_access_token_rejected_as_refresh(self, issuer: TokenIssuer) -> None:
        with pytest.raises(InvalidTokenError):
            issuer.verify_refresh_token(issuer.issue_access_token(CLAIMS))

    def test_refresh_token_rejected_as_access(self, issuer: TokenIssuer) -> None:
        with pytest.raises(InvalidTokenError):
            issuer.verify_access_token(issuer.issue_refresh_token("u-123"))

    def test_wrong_type_under_same_secret(self, issuer: TokenIssuer) -> None:
        """The type claim alone is enough to reject a mismatch."""
        token = issuer.issue_refresh_token("u-123")
        with pytest.raises(InvalidTokenError):
            issuer.verify(token, REFRESH_SECRET, expected_type="access")

    def test_invalid_token_is_unauthorized(self) -> None:
        assert issubclass(InvalidTokenError, UnauthorizedError)


def test_hash_token_is_stable_sha256() -> None:
    assert hash_token("abc") == hash_token("abc")
    assert len(hash_token("abc")) == 64
    assert hash_token("abc") != "abc"
