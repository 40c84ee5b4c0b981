"""
auth/errors.py -- Typed failure taxonomy for the identity domain.

Every IdentityError carries a machine-readable code and the HTTP status the
transport layer should use. The service raises these and nothing else; it
never formats responses or logs. api/main.py maps them onto the ErrorResponse
envelope with a single exception handler.

ConstraintViolation is deliberately outside the IdentityError tree: it is a
persistence-level signal raised by UserStore.save() and translated by the
service into ConflictError.

Layer rule: stdlib only.
"""

from __future__ import annotations


class IdentityError(Exception):
    """Base class for failures surfaced by the identity service."""

    code = "identity_error"
    status_code = 400

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(IdentityError):
    """Missing or malformed input."""

    code = "validation_error"
    status_code = 400


class ConflictError(IdentityError):
    """A unique field (username or email) is already taken."""

    code = "conflict"
    status_code = 409


class NotFoundError(IdentityError):
    """No identity record matches."""

    code = "not_found"
    status_code = 404


class UnauthorizedError(IdentityError):
    """Bad password, or a bad, stale or mismatched token."""

    code = "unauthorized"
    status_code = 401


class InvalidTokenError(UnauthorizedError):
    """Token signature or structure is invalid."""

    code = "invalid_token"


class TokenExpiredError(IdentityError):
    """Token signature is valid but the token is past its expiry."""

    code = "token_expired"
    status_code = 401


class ConstraintViolation(Exception):
    """Persistence rejected a write because a uniqueness rule was breached."""

    def __init__(self, field: str | None = None) -> None:
        super().__init__(f"unique constraint violated: {field or 'unknown'}")
        self.field = field
