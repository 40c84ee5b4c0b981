"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt only uses the first 72 bytes of a password. Inputs are encoded and
truncated here so hash() and verify() always see the same bytes, and so
bcrypt 4.1+ never raises on long inputs.

The hasher is stateless apart from its cost factor. It is never called
implicitly on save: IdentityService invokes hash() only when a password is
being set or changed.
"""

from __future__ import annotations

import bcrypt

from auth.errors import ValidationError

_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted, adaptive-cost one-way hashing with constant-time verification."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain.

        A fresh salt is generated on every call, so hashing the same password
        twice yields two different digests that both verify.

        Raises:
            ValidationError: If plain is empty.
        """
        if not plain:
            raise ValidationError("Password must not be empty.")
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed. Never raises on mismatch."""
        if not plain or not hashed:
            return False
        try:
            return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
        except ValueError:
            # Malformed or non-bcrypt hash string.
            return False
