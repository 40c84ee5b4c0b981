"""
auth/store.py -- SQLAlchemy Core persistence layer for identity records.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Username and email uniqueness is enforced by UNIQUE constraints on the
  users table. save() translates IntegrityError into ConstraintViolation so
  callers depend on the domain signal, not on SQLAlchemy.

  The store never hashes anything. password_hash and refresh_token_hash are
  written exactly as the service hands them over.

Atomicity: every public write is one INSERT or UPDATE committed in its own
connection, so each is atomic per record. Concurrent writes to the same
record are last-writer-wins.

DB path: auth/vidtube_identity.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import ConstraintViolation
from auth.models import User
from core.config import get_settings

logger = logging.getLogger("vidtube.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("full_name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("avatar_url", Text, nullable=False),
    Column("cover_image_url", Text),
    Column("refresh_token_hash", String(64)),  # SHA-256 hex, NULL when logged out
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_watch_history = Table(
    "watch_history",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),  # insertion order
    Column("user_id", String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("video_id", String(64), nullable=False),  # weak reference, no FK
    Column("watched_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _normalize(value: str) -> str:
    return value.strip().lower()


def _violated_field(exc: IntegrityError) -> str | None:
    message = str(exc.orig).lower()
    for name in ("username", "email"):
        if name in message:
            return name
    return None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records and their watch history.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user = store.save(User(username="alice", email="alice@x.com", ...))
        same = store.find_by_identifier("ALICE@x.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_identifier(self, identifier: str) -> User | None:
        """Look up a user by username or email. Matching is case-insensitive.

        Returns None if not found or identifier is blank.
        """
        key = _normalize(identifier or "")
        if not key:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.username == key) | (_users.c.email == key))
            ).fetchone()
            history = self._history(conn, row.id) if row is not None else []
        return _row_to_user(row, history) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
            history = self._history(conn, row.id) if row is not None else []
        return _row_to_user(row, history) if row is not None else None

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_users)).scalar() or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, user: User) -> User:
        """Insert a new user (id is None) or overwrite an existing one.

        On insert the store assigns id, created_at and updated_at. On update
        every column is written and updated_at is refreshed; id and
        created_at are never changed. watch_history is not written here --
        use append_watch_history().

        Returns the saved User (the same object, with store-managed fields set).

        Raises:
            ConstraintViolation: username or email already belongs to another record.
        """
        now = _now_iso()
        values = {
            "username": _normalize(user.username),
            "email": _normalize(user.email),
            "full_name": user.full_name,
            "password_hash": user.password_hash,
            "avatar_url": user.avatar_url,
            "cover_image_url": user.cover_image_url,
            "refresh_token_hash": user.refresh_token_hash,
            "updated_at": now,
        }
        try:
            with self.engine.connect() as conn:
                if user.id is None:
                    new_id = uuid.uuid4().hex
                    conn.execute(_users.insert().values(id=new_id, created_at=now, **values))
                    user.id = new_id
                    user.created_at = now
                else:
                    conn.execute(_users.update().where(_users.c.id == user.id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            field = _violated_field(exc)
            logger.debug("Rejected save for %s: duplicate %s", user.id or "new user", field)
            raise ConstraintViolation(field) from exc
        user.username = values["username"]
        user.email = values["email"]
        user.updated_at = now
        return user

    def set_refresh_token_hash(self, user_id: str, token_hash: str | None) -> bool:
        """Overwrite the stored refresh-token hash. None clears it.

        Returns True if a row was updated, False if user_id was not found.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(refresh_token_hash=token_hash, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def append_watch_history(self, user_id: str, video_id: str) -> None:
        """Append a video id to the user's watch history."""
        with self.engine.connect() as conn:
            conn.execute(_watch_history.insert().values(user_id=user_id, video_id=video_id, watched_at=_now_iso()))
            conn.commit()

    def get_watch_history(self, user_id: str) -> list[str]:
        """Return the user's watched video ids, oldest first."""
        with self.engine.connect() as conn:
            return self._history(conn, user_id)

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _history(conn, user_id: str) -> list[str]:
        rows = conn.execute(
            select(_watch_history.c.video_id)
            .where(_watch_history.c.user_id == user_id)
            .order_by(_watch_history.c.id)
        ).fetchall()
        return [r.video_id for r in rows]


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row, watch_history: list[str]) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        full_name=row.full_name,
        password_hash=row.password_hash,
        avatar_url=row.avatar_url,
        cover_image_url=row.cover_image_url,
        refresh_token_hash=row.refresh_token_hash,
        watch_history=watch_history,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
