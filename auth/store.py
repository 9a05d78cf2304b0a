"""
auth/store.py -- SQLAlchemy Core persistence layer for users (the Directory).

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  password_hash is left out of the SELECT list on every read except
  find_by_email(..., include_password_hash=True), which exists only for the
  login verification path.

Concurrency:
  email carries a UNIQUE constraint. That constraint, not the service-level
  pre-check, is the authoritative guard against duplicate registrations:
  create() lets sqlalchemy.exc.IntegrityError propagate and the service turns
  it into the same conflict as the pre-check. Password updates and deletes
  are single atomic statements whose rowcount reports whether the id existed.

Ids are 24 lowercase hex characters (96 random bits), the key format the
user-id validator accepts.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine

from auth.models import DEFAULT_ROLES, User

logger = logging.getLogger("authgate.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(24), primary_key=True),
    Column("full_name", String(80), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # lowercased + stripped
    Column("password_hash", Text, nullable=False),
    Column("roles", Text, nullable=False),  # JSON array, never empty
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_PUBLIC_COLUMNS = [c for c in _users.c if c.name != "password_hash"]


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def new_user_id() -> str:
    return secrets.token_hex(12)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///authgate.db")
        user = store.create("Jane Doe", "jane@x.com", hasher.hash("Secret1!"))
        store.find_by_email("JANE@x.com")  # password_hash is None
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_email(self, email: str, include_password_hash: bool = False) -> User | None:
        """Look up a user by email (case-insensitive, surrounding whitespace ignored)."""
        columns = list(_users.c) if include_password_hash else _PUBLIC_COLUMNS
        with self.engine.connect() as conn:
            row = conn.execute(select(*columns).where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: str) -> User | None:
        """Look up a user by id. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(*_PUBLIC_COLUMNS).where(_users.c.id == user_id.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_all(self) -> list[User]:
        """Return all users, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(select(*_PUBLIC_COLUMNS).order_by(_users.c.created_at, _users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Database ping failed")
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        full_name: str,
        email: str,
        password_hash: str,
        roles: tuple[str, ...] | list[str] = DEFAULT_ROLES,
    ) -> User:
        """Insert a new user and return it (without the hash).

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Callers must treat that as a signal that a concurrent request already
        created the record.
        """
        roles = tuple(roles) or DEFAULT_ROLES
        now = _now_iso()
        user = User(
            id=new_user_id(),
            full_name=full_name,
            email=normalize_email(email),
            roles=roles,
            created_at=now,
            updated_at=now,
        )
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user.id,
                    full_name=user.full_name,
                    email=user.email,
                    password_hash=password_hash,
                    roles=json.dumps(list(roles)),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return user

    def update_password_hash(self, user_id: str, password_hash: str) -> bool:
        """Replace a user's password hash. Returns True if a row was updated."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id.lower())
                .values(password_hash=password_hash, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_by_id(self, user_id: str) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id.lower()))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    # password_hash is only in the row when the caller asked for it.
    return User(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        roles=tuple(json.loads(row.roles)) or DEFAULT_ROLES,
        password_hash=getattr(row, "password_hash", None),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
