"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as projects/store.py).
UserStore is the repository; _row_to_user is the mapper. Services never touch
SQL directly, and depend on the UserRepository protocol rather than on this
class, so any store with the same method set can stand in.

Write semantics: update_user() is a full-document replace. The service reads
a User, changes fields, and writes the whole record back in one transaction.
There is no optimistic concurrency check -- two concurrent writers to the
same user race and the last one wins.

Security:
  All queries use bound parameters. No f-strings in SQL.
  The email column carries a UNIQUE index; a concurrent duplicate registration
  that slips past the service's lookup surfaces as IntegrityError here.

Layer rule: no imports from api/ or projects/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from auth.models import User
from core.db import make_engine
from core.ids import new_id

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="member"),
    Column("is_email_verified", Integer, nullable=False, server_default="0"),
    Column("verification_token", String(64), index=True),
    Column("reset_token", String(64), index=True),
    Column("reset_token_expiry", String(32)),  # ISO 8601, UTC
    Column("refresh_token", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class UserRepository(Protocol):
    """Capability interface AuthService and ProjectService depend on."""

    def create_user(self, user: User) -> str: ...

    def get_by_id(self, user_id: str) -> User | None: ...

    def get_by_email(self, email: str) -> User | None: ...

    def get_by_verification_token(self, token: str) -> User | None: ...

    def get_by_reset_token(self, token: str) -> User | None: ...

    def get_many(self, user_ids: list[str]) -> list[User]: ...

    def update_user(self, user: User) -> bool: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///taskboard.db")
        user_id = store.create_user(User(name="Ada", email="ada@example.com", hashed_password=h))
        user = store.get_by_email("ada@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def create_user(self, user: User) -> str:
        """Insert a new user and return its assigned id.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        AuthService.register() converts that into Conflict.
        """
        user.id = user.id or new_id()
        now = _now_iso()
        user.created_at = user.created_at or now
        user.updated_at = now
        with self.engine.begin() as conn:
            conn.execute(_users.insert().values(**_user_to_row(user)))
        return user.id

    def get_by_id(self, user_id: str) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Callers normalize case first."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_verification_token(self, token: str) -> User | None:
        if not token:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.verification_token == token)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_reset_token(self, token: str) -> User | None:
        if not token:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.reset_token == token)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_many(self, user_ids: list[str]) -> list[User]:
        """Fetch several users at once (member listings). Unknown ids are skipped."""
        if not user_ids:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().where(_users.c.id.in_(user_ids))).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user: User) -> bool:
        """Replace every mutable column of the stored record with user's values.

        Returns True if a row was updated, False if user.id was not found.
        """
        user.updated_at = _now_iso()
        row = _user_to_row(user)
        row.pop("id")
        row.pop("created_at")
        with self.engine.begin() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user.id).values(**row))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _user_to_row(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "hashed_password": user.hashed_password,
        "role": user.role,
        "is_email_verified": 1 if user.is_email_verified else 0,
        "verification_token": user.verification_token or None,
        "reset_token": user.reset_token or None,
        "reset_token_expiry": user.reset_token_expiry or None,
        "refresh_token": user.refresh_token or None,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        role=row.role,
        is_email_verified=bool(row.is_email_verified),
        verification_token=row.verification_token,
        reset_token=row.reset_token,
        reset_token_expiry=row.reset_token_expiry,
        refresh_token=row.refresh_token,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
