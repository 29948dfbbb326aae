"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  users.username carries a UNIQUE constraint. Routes pre-check with
  get_by_username() for a friendly error, but two concurrent registrations
  can both pass that check; create_user() then raises IntegrityError for the
  loser and the route maps it to 409.

The engine also owns the rest of the exam schema (core/schema.py): building
a UserStore creates every table, so a fresh database is usable immediately.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, text
from sqlalchemy.engine import Engine

from auth.models import User
from core.schema import create_db_engine, users

logger = logging.getLogger("exambank.store")

_DEFAULT_DB_URL = "sqlite:///exambank.db"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///exambank.db")
        store.create_user(User(username="alice", role="student", real_name="Alice A",
                               hashed_password=hash_password("longenough1")))
        user = store.get_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        self.engine: Engine = create_db_engine(db_url)
        logger.debug("User store ready (%s)", self.engine.url.render_as_string(hide_password=True))

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(users)).scalar()
        return (result or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists
        or the role violates the CHECK constraint.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                users.insert().values(
                    username=user.username,
                    password_hash=user.hashed_password,
                    real_name=user.real_name,
                    role=user.role,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_username(self, username: str) -> Optional[User]:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_last_login(self, user_id: int, ip: Optional[str]) -> None:
        """Stamp the current UTC time and the client address on a successful login."""
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                users.update()
                .where(users.c.id == user_id)
                .values(last_login=now, last_login_ip=ip, updated_at=now)
            )
            conn.commit()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.password_hash,
        role=row.role,
        real_name=row.real_name,
        last_login=row.last_login,
        last_login_ip=row.last_login_ip,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )
