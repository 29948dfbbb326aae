"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). The stores and routes do the
work; the only behaviour here is the User -> UserProfile mapping, which lives
next to the shape it produces.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class User:
    """A stored account.

    hashed_password never leaves the server. Anything returned to a client
    goes through to_profile() first.

    deleted_at is the schema's soft-delete marker. Authentication ignores it.
    """

    username: str
    role: str  # "student", "teacher", "admin"
    real_name: str
    id: Optional[int] = None
    hashed_password: str = ""
    last_login: Optional[str] = None  # ISO 8601 UTC
    last_login_ip: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None


@dataclass(frozen=True)
class UserProfile:
    """Redacted view of a User that is safe to hand to clients.

    Field list is maintained by hand. Adding a column to the users table does
    not expose it here.
    """

    id: int
    username: str
    role: str
    real_name: str
    last_login: Optional[str] = None
    last_login_ip: Optional[str] = None


def to_profile(user: User) -> UserProfile:
    """Derive the client-safe profile from a stored User record."""
    if user.id is None:
        raise ValueError("Cannot build a profile for an unsaved user.")
    return UserProfile(
        id=user.id,
        username=user.username,
        role=user.role,
        real_name=user.real_name,
        last_login=user.last_login,
        last_login_ip=user.last_login_ip,
    )
