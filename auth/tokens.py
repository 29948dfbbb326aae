"""
auth/tokens.py -- Password hashing, session token generation, cookie helpers.

Security design decisions:
  Passwords: bcrypt used directly. The cost factor makes brute-force
       expensive; the salt and cost are encoded in the hash string, so
       verification needs nothing but the stored value. The _DUMMY_HASH
       constant enables timing equalization in authenticate_user() so
       response time does not reveal whether a username exists.

  Session tokens: secrets.token_hex(16) -- 128 bits from the OS CSPRNG.
       Tokens are opaque; all meaning lives in the SessionRegistry.

  Cookie: httpOnly, path "/", 7-day max_age by default, SameSite=Lax,
       Secure only when SECURE_COOKIES=true.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from typing import TYPE_CHECKING, Optional

import bcrypt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("exambank.auth")

# ---------------------------------------------------------------------------
# Password hashing
#
# bcrypt only looks at the first 72 bytes, and bcrypt>=5 raises instead of
# truncating. Passwords are pre-hashed with SHA-256 and base64-encoded
# (44 bytes) so every byte of the password counts and no input is too long.
# ---------------------------------------------------------------------------


def _secret(plain: str) -> bytes:
    return base64.b64encode(hashlib.sha256(plain.encode("utf-8")).digest())


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(_secret(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed or empty stored hash counts as a mismatch, never an error.
    """
    try:
        return bcrypt.checkpw(_secret(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        logger.warning("Stored password hash is malformed; treating as mismatch")
        return False


# Computed once at import so the first login is not measurably slower.
_DUMMY_HASH: str = hash_password("exambank_timing_dummy")


def authenticate_user(store: UserStore, username: str, password: str) -> Optional[User]:
    """Check a username/password pair with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown username: bcrypt runs against _DUMMY_HASH (same cost as a real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure. Callers must answer
    both failure cases with the same message.
    """
    user = store.get_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    """Return a fresh opaque session token (32 hex chars, 128 bits)."""
    return secrets.token_hex(16)


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str) -> None:
    """Write the session token as an httpOnly, site-wide cookie on the response."""
    settings = get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_max_age_seconds,
        path="/",
    )


def clear_auth_cookie(response) -> None:
    settings = get_settings()
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
