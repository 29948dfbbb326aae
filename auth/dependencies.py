"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

The only credential is the session cookie (name from Settings,
"authToken" by default) carrying an opaque token issued at login. The token
is resolved against the SessionRegistry on app.state.

try_get_session() is the soft variant (returns None on failure).
require_session() wraps it and raises HTTP 401 if unauthenticated.

Both return an AuthContext: the raw token (so logout can destroy it) and the
resolved user id. Neither touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from auth.sessions import SessionRegistry
from core.config import get_settings


@dataclass(frozen=True)
class AuthContext:
    token: str
    user_id: int


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def try_get_session(request: Request) -> Optional[AuthContext]:
    """Resolve the session cookie. Returns None when absent or unknown. Never raises."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        return None
    user_id = get_registry(request).resolve(token)
    if user_id is None:
        return None
    return AuthContext(token=token, user_id=user_id)


def require_session(request: Request) -> AuthContext:
    """Require a live session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(ctx: AuthContext = Depends(require_session)): ...
    """
    ctx = try_get_session(request)
    if ctx is None:
        raise HTTPException(status_code=401, detail="Unauthorized.")
    return ctx
