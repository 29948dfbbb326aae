"""
api/routes/auth.py -- Registration, login, session and logout endpoints.

Routes (mounted under /auth by api/main.py):
  POST /auth/register   -- create an account; no session is started
  POST /auth/login      -- password login; starts a session, sets cookie
  GET  /auth/me         -- profile of the session's user (requires session)
  POST /auth/logout     -- ends the session, clears cookie (requires session)

Security:
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_username() + verify_password().
  Login failures share one message so responses never reveal whether the
  username or the password was wrong.
  Cache-Control: no-store on login responses.

register and login are plain `def` handlers: bcrypt is CPU-bound and would
stall the event loop in an async handler. FastAPI runs them in its thread
pool, which is why SessionRegistry locks internally.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.models import LoginRequest, LoginResponse, MeResponse, MessageResponse, ProfileResponse, RegisterRequest
from auth.dependencies import AuthContext, get_registry, require_session
from auth.models import User, to_profile
from auth.sessions import SessionRegistry
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_auth_cookie, hash_password, set_auth_cookie

logger = logging.getLogger("exambank.auth")

# Auth policy:
# - POST /auth/register: public
# - POST /auth/login:    public
# - GET  /auth/me:       requires session (require_session)
# - POST /auth/logout:   requires session (require_session)
router = APIRouter()

_BAD_CREDENTIALS = "Invalid username or password."
_USERNAME_TAKEN = "Username already exists."


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


@router.post("/register", response_model=MessageResponse)
def register(body: RegisterRequest, user_store: UserStore = Depends(get_user_store)) -> MessageResponse:
    """Create a new account. The caller must log in separately.

    The get_by_username() pre-check gives the common case a clean 409. It is
    not atomic with the insert; the UNIQUE constraint on users.username
    catches the concurrent case and surfaces as IntegrityError.
    """
    if user_store.get_by_username(body.username) is not None:
        raise HTTPException(status_code=409, detail=_USERNAME_TAKEN)

    new_user = User(
        username=body.username,
        role=body.role,
        real_name=body.real_name,
        hashed_password=hash_password(body.password),
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        logger.info("Registration lost a race for username %r", body.username)
        raise HTTPException(status_code=409, detail=_USERNAME_TAKEN) from exc

    logger.info("Registered user id=%d role=%s", user_id, body.role)
    return MessageResponse(message="Registration successful.")


@router.post("/login", response_model=LoginResponse)
def login(
    request: Request,
    body: LoginRequest,
    user_store: UserStore = Depends(get_user_store),
    registry: SessionRegistry = Depends(get_registry),
) -> JSONResponse:
    """Authenticate with username and password; start a session and set the cookie.

    The profile is re-read after stamping last_login so the cached copy and
    the response both carry this login's timestamp and address.
    """
    user = authenticate_user(user_store, body.username, body.password)
    if user is None:
        logger.info("Failed login attempt from %s", _client_ip(request) or "unknown")
        resp = JSONResponse(status_code=401, content={"success": False, "message": _BAD_CREDENTIALS})
        resp.headers["Cache-Control"] = "no-store"
        return resp

    user_store.update_last_login(user.id, _client_ip(request))
    user = user_store.get_by_id(user.id) or user
    profile = to_profile(user)

    token = registry.create(user.id)
    registry.set_profile(user.id, profile)

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            message="Login successful.",
            data=ProfileResponse.from_profile(profile),
        ).model_dump(by_alias=True),
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    logger.info("User id=%d logged in", user.id)
    return resp


@router.get("/me", response_model=MeResponse)
def me(
    ctx: AuthContext = Depends(require_session),
    user_store: UserStore = Depends(get_user_store),
    registry: SessionRegistry = Depends(get_registry),
) -> MeResponse:
    """Return the cached profile for the session's user.

    A live session whose profile is missing from the cache is repaired from
    the store. If the user record itself is gone the session is dead weight:
    destroy it and answer 401.
    """
    profile = registry.get_profile(ctx.user_id)
    if profile is None:
        user = user_store.get_by_id(ctx.user_id)
        if user is None:
            registry.destroy(ctx.token)
            raise HTTPException(status_code=401, detail="Unauthorized.")
        profile = to_profile(user)
        registry.set_profile(ctx.user_id, profile)
    return MeResponse(data=ProfileResponse.from_profile(profile))


@router.post("/logout", response_model=MessageResponse)
def logout(
    ctx: AuthContext = Depends(require_session),
    registry: SessionRegistry = Depends(get_registry),
) -> JSONResponse:
    """End the current session and clear the cookie."""
    registry.destroy(ctx.token)
    logger.info("User id=%d logged out", ctx.user_id)
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    clear_auth_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None
