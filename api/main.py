"""
api/main.py -- FastAPI application entry point for ExamBank.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for allowed browser origins; credentials
     are allowed so the session cookie travels with cross-origin requests.
  2. log_requests   -- one log line per request with status and latency.

Lifespan builds the two application-scoped services and tears them down
symmetrically:
  app.state.user_store -- UserStore over Settings.database_url
  app.state.sessions   -- SessionRegistry (in memory, empty on every start)
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.sessions import SessionRegistry
from auth.store import UserStore
from core.config import get_settings

__version__ = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("exambank.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the user store and session registry; dispose of both on shutdown."""
    logger.info("ExamBank API starting up")
    app.state.user_store = UserStore(db_url=get_settings().database_url)
    app.state.sessions = SessionRegistry()
    logger.info("Auth initialized (users_present=%s)", app.state.user_store.has_users())

    yield

    app.state.sessions.clear()
    app.state.user_store.close()
    logger.info("ExamBank API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ExamBank API",
    description="Question bank and exam backend: accounts, courses, questions, collections and exams.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/auth", tags=["Auth"])

# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handled failure returns the same {success: false, message} envelope
# so clients can branch on `success` without inspecting status codes first.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, errors: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, errors=errors).model_dump(exclude_none=True),
    )


def _field_errors(exc: RequestValidationError) -> dict[str, str]:
    """Flatten pydantic errors to {field: message}, first message per field wins.

    loc looks like ("body", "realName"); a whole-body failure has only ("body",).
    Custom validators raise ValueError, which pydantic prefixes with "Value error, ".
    """
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        message = str(err.get("msg", "Invalid value.")).removeprefix("Value error, ")
        errors.setdefault(field, message)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with per-field messages when the request body fails validation."""
    return _error(422, "Validation failed.", _field_errors(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap HTTPException (ours and the framework's 404/405) in the standard envelope."""
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only. The client receives a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly on the app so it is reachable regardless of router state.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database round-trip result."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        version=__version__,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
