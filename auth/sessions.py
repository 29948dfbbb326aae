"""
auth/sessions.py -- In-memory session registry and profile cache.

Sessions are never persisted. The registry is built once in the application
lifespan and hung on app.state; every restart invalidates every session.

Two independent maps:
  token   -> user id        (one entry per login; a user may hold several)
  user id -> UserProfile    (one entry per user, overwritten on each login)

A profile entry can outlive every session of its user. Readers must not
treat the presence of a profile as proof of a live session.

Route handlers run in a thread pool, so every map access holds _lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from auth.models import UserProfile
from auth.tokens import generate_session_token

logger = logging.getLogger("exambank.auth")


class SessionRegistry:
    """Token -> user id mapping plus a user id -> profile cache.

    Usage:
        registry = SessionRegistry()
        token = registry.create(user.id)
        registry.set_profile(user.id, to_profile(user))
        registry.resolve(token)   # -> user.id
        registry.destroy(token)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, int] = {}
        self._profiles: dict[int, UserProfile] = {}

    def create(self, user_id: int) -> str:
        """Start a session for user_id and return its token.

        Existing sessions for the same user are left alone.
        """
        with self._lock:
            token = generate_session_token()
            # 128-bit tokens; the loop only guards the invariant.
            while token in self._sessions:
                token = generate_session_token()
            self._sessions[token] = user_id
        return token

    def resolve(self, token: str) -> Optional[int]:
        with self._lock:
            return self._sessions.get(token)

    def destroy(self, token: str) -> None:
        """Remove the session for token. Unknown tokens are a no-op."""
        with self._lock:
            self._sessions.pop(token, None)

    def set_profile(self, user_id: int, profile: UserProfile) -> None:
        with self._lock:
            self._profiles[user_id] = profile

    def get_profile(self, user_id: int) -> Optional[UserProfile]:
        with self._lock:
            return self._profiles.get(user_id)

    def clear(self) -> None:
        """Drop all sessions and cached profiles (shutdown)."""
        with self._lock:
            dropped = len(self._sessions)
            self._sessions.clear()
            self._profiles.clear()
        if dropped:
            logger.info("Dropped %d in-memory session(s)", dropped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
