"""Server-side login sessions keyed by an opaque cookie identifier."""

from __future__ import annotations

import logging
import secrets
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from threading import Lock
from typing import Any

import redis
from pydantic import BaseModel, Field, ValidationError

from orderflow.core.settings import settings

logger = logging.getLogger(__name__)

_REDIS_KEY_PREFIX = "session:"


class SessionStoreError(RuntimeError):
    """Raised when the session store cannot create, regenerate or persist a session."""


class SessionData(BaseModel):
    """Attributes carried by an authenticated session."""

    session_id: str
    user_id: int | None = None
    username: str | None = None
    auto_login: bool = False
    login_time: int | None = None
    created_at: int = Field(default_factory=lambda: int(time.time()))
    expires_at: int = 0

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def is_expired(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return self.expires_at <= now


def new_session_id() -> str:
    """Generate an unguessable session identifier."""
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """Create, regenerate, persist and destroy server-side sessions."""

    def __init__(self, ttl_seconds: int, *, clock: Callable[[], float] = time.time) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Session TTL must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def new(self, session_id: str | None = None) -> SessionData:
        """Return an unsaved, unauthenticated session.

        `session_id` is the identifier the client presented, if any; callers
        that elevate privileges must `regenerate` before saving.
        """
        now = int(self._clock())
        return SessionData(
            session_id=session_id or new_session_id(),
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )

    def regenerate(self, session: SessionData) -> SessionData:
        """Move `session` to a fresh identifier, destroying the old one."""
        self.destroy(session.session_id)
        return session.model_copy(update={"session_id": new_session_id()})

    def get(self, session_id: str | None) -> SessionData | None:
        """Return the live session for `session_id`, or None."""
        if not session_id:
            return None
        session = self._load(session_id)
        if session is None:
            return None
        if session.is_expired(self._clock()):
            self.destroy(session_id)
            return None
        return session

    @abstractmethod
    def save(self, session: SessionData) -> None:
        """Persist `session` under its identifier."""

    @abstractmethod
    def destroy(self, session_id: str) -> None:
        """Remove a session; unknown identifiers are ignored."""

    @abstractmethod
    def _load(self, session_id: str) -> SessionData | None:
        """Fetch a stored session without checking expiry."""


class InMemorySessionStore(SessionStore):
    """Single-process session store."""

    def __init__(self, ttl_seconds: int, *, clock: Callable[[], float] = time.time) -> None:
        super().__init__(ttl_seconds, clock=clock)
        self._lock = Lock()
        self._sessions: dict[str, SessionData] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def save(self, session: SessionData) -> None:
        now = self._clock()
        with self._lock:
            self._purge_locked(now)
            self._sessions[session.session_id] = session

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def _load(self, session_id: str) -> SessionData | None:
        with self._lock:
            return self._sessions.get(session_id)

    def purge_expired(self) -> int:
        """Drop every expired session; return how many were removed."""
        now = self._clock()
        with self._lock:
            return self._purge_locked(now)

    def _purge_locked(self, now: float) -> int:
        dead = [sid for sid, sess in self._sessions.items() if sess.is_expired(now)]
        for sid in dead:
            del self._sessions[sid]
        return len(dead)


class RedisSessionStore(SessionStore):
    """Session store shared across workers through Redis."""

    def __init__(
        self,
        client: Any,
        ttl_seconds: int,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(ttl_seconds, clock=clock)
        self._redis = client

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{_REDIS_KEY_PREFIX}{session_id}"

    def save(self, session: SessionData) -> None:
        ttl = max(1, int(session.expires_at - self._clock()))
        try:
            self._redis.set(self._key(session.session_id), session.model_dump_json(), ex=ttl)
        except redis.RedisError as err:
            raise SessionStoreError(f"Could not persist session: {err}") from err

    def destroy(self, session_id: str) -> None:
        try:
            self._redis.delete(self._key(session_id))
        except redis.RedisError as err:
            raise SessionStoreError(f"Could not destroy session: {err}") from err

    def _load(self, session_id: str) -> SessionData | None:
        try:
            raw = self._redis.get(self._key(session_id))
        except redis.RedisError as err:
            raise SessionStoreError(f"Could not load session: {err}") from err
        if raw is None:
            return None
        try:
            return SessionData.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session record %s", session_id[:8])
            return None


_STORE: SessionStore | None = None
_STORE_LOCK = Lock()


def build_session_store(backend: str | None = None) -> SessionStore:
    """Construct a session store for the configured backend."""
    backend = (backend or settings.session_backend).lower()
    if backend == "memory":
        return InMemorySessionStore(settings.session_ttl_seconds)
    if backend == "redis":
        client = redis.from_url(settings.redis_url)  # type: ignore[no-untyped-call]
        return RedisSessionStore(client, settings.session_ttl_seconds)
    raise ValueError(f"Unknown session backend: {backend!r}")


def get_session_store() -> SessionStore:
    """Return the process-wide session store."""
    global _STORE
    with _STORE_LOCK:
        if _STORE is None:
            _STORE = build_session_store()
            logger.info("Session store initialised (%s)", type(_STORE).__name__)
        return _STORE


def reset_session_store(store: SessionStore | None = None) -> None:
    """Replace the process-wide session store (tests, reconfiguration)."""
    global _STORE
    with _STORE_LOCK:
        _STORE = store
