"""Replay protection for auto-login credentials.

A credential is "spent" once it has been redeemed. Guards remember spent
credentials by fingerprint for at least the replay window (credential
lifetime plus tolerated clock skew); after that the signature envelope
rejects the token on its own, so the entry is safe to forget.
"""

from __future__ import annotations

import heapq
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from threading import Lock
from typing import Any

import redis

from orderflow.core.security import token_fingerprint
from orderflow.core.settings import settings

logger = logging.getLogger(__name__)

_REDIS_KEY_PREFIX = "autologin:spent:"


class ReplayGuard(ABC):
    """Interface shared by every replay guard backend."""

    def __init__(self, window_seconds: int) -> None:
        if window_seconds <= 0:
            raise ValueError("Replay window must be positive")
        self.window_seconds = window_seconds

    @abstractmethod
    def is_consumed(self, token: str) -> bool:
        """Return True if `token` has already been redeemed."""

    @abstractmethod
    def mark_consumed(self, token: str) -> bool:
        """Record `token` as redeemed.

        Returns True only for the call that moved the token from unconsumed
        to consumed; repeated calls leave the state unchanged and return False.
        """

    @abstractmethod
    def evict_expired(self) -> int:
        """Forget entries whose replay window has elapsed; return how many."""


class InMemoryReplayGuard(ReplayGuard):
    """Single-process guard indexed by eviction deadline."""

    def __init__(
        self,
        window_seconds: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(window_seconds)
        self._clock = clock
        self._lock = Lock()
        self._deadlines: dict[str, float] = {}
        self._heap: list[tuple[float, str]] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._deadlines)

    def is_consumed(self, token: str) -> bool:
        fingerprint = token_fingerprint(token)
        now = self._clock()
        with self._lock:
            deadline = self._deadlines.get(fingerprint)
            return deadline is not None and deadline > now

    def mark_consumed(self, token: str) -> bool:
        fingerprint = token_fingerprint(token)
        now = self._clock()
        with self._lock:
            self._evict_locked(now)
            if fingerprint in self._deadlines:
                return False
            deadline = now + self.window_seconds
            self._deadlines[fingerprint] = deadline
            heapq.heappush(self._heap, (deadline, fingerprint))
            return True

    def evict_expired(self) -> int:
        now = self._clock()
        with self._lock:
            return self._evict_locked(now)

    def _evict_locked(self, now: float) -> int:
        evicted = 0
        while self._heap and self._heap[0][0] <= now:
            deadline, fingerprint = heapq.heappop(self._heap)
            if self._deadlines.get(fingerprint) == deadline:
                del self._deadlines[fingerprint]
                evicted += 1
        return evicted


class RedisReplayGuard(ReplayGuard):
    """Guard backed by Redis so that every worker and node shares one view."""

    def __init__(self, client: Any, window_seconds: int) -> None:
        super().__init__(window_seconds)
        self._redis = client

    @staticmethod
    def _key(token: str) -> str:
        return f"{_REDIS_KEY_PREFIX}{token_fingerprint(token)}"

    def is_consumed(self, token: str) -> bool:
        return bool(self._redis.exists(self._key(token)))

    def mark_consumed(self, token: str) -> bool:
        # SET NX is the atomic test-and-set; EX lets Redis do the eviction.
        created = self._redis.set(self._key(token), "1", nx=True, ex=self.window_seconds)
        return bool(created)

    def evict_expired(self) -> int:
        return 0


_GUARD: ReplayGuard | None = None
_GUARD_LOCK = Lock()


def build_replay_guard(backend: str | None = None) -> ReplayGuard:
    """Construct a guard for the configured backend."""
    backend = (backend or settings.replay_backend).lower()
    window = settings.replay_window_seconds
    if backend == "memory":
        return InMemoryReplayGuard(window)
    if backend == "redis":
        client = redis.from_url(settings.redis_url)  # type: ignore[no-untyped-call]
        return RedisReplayGuard(client, window)
    raise ValueError(f"Unknown replay backend: {backend!r}")


def get_replay_guard() -> ReplayGuard:
    """Return the process-wide replay guard."""
    global _GUARD
    with _GUARD_LOCK:
        if _GUARD is None:
            _GUARD = build_replay_guard()
            logger.info("Replay guard initialised (%s)", type(_GUARD).__name__)
        return _GUARD


def reset_replay_guard(guard: ReplayGuard | None = None) -> None:
    """Replace the process-wide guard (tests, reconfiguration)."""
    global _GUARD
    with _GUARD_LOCK:
        _GUARD = guard
