# src/orderflow/services/__init__.py
"""Business logic services for the order-management service."""

from .auto_login import AutoLoginErrorCode, AutoLoginFlow, AutoLoginOutcome, AutoLoginState
from .credentials import (
    AutoLoginCodec,
    AutoLoginSubject,
    AutoLoginVerificationError,
    InvalidSubjectError,
    VerificationFailure,
)
from .replay import InMemoryReplayGuard, RedisReplayGuard, ReplayGuard
from .sessions import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionData,
    SessionStore,
    SessionStoreError,
)
from .verification import AutoLoginVerifier

__all__ = [
    "AutoLoginCodec",
    "AutoLoginErrorCode",
    "AutoLoginFlow",
    "AutoLoginOutcome",
    "AutoLoginState",
    "AutoLoginSubject",
    "AutoLoginVerificationError",
    "AutoLoginVerifier",
    "InMemoryReplayGuard",
    "InMemorySessionStore",
    "InvalidSubjectError",
    "RedisReplayGuard",
    "RedisSessionStore",
    "ReplayGuard",
    "SessionData",
    "SessionStore",
    "SessionStoreError",
    "VerificationFailure",
]
