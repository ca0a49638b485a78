"""Session establishment for the auto-login handoff.

The flow walks a fixed sequence of states and stops in ERROR_REDIRECT at
the first failing decision point:

    START -> TOKEN_PRESENT -> VERIFIED -> USER_FOUND
          -> SESSION_CREATED -> SESSION_REGENERATED -> COMPLETE

A caller that already holds a live session goes straight from START to
COMPLETE; its token is neither inspected nor consumed. Once a token has
been redeemed (VERIFIED onwards) it stays spent even if a later step fails.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

from orderflow.models.user import User
from orderflow.schemas.auto_login import AutoLoginClaims
from orderflow.services.credentials import AutoLoginVerificationError
from orderflow.services.sessions import SessionData, SessionStore, SessionStoreError
from orderflow.services.verification import AutoLoginVerifier

logger = logging.getLogger(__name__)

LANDING_PATH = "/dashboard"
LOGIN_PATH = "/login"


class AutoLoginState(str, Enum):
    """States of the session establishment machine."""

    START = "start"
    TOKEN_PRESENT = "token_present"
    VERIFIED = "verified"
    USER_FOUND = "user_found"
    SESSION_CREATED = "session_created"
    SESSION_REGENERATED = "session_regenerated"
    COMPLETE = "complete"
    ERROR_REDIRECT = "error_redirect"


class AutoLoginErrorCode(str, Enum):
    """Error codes surfaced to the browser on the login redirect."""

    MISSING_TOKEN = "missing_token"
    INVALID_TOKEN = "invalid_token"
    USER_NOT_FOUND = "user_not_found"
    SESSION_ERROR = "session_error"
    SYSTEM_ERROR = "system_error"

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self]


ERROR_MESSAGES: dict[AutoLoginErrorCode, str] = {
    AutoLoginErrorCode.MISSING_TOKEN: "Auto-login link is incomplete. Please try again.",
    AutoLoginErrorCode.INVALID_TOKEN: (
        "Auto-login link is invalid, expired or has already been used. Please try again."
    ),
    AutoLoginErrorCode.USER_NOT_FOUND: "No account is set up for this user. Contact support.",
    AutoLoginErrorCode.SESSION_ERROR: "Could not start your session. Please try again.",
    AutoLoginErrorCode.SYSTEM_ERROR: "Something went wrong. Please try again later.",
}

if set(ERROR_MESSAGES) != set(AutoLoginErrorCode):  # pragma: no cover - import-time guard
    raise RuntimeError("Every auto-login error code needs a user-facing message")


@dataclass(frozen=True)
class AutoLoginOutcome:
    """Result of one run of the state machine."""

    state: AutoLoginState
    session: SessionData | None = None
    error: AutoLoginErrorCode | None = None
    failed_in: AutoLoginState | None = None
    reused_session: bool = False

    @property
    def ok(self) -> bool:
        return self.state is AutoLoginState.COMPLETE

    @property
    def redirect_url(self) -> str:
        if self.error is not None:
            return f"{LOGIN_PATH}?{urlencode({'error': self.error.value})}"
        if self.reused_session:
            return LANDING_PATH
        return f"{LANDING_PATH}?{urlencode({'auto_login': 'success'})}"


UserLookup = Callable[[AutoLoginClaims], User | None]


class AutoLoginFlow:
    """Turn a presented credential into a fresh authenticated session."""

    def __init__(
        self,
        verifier: AutoLoginVerifier,
        store: SessionStore,
        user_lookup: UserLookup,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.verifier = verifier
        self.store = store
        self.user_lookup = user_lookup
        self._clock = clock

    def run(self, token: str | None, *, session_id: str | None = None) -> AutoLoginOutcome:
        """Execute the flow for `token`.

        Args:
            token: Raw `token` query parameter, if any.
            session_id: Session identifier presented by the client's cookie.
        """
        state = AutoLoginState.START
        try:
            existing = self.store.get(session_id)
            if existing is not None and existing.is_authenticated:
                logger.info(
                    "Auto-login skipped: user %s already holds a session", existing.username
                )
                return AutoLoginOutcome(
                    AutoLoginState.COMPLETE, session=existing, reused_session=True
                )

            if not token:
                logger.info("Auto-login attempted without a token")
                return self._fail(state, AutoLoginErrorCode.MISSING_TOKEN)

            state = AutoLoginState.TOKEN_PRESENT
            try:
                claims = self.verifier.redeem(token)
            except AutoLoginVerificationError as err:
                logger.warning("Auto-login token rejected (%s)", err)
                return self._fail(state, AutoLoginErrorCode.INVALID_TOKEN)

            state = AutoLoginState.VERIFIED
            user = self.user_lookup(claims)
            if user is None:
                logger.warning(
                    "Auto-login for unknown account user_id=%s username=%s issuer=%s",
                    claims.user_id,
                    claims.username,
                    claims.issuer_tag,
                )
                return self._fail(state, AutoLoginErrorCode.USER_NOT_FOUND)

            state = AutoLoginState.USER_FOUND
            session = self.store.new(session_id).model_copy(
                update={
                    "user_id": user.id,
                    "username": user.username,
                    "auto_login": True,
                    "login_time": int(self._clock()),
                }
            )

            state = AutoLoginState.SESSION_CREATED
            try:
                session = self.store.regenerate(session)
            except SessionStoreError as err:
                logger.error("Session regeneration failed: %s", err, exc_info=True)
                return self._fail(state, AutoLoginErrorCode.SESSION_ERROR)

            state = AutoLoginState.SESSION_REGENERATED
            try:
                self.store.save(session)
            except SessionStoreError as err:
                logger.error("Session persistence failed: %s", err, exc_info=True)
                self._discard(session)
                return self._fail(state, AutoLoginErrorCode.SESSION_ERROR)

            logger.info(
                "Auto-login successful for user %s via %s", user.username, claims.issuer_tag
            )
            return AutoLoginOutcome(AutoLoginState.COMPLETE, session=session)
        except Exception:
            logger.exception("Unexpected auto-login failure in state %s", state.value)
            return self._fail(state, AutoLoginErrorCode.SYSTEM_ERROR)

    def _discard(self, session: SessionData) -> None:
        try:
            self.store.destroy(session.session_id)
        except SessionStoreError:
            logger.warning("Could not discard half-created session %s", session.session_id[:8])

    @staticmethod
    def _fail(state: AutoLoginState, code: AutoLoginErrorCode) -> AutoLoginOutcome:
        return AutoLoginOutcome(AutoLoginState.ERROR_REDIRECT, error=code, failed_in=state)
