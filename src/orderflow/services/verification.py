"""Verification pipeline for auto-login credentials."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from orderflow.core.settings import settings
from orderflow.schemas.auto_login import AutoLoginClaims
from orderflow.services.credentials import (
    AutoLoginCodec,
    AutoLoginVerificationError,
    VerificationFailure,
    get_codec,
)
from orderflow.services.replay import ReplayGuard, get_replay_guard

logger = logging.getLogger(__name__)


class AutoLoginVerifier:
    """Decide whether a presented credential may be used to log in.

    Checks run in a fixed order and stop at the first failure:

    1. replay (already redeemed),
    2. structure, signature, envelope expiry, audience and issuer,
    3. subject presence,
    4. age recomputed from ``iat`` against the local clock.

    `verify` never records consumption; `redeem` does, after every check
    has passed.
    """

    def __init__(
        self,
        codec: AutoLoginCodec,
        guard: ReplayGuard,
        *,
        max_age_seconds: int = 300,
        clock_skew_seconds: int = 30,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.codec = codec
        self.guard = guard
        self.max_age_seconds = max_age_seconds
        self.clock_skew_seconds = clock_skew_seconds
        self._clock = clock

    def verify(self, token: str) -> AutoLoginClaims:
        """Run every check against `token` without consuming it.

        Raises:
            AutoLoginVerificationError: Carrying the first failing check.
        """
        if self.guard.is_consumed(token):
            raise AutoLoginVerificationError(VerificationFailure.ALREADY_USED)

        claims = self.codec.decode(token)

        if not claims.has_subject:
            raise AutoLoginVerificationError(VerificationFailure.INVALID_SUBJECT)

        age = int(self._clock()) - claims.issued_at
        if age > self.max_age_seconds:
            raise AutoLoginVerificationError(
                VerificationFailure.EXPIRED, f"issued {age}s ago"
            )
        if age < -self.clock_skew_seconds:
            raise AutoLoginVerificationError(
                VerificationFailure.ISSUED_IN_FUTURE, f"issued {-age}s in the future"
            )
        return claims

    def redeem(self, token: str) -> AutoLoginClaims:
        """Verify `token` and atomically mark it consumed.

        Of several concurrent redemptions of one token, only the caller that
        wins `mark_consumed` succeeds; the others see ALREADY_USED.
        """
        claims = self.verify(token)
        if not self.guard.mark_consumed(token):
            raise AutoLoginVerificationError(
                VerificationFailure.ALREADY_USED, "lost redemption race"
            )
        logger.debug(
            "Auto-login token redeemed for user_id=%s username=%s issuer=%s",
            claims.user_id,
            claims.username,
            claims.issuer_tag,
        )
        return claims


def get_verifier() -> AutoLoginVerifier:
    """Return a verifier wired to the configured codec and the shared guard."""
    return AutoLoginVerifier(
        get_codec(),
        get_replay_guard(),
        max_age_seconds=settings.auto_login_token_ttl_seconds,
        clock_skew_seconds=settings.auto_login_clock_skew_seconds,
    )
