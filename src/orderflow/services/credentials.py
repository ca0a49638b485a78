"""Signed auto-login credentials.

The credential is a compact HS256 JWT shared between the issuing
application and this service:

    {"userId": 1, "username": "admin", "purpose": "auto-login",
     "website": "website1", "iat": ..., "exp": iat + 300,
     "iss": "website1", "aud": "website2"}

`AutoLoginCodec.decode` only establishes that a token is structurally
sound, correctly signed, unexpired and addressed to this service. Replay
and the recomputed age check live in `orderflow.services.verification`.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from pydantic import ValidationError

from orderflow.core.settings import settings
from orderflow.schemas.auto_login import AUTO_LOGIN_PURPOSE, AutoLoginClaims


class VerificationFailure(str, Enum):
    """Closed set of reasons a credential can be rejected."""

    ALREADY_USED = "already_used"
    MALFORMED_TOKEN = "malformed_token"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    ISSUED_IN_FUTURE = "issued_in_future"
    AUDIENCE_MISMATCH = "audience_mismatch"
    ISSUER_MISMATCH = "issuer_mismatch"
    INVALID_PURPOSE = "invalid_purpose"
    INVALID_SUBJECT = "invalid_subject"


class AutoLoginVerificationError(ValueError):
    """Raised when a credential fails any verification check."""

    def __init__(self, failure: VerificationFailure, detail: str | None = None) -> None:
        self.failure = failure
        self.detail = detail
        message = failure.value if detail is None else f"{failure.value}: {detail}"
        super().__init__(message)


class InvalidSubjectError(ValueError):
    """Raised when a credential is requested without any subject identity."""


@dataclass(frozen=True)
class AutoLoginSubject:
    """Identity asserted by the issuing application."""

    user_id: int | str | None = None
    username: str | None = None
    shop_domain: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.user_id in (None, "") and not self.username


class AutoLoginCodec:
    """Encode and decode auto-login credentials over a shared secret."""

    def __init__(
        self,
        secret: str,
        *,
        audience: str,
        issuers: Sequence[str],
        ttl_seconds: int = 300,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("Auto-login secret must not be empty")
        self._secret = secret
        self.audience = audience
        self.issuers = tuple(issuers)
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm
        self._clock = clock

    def encode(self, subject: AutoLoginSubject, issuer_tag: str) -> str:
        """Mint a signed credential for `subject` on behalf of `issuer_tag`.

        Raises:
            InvalidSubjectError: If neither a user id nor a username is given,
                or the user id is a boolean.
        """
        if isinstance(subject.user_id, bool):
            raise InvalidSubjectError("Auto-login user id must be an integer or a string")
        if subject.is_empty:
            raise InvalidSubjectError("Auto-login subject needs a user id or a username")
        if not issuer_tag:
            raise ValueError("Issuer tag must be provided")

        issued_at = int(self._clock())
        claims: dict[str, object] = {}
        if subject.user_id not in (None, ""):
            claims["userId"] = subject.user_id
        if subject.username:
            claims["username"] = subject.username
        if subject.shop_domain:
            claims["shopDomain"] = subject.shop_domain
        claims.update(
            {
                "purpose": AUTO_LOGIN_PURPOSE,
                "website": issuer_tag,
                "iat": issued_at,
                "exp": issued_at + self.ttl_seconds,
                "iss": issuer_tag,
                "aud": self.audience,
            }
        )
        token: str = jwt.encode(claims, self._secret, algorithm=self.algorithm)
        return token

    def decode(self, token: str) -> AutoLoginClaims:
        """Check structure, signature, envelope expiry, audience and issuer.

        Raises:
            AutoLoginVerificationError: With the first failing check.
        """
        try:
            jwt.get_unverified_claims(token)
        except JWTError as err:
            raise AutoLoginVerificationError(
                VerificationFailure.MALFORMED_TOKEN, str(err)
            ) from err

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                # Audience and issuer are compared below to report them distinctly.
                options={"verify_aud": False, "verify_iss": False},
            )
        except ExpiredSignatureError as err:
            raise AutoLoginVerificationError(VerificationFailure.EXPIRED, str(err)) from err
        except JWTClaimsError as err:
            raise AutoLoginVerificationError(
                VerificationFailure.MALFORMED_TOKEN, str(err)
            ) from err
        except JWTError as err:
            # Structure was already validated, so what remains is the signature
            # (or an algorithm we do not accept).
            raise AutoLoginVerificationError(
                VerificationFailure.BAD_SIGNATURE, str(err)
            ) from err

        if payload.get("aud") != self.audience:
            raise AutoLoginVerificationError(
                VerificationFailure.AUDIENCE_MISMATCH, f"aud={payload.get('aud')!r}"
            )
        if payload.get("iss") not in self.issuers:
            raise AutoLoginVerificationError(
                VerificationFailure.ISSUER_MISMATCH, f"iss={payload.get('iss')!r}"
            )

        try:
            claims = AutoLoginClaims.model_validate(payload)
        except ValidationError as err:
            raise AutoLoginVerificationError(
                VerificationFailure.MALFORMED_TOKEN, "claims do not match the credential schema"
            ) from err

        if claims.purpose != AUTO_LOGIN_PURPOSE:
            raise AutoLoginVerificationError(
                VerificationFailure.INVALID_PURPOSE, f"purpose={claims.purpose!r}"
            )
        return claims


def get_codec() -> AutoLoginCodec:
    """Return a codec configured from application settings."""
    return AutoLoginCodec(
        settings.jwt_secret,
        audience=settings.auto_login_audience,
        issuers=settings.auto_login_issuers,
        ttl_seconds=settings.auto_login_token_ttl_seconds,
        algorithm=settings.jwt_algorithm,
    )
