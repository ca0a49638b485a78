"""Tests for encoding and decoding auto-login credentials."""

import time

import pytest
from jose import jwt

from orderflow.core.settings import settings
from orderflow.services.credentials import (
    AutoLoginCodec,
    AutoLoginSubject,
    AutoLoginVerificationError,
    InvalidSubjectError,
    VerificationFailure,
)


def _forge(**overrides):
    """Sign an arbitrary claim set with the deployment secret."""
    now = int(time.time())
    claims = {
        "userId": 1,
        "username": "admin",
        "purpose": "auto-login",
        "website": "website1",
        "iat": now,
        "exp": now + 300,
        "iss": "website1",
        "aud": settings.auto_login_audience,
    }
    claims.update(overrides)
    claims = {key: value for key, value in claims.items() if value is not None}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _failure_of(codec, token):
    with pytest.raises(AutoLoginVerificationError) as exc_info:
        codec.decode(token)
    return exc_info.value.failure


class TestEncode:
    """Minting credentials."""

    def test_round_trip_carries_subject_and_envelope(self, codec):
        token = codec.encode(AutoLoginSubject(user_id=1, username="admin"), "website1")
        claims = codec.decode(token)

        assert claims.user_id == 1
        assert claims.username == "admin"
        assert claims.purpose == "auto-login"
        assert claims.issuer_tag == "website1"
        assert claims.issuer == "website1"
        assert claims.audience == settings.auto_login_audience
        assert claims.expires_at - claims.issued_at == settings.auto_login_token_ttl_seconds

    def test_shop_domain_is_carried(self, codec):
        subject = AutoLoginSubject(
            user_id="gid://shopify/Session/42",
            username="packer",
            shop_domain="demo.myshopify.com",
        )
        claims = codec.decode(codec.encode(subject, "shopify-app"))

        assert claims.user_id == "gid://shopify/Session/42"
        assert claims.shop_domain == "demo.myshopify.com"
        assert claims.issuer_tag == "shopify-app"

    def test_username_only_subject(self, codec):
        claims = codec.decode(codec.encode(AutoLoginSubject(username="admin"), "issuerA"))
        assert claims.user_id is None
        assert claims.username == "admin"

    def test_empty_subject_is_rejected(self, codec):
        with pytest.raises(InvalidSubjectError):
            codec.encode(AutoLoginSubject(), "website1")

    def test_blank_user_id_counts_as_missing(self, codec):
        assert AutoLoginSubject(user_id="").is_empty
        with pytest.raises(InvalidSubjectError):
            codec.encode(AutoLoginSubject(user_id=""), "website1")

    def test_boolean_user_id_is_rejected(self, codec):
        with pytest.raises(InvalidSubjectError):
            codec.encode(AutoLoginSubject(user_id=True, username="packer"), "website1")

    def test_issuer_tag_is_required(self, codec):
        with pytest.raises(ValueError):
            codec.encode(AutoLoginSubject(user_id=1), "")

    def test_empty_secret_is_refused(self):
        with pytest.raises(ValueError):
            AutoLoginCodec("", audience="website2", issuers=["website1"])


class TestDecode:
    """Every decode failure maps to exactly one reason."""

    @pytest.mark.parametrize("token", ["", "garbage", "not.a.jwt", "a.b"])
    def test_malformed_tokens(self, codec, token):
        assert _failure_of(codec, token) is VerificationFailure.MALFORMED_TOKEN

    def test_wrong_secret(self, codec):
        foreign = AutoLoginCodec(
            "some-other-secret",
            audience=settings.auto_login_audience,
            issuers=settings.auto_login_issuers,
        )
        token = foreign.encode(AutoLoginSubject(user_id=1, username="admin"), "website1")
        assert _failure_of(codec, token) is VerificationFailure.BAD_SIGNATURE

    def test_tampered_payload(self, codec):
        token = codec.encode(AutoLoginSubject(user_id=1, username="admin"), "website1")
        header, _, signature = token.split(".")
        other = codec.encode(AutoLoginSubject(user_id=2, username="root"), "website1")
        forged = ".".join([header, other.split(".")[1], signature])
        assert _failure_of(codec, forged) is VerificationFailure.BAD_SIGNATURE

    def test_unexpected_algorithm(self, codec):
        now = int(time.time())
        token = jwt.encode(
            {
                "userId": 1,
                "purpose": "auto-login",
                "website": "website1",
                "iat": now,
                "exp": now + 300,
                "iss": "website1",
                "aud": settings.auto_login_audience,
            },
            settings.jwt_secret,
            algorithm="HS512",
        )
        assert _failure_of(codec, token) is VerificationFailure.BAD_SIGNATURE

    def test_expired_envelope(self):
        past = AutoLoginCodec(
            settings.jwt_secret,
            audience=settings.auto_login_audience,
            issuers=settings.auto_login_issuers,
            clock=lambda: time.time() - 3600,
        )
        token = past.encode(AutoLoginSubject(user_id=1), "website1")
        assert _failure_of(past, token) is VerificationFailure.EXPIRED

    def test_audience_mismatch(self, codec):
        assert _failure_of(codec, _forge(aud="website3")) is VerificationFailure.AUDIENCE_MISMATCH

    def test_issuer_mismatch(self, codec):
        token = codec.encode(AutoLoginSubject(user_id=1), "rogue-site")
        assert _failure_of(codec, token) is VerificationFailure.ISSUER_MISMATCH

    def test_wrong_purpose(self, codec):
        token = _forge(purpose="password-reset")
        assert _failure_of(codec, token) is VerificationFailure.INVALID_PURPOSE

    def test_boolean_user_id_is_malformed(self, codec):
        # true must never be read as account id 1
        token = _forge(userId=True, username="packer")
        assert _failure_of(codec, token) is VerificationFailure.MALFORMED_TOKEN

    def test_missing_required_claims(self, codec):
        assert _failure_of(codec, _forge(website=None)) is VerificationFailure.MALFORMED_TOKEN
        assert _failure_of(codec, _forge(iat=None)) is VerificationFailure.MALFORMED_TOKEN

    def test_error_message_names_the_reason(self):
        err = AutoLoginVerificationError(VerificationFailure.EXPIRED, "issued 400s ago")
        assert str(err) == "expired: issued 400s ago"
        assert str(AutoLoginVerificationError(VerificationFailure.ALREADY_USED)) == "already_used"
