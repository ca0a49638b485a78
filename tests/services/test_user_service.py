"""Tests for account lookup, password authentication and provisioning."""

import logging

import pytest
from pwdlib.hashers.bcrypt import BcryptHasher
from pydantic import ValidationError

from orderflow.core.security import hash_password, token_fingerprint, verify_password
from orderflow.models import User
from orderflow.schemas.auto_login import AutoLoginClaims
from orderflow.services.user_service import (
    authenticate_user,
    create_user,
    ensure_admin_user,
    find_user_for_claims,
    get_user_by_username,
)


def _claims(**subject):
    return AutoLoginClaims(
        purpose="auto-login",
        issuer_tag="website1",
        issued_at=0,
        expires_at=0,
        issuer="website1",
        audience="website2",
        **subject,
    )


class TestFindUserForClaims:
    def test_by_numeric_id(self, db_session, test_user):
        assert find_user_for_claims(db_session, _claims(user_id=test_user.id)) is test_user

    def test_by_numeric_string_id(self, db_session, test_user):
        claims = _claims(user_id=str(test_user.id))
        assert find_user_for_claims(db_session, claims) is test_user

    def test_opaque_id_falls_back_to_username(self, db_session, test_user):
        claims = _claims(user_id="gid://shopify/Session/abc", username="admin")
        assert find_user_for_claims(db_session, claims) is test_user

    def test_unknown_id_falls_back_to_username(self, db_session, test_user):
        claims = _claims(user_id=test_user.id + 1000, username="admin")
        assert find_user_for_claims(db_session, claims) is test_user

    def test_boolean_id_is_not_an_account_id(self):
        with pytest.raises(ValidationError):
            _claims(user_id=True, username="packer")

    def test_no_match(self, db_session, test_user):
        assert find_user_for_claims(db_session, _claims(user_id=4242)) is None
        assert find_user_for_claims(db_session, _claims(username="nobody")) is None


class TestAuthenticateUser:
    def test_correct_password(self, db_session, test_user, user_password):
        assert authenticate_user(db_session, "admin", user_password) is test_user

    def test_wrong_password(self, db_session, test_user):
        assert authenticate_user(db_session, "admin", "hunter2") is None

    def test_unknown_user(self, db_session, user_password):
        assert authenticate_user(db_session, "nobody", user_password) is None

    def test_legacy_bcrypt_hash_is_accepted(self, db_session):
        db_session.add(User(username="legacy", password_hash=BcryptHasher().hash("old-pass")))
        db_session.flush()

        assert authenticate_user(db_session, "legacy", "old-pass") is not None


def test_create_user_stores_a_hash(db_session):
    user = create_user(db_session, "packer", "pick-pack-ship")

    assert user.id is not None
    assert user.password_hash != "pick-pack-ship"
    assert verify_password("pick-pack-ship", user.password_hash)
    assert user.created_at is not None


def test_ensure_admin_user_is_idempotent(db_session):
    created = ensure_admin_user(db_session, "root", "s3cret-admin")

    assert created is not None
    assert authenticate_user(db_session, "root", "s3cret-admin") is created
    assert ensure_admin_user(db_session, "root", "another") is None


def test_ensure_admin_user_generates_password(db_session, caplog):
    with caplog.at_level(logging.WARNING, logger="orderflow.services.user_service"):
        created = ensure_admin_user(db_session, "ops", None)

    assert created is not None
    assert get_user_by_username(db_session, "ops") is created
    assert "generated password for 'ops'" in caplog.text


def test_verify_password_rejects_unknown_hash_format():
    assert verify_password("anything", "plaintext-not-a-hash") is False
    assert verify_password("pw", hash_password("pw"))


def test_token_fingerprint_is_stable_and_opaque():
    digest = token_fingerprint("header.payload.signature")
    assert digest == token_fingerprint("header.payload.signature")
    assert len(digest) == 64
    assert "payload" not in digest
