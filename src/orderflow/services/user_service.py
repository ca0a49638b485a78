"""Helpers for looking up, authenticating and provisioning local accounts."""
from __future__ import annotations

import logging
import secrets

from sqlalchemy.orm import Session

from orderflow.core import security
from orderflow.models.user import User
from orderflow.schemas.auto_login import AutoLoginClaims

logger = logging.getLogger(__name__)

__all__ = [
    "get_user",
    "get_user_by_username",
    "find_user_for_claims",
    "authenticate_user",
    "create_user",
    "ensure_admin_user",
]


def get_user(db: Session, user_id: int) -> User | None:
    """Return a single user by primary key."""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_username(db: Session, username: str) -> User | None:
    """Return a single user by username."""
    return db.query(User).filter(User.username == username).first()


def _coerce_user_id(value: int | str | None) -> int | None:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def find_user_for_claims(db: Session, claims: AutoLoginClaims) -> User | None:
    """Resolve auto-login claims to a local account, by id first then by name.

    Issuers may send opaque, non-numeric ids (e.g. Shopify session ids);
    those cannot match a local primary key and fall through to the name.
    """
    user_id = _coerce_user_id(claims.user_id)
    if user_id is not None:
        user = get_user(db, user_id)
        if user is not None:
            return user
    if claims.username:
        return get_user_by_username(db, claims.username)
    return None


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    """Return the user if `password` matches, otherwise None."""
    user = get_user_by_username(db, username)
    if user is None or not security.verify_password(password, user.password_hash):
        return None
    return user


def create_user(db: Session, username: str, password: str) -> User:
    """Persist a new account with a hashed password."""
    db_user = User(username=username, password_hash=security.hash_password(password))
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def ensure_admin_user(db: Session, username: str, password: str | None) -> User | None:
    """Create the administrator account on first start.

    Returns the newly created user, or None if the account already existed.
    A random password is generated (and logged once) when none is configured.
    """
    if get_user_by_username(db, username) is not None:
        return None
    if not password:
        password = secrets.token_urlsafe(12)
        logger.warning(
            "ADMIN_PASSWORD not set; generated password for '%s': %s", username, password
        )
    user = create_user(db, username, password)
    logger.info("Admin user created: %s", username)
    return user
