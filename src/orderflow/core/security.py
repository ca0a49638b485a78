"""Password hashing and token fingerprint helpers."""
from __future__ import annotations

import hashlib

from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.argon2 import Argon2Hasher
from pwdlib.hashers.bcrypt import BcryptHasher

# New hashes use Argon2id; bcrypt hashes from the legacy SQLite store still verify.
_hasher = PasswordHash((Argon2Hasher(), BcryptHasher()))


def hash_password(password: str) -> str:
    """Hash a plaintext password with Argon2id."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against a stored Argon2id or bcrypt hash."""
    try:
        return _hasher.verify(password, password_hash)
    except UnknownHashError:
        return False


def token_fingerprint(token: str) -> str:
    """Return a SHA-256 hex digest identifying a serialized credential."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
