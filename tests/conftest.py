# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("JWT_SECRET", "test-auto-login-secret-7f3a9c1e5b2d4f60")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_BOOTSTRAP", "false")
os.environ.setdefault("REPLAY_BACKEND", "memory")
os.environ.setdefault("SESSION_BACKEND", "memory")
os.environ.setdefault("AUTO_LOGIN_ISSUERS", '["website1", "shopify-app", "issuerA"]')

from orderflow.core.security import hash_password
from orderflow.core.settings import settings
from orderflow.db.session import Base
from orderflow.db.session import get_db as app_get_session
from orderflow.main import app as fastapi_app
from orderflow.models import User
from orderflow.services.credentials import AutoLoginCodec, get_codec
from orderflow.services.replay import InMemoryReplayGuard, reset_replay_guard
from orderflow.services.sessions import InMemorySessionStore, reset_session_store

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "correct horse battery staple"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Commits made by the code under test must not leak into the next test.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def replay_guard() -> Iterator[InMemoryReplayGuard]:
    """Give every test its own process-wide replay guard."""
    guard = InMemoryReplayGuard(settings.replay_window_seconds)
    reset_replay_guard(guard)
    try:
        yield guard
    finally:
        reset_replay_guard(None)


@pytest.fixture(autouse=True)
def session_store() -> Iterator[InMemorySessionStore]:
    """Give every test its own process-wide session store."""
    store = InMemorySessionStore(settings.session_ttl_seconds)
    reset_session_store(store)
    try:
        yield store
    finally:
        reset_session_store(None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def codec() -> AutoLoginCodec:
    """Codec configured exactly like the running application."""
    return get_codec()


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return a persisted local account."""
    user = User(username="admin", password_hash=hash_password(TEST_PASSWORD))
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second persisted account."""
    user = User(username="packer", password_hash=hash_password(TEST_PASSWORD))
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def user_password() -> str:
    """Plaintext password of the fixture accounts."""
    return TEST_PASSWORD
