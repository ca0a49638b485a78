"""Shared API dependencies for sessions and the auto-login services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from orderflow.core.settings import settings
from orderflow.db.session import get_db
from orderflow.services.sessions import SessionData, SessionStore, get_session_store
from orderflow.services.verification import AutoLoginVerifier, get_verifier

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_session_store_dep() -> SessionStore:
    return get_session_store()


def get_verifier_dep() -> AutoLoginVerifier:
    return get_verifier()


SessionStoreDep = Annotated[SessionStore, Depends(get_session_store_dep)]
VerifierDep = Annotated[AutoLoginVerifier, Depends(get_verifier_dep)]


def get_session_cookie(request: Request) -> str | None:
    """Return the session identifier presented by the client, if any."""
    return request.cookies.get(settings.session_cookie_name)


def get_current_session(request: Request, store: SessionStoreDep) -> SessionData | None:
    """Return the caller's live authenticated session, or None."""
    session = store.get(get_session_cookie(request))
    if session is None or not session.is_authenticated:
        return None
    return session


def require_session(
    session: Annotated[SessionData | None, Depends(get_current_session)],
) -> SessionData:
    """Require an authenticated session, redirecting to the login page otherwise."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_302_FOUND,
            detail="Login required",
            headers={"Location": "/login"},
        )
    return session


OptionalSessionDep = Annotated[SessionData | None, Depends(get_current_session)]
CurrentSessionDep = Annotated[SessionData, Depends(require_session)]


def set_session_cookie(response: Response, request: Request, session: SessionData) -> None:
    """Attach the session cookie; Secure whenever the request came over HTTPS."""
    secure = settings.session_cookie_secure or request.url.scheme == "https"
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=secure,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.session_cookie_name, path="/")
