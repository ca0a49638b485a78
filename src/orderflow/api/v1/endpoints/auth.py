# src/orderflow/api/v1/endpoints/auth.py
"""Login, logout and cross-site auto-login endpoints."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from orderflow.api.v1.dependencies import (
    OptionalSessionDep,
    SessionDep,
    SessionStoreDep,
    VerifierDep,
    clear_session_cookie,
    get_session_cookie,
    set_session_cookie,
)
from orderflow.schemas.auto_login import LoginRequest, LoginResponse, LoginStatusResponse
from orderflow.services.auto_login import LANDING_PATH, AutoLoginErrorCode, AutoLoginFlow
from orderflow.services.sessions import SessionStoreError
from orderflow.services.user_service import authenticate_user, find_user_for_claims

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


@router.get(
    "/auto-login",
    summary="Redeem a cross-site auto-login token",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
)
async def auto_login(
    request: Request,
    db: SessionDep,
    store: SessionStoreDep,
    verifier: VerifierDep,
    token: str | None = Query(None, description="Signed auto-login credential"),
) -> RedirectResponse:
    """Exchange a one-time credential for a local session and redirect."""
    flow = AutoLoginFlow(verifier, store, lambda claims: find_user_for_claims(db, claims))
    outcome = flow.run(token, session_id=get_session_cookie(request))

    response = RedirectResponse(outcome.redirect_url, status_code=status.HTTP_302_FOUND)
    if outcome.ok and not outcome.reused_session and outcome.session is not None:
        set_session_cookie(response, request, outcome.session)
    return response


@router.get(
    "/login",
    summary="Login page state",
    response_model=LoginStatusResponse,
)
async def login_page(
    session: OptionalSessionDep,
    error: str | None = Query(None),
) -> LoginStatusResponse | RedirectResponse:
    """Report login state; signed-in callers are sent to the dashboard."""
    if session is not None:
        return RedirectResponse(LANDING_PATH, status_code=status.HTTP_302_FOUND)

    try:
        code = AutoLoginErrorCode(error) if error else None
    except ValueError:
        code = None
    return LoginStatusResponse(
        authenticated=False,
        error=code.value if code else None,
        message=code.message if code else None,
    )


@router.post(
    "/login",
    summary="Authenticate with username and password",
    response_model=LoginResponse,
)
async def login(
    payload: LoginRequest,
    request: Request,
    db: SessionDep,
    store: SessionStoreDep,
) -> JSONResponse:
    """Start a password session."""
    user = authenticate_user(db, payload.username, payload.password)
    if user is None:
        logger.warning("Login failed for user '%s'", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    session = store.new(get_session_cookie(request)).model_copy(
        update={
            "user_id": user.id,
            "username": user.username,
            "auto_login": False,
            "login_time": int(time.time()),
        }
    )
    try:
        session = store.regenerate(session)
        store.save(session)
    except SessionStoreError as err:
        logger.error("Could not start session for '%s': %s", user.username, err)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session store unavailable",
        ) from err

    body = LoginResponse(user_id=user.id, username=user.username, auto_login=False)
    response = JSONResponse(body.model_dump())
    set_session_cookie(response, request, session)
    logger.info("User '%s' logged in", user.username)
    return response


@router.post(
    "/logout",
    summary="End the current session",
    response_class=RedirectResponse,
    status_code=status.HTTP_303_SEE_OTHER,
)
async def logout(request: Request, store: SessionStoreDep) -> RedirectResponse:
    """Destroy the caller's session and return to the login page."""
    session_id = get_session_cookie(request)
    if session_id:
        try:
            store.destroy(session_id)
        except SessionStoreError as err:
            logger.error("Logout error: %s", err)

    response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    return response
