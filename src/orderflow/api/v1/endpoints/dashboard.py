# src/orderflow/api/v1/endpoints/dashboard.py
"""Protected landing route."""

from __future__ import annotations

from fastapi import APIRouter, Query

from orderflow.api.v1.dependencies import CurrentSessionDep
from orderflow.schemas.auto_login import DashboardResponse

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    session: CurrentSessionDep,
    auto_login: str | None = Query(None),
) -> DashboardResponse:
    """Describe the signed-in user; unauthenticated callers go to /login."""
    return DashboardResponse(
        user_id=session.user_id,
        username=session.username,
        auto_login=session.auto_login,
        login_time=session.login_time or session.created_at,
        auto_login_status="success" if auto_login == "success" else None,
    )
