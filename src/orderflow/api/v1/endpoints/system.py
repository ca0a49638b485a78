"""Health and navigation endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, status
from fastapi.responses import RedirectResponse

from orderflow.api.v1.dependencies import OptionalSessionDep
from orderflow.core.settings import settings

router = APIRouter(tags=["system"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": settings.app_version,
    }


@router.get("/", response_class=RedirectResponse, status_code=status.HTTP_302_FOUND)
async def root(session: OptionalSessionDep) -> RedirectResponse:
    """Send signed-in users to the dashboard and everyone else to the login page."""
    target = "/dashboard" if session is not None else "/login"
    return RedirectResponse(target, status_code=status.HTTP_302_FOUND)
