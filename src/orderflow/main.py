# src/orderflow/main.py
"""Main entry point for the order-management service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orderflow.api.v1 import auth_router, dashboard_router, system_router
from orderflow.core.logging import configure_logging
from orderflow.core.settings import settings
from orderflow.db.session import SessionLocal, create_tables
from orderflow.services.user_service import ensure_admin_user

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Order management with cross-site auto-login",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers; the issuing apps link to /auto-login directly.
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(dashboard_router)


def bootstrap_admin() -> None:
    """Create the configured administrator account if it is missing."""
    db = SessionLocal()
    try:
        ensure_admin_user(db, settings.admin_username, settings.admin_password)
    finally:
        db.close()


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()
    if settings.admin_bootstrap:
        bootstrap_admin()
    logger.info(
        "%s %s started (replay=%s, sessions=%s)",
        settings.app_name,
        settings.app_version,
        settings.replay_backend,
        settings.session_backend,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("orderflow.main:app", host="0.0.0.0", port=3000, reload=settings.debug)
