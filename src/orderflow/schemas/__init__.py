"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auto_login import (
    AUTO_LOGIN_PURPOSE,
    AutoLoginClaims,
    DashboardResponse,
    LoginRequest,
    LoginResponse,
    LoginStatusResponse,
)

__all__ = [
    "AUTO_LOGIN_PURPOSE",
    "AutoLoginClaims",
    "DashboardResponse",
    "LoginRequest", "LoginResponse", "LoginStatusResponse",
]
