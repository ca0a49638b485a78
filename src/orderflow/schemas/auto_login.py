"""Pydantic schemas for the auto-login credential and its HTTP surface."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

AUTO_LOGIN_PURPOSE = "auto-login"


class AutoLoginClaims(BaseModel):
    """Decoded claims of an auto-login credential.

    Field aliases follow the wire names the issuing applications emit.
    """

    user_id: StrictInt | StrictStr | None = Field(
        None, alias="userId", description="Subject identifier; booleans are rejected"
    )
    username: str | None = Field(None, description="Human-readable subject name")
    shop_domain: str | None = Field(None, alias="shopDomain", description="Issuing shop, if any")
    purpose: str = Field(..., description="Fixed literal identifying a login assertion")
    issuer_tag: str = Field(..., alias="website", description="Application that minted the token")
    issued_at: int = Field(..., alias="iat", description="Unix timestamp at mint time")
    expires_at: int = Field(..., alias="exp", description="Envelope expiry (Unix timestamp)")
    issuer: str = Field(..., alias="iss")
    audience: str = Field(..., alias="aud")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def has_subject(self) -> bool:
        """Return True if the claims identify a subject by id or by name."""
        return self.user_id not in (None, "") or bool(self.username)


class LoginRequest(BaseModel):
    """Schema for password login submissions."""

    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class LoginResponse(BaseModel):
    """Response returned after a successful password login."""

    user_id: int
    username: str
    auto_login: bool = False


class LoginStatusResponse(BaseModel):
    """State of the login page: who is signed in and which error to show."""

    authenticated: bool
    error: str | None = None
    message: str | None = None


class DashboardResponse(BaseModel):
    """Protected landing payload describing the current session."""

    user_id: int
    username: str
    auto_login: bool
    login_time: int
    auto_login_status: Literal["success"] | None = None
