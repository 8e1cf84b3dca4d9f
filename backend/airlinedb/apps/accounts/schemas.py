# backend/airlinedb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .models import AccountRole

# Email format and password length are checked by the auth engine so that
# every entry point reports them the same way; schemas only fix the shape.


# ---------------------------------------------------------------------------
# REQUESTS
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None


class _ContactLookup(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def _require_contact(self):
        if not (self.email or self.phone):
            raise ValueError("Either email or phone is required.")
        return self


class VerifyOTPRequest(_ContactLookup):
    otp: str = Field(..., min_length=1)


class ResendOTPRequest(_ContactLookup):
    pass


class LoginRequest(BaseModel):
    email: str
    password: str


# ---------------------------------------------------------------------------
# RESPONSES
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    message: str


class AccountPublic(BaseModel):
    """Minimal account fields safe to hand back after login."""

    id: str
    email: str
    role: AccountRole

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountPublic


class AccountRead(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: AccountRole
    is_verified: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CurrentSession(BaseModel):
    account: AccountRead
    issued_at: datetime
    expires_at: datetime
