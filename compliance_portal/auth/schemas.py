"""
Auth Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

from compliance_portal.profile.schemas import ProfileResponse


# ── Request Schemas ──
class LoginRequest(BaseModel):
    email: str
    password: str


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


# ── Response Schemas ──
class AccountResponse(BaseModel):
    id: UUID
    email: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    profile: ProfileResponse


class SessionResponse(BaseModel):
    account_id: UUID
    session_id: str
    expires_at: datetime
    actor_kind: str
    profile: ProfileResponse
