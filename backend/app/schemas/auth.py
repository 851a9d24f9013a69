"""
Authentication and user schemas.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime

from app.schemas.common import SuccessResponse


class UserLogin(BaseModel):
    """Login with email and password."""
    email: EmailStr
    password: str


class AdminBootstrap(BaseModel):
    """
    Create the first admin. Fields fall back to BOOTSTRAP_ADMIN_* settings.
    """
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    name: str = Field(default="Administrator", min_length=1, max_length=200)


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    is_admin: bool
    is_active: bool
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class TokenResponse(SuccessResponse):
    token: str
    user: UserResponse


class UserEnvelope(SuccessResponse):
    user: UserResponse
