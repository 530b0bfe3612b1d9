"""
Authentication Schemas
"""

import re
from datetime import datetime
from typing import Dict, Optional

from pydantic import Field, field_validator

from youthhub.schemas.base import BaseSchema

PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 \-]{6,19}$")


def validate_email(v: str) -> str:
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("Invalid email address")
    return v.lower()


class LoginRequest(BaseSchema):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v)


class SignupRequest(BaseSchema):
    """Sign-up request; the account stays pending until an admin approves it"""
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., max_length=128)
    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if not any(c.isalpha() for c in v):
            raise ValueError("Password must contain at least one letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v in (None, ""):
            return None
        if not PHONE_PATTERN.match(v):
            raise ValueError("Invalid phone number")
        return v


class SignupResponse(BaseSchema):
    user_id: str
    email: str
    is_approved: bool = False
    requires_email_confirmation: bool
    message: str


class LoginResponse(BaseSchema):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user_id: str
    role: str
    is_approved: bool


class LoginBlocked(BaseSchema):
    error: str
    blocked_until: datetime
    remaining_minutes: int


class CurrentUserResponse(BaseSchema):
    id: str
    email: Optional[str] = None
    role: str
    is_approved: bool
    capabilities: Dict[str, bool]
