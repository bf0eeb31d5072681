"""
Authentication Schemas
Pydantic models for authentication requests and responses
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from bug_tracker.core.rbac import Role
from bug_tracker.schemas.base import BaseSchema, ResponseSchema, validate_email, validate_non_empty_string


class LoginRequest(BaseSchema):
    """Login request schema"""
    email: str = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")

    @field_validator('email')
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)


class RegisterRequest(BaseSchema):
    """User registration request schema"""
    name: str = Field(..., max_length=50, description="Display name")
    email: str = Field(..., description="User email address")
    password: str = Field(..., min_length=6, max_length=128, description="User password")
    role: Role = Field(Role.USER.value, description="User, Tester or Admin (honoured on admin registration only)")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return validate_non_empty_string(v)

    @field_validator('email')
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)


class ProfileUpdateRequest(BaseSchema):
    """Profile update; only the fields sent are changed"""
    name: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return validate_non_empty_string(v)

    @field_validator('email')
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)


class UserProfile(ResponseSchema):
    """User profile returned by the auth endpoints"""
    id: UUID
    name: str
    email: str
    role: str
    created_at: datetime


class AuthenticatedUser(UserProfile):
    """Profile plus a freshly issued access token"""
    token: str
