"""Authentication schemas."""
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import List
from datetime import datetime
from uuid import UUID

from beatmarket.models.enums import UserRole


class RegisterRequest(BaseModel):
    """Account creation request."""
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserResponse(BaseModel):
    """User profile response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: UserRole
    purchases: List[str] = Field(default_factory=list)
    created_at: datetime


class TokenResponse(BaseModel):
    """Login/register response with an access token."""
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
