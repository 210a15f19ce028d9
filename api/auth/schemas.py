"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)
    name: str | None = Field(default=None, max_length=200)
    department: str | None = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: str
    email: str
    name: str | None = None
    department: str
    role: str
    created_at: datetime | None = None


class RegisterResponse(BaseModel):
    user: UserResponse


class SessionResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
