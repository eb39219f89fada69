"""Schemas for login and token responses."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from projviz.core.sanitize import clean_email
from projviz.schemas.user import UserOut


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
