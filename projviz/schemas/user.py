"""Pydantic schemas for user payloads and responses."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, EmailStr, Field, field_validator

from projviz.core.sanitize import clean_email, clean_single_line
from projviz.models.enums import UserRole

MIN_PASSWORD_LEN = 8


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    full_name: str | None = None
    role: UserRole
    is_active: bool
    last_login_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LEN, max_length=128)
    full_name: str | None = Field(default=None, max_length=255)
    role: UserRole = UserRole.viewer
    is_active: bool = True

    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)

    @field_validator("full_name", mode="before")
    @classmethod
    def normalize_full_name(cls, value: str | None) -> str | None:
        return clean_single_line(value) or None


class UserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=64)
    email: EmailStr | None = None
    full_name: str | None = Field(default=None, max_length=255)
    role: UserRole | None = None
    is_active: bool | None = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return clean_email(value) if value is not None else None

    @field_validator("username", "full_name", mode="before")
    @classmethod
    def normalize_text(cls, value: str | None) -> str | None:
        return clean_single_line(value) if value is not None else None


class PasswordChange(BaseModel):
    old_password: str | None = None
    new_password: str = Field(..., min_length=MIN_PASSWORD_LEN, max_length=128)
