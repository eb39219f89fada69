"""Schemas for the organization hierarchy."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from projviz.core.sanitize import clean_single_line


class OrganizationOut(BaseModel):
    id: int
    name: str
    parent_id: int | None = None
    path: str
    level: int
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class OrganizationTreeOut(OrganizationOut):
    children: list["OrganizationTreeOut"] = Field(default_factory=list)


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: int | None = Field(default=None, ge=1)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)


class OrganizationUpdate(BaseModel):
    """Omitted fields stay unchanged; an explicit `parent_id: null` moves to the root."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    parent_id: int | None = Field(default=None, ge=1)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        return clean_single_line(value) if value is not None else None


OrganizationTreeOut.model_rebuild()
