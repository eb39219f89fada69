"""Shared response envelopes."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginationOut(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class PageOut(BaseModel, Generic[T]):
    data: list[T]
    pagination: PaginationOut


class DataOut(BaseModel, Generic[T]):
    data: list[T]
