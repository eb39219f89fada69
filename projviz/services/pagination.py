"""Offset pagination shared by the list endpoints."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

MAX_PER_PAGE = 100


@dataclass(frozen=True)
class Page:
    rows: list[Any]
    page: int
    per_page: int
    total: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    def envelope(self, data: list[Any]) -> dict[str, Any]:
        return {
            "data": data,
            "pagination": {
                "page": self.page,
                "per_page": self.per_page,
                "total": self.total,
                "total_pages": self.total_pages,
            },
        }


def clamp_per_page(per_page: int | None, default: int) -> int:
    if per_page is None:
        return default
    return max(1, min(MAX_PER_PAGE, per_page))


def paginate(db: Session, stmt: Select, *, page: int, per_page: int, scalars: bool = False) -> Page:
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    query = stmt.offset((page - 1) * per_page).limit(per_page)
    result = db.execute(query)
    rows = list(result.scalars()) if scalars else list(result.all())
    return Page(rows=rows, page=page, per_page=per_page, total=int(total))
