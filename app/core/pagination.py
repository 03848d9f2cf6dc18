from __future__ import annotations

import math
from typing import Any

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session


class PaginationParams:
    """FastAPI dependency for `?page=1&limit=10`."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-based)"),
        limit: int = Query(default=10, ge=1, le=100, description="Items per page"),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, *, total: int, page: int, limit: int) -> "PageMeta":
        return cls(total=total, page=page, limit=limit, pages=math.ceil(total / limit) if limit else 0)


def paginate(db: Session, stmt: Select, params: PaginationParams) -> tuple[list[Any], PageMeta]:
    """Run `stmt` for one page and count the full result set."""
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    rows = db.scalars(stmt.offset(params.offset).limit(params.limit)).all()
    return list(rows), PageMeta.build(total=total, page=params.page, limit=params.limit)
