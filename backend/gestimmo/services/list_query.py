# backend/gestimmo/services/list_query.py
"""
Shared list plumbing for collection endpoints.

Pagination is opt-in: a request without `page` or `limit` gets the bare array
it always got, a request with either gets `{data, meta}`.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, TypeVar

from fastapi import HTTPException
from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.orm import Session

from ..config import settings

E = TypeVar("E")


@dataclass(frozen=True)
class Pagination:
    enabled: bool
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Sort:
    sort_by: str
    sort_order: str  # asc | desc


def _positive_int(raw: Any) -> int | None:
    try:
        value = int(float(str(raw).strip()))
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def parse_pagination(query: Mapping[str, Any], max_limit: int | None = None) -> Pagination:
    max_limit = int(max_limit or settings.pagination_max_limit)
    enabled = "page" in query or "limit" in query

    page = _positive_int(query.get("page")) or 1
    limit = min(_positive_int(query.get("limit")) or settings.pagination_default_limit, max_limit)
    return Pagination(enabled=enabled, page=page, limit=limit)


def parse_sort(query: Mapping[str, Any], allowed: Sequence[str], fallback: str = "created_at") -> Sort:
    requested = str(query.get("sort_by") or fallback).strip()
    sort_by = requested if requested in allowed else fallback
    sort_order = "asc" if str(query.get("sort_order") or "desc").lower() == "asc" else "desc"
    return Sort(sort_by=sort_by, sort_order=sort_order)


def build_list_response(items: list, pagination: Pagination, total: int | None) -> list | dict:
    if not pagination.enabled:
        return items

    total_items = int(total or 0)
    total_pages = math.ceil(total_items / pagination.limit) if pagination.limit > 0 else 0
    return {
        "data": items,
        "meta": {
            "page": pagination.page,
            "limit": pagination.limit,
            "total_items": total_items,
            "total_pages": total_pages,
        },
    }


def apply_sort(stmt: Select, model: Any, sort: Sort) -> Select:
    # sort_by has already been checked against the allow-list.
    column = getattr(model, sort.sort_by)
    order = asc(column) if sort.sort_order == "asc" else desc(column)
    return stmt.order_by(order, desc(model.id) if sort.sort_order == "desc" else asc(model.id))


def paginate(db: Session, stmt: Select, model: Any, pagination: Pagination, sort: Sort) -> tuple[list, int | None]:
    """
    Runs the list query and, when paginating, a count over the same filters.
    Returns (rows, total); total is None when pagination is off.
    """
    ordered = apply_sort(stmt, model, sort)
    if not pagination.enabled:
        return list(db.scalars(ordered).all()), None

    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    rows = db.scalars(ordered.offset(pagination.offset).limit(pagination.limit)).all()
    return list(rows), int(total or 0)


# ---- Filters ----
# Filter values come straight from the query string; a malformed one is a 400,
# never an unhandled ValueError.

def int_filter(query: Mapping[str, Any], key: str) -> int | None:
    raw = str(query.get(key) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {key} filter: expected an integer")


def enum_filter(query: Mapping[str, Any], key: str, enum_cls: type[E]) -> E | None:
    raw = str(query.get(key) or "").strip()
    if not raw:
        return None
    try:
        return enum_cls.parse(raw)
    except ValueError:
        allowed = ", ".join(enum_cls.values())
        raise HTTPException(status_code=400, detail=f"Invalid {key} filter: expected one of {allowed}")
