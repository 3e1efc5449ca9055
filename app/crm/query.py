"""
Filter composition and pagination shared by the customer and address listings.

A FilterClause collects one condition per present filter value, in call order.
Nothing user-supplied is ever rendered into SQL text; every value travels as a bound parameter.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import Select, and_, distinct, func, literal_column, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import ColumnElement, FromClause

from app.crm.errors import ValidationError


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def like_pattern(value: Any) -> str:
    return f"%{value}%"


@dataclass
class FilterClause:
    conditions: list[ColumnElement[bool]] = field(default_factory=list)

    def exact(self, column: ColumnElement[Any], value: Any) -> "FilterClause":
        if _present(value):
            self.conditions.append(column == value)
        return self

    def contains(self, column: ColumnElement[Any], value: Any) -> "FilterClause":
        if _present(value):
            pattern = like_pattern(value)
            self.conditions.append(column.ilike(pattern))
        return self

    def contains_any(self, columns: Iterable[ColumnElement[Any]], value: Any) -> "FilterClause":
        """One OR-group over several columns, e.g. a free-text search box."""
        if _present(value):
            pattern = like_pattern(value)
            self.conditions.append(or_(*(c.ilike(pattern) for c in columns)))
        return self

    def where(self) -> ColumnElement[bool] | None:
        """Conjunction of all conditions, or None meaning match everything."""
        if not self.conditions:
            return None
        return and_(*self.conditions)

    def apply(self, stmt: Select) -> Select:
        clause = self.where()
        return stmt if clause is None else stmt.where(clause)


@dataclass(frozen=True)
class Page:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit)

    def apply(self, stmt: Select) -> Select:
        return stmt.limit(self.limit).offset(self.offset)


# Largest value a 32-bit signed LIMIT/OFFSET operand accepts on every supported store.
MAX_PAGE_VALUE = 2**31 - 1


def _positive_int(raw: Any, name: str, default: int) -> int:
    if not _present(raw):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be a positive integer") from None
    if value < 1 or value > MAX_PAGE_VALUE:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def parse_page(page: Any, limit: Any, *, default_limit: int = 10) -> Page:
    return Page(
        page=_positive_int(page, "page", 1),
        limit=_positive_int(limit, "limit", default_limit),
    )


def count_distinct(s: Session, id_column: ColumnElement[Any], from_: FromClause, filters: FilterClause) -> int:
    """
    COUNT(DISTINCT id) over the same FROM/JOIN and predicate as a listing,
    without its grouping, ordering or window.
    """
    stmt = select(func.count(distinct(id_column))).select_from(from_)
    stmt = filters.apply(stmt)
    return int(s.execute(stmt).scalar_one() or 0)


def concat_distinct(s: Session, expr: ColumnElement[str]) -> ColumnElement[str]:
    """Store-side concatenation of distinct values; item order is up to the store."""
    dialect = s.get_bind().dialect.name
    if dialect == "postgresql":
        return func.string_agg(distinct(expr), literal_column("','"))
    return func.group_concat(distinct(expr))
