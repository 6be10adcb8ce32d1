# expo_coupon/services/filters.py
"""
Query-string criteria -> reusable filter over coupons.

The same FilterSpec drives the count, the paginated listing and the export,
so all three always agree on which rows match.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy import func, or_

from ..errors import InvalidInput
from ..extensions import db
from ..model import Coupon

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


def _clean(v):
    if v is None:
        return None
    v = str(v).strip()
    return v or None


def _parse_day(name, v):
    v = _clean(v)
    if v is None:
        return None
    try:
        return datetime.strptime(v, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInput(f"{name} must be a date in YYYY-MM-DD format")


def _parse_id(name, v):
    v = _clean(v)
    if v is None:
        return None
    try:
        return int(v)
    except ValueError:
        raise InvalidInput(f"{name} must be an integer")


def like_term(text: str) -> str:
    """Wrap text for a substring LIKE, escaping the user's own wildcards."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class FilterCriteria:
    branch: str | None = None
    staff_id: int | None = None
    date: date | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None

    @classmethod
    def from_args(cls, args) -> "FilterCriteria":
        return cls(
            branch=_clean(args.get("branch")),
            staff_id=_parse_id("staff_id", args.get("staff_id")),
            date=_parse_day("date", args.get("date")),
            date_from=_parse_day("date_from", args.get("date_from")),
            date_to=_parse_day("date_to", args.get("date_to")),
            search=_clean(args.get("search")),
        )


@dataclass
class FilterSpec:
    """Ordered AND-ed clauses plus the values bound into them, in order."""

    clauses: list = field(default_factory=list)
    params: list = field(default_factory=list)

    def add(self, clause, *values):
        self.clauses.append(clause)
        self.params.extend(values)

    @property
    def is_empty(self):
        return not self.clauses

    def apply(self, query):
        # works for both db.session.query(...) and select(...)
        if not self.clauses:
            return query
        return query.filter(*self.clauses)


def build(criteria: FilterCriteria) -> FilterSpec:
    spec = FilterSpec()
    created_day = func.date(Coupon.created_at, type_=db.Date)

    if criteria.branch:
        spec.add(Coupon.branch == criteria.branch, criteria.branch)

    if criteria.staff_id is not None:
        spec.add(Coupon.staff_id == criteria.staff_id, criteria.staff_id)

    if criteria.date:
        spec.add(created_day == criteria.date, criteria.date)

    if criteria.date_from:
        spec.add(created_day >= criteria.date_from, criteria.date_from)

    if criteria.date_to:
        spec.add(created_day <= criteria.date_to, criteria.date_to)

    if criteria.search:
        term = like_term(criteria.search)
        columns = (Coupon.customer_name, Coupon.mobile_number, Coupon.mobile_local, Coupon.coupon_code)
        spec.add(
            or_(*(col.ilike(term, escape="\\") for col in columns)),
            *([term] * len(columns)),
        )

    return spec


@dataclass
class Pagination:
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_args(cls, args) -> "Pagination":
        try:
            page = int(args.get("page") or 1)
            limit = int(args.get("limit") or DEFAULT_LIMIT)
        except (TypeError, ValueError):
            raise InvalidInput("page and limit must be integers")
        return cls(page=max(page, 1), limit=min(max(limit, 1), MAX_LIMIT))

    @property
    def offset(self):
        return (self.page - 1) * self.limit

    def pages(self, total):
        return math.ceil(total / self.limit) if total else 0

    def as_dict(self, total):
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "pages": self.pages(total),
        }
