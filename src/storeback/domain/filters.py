"""
Query-shape descriptors.

A filter is built per request, validated, handed to the repository and then
thrown away. The repository is never given a filter that has not passed
validate().
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Collection, Optional

from storeback.domain.errors import (
    InvalidFilterError,
    InvalidLimitError,
    InvalidOffsetError,
    InvalidOrderDirectionError,
    InvalidOrderFieldError,
)
from storeback.domain.status import SALE_STATUSES
from storeback.domain.validation import FieldErrors

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
SORT_DIRECTIONS = ("asc", "desc")
PAYMENT_TYPES: frozenset[str] = frozenset({"cash", "card", "credit", "pix"})


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def validate_pagination(limit: int, offset: int) -> None:
    if limit is None or int(limit) <= 0:
        raise InvalidLimitError(f"invalid limit: {limit}")
    if offset is None or int(offset) < 0:
        raise InvalidOffsetError(f"invalid offset: {offset}")


def validate_order(order_by: str, allowed: Collection[str], order_dir: str) -> str:
    """Strict order check for explicit-argument reads. Returns the lower-cased direction."""
    if order_by not in allowed:
        raise InvalidOrderFieldError(f"invalid order field: {order_by!r}")
    direction = (order_dir or "").strip().lower()
    if direction not in SORT_DIRECTIONS:
        raise InvalidOrderDirectionError(f"invalid order direction: {order_dir!r}")
    return direction


@dataclass(frozen=True)
class BaseFilter:
    limit: int = 0
    offset: int = 0
    sort_by: str = ""
    sort_order: str = ""

    def with_defaults(self):
        limit = int(self.limit or 0)
        if limit <= 0:
            limit = DEFAULT_LIMIT
        elif limit > MAX_LIMIT:
            limit = MAX_LIMIT
        offset = max(int(self.offset or 0), 0)
        sort_order = (self.sort_order or "").strip().lower() or "asc"
        return replace(self, limit=limit, offset=offset, sort_order=sort_order)

    def pagination_errors(self) -> FieldErrors:
        errs = FieldErrors()
        if self.limit is not None and int(self.limit) < 0:
            errs.add("limit", f"must be >= 0 (got {self.limit})")
        if self.offset is not None and int(self.offset) < 0:
            errs.add("offset", f"must be >= 0 (got {self.offset})")
        return errs

    def validate(self) -> None:
        """Raises the specific limit or offset error; both are InvalidFilterError."""
        errs = self.pagination_errors()
        if not errs:
            return
        first = errs.items[0]
        exc_type = InvalidLimitError if first.field == "limit" else InvalidOffsetError
        raise exc_type(f"{first.field.capitalize()} {first.message}", errors=errs.items)


@dataclass(frozen=True)
class SaleFilter(BaseFilter):
    client_id: Optional[int] = None
    user_id: Optional[int] = None
    payment_type: str = ""
    status: str = ""
    notes: str = ""
    min_total_amount: Optional[float] = None
    max_total_amount: Optional[float] = None
    min_total_discount: Optional[float] = None
    max_total_discount: Optional[float] = None
    sale_date_from: Optional[datetime] = None
    sale_date_to: Optional[datetime] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    updated_from: Optional[datetime] = None
    updated_to: Optional[datetime] = None

    def validate(self, now: Optional[datetime] = None) -> None:
        errs = self.pagination_errors()
        if self.payment_type:
            errs.require_one_of("payment_type", self.payment_type, PAYMENT_TYPES)
        if self.status:
            errs.require_one_of("status", self.status, SALE_STATUSES)
        errs.require_positive_id("client_id", self.client_id, optional=True)
        errs.require_positive_id("user_id", self.user_id, optional=True)

        for name in ("total_amount", "total_discount"):
            lo = getattr(self, f"min_{name}")
            hi = getattr(self, f"max_{name}")
            errs.require_non_negative(f"min_{name}", lo)
            errs.require_non_negative(f"max_{name}", hi)
            if lo is not None and hi is not None and lo > hi:
                errs.add(f"min_{name}/max_{name}", "min must be <= max")

        now = _as_utc(now or datetime.now(timezone.utc))
        for name in ("sale_date", "created", "updated"):
            start = getattr(self, f"{name}_from")
            end = getattr(self, f"{name}_to")
            if start is not None and end is not None and _as_utc(start) > _as_utc(end):
                errs.add(f"{name}_from/{name}_to", "from must be <= to")
            for bound, value in (("from", start), ("to", end)):
                if value is not None and _as_utc(value) > now:
                    errs.add(f"{name}_{bound}", "must not be in the future")

        if (
            self.min_total_discount is not None
            and self.max_total_amount is not None
            and self.min_total_discount > self.max_total_amount
        ):
            errs.add("min_total_discount", "must not exceed max_total_amount")

        errs.raise_if_any(InvalidFilterError)
