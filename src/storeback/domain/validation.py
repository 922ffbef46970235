"""
Validation primitives.

Validators never touch the store. They collect every violation into a
FieldErrors instance so a caller sees all the bad fields in one round trip.
"""

from __future__ import annotations

from typing import Collection, Optional

from storeback.domain.errors import FieldError, ValidationError


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class FieldErrors:
    def __init__(self) -> None:
        self.items: list[FieldError] = []

    def __bool__(self) -> bool:
        return bool(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def add(self, field: str, message: str) -> None:
        self.items.append(FieldError(field, message))

    def require_positive_id(self, field: str, value: Optional[int], *, optional: bool = False) -> None:
        if value is None:
            if not optional:
                self.add(field, "is required")
            return
        if int(value) <= 0:
            self.add(field, "must be > 0")

    def require_non_negative(self, field: str, value: Optional[float]) -> None:
        if value is not None and float(value) < 0:
            self.add(field, "must be >= 0")

    def require_not_blank(self, field: str, value: Optional[str]) -> None:
        if is_blank(value):
            self.add(field, "is required")

    def require_max_length(self, field: str, value: Optional[str], max_len: int) -> None:
        if value is not None and len(value) > max_len:
            self.add(field, f"must have at most {max_len} characters")

    def require_one_of(self, field: str, value: Optional[str], allowed: Collection[str]) -> None:
        value = getattr(value, "value", value)
        if value is not None and value not in allowed:
            self.add(field, f"invalid value. Allowed: {', '.join(sorted(allowed))}")

    def raise_if_any(self, exc_type: type[ValidationError] = ValidationError) -> None:
        if self.items:
            raise exc_type(errors=self.items)
