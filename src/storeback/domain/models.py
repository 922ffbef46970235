from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from storeback.domain.status import SALE_STATUSES, SaleStatus
from storeback.domain.validation import FieldErrors

PAYMENT_TYPE_MAX_LEN = 50
NOTES_MAX_LEN = 500
DESCRIPTION_MAX_LEN = 500


@dataclass
class Sale:
    """
    Sale aggregate root.

    `version` is the optimistic concurrency token: 1 after creation and +1
    on every successful update. An update carrying a stale version is
    rejected by the repository.
    """

    user_id: int
    total_amount: float
    payment_type: str
    client_id: Optional[int] = None
    sale_date: Optional[datetime] = None
    total_discount: float = 0.0
    status: str = SaleStatus.ACTIVE.value
    notes: str = ""
    id: int = 0
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def structural_errors(self) -> FieldErrors:
        errs = FieldErrors()
        errs.require_positive_id("user_id", self.user_id)
        errs.require_positive_id("client_id", self.client_id, optional=True)
        errs.require_non_negative("total_amount", self.total_amount)
        errs.require_non_negative("total_discount", self.total_discount)
        errs.require_not_blank("payment_type", self.payment_type)
        errs.require_max_length("payment_type", self.payment_type, PAYMENT_TYPE_MAX_LEN)
        errs.require_one_of("status", self.status, SALE_STATUSES)
        errs.require_max_length("notes", self.notes, NOTES_MAX_LEN)
        if self.version < 0:
            errs.add("version", "must be >= 0")
        return errs

    def business_errors(self) -> FieldErrors:
        errs = FieldErrors()
        if float(self.total_discount) > float(self.total_amount):
            errs.add("total_discount", "must not exceed total_amount")
        return errs

    def validate(self) -> None:
        errs = self.structural_errors()
        if not errs:
            errs = self.business_errors()
        errs.raise_if_any()


@dataclass
class SaleItem:
    sale_id: int
    product_id: int
    quantity: int
    unit_price: float
    subtotal: float
    discount: float = 0.0
    tax: float = 0.0
    description: str = ""
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def expected_subtotal(self) -> float:
        return self.quantity * self.unit_price - self.discount + self.tax

    def structural_errors(self) -> FieldErrors:
        errs = FieldErrors()
        errs.require_positive_id("sale_id", self.sale_id)
        errs.require_positive_id("product_id", self.product_id)
        if self.quantity is None or int(self.quantity) <= 0:
            errs.add("quantity", "must be > 0")
        errs.require_non_negative("unit_price", self.unit_price)
        errs.require_non_negative("discount", self.discount)
        errs.require_non_negative("tax", self.tax)
        errs.require_max_length("description", self.description, DESCRIPTION_MAX_LEN)
        return errs

    def business_errors(self) -> FieldErrors:
        errs = FieldErrors()
        # compared at cent precision
        if round(float(self.subtotal), 2) != round(self.expected_subtotal(), 2):
            errs.add("subtotal", "must equal quantity * unit_price - discount + tax")
        return errs

    def validate(self, *, require_sale: bool = True) -> None:
        errs = self.structural_errors()
        if not require_sale:
            errs.items = [e for e in errs.items if e.field != "sale_id"]
        if not errs:
            errs = self.business_errors()
        errs.raise_if_any()
