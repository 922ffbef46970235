from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from storeback.domain.errors import (
    FieldError,
    InvalidFilterError,
    InvalidTransitionError,
    ValidationError,
    VersionConflictError,
    ZeroIDError,
)
from storeback.domain.filters import SaleFilter, validate_order, validate_pagination
from storeback.domain.models import Sale, SaleItem
from storeback.domain.status import INITIAL_STATUS, SALE_STATUSES, SaleAction, next_status, status_value
from storeback.domain.validation import FieldErrors
from storeback.repositories.contracts import SaleRepository
from storeback.repositories.query_builder import SALE_SORT_FIELDS
from storeback.repositories.unit_of_work import SqliteUnitOfWork, UnitOfWork

log = logging.getLogger("storeback.sales")


def _require_id(value: int, what: str = "sale") -> int:
    if value is None or int(value) <= 0:
        raise ZeroIDError(f"{what} id must be > 0")
    return int(value)


class SaleService:
    """
    Sale lifecycle use-cases.

    Every write is validated before storage is touched. Updates are
    optimistic: a VersionConflictError means another writer got there first.
    This service never retries; callers reload the sale (get_by_id or
    get_version_by_id) and decide whether to try again.
    """

    def __init__(
        self,
        repo: SaleRepository,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: SqliteUnitOfWork(repo))

    # ---------- Create ----------
    def create(self, sale: Sale) -> Sale:
        self._prepare_new(sale)
        created = self.repo.create(sale)
        log.info("sale_created sale_id=%s user_id=%s total=%.2f", created.id, created.user_id, created.total_amount)
        return created

    def create_with_items(self, sale: Sale, items: Iterable[SaleItem]) -> Sale:
        items = list(items)
        if not items:
            raise ValidationError(errors=[FieldError("items", "at least one item is required")])
        self._prepare_new(sale)

        errs = FieldErrors()
        for i, it in enumerate(items):
            try:
                it.validate(require_sale=False)
            except ValidationError as exc:
                for fe in exc.errors:
                    errs.add(f"items[{i}].{fe.field}", fe.message)
        errs.raise_if_any()

        with self.uow_factory() as uow:
            uow.create_sale(sale, items)
        log.info("sale_created sale_id=%s user_id=%s items=%s total=%.2f", sale.id, sale.user_id, len(items), sale.total_amount)
        return sale

    def _prepare_new(self, sale: Sale) -> None:
        if not sale.status:
            sale.status = INITIAL_STATUS.value
        sale.status = status_value(sale.status)
        sale.validate()
        if sale.status != INITIAL_STATUS.value:
            raise InvalidTransitionError(
                f"new sales start as {INITIAL_STATUS.value}",
                errors=[FieldError("status", f"must be {INITIAL_STATUS.value} on create")],
            )

    # ---------- Reads ----------
    def get_by_id(self, sale_id: int) -> Sale:
        return self.repo.get_by_id(_require_id(sale_id))

    def get_version_by_id(self, sale_id: int) -> int:
        return self.repo.get_version_by_id(_require_id(sale_id))

    def list_by_client(self, client_id: int, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]:
        client_id = _require_id(client_id, "client")
        validate_pagination(limit, offset)
        order_dir = validate_order(order_by, SALE_SORT_FIELDS, order_dir)
        return self.repo.list_by_client(client_id, limit, offset, order_by, order_dir)

    def list_by_user(self, user_id: int, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]:
        user_id = _require_id(user_id, "user")
        validate_pagination(limit, offset)
        order_dir = validate_order(order_by, SALE_SORT_FIELDS, order_dir)
        return self.repo.list_by_user(user_id, limit, offset, order_by, order_dir)

    def list_by_status(self, status: str, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]:
        errs = FieldErrors()
        errs.require_not_blank("status", status)
        if status:
            errs.require_one_of("status", status, SALE_STATUSES)
        errs.raise_if_any(InvalidFilterError)
        validate_pagination(limit, offset)
        order_dir = validate_order(order_by, SALE_SORT_FIELDS, order_dir)
        return self.repo.list_by_status(status_value(status), limit, offset, order_by, order_dir)

    def list_by_date_range(
        self, start: datetime, end: datetime, limit: int, offset: int, order_by: str, order_dir: str
    ) -> list[Sale]:
        if start is None or end is None:
            raise InvalidFilterError(errors=[FieldError("sale_date_from/sale_date_to", "both bounds are required")])
        validate_pagination(limit, offset)
        order_dir = validate_order(order_by, SALE_SORT_FIELDS, order_dir)
        SaleFilter(sale_date_from=start, sale_date_to=end).validate()
        return self.repo.list_by_date_range(start, end, limit, offset, order_by, order_dir)

    def filter(self, sale_filter: Optional[SaleFilter], now: Optional[datetime] = None) -> list[Sale]:
        if sale_filter is None:
            raise InvalidFilterError("filter is required")
        sale_filter.validate(now)
        return self.repo.filter(sale_filter)

    # ---------- Writes ----------
    def update(self, sale: Sale) -> Sale:
        """Persist edits to a sale. Status is changed only through the transition methods."""
        _require_id(sale.id)
        if sale.version is None or int(sale.version) <= 0:
            raise VersionConflictError(f"sale {sale.id} carries no valid version ({sale.version})")
        sale.validate()

        current = self.repo.get_by_id(sale.id)
        if int(current.version) != int(sale.version):
            raise VersionConflictError(
                f"sale {sale.id} is at version {current.version}, update carries {sale.version}"
            )
        if status_value(sale.status) != current.status:
            raise InvalidTransitionError(
                "status cannot be changed by update",
                errors=[FieldError("status", "use cancel, complete, mark_returned or activate")],
            )

        updated = self.repo.update(sale)
        log.info("sale_updated sale_id=%s version=%s", updated.id, updated.version)
        return updated

    def delete(self, sale_id: int) -> None:
        sale_id = _require_id(sale_id)
        self.repo.delete(sale_id)
        log.info("sale_deleted sale_id=%s", sale_id)

    # ---------- Transitions ----------
    def cancel(self, sale_id: int) -> Sale:
        return self._transition(sale_id, SaleAction.CANCEL, self.repo.cancel)

    def complete(self, sale_id: int) -> Sale:
        return self._transition(sale_id, SaleAction.COMPLETE, self.repo.complete)

    def mark_returned(self, sale_id: int) -> Sale:
        return self._transition(sale_id, SaleAction.RETURN, self.repo.mark_returned)

    def activate(self, sale_id: int) -> Sale:
        return self._transition(sale_id, SaleAction.ACTIVATE, self.repo.activate)

    def _transition(self, sale_id: int, action: SaleAction, persist: Callable[[Sale], Sale]) -> Sale:
        sale = self.repo.get_by_id(_require_id(sale_id))
        previous = sale.status
        # raises before anything is mutated
        target = next_status(previous, action)
        saved = persist(sale)
        log.info(
            "sale_status_changed sale_id=%s from=%s to=%s version=%s",
            saved.id,
            previous,
            target.value,
            saved.version,
        )
        return saved
