from __future__ import annotations

import logging

from storeback.domain.errors import ZeroIDError
from storeback.domain.filters import validate_pagination
from storeback.domain.models import SaleItem
from storeback.repositories.contracts import SaleItemRepository

log = logging.getLogger("storeback.sales")


class SaleItemService:
    def __init__(self, repo: SaleItemRepository):
        self.repo = repo

    def create(self, item: SaleItem) -> SaleItem:
        item.validate()
        created = self.repo.create(item)
        log.info("sale_item_created item_id=%s sale_id=%s product_id=%s", created.id, created.sale_id, created.product_id)
        return created

    def get_by_id(self, item_id: int) -> SaleItem:
        return self.repo.get_by_id(_require_id(item_id, "sale item"))

    def list_by_sale(self, sale_id: int, limit: int, offset: int) -> list[SaleItem]:
        sale_id = _require_id(sale_id, "sale")
        validate_pagination(limit, offset)
        return self.repo.list_by_sale(sale_id, limit, offset)

    def list_by_product(self, product_id: int, limit: int, offset: int) -> list[SaleItem]:
        product_id = _require_id(product_id, "product")
        validate_pagination(limit, offset)
        return self.repo.list_by_product(product_id, limit, offset)

    def update(self, item: SaleItem) -> SaleItem:
        _require_id(item.id, "sale item")
        item.validate()
        return self.repo.update(item)

    def delete(self, item_id: int) -> None:
        item_id = _require_id(item_id, "sale item")
        self.repo.delete(item_id)
        log.info("sale_item_deleted item_id=%s", item_id)

    def delete_by_sale(self, sale_id: int) -> int:
        sale_id = _require_id(sale_id, "sale")
        removed = self.repo.delete_by_sale(sale_id)
        log.info("sale_items_deleted sale_id=%s count=%s", sale_id, removed)
        return removed


def _require_id(value: int, what: str) -> int:
    if value is None or int(value) <= 0:
        raise ZeroIDError(f"{what} id must be > 0")
    return int(value)
