from __future__ import annotations

from datetime import datetime
from typing import Protocol

from storeback.domain.filters import SaleFilter
from storeback.domain.models import Sale, SaleItem


class SaleRepository(Protocol):
    def create(self, sale: Sale) -> Sale: ...
    def get_by_id(self, sale_id: int) -> Sale: ...
    def get_version_by_id(self, sale_id: int) -> int: ...
    def list_by_client(self, client_id: int, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]: ...
    def list_by_user(self, user_id: int, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]: ...
    def list_by_status(self, status: str, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]: ...
    def list_by_date_range(
        self, start: datetime, end: datetime, limit: int, offset: int, order_by: str, order_dir: str
    ) -> list[Sale]: ...
    def filter(self, sale_filter: SaleFilter) -> list[Sale]: ...
    def update(self, sale: Sale) -> Sale: ...
    def delete(self, sale_id: int) -> None: ...
    def cancel(self, sale: Sale) -> Sale: ...
    def complete(self, sale: Sale) -> Sale: ...
    def mark_returned(self, sale: Sale) -> Sale: ...
    def activate(self, sale: Sale) -> Sale: ...


class SaleItemRepository(Protocol):
    def create(self, item: SaleItem) -> SaleItem: ...
    def get_by_id(self, item_id: int) -> SaleItem: ...
    def list_by_sale(self, sale_id: int, limit: int, offset: int) -> list[SaleItem]: ...
    def list_by_product(self, product_id: int, limit: int, offset: int) -> list[SaleItem]: ...
    def update(self, item: SaleItem) -> SaleItem: ...
    def delete(self, item_id: int) -> None: ...
    def delete_by_sale(self, sale_id: int) -> int: ...
