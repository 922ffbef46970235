from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Sequence

from storeback.domain.errors import (
    CreateError,
    DeleteError,
    InvalidForeignKeyError,
    NotFoundError,
    UpdateError,
)
from storeback.domain.models import SaleItem
from storeback.repositories.sqlite_repo import (
    SqliteRepository,
    from_db_timestamp,
    is_foreign_key_violation,
    to_db_timestamp,
    utcnow,
)

_SELECT_ITEM = """
    SELECT id, sale_id, product_id, quantity, unit_price, discount, tax,
           subtotal, description, created_at, updated_at
    FROM sale_items
"""


def scan_sale_item(r: Sequence[Any]) -> SaleItem:
    return SaleItem(
        id=int(r[0]),
        sale_id=int(r[1]),
        product_id=int(r[2]),
        quantity=int(r[3]),
        unit_price=float(r[4]),
        discount=float(r[5]),
        tax=float(r[6]),
        subtotal=float(r[7]),
        description=str(r[8] or ""),
        created_at=from_db_timestamp(r[9]),
        updated_at=from_db_timestamp(r[10]),
    )


def insert_sale_item(cur: sqlite3.Cursor, item: SaleItem, now: datetime) -> int:
    cur.execute(
        """
        INSERT INTO sale_items (
            sale_id, product_id, quantity, unit_price, discount, tax,
            subtotal, description, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            int(item.sale_id),
            int(item.product_id),
            int(item.quantity),
            float(item.unit_price),
            float(item.discount),
            float(item.tax),
            float(item.subtotal),
            item.description or "",
            to_db_timestamp(now),
            to_db_timestamp(now),
        ),
    )
    return int(cur.lastrowid)


class SqliteSaleItemRepository(SqliteRepository):
    def create(self, item: SaleItem) -> SaleItem:
        now = utcnow()
        conn = self._conn()
        try:
            item_id = insert_sale_item(conn.cursor(), item, now)
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            if is_foreign_key_violation(exc):
                raise InvalidForeignKeyError(f"sale item references a missing sale or product: {exc}") from exc
            raise CreateError(f"create sale item: {exc}") from exc
        finally:
            conn.close()
        item.id = item_id
        item.created_at = now
        item.updated_at = now
        return item

    def get_by_id(self, item_id: int) -> SaleItem:
        item = self._fetch_one(f"{_SELECT_ITEM} WHERE id = ?", (int(item_id),), scan_sale_item, "sale item")
        if item is None:
            raise NotFoundError(f"sale item {item_id} not found")
        return item

    def list_by_sale(self, sale_id: int, limit: int, offset: int) -> list[SaleItem]:
        return self._fetch_all(
            f"{_SELECT_ITEM} WHERE sale_id = ? ORDER BY id LIMIT ? OFFSET ?",
            (int(sale_id), int(limit), int(offset)),
            scan_sale_item,
            "sale items",
        )

    def list_by_product(self, product_id: int, limit: int, offset: int) -> list[SaleItem]:
        return self._fetch_all(
            f"{_SELECT_ITEM} WHERE product_id = ? ORDER BY id LIMIT ? OFFSET ?",
            (int(product_id), int(limit), int(offset)),
            scan_sale_item,
            "sale items",
        )

    def update(self, item: SaleItem) -> SaleItem:
        now = utcnow()
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE sale_items
                SET product_id = ?, quantity = ?, unit_price = ?, discount = ?,
                    tax = ?, subtotal = ?, description = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    int(item.product_id),
                    int(item.quantity),
                    float(item.unit_price),
                    float(item.discount),
                    float(item.tax),
                    float(item.subtotal),
                    item.description or "",
                    to_db_timestamp(now),
                    int(item.id),
                ),
            )
            updated = cur.rowcount
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            if is_foreign_key_violation(exc):
                raise InvalidForeignKeyError(f"sale item references a missing product: {exc}") from exc
            raise UpdateError(f"update sale item {item.id}: {exc}") from exc
        finally:
            conn.close()
        if updated == 0:
            raise NotFoundError(f"sale item {item.id} not found")
        item.updated_at = now
        return item

    def delete(self, item_id: int) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM sale_items WHERE id = ?", (int(item_id),))
            removed = cur.rowcount
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise DeleteError(f"delete sale item {item_id}: {exc}") from exc
        finally:
            conn.close()
        if removed == 0:
            raise NotFoundError(f"sale item {item_id} not found")

    def delete_by_sale(self, sale_id: int) -> int:
        """Remove every item of a sale. Returns how many rows went away; zero is not an error."""
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM sale_items WHERE sale_id = ?", (int(sale_id),))
            removed = cur.rowcount
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise DeleteError(f"delete items of sale {sale_id}: {exc}") from exc
        finally:
            conn.close()
        return int(removed)
