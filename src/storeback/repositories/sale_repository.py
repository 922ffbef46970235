from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from storeback.domain.errors import (
    CreateError,
    DeleteError,
    GetVersionError,
    InvalidFilterError,
    InvalidForeignKeyError,
    NotFoundError,
    UpdateError,
    VersionConflictError,
)
from storeback.domain.filters import SaleFilter
from storeback.domain.models import Sale
from storeback.domain.status import SaleStatus
from storeback.repositories.query_builder import SALE_COLUMNS, SALE_SORT_FIELDS, SaleQueryBuilder
from storeback.repositories.sqlite_repo import (
    SqliteRepository,
    from_db_timestamp,
    is_foreign_key_violation,
    to_db_timestamp,
    utcnow,
)

log = logging.getLogger("storeback.repo")

_SELECT_SALE = f"SELECT {', '.join(SALE_COLUMNS)} FROM sales"


def scan_sale(r: Sequence[Any]) -> Sale:
    return Sale(
        id=int(r[0]),
        client_id=(int(r[1]) if r[1] is not None else None),
        user_id=int(r[2]),
        sale_date=from_db_timestamp(r[3]),
        total_amount=float(r[4]),
        total_discount=float(r[5]),
        payment_type=str(r[6]),
        status=str(r[7]),
        notes=str(r[8] or ""),
        version=int(r[9]),
        created_at=from_db_timestamp(r[10]),
        updated_at=from_db_timestamp(r[11]),
    )


def insert_sale(cur: sqlite3.Cursor, sale: Sale, now: datetime) -> int:
    """Insert a sale row with version 1. Returns the new id; the entity is left untouched."""
    cur.execute(
        """
        INSERT INTO sales (
            client_id, user_id, sale_date, total_amount, total_discount,
            payment_type, status, notes, version, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
        """,
        (
            sale.client_id,
            int(sale.user_id),
            to_db_timestamp(sale.sale_date or now),
            float(sale.total_amount),
            float(sale.total_discount),
            sale.payment_type,
            sale.status,
            sale.notes or "",
            to_db_timestamp(now),
            to_db_timestamp(now),
        ),
    )
    return int(cur.lastrowid)


def apply_created(sale: Sale, sale_id: int, now: datetime) -> Sale:
    sale.id = sale_id
    sale.version = 1
    if sale.sale_date is None:
        sale.sale_date = now
    sale.created_at = now
    sale.updated_at = now
    return sale


class SqliteSaleRepository(SqliteRepository):
    def __init__(
        self,
        db_path: Path | str,
        timeout: float = 5.0,
        query_builder: Optional[SaleQueryBuilder] = None,
    ):
        super().__init__(db_path, timeout)
        self.query_builder = query_builder or SaleQueryBuilder(SALE_SORT_FIELDS)

    # ---------- Writes ----------
    def create(self, sale: Sale) -> Sale:
        now = utcnow()
        conn = self._conn()
        try:
            sale_id = insert_sale(conn.cursor(), sale, now)
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            if is_foreign_key_violation(exc):
                raise InvalidForeignKeyError(f"sale references a missing user or client: {exc}") from exc
            raise CreateError(f"create sale: {exc}") from exc
        finally:
            conn.close()
        return apply_created(sale, sale_id, now)

    def update(self, sale: Sale) -> Sale:
        """
        Conditional update on (id, version).

        Bumps version and updated_at in the same statement. Zero affected rows
        means either the sale is gone (NotFoundError) or someone else updated
        it first (VersionConflictError). Never retried here.
        """
        now = utcnow()
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE sales
                SET client_id = ?, user_id = ?, sale_date = ?, total_amount = ?,
                    total_discount = ?, payment_type = ?, status = ?, notes = ?,
                    version = version + 1, updated_at = ?
                WHERE id = ? AND version = ?
                """,
                (
                    sale.client_id,
                    int(sale.user_id),
                    to_db_timestamp(sale.sale_date or now),
                    float(sale.total_amount),
                    float(sale.total_discount),
                    sale.payment_type,
                    sale.status,
                    sale.notes or "",
                    to_db_timestamp(now),
                    int(sale.id),
                    int(sale.version),
                ),
            )
            if cur.rowcount == 0:
                cur.execute("SELECT 1 FROM sales WHERE id = ? LIMIT 1", (int(sale.id),))
                exists = cur.fetchone() is not None
                conn.rollback()
                if exists:
                    log.warning("sale_version_conflict sale_id=%s version=%s", sale.id, sale.version)
                    raise VersionConflictError(f"sale {sale.id} was modified by another writer (version {sale.version} is stale)")
                raise NotFoundError(f"sale {sale.id} not found")

            cur.execute("SELECT version, updated_at FROM sales WHERE id = ?", (int(sale.id),))
            version, updated_at = cur.fetchone()
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            if is_foreign_key_violation(exc):
                raise InvalidForeignKeyError(f"sale references a missing user or client: {exc}") from exc
            raise UpdateError(f"update sale {sale.id}: {exc}") from exc
        finally:
            conn.close()

        sale.version = int(version)
        sale.updated_at = from_db_timestamp(updated_at)
        return sale

    def delete(self, sale_id: int) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM sales WHERE id = ?", (int(sale_id),))
            removed = cur.rowcount
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise DeleteError(f"delete sale {sale_id}: {exc}") from exc
        finally:
            conn.close()
        if removed == 0:
            raise NotFoundError(f"sale {sale_id} not found")

    # ---------- Status helpers ----------
    def cancel(self, sale: Sale) -> Sale:
        return self._set_status(sale, SaleStatus.CANCELED)

    def complete(self, sale: Sale) -> Sale:
        return self._set_status(sale, SaleStatus.COMPLETED)

    def mark_returned(self, sale: Sale) -> Sale:
        return self._set_status(sale, SaleStatus.RETURNED)

    def activate(self, sale: Sale) -> Sale:
        return self._set_status(sale, SaleStatus.ACTIVE)

    def _set_status(self, sale: Sale, status: SaleStatus) -> Sale:
        previous = sale.status
        sale.status = status.value
        try:
            return self.update(sale)
        except Exception:
            sale.status = previous
            raise

    # ---------- Reads ----------
    def get_by_id(self, sale_id: int) -> Sale:
        sale = self._fetch_one(f"{_SELECT_SALE} WHERE id = ?", (int(sale_id),), scan_sale, "sale")
        if sale is None:
            raise NotFoundError(f"sale {sale_id} not found")
        return sale

    def get_version_by_id(self, sale_id: int) -> int:
        conn = self._conn()
        try:
            row = conn.execute("SELECT version FROM sales WHERE id = ?", (int(sale_id),)).fetchone()
        except sqlite3.Error as exc:
            raise GetVersionError(f"get version of sale {sale_id}: {exc}") from exc
        finally:
            conn.close()
        if row is None:
            raise NotFoundError(f"sale {sale_id} not found")
        return int(row[0])

    def list_by_client(self, client_id: int, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]:
        return self.filter(
            SaleFilter(client_id=int(client_id), limit=limit, offset=offset, sort_by=order_by, sort_order=order_dir)
        )

    def list_by_user(self, user_id: int, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]:
        return self.filter(
            SaleFilter(user_id=int(user_id), limit=limit, offset=offset, sort_by=order_by, sort_order=order_dir)
        )

    def list_by_status(self, status: str, limit: int, offset: int, order_by: str, order_dir: str) -> list[Sale]:
        return self.filter(
            SaleFilter(status=status, limit=limit, offset=offset, sort_by=order_by, sort_order=order_dir)
        )

    def list_by_date_range(
        self, start: datetime, end: datetime, limit: int, offset: int, order_by: str, order_dir: str
    ) -> list[Sale]:
        return self.filter(
            SaleFilter(
                sale_date_from=start,
                sale_date_to=end,
                limit=limit,
                offset=offset,
                sort_by=order_by,
                sort_order=order_dir,
            )
        )

    def filter(self, sale_filter: SaleFilter) -> list[Sale]:
        if sale_filter is None:
            raise InvalidFilterError("filter is required")
        sql, args = self.query_builder.build(sale_filter)
        return self._fetch_all(sql, args, scan_sale, "sales")
