from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from typing import Callable, Iterable, Optional, Protocol

from storeback.domain.errors import CreateError, InvalidForeignKeyError
from storeback.domain.models import Sale, SaleItem
from storeback.repositories.sale_item_repository import insert_sale_item
from storeback.repositories.sale_repository import apply_created, insert_sale
from storeback.repositories.sqlite_repo import SqliteRepository, is_foreign_key_violation, utcnow

log = logging.getLogger("storeback.repo")


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def create_sale(self, sale: Sale, items: Iterable[SaleItem]) -> Sale: ...


class SqliteUnitOfWork:
    """
    One SQLite transaction for a multi-row write.

    Rows are written inside the `with` block and committed when it exits
    cleanly. Any exception rolls back everything written so far. Ids and
    timestamps are copied onto the entities only after the commit, so a
    rolled-back sale is never left looking persisted.
    """

    def __init__(self, repo: SqliteRepository):
        self.repo = repo
        self._conn: Optional[sqlite3.Connection] = None
        self._pending: list[Callable[[], None]] = []

    def __enter__(self) -> "SqliteUnitOfWork":
        self._conn = self.repo._conn()
        self._conn.execute("BEGIN")
        self._pending = []
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        conn = self._conn
        self._conn = None
        if conn is None:
            return None
        try:
            if exc_type is None:
                try:
                    conn.commit()
                except sqlite3.Error as commit_exc:
                    conn.rollback()
                    log.warning("unit_of_work_commit_failed error=%s", commit_exc)
                    if is_foreign_key_violation(commit_exc):
                        raise InvalidForeignKeyError(f"commit: {commit_exc}") from commit_exc
                    raise CreateError(f"commit: {commit_exc}") from commit_exc
                for apply in self._pending:
                    apply()
            else:
                conn.rollback()
                log.info("unit_of_work_rolled_back error=%s", exc_type.__name__)
        finally:
            self._pending = []
            conn.close()
        return None

    def _cursor(self) -> sqlite3.Cursor:
        if self._conn is None:
            raise RuntimeError("unit of work used outside of a with block")
        return self._conn.cursor()

    def create_sale(self, sale: Sale, items: Iterable[SaleItem]) -> Sale:
        now = utcnow()
        cur = self._cursor()
        try:
            sale_id = insert_sale(cur, sale, now)
            written: list[tuple[SaleItem, int]] = []
            for item in items:
                written.append((item, insert_sale_item(cur, replace(item, sale_id=sale_id), now)))
        except sqlite3.Error as exc:
            if is_foreign_key_violation(exc):
                raise InvalidForeignKeyError(f"sale or item references a missing row: {exc}") from exc
            raise CreateError(f"create sale with items: {exc}") from exc

        def _apply() -> None:
            apply_created(sale, sale_id, now)
            for it, item_id in written:
                it.id = item_id
                it.sale_id = sale_id
                it.created_at = now
                it.updated_at = now

        self._pending.append(_apply)
        return sale
