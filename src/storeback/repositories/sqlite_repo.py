from __future__ import annotations

import logging
import shutil
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TypeVar

from storeback.domain.errors import GetError, IterateError, ScanError

log = logging.getLogger("storeback.repo")

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_timestamp(dt: datetime) -> str:
    """Serialize to fixed-width ISO-8601 UTC so text comparison matches time order."""
    if dt.tzinfo is None or dt.utcoffset() is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_db_timestamp(value)
    return value


def is_foreign_key_violation(exc: BaseException) -> bool:
    if not isinstance(exc, sqlite3.IntegrityError):
        return False
    return getattr(exc, "sqlite_errorname", None) == "SQLITE_CONSTRAINT_FOREIGNKEY"


class SqliteRepository:
    """Connection factory and schema owner shared by the concrete repositories."""

    def __init__(self, db_path: Path | str, timeout: float = 5.0):
        self.db_path = str(db_path)
        self.timeout = float(timeout)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_reference_tables),
                (2, self._migration_v2_sales),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                    (version, to_db_timestamp(utcnow())),
                )
                log.info("migration_applied version=%s db=%s", version, self.db_path)
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_reference_tables(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT NOT NULL UNIQUE
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS clients (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL
            )
            """
        )

    def _migration_v2_sales(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sales (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                client_id INTEGER REFERENCES clients(id),
                user_id INTEGER NOT NULL REFERENCES users(id),
                sale_date TEXT NOT NULL,
                total_amount REAL NOT NULL CHECK(total_amount >= 0),
                total_discount REAL NOT NULL DEFAULT 0 CHECK(total_discount >= 0),
                payment_type TEXT NOT NULL,
                status TEXT NOT NULL CHECK(status IN ('active','completed','canceled','returned')),
                notes TEXT NOT NULL DEFAULT '',
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_client ON sales(client_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_user ON sales(user_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_status ON sales(status)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_sale_date ON sales(sale_date)")

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sale_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                sale_id INTEGER NOT NULL,
                product_id INTEGER NOT NULL,
                quantity INTEGER NOT NULL CHECK(quantity > 0),
                unit_price REAL NOT NULL CHECK(unit_price >= 0),
                discount REAL NOT NULL DEFAULT 0 CHECK(discount >= 0),
                tax REAL NOT NULL DEFAULT 0 CHECK(tax >= 0),
                subtotal REAL NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(sale_id) REFERENCES sales(id) ON DELETE CASCADE,
                FOREIGN KEY(product_id) REFERENCES products(id)
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sale_items_sale ON sale_items(sale_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sale_items_product ON sale_items(product_id)")

    # ---------- Read helpers ----------
    def _scan(self, row: Sequence[Any], scan: Callable[[Sequence[Any]], T], what: str) -> T:
        try:
            return scan(row)
        except (TypeError, ValueError, IndexError) as exc:
            raise ScanError(f"scan {what}: {exc}") from exc

    def _fetch_one(self, sql: str, args: Sequence[Any], scan: Callable[[Sequence[Any]], T], what: str) -> Optional[T]:
        conn = self._conn()
        try:
            try:
                row = conn.execute(sql, tuple(args)).fetchone()
            except sqlite3.Error as exc:
                raise GetError(f"get {what}: {exc}") from exc
        finally:
            conn.close()
        if row is None:
            return None
        return self._scan(row, scan, what)

    def _fetch_all(self, sql: str, args: Sequence[Any], scan: Callable[[Sequence[Any]], T], what: str) -> list[T]:
        conn = self._conn()
        try:
            try:
                cur = conn.execute(sql, tuple(args))
            except sqlite3.Error as exc:
                raise GetError(f"list {what}: {exc}") from exc
            out: list[T] = []
            while True:
                try:
                    row = cur.fetchone()
                except sqlite3.Error as exc:
                    raise IterateError(f"iterate {what}: {exc}") from exc
                if row is None:
                    break
                out.append(self._scan(row, scan, what))
            return out
        finally:
            conn.close()
