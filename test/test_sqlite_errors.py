import sqlite3
from pathlib import Path

import pytest

from conftest import seed_user
from storeback.repositories.sqlite_repo import SqliteRepository, is_foreign_key_violation


def _raised(repo, sql: str, args: tuple) -> sqlite3.Error:
    conn = repo._conn()
    try:
        with pytest.raises(sqlite3.IntegrityError) as exc:
            conn.execute(sql, args)
    finally:
        conn.close()
    return exc.value


def test_foreign_key_violation_is_classified_by_error_code(tmp_path: Path):
    repo = SqliteRepository(tmp_path / "fk.db")
    repo.init_db()
    seed_user(repo, "dup")

    fk = _raised(repo, "INSERT INTO sale_items (sale_id, product_id, quantity, unit_price, subtotal, created_at, updated_at) VALUES (999, 999, 1, 1, 1, 'x', 'x')", ())
    unique = _raised(repo, "INSERT INTO users (username) VALUES (?)", ("dup",))

    assert is_foreign_key_violation(fk)
    assert not is_foreign_key_violation(unique)


def test_message_text_alone_is_not_a_foreign_key_violation():
    assert not is_foreign_key_violation(sqlite3.IntegrityError("FOREIGN KEY constraint failed"))
    assert not is_foreign_key_violation(ValueError("FOREIGN KEY constraint failed"))
