import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def _insert(repo, sql: str, args: tuple) -> int:
    conn = repo._conn()
    cur = conn.cursor()
    cur.execute(sql, args)
    conn.commit()
    new_id = int(cur.lastrowid)
    conn.close()
    return new_id


def seed_user(repo, username: str = "cashier") -> int:
    return _insert(repo, "INSERT INTO users (username) VALUES (?)", (username,))


def seed_client(repo, name: str = "Acme") -> int:
    return _insert(repo, "INSERT INTO clients (name) VALUES (?)", (name,))


def seed_product(repo, name: str = "Widget") -> int:
    return _insert(repo, "INSERT INTO products (name) VALUES (?)", (name,))


def stored_version(repo, sale_id: int) -> int:
    conn = repo._conn()
    row = conn.execute("SELECT version FROM sales WHERE id = ?", (sale_id,)).fetchone()
    conn.close()
    return int(row[0])
