"""
Parameterized SELECT builder.

Values always travel as positional arguments. The only text spliced into the
SQL is the table, the column list, the condition expressions and the ORDER BY
term, and all of them come from code, never from request input. Sort fields
are resolved through the allow-map given to the builder at construction.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence

from storeback.domain.filters import SaleFilter
from storeback.repositories.sqlite_repo import to_db_value as _to_db_value

SALE_COLUMNS: tuple[str, ...] = (
    "id",
    "client_id",
    "user_id",
    "sale_date",
    "total_amount",
    "total_discount",
    "payment_type",
    "status",
    "notes",
    "version",
    "created_at",
    "updated_at",
)

SALE_SORT_FIELDS: Mapping[str, str] = MappingProxyType(
    {
        "id": "id",
        "client_id": "client_id",
        "user_id": "user_id",
        "sale_date": "sale_date",
        "total_amount": "total_amount",
        "total_discount": "total_discount",
        "payment_type": "payment_type",
        "status": "status",
        "version": "version",
        "created_at": "created_at",
        "updated_at": "updated_at",
    }
)


class SQLQueryBuilder:
    def __init__(self, table: str, columns: Sequence[str]):
        self.table = table
        self.columns = tuple(columns)
        self.conditions: list[str] = []
        self.args: list[Any] = []

    def add_condition(self, expr: str, value: Any) -> None:
        """expr is "<column> <operator>", e.g. "total_amount >="."""
        self.conditions.append(f"{expr} ?")
        self.args.append(value)

    def add_like_condition(self, column: str, text: str) -> None:
        if not text:
            return
        self.conditions.append(f"{column} LIKE ?")
        self.args.append(f"%{text}%")

    def build(self, order_by: str, limit: int, offset: int) -> tuple[str, list[Any]]:
        sql = f"SELECT {', '.join(self.columns)} FROM {self.table} WHERE 1=1"
        for cond in self.conditions:
            sql += f" AND {cond}"
        sql += f" ORDER BY {order_by} LIMIT ? OFFSET ?"
        return sql, [*self.args, int(limit), int(offset)]


# (filter attribute, condition expression)
_SALE_PREDICATES: tuple[tuple[str, str], ...] = (
    ("client_id", "client_id ="),
    ("user_id", "user_id ="),
    ("payment_type", "payment_type ="),
    ("status", "status ="),
    ("min_total_amount", "total_amount >="),
    ("max_total_amount", "total_amount <="),
    ("min_total_discount", "total_discount >="),
    ("max_total_discount", "total_discount <="),
    ("sale_date_from", "sale_date >="),
    ("sale_date_to", "sale_date <="),
    ("created_from", "created_at >="),
    ("created_to", "created_at <="),
    ("updated_from", "updated_at >="),
    ("updated_to", "updated_at <="),
)


class SaleQueryBuilder:
    def __init__(
        self,
        sort_fields: Mapping[str, str] = SALE_SORT_FIELDS,
        *,
        default_sort_field: str = "created_at",
        tiebreak_field: str = "id",
        table: str = "sales",
        columns: Sequence[str] = SALE_COLUMNS,
        to_db_value: Optional[Callable[[Any], Any]] = None,
    ):
        if default_sort_field not in sort_fields.values():
            raise ValueError(f"default sort field {default_sort_field!r} is not in the allow-map")
        self.sort_fields = MappingProxyType(dict(sort_fields))
        self.default_sort_field = default_sort_field
        self.tiebreak_field = tiebreak_field
        self.table = table
        self.columns = tuple(columns)
        self.to_db_value = to_db_value or _to_db_value

    def sort_clause(self, sort_by: str, sort_order: str) -> str:
        field = self.sort_fields.get((sort_by or "").strip().lower(), self.default_sort_field)
        direction = "DESC" if (sort_order or "").strip().lower() == "desc" else "ASC"
        if field == self.tiebreak_field:
            return f"{field} {direction}"
        # unique tiebreak keeps LIMIT/OFFSET pages from overlapping
        return f"{field} {direction}, {self.tiebreak_field} ASC"

    def build(self, sale_filter: SaleFilter) -> tuple[str, list[Any]]:
        f = sale_filter.with_defaults()
        qb = SQLQueryBuilder(self.table, self.columns)
        for attr, expr in _SALE_PREDICATES:
            value = getattr(f, attr)
            if value is None or value == "":
                continue
            qb.add_condition(expr, self.to_db_value(value))
        qb.add_like_condition("notes", f.notes)
        return qb.build(self.sort_clause(f.sort_by, f.sort_order), f.limit, f.offset)

