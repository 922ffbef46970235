from pathlib import Path

import pytest
from openpyxl import load_workbook

from conftest import seed_product, seed_user
from storeback.application.container import build_container
from storeback.domain.errors import InvalidFilterError
from storeback.domain.filters import SaleFilter
from storeback.domain.models import Sale, SaleItem


def _setup(tmp_path: Path):
    c = build_container(tmp_path / "report.db")
    user_id = seed_user(c.sale_repo)
    product_id = seed_product(c.sale_repo)

    first = c.sales.create_with_items(
        Sale(user_id=user_id, total_amount=25.0, total_discount=5.0, payment_type="cash"),
        [SaleItem(sale_id=0, product_id=product_id, quantity=2, unit_price=12.5, subtotal=25.0)],
    )
    second = c.sales.create(Sale(user_id=user_id, total_amount=40.0, payment_type="card"))
    c.sales.complete(second.id)
    return c, first, second


def test_status_totals(tmp_path: Path):
    c, _, _ = _setup(tmp_path)

    totals = c.reporting.status_totals(SaleFilter())

    assert totals["active"] == (1, 25.0, 5.0)
    assert totals["completed"] == (1, 40.0, 0.0)
    assert totals["canceled"] == (0, 0.0, 0.0)


def test_export_writes_summary_sales_and_items(tmp_path: Path):
    c, first, second = _setup(tmp_path)
    out = tmp_path / "report.xlsx"

    c.reporting.export_sales_report_excel(str(out), SaleFilter(sort_by="id"))

    wb = load_workbook(out)
    assert wb.sheetnames == ["Summary", "Sales", "Items"]

    summary = wb["Summary"]
    assert summary["B3"].value == 2
    assert summary["B4"].value == 65.0

    sales_ws = wb["Sales"]
    assert [row[0] for row in sales_ws.iter_rows(min_row=2, values_only=True)] == [first.id, second.id]

    items_ws = wb["Items"]
    rows = list(items_ws.iter_rows(min_row=2, values_only=True))
    assert len(rows) == 1
    assert rows[0][0] == first.id
    assert rows[0][7] == 25.0


def test_export_refuses_invalid_filter(tmp_path: Path):
    c, _, _ = _setup(tmp_path)
    out = tmp_path / "bad.xlsx"

    with pytest.raises(InvalidFilterError):
        c.reporting.export_sales_report_excel(str(out), SaleFilter(status="Active"))
    assert not out.exists()


def _bulk_sales(c, count: int, amount: float = 2.0) -> None:
    user_id = seed_user(c.sale_repo, "bulk")
    for _ in range(count):
        c.sale_repo.create(Sale(user_id=user_id, total_amount=amount, payment_type="pix"))


def test_status_totals_count_every_matching_sale(tmp_path: Path):
    c = build_container(tmp_path / "many.db")
    _bulk_sales(c, 15)

    totals = c.reporting.status_totals(SaleFilter())

    assert totals["active"] == (15, 30.0, 0.0)


def test_export_covers_more_sales_than_one_page(tmp_path: Path):
    c = build_container(tmp_path / "many.db")
    _bulk_sales(c, 120)
    out = tmp_path / "many.xlsx"

    c.reporting.export_sales_report_excel(str(out), SaleFilter(limit=5, offset=50))

    wb = load_workbook(out)
    assert wb["Summary"]["B3"].value == 120
    assert wb["Summary"]["B4"].value == 240.0
    sale_ids = [row[0] for row in wb["Sales"].iter_rows(min_row=2, values_only=True)]
    assert len(sale_ids) == len(set(sale_ids)) == 120
