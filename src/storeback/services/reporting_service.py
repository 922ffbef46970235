from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Iterator, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from storeback.domain.filters import MAX_LIMIT, SaleFilter
from storeback.domain.models import Sale
from storeback.domain.status import SaleStatus

ITEMS_PAGE_SIZE = 100


class ReportingService:
    def __init__(self, sales, items):
        self.sales = sales
        self.items = items

    def status_totals(self, sale_filter: SaleFilter) -> dict[str, tuple[int, float, float]]:
        """Per status: (count, total_amount, total_discount) over every sale matching the filter."""
        return _totals_by_status(self._all_sales(sale_filter))

    def export_sales_report_excel(self, path: str, sale_filter: Optional[SaleFilter] = None) -> None:
        """
        Write Summary, Sales and Items sheets for every sale matching the filter.

        The filter's limit and offset are ignored; reports always cover the
        whole result set.
        """
        sale_filter = sale_filter or SaleFilter()
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, end_row: int, end_col: int):
            ref = f"A1:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        # validated by the sale service before any query runs
        sales_rows = list(self._all_sales(sale_filter))

        by_status = _totals_by_status(sales_rows)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Sales summary"
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Sales count"
        ws["B3"] = len(sales_rows)
        ws["A4"] = "Total amount"
        ws["B4"] = sum(float(s.total_amount) for s in sales_rows)
        money(ws["B4"])
        ws["A5"] = "Total discount"
        ws["B5"] = sum(float(s.total_discount) for s in sales_rows)
        money(ws["B5"])

        ws["A7"] = "Status"
        ws["B7"] = "Count"
        ws["C7"] = "Amount"
        ws["D7"] = "Discount"
        bold_row(ws, 7)
        r = 8
        for status in SaleStatus:
            count, amount, discount = by_status[status.value]
            ws[f"A{r}"] = status.value
            ws[f"B{r}"] = int(count)
            ws[f"C{r}"] = float(amount)
            ws[f"D{r}"] = float(discount)
            money(ws[f"C{r}"])
            money(ws[f"D{r}"])
            r += 1
        set_widths(ws, {"A": 18, "B": 12, "C": 16, "D": 16})

        # -------- 2) Sales --------
        ws2 = wb.create_sheet("Sales")
        ws2.append([
            "Sale ID", "Sale date", "Client ID", "User ID", "Payment",
            "Status", "Total", "Discount", "Version", "Notes",
        ])
        bold_row(ws2, 1)
        for s in sales_rows:
            ws2.append([
                int(s.id),
                s.sale_date.isoformat() if s.sale_date else "",
                s.client_id if s.client_id is not None else "",
                int(s.user_id),
                s.payment_type,
                s.status,
                float(s.total_amount),
                float(s.total_discount),
                int(s.version),
                s.notes or "",
            ])
            money(ws2[f"G{ws2.max_row}"])
            money(ws2[f"H{ws2.max_row}"])
        ws2.freeze_panes = "A2"
        set_widths(ws2, {
            "A": 10, "B": 32, "C": 10, "D": 10, "E": 10,
            "F": 12, "G": 14, "H": 14, "I": 9, "J": 32,
        })
        if ws2.max_row >= 2:
            add_table(ws2, "SalesTable", ws2.max_row, 10)

        # -------- 3) Items --------
        ws3 = wb.create_sheet("Items")
        ws3.append([
            "Sale ID", "Item ID", "Product ID", "Qty",
            "Unit Price", "Discount", "Tax", "Subtotal", "Description",
        ])
        bold_row(ws3, 1)
        for s in sales_rows:
            for it in self._all_items(int(s.id)):
                ws3.append([
                    int(s.id), int(it.id), int(it.product_id), int(it.quantity),
                    float(it.unit_price), float(it.discount), float(it.tax), float(it.subtotal),
                    it.description or "",
                ])
                for col in "EFGH":
                    money(ws3[f"{col}{ws3.max_row}"])
        ws3.freeze_panes = "A2"
        set_widths(ws3, {
            "A": 10, "B": 10, "C": 11, "D": 6,
            "E": 14, "F": 12, "G": 10, "H": 14, "I": 34,
        })
        if ws3.max_row >= 2:
            add_table(ws3, "ItemsTable", ws3.max_row, 9)

        wb.save(path)

    def _all_sales(self, sale_filter: SaleFilter) -> Iterator[Sale]:
        offset = 0
        while True:
            page = self.sales.filter(replace(sale_filter, limit=MAX_LIMIT, offset=offset))
            yield from page
            if len(page) < MAX_LIMIT:
                return
            offset += MAX_LIMIT

    def _all_items(self, sale_id: int):
        offset = 0
        while True:
            page = self.items.list_by_sale(sale_id, ITEMS_PAGE_SIZE, offset)
            yield from page
            if len(page) < ITEMS_PAGE_SIZE:
                return
            offset += ITEMS_PAGE_SIZE


def _totals_by_status(sales: Iterable[Sale]) -> dict[str, tuple[int, float, float]]:
    out: dict[str, list] = {s.value: [0, 0.0, 0.0] for s in SaleStatus}
    for s in sales:
        row = out.setdefault(s.status, [0, 0.0, 0.0])
        row[0] += 1
        row[1] += float(s.total_amount)
        row[2] += float(s.total_discount)
    return {k: (int(v[0]), float(v[1]), float(v[2])) for k, v in out.items()}
