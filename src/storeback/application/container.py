from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from storeback.config import get_db_timeout
from storeback.logging_config import setup_logging
from storeback.repositories.sale_item_repository import SqliteSaleItemRepository
from storeback.repositories.sale_repository import SqliteSaleRepository
from storeback.services.reporting_service import ReportingService
from storeback.services.sale_item_service import SaleItemService
from storeback.services.sales_service import SaleService


@dataclass(frozen=True)
class AppContainer:
    sale_repo: SqliteSaleRepository
    item_repo: SqliteSaleItemRepository
    sales: SaleService
    items: SaleItemService
    reporting: ReportingService


def build_container(
    db_path: Path | str,
    logs_dir: Optional[Path | str] = None,
    timeout: Optional[float] = None,
) -> AppContainer:
    if logs_dir is not None:
        setup_logging(Path(logs_dir))
    timeout = get_db_timeout() if timeout is None else float(timeout)

    sale_repo = SqliteSaleRepository(db_path, timeout)
    sale_repo.init_db()
    item_repo = SqliteSaleItemRepository(db_path, timeout)

    sales = SaleService(sale_repo)
    items = SaleItemService(item_repo)
    reporting = ReportingService(sales, items)

    return AppContainer(
        sale_repo=sale_repo,
        item_repo=item_repo,
        sales=sales,
        items=items,
        reporting=reporting,
    )
