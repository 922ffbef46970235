from .sales_service import SaleService
from .sale_item_service import SaleItemService
from .reporting_service import ReportingService

__all__ = [
    "SaleService",
    "SaleItemService",
    "ReportingService",
]
