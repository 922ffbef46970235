from .models import Sale, SaleItem
from .status import SaleAction, SaleStatus
from .filters import BaseFilter, SaleFilter
from .errors import (
    AppError,
    FieldError,
    InvalidFilterError,
    InvalidForeignKeyError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
    VersionConflictError,
    ZeroIDError,
)

__all__ = [
    "Sale",
    "SaleItem",
    "SaleAction",
    "SaleStatus",
    "BaseFilter",
    "SaleFilter",
    "AppError",
    "FieldError",
    "InvalidFilterError",
    "InvalidForeignKeyError",
    "InvalidTransitionError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    "VersionConflictError",
    "ZeroIDError",
]
