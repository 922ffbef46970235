from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


class AppError(Exception):
    """Base app error."""


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ZeroIDError(AppError):
    pass


class ValidationError(AppError):
    """Invalid data. Carries every violated field, not only the first one."""

    def __init__(self, message: str | None = None, errors: Iterable[FieldError] = ()):
        self.errors: list[FieldError] = list(errors)
        if message is None:
            message = "; ".join(str(e) for e in self.errors) or "invalid data"
        super().__init__(message)

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class InvalidTransitionError(ValidationError):
    pass


class InvalidFilterError(ValidationError):
    pass


class InvalidLimitError(InvalidFilterError):
    pass


class InvalidOffsetError(InvalidFilterError):
    pass


class InvalidOrderFieldError(InvalidFilterError):
    pass


class InvalidOrderDirectionError(InvalidFilterError):
    pass


class NotFoundError(AppError):
    pass


class VersionConflictError(AppError):
    pass


class InvalidForeignKeyError(AppError):
    pass


class StorageError(AppError):
    """Storage failure. The driver exception is kept as __cause__."""


class GetError(StorageError):
    pass


class GetVersionError(GetError):
    pass


class CreateError(StorageError):
    pass


class UpdateError(StorageError):
    pass


class DeleteError(StorageError):
    pass


class ScanError(StorageError):
    pass


class IterateError(StorageError):
    pass
