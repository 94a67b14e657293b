from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHENTICATED = 'UNAUTHENTICATED'
    INSUFFICIENT_STOCK = 'INSUFFICIENT_STOCK'
    STORE_ERROR = 'STORE_ERROR'
    COMPENSATION_FAILED = 'COMPENSATION_FAILED'
    INVALID_INPUT = 'INVALID_INPUT'


class StockOperationError(Exception):
    kind: ErrorKind = ErrorKind.STORE_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthenticated(StockOperationError):
    kind = ErrorKind.UNAUTHENTICATED


class InsufficientStock(StockOperationError):
    kind = ErrorKind.INSUFFICIENT_STOCK


class StoreError(StockOperationError):
    kind = ErrorKind.STORE_ERROR


class InvalidInput(StockOperationError):
    kind = ErrorKind.INVALID_INPUT


class CompensationFailed(StockOperationError):
    """A rollback step failed after ``original`` aborted the operation.

    Stock and ledger may now disagree and need manual reconciliation.
    """

    kind = ErrorKind.COMPENSATION_FAILED

    def __init__(self, original: StockOperationError, failures: list[tuple[str, Exception]]) -> None:
        steps = ', '.join(name for name, _ in failures)
        super().__init__(
            f'{original.message} (rollback failed at: {steps}; manual reconciliation required)'
        )
        self.original = original
        self.failures = failures
