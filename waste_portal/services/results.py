from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from waste_portal.services.stock_errors import ErrorKind, StockOperationError


@dataclass(frozen=True)
class OperationError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class OperationResult:
    success: bool
    data: Any = None
    error: OperationError | None = None

    @classmethod
    def ok(cls, data: Any = None) -> OperationResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, exc: StockOperationError) -> OperationResult:
        return cls(success=False, error=OperationError(kind=exc.kind, message=exc.message))

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'data': self.data,
            'error': {'kind': self.error.kind.value, 'message': self.error.message} if self.error else None,
        }
