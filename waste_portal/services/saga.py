from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from waste_portal.services.stock_errors import CompensationFailed, StockOperationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SagaStep:
    name: str
    action: Callable[[], Any]
    compensation: Callable[[], Any] | None = None


def _compensate(label: str, completed: list[SagaStep], original: StockOperationError) -> None:
    failures: list[tuple[str, Exception]] = []
    for step in reversed(completed):
        if step.compensation is None:
            continue
        logger.warning('%s: undoing step %s', label, step.name)
        try:
            step.compensation()
        except StockOperationError as exc:
            logger.error('%s: undo of step %s failed: %s', label, step.name, exc.message)
            failures.append((step.name, exc))
    if failures:
        raise CompensationFailed(original, failures) from original


def run_saga(label: str, steps: list[SagaStep]) -> list[Any]:
    """Run ``steps`` in order and return their results.

    When a step raises, the compensations of the steps that already
    completed run in reverse order and the triggering error is re-raised.
    Every compensation is attempted even if an earlier one fails; any
    failure there turns the error into ``CompensationFailed``.
    """
    completed: list[SagaStep] = []
    results: list[Any] = []
    for step in steps:
        try:
            results.append(step.action())
        except StockOperationError as exc:
            logger.warning('%s: step %s failed: %s', label, step.name, exc.message)
            _compensate(label, completed, exc)
            raise
        completed.append(step)
    return results
