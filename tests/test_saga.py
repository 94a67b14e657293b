from __future__ import annotations

import unittest

from waste_portal.services.saga import SagaStep, run_saga
from waste_portal.services.stock_errors import CompensationFailed, ErrorKind, InsufficientStock, StoreError


class SagaTests(unittest.TestCase):
    def test_returns_results_in_order(self) -> None:
        results = run_saga('ok', [SagaStep('a', lambda: 1), SagaStep('b', lambda: 2)])

        self.assertEqual(results, [1, 2])

    def test_compensates_completed_steps_in_reverse(self) -> None:
        trail = []

        def boom():
            raise InsufficientStock('not enough')

        steps = [
            SagaStep('first', lambda: trail.append('do first'), lambda: trail.append('undo first')),
            SagaStep('second', lambda: trail.append('do second'), lambda: trail.append('undo second')),
            SagaStep('third', boom, lambda: trail.append('undo third')),
        ]

        with self.assertRaises(InsufficientStock):
            run_saga('reverse', steps)

        self.assertEqual(trail, ['do first', 'do second', 'undo second', 'undo first'])

    def test_every_undo_is_attempted_when_one_fails(self) -> None:
        trail = []

        def broken_undo():
            raise StoreError('undo failed')

        def boom():
            raise StoreError('write failed')

        steps = [
            SagaStep('first', lambda: None, lambda: trail.append('undo first')),
            SagaStep('second', lambda: None, broken_undo),
            SagaStep('third', boom),
        ]

        with self.assertRaises(CompensationFailed) as ctx:
            run_saga('partial', steps)

        self.assertEqual(trail, ['undo first'])
        self.assertEqual(ctx.exception.kind, ErrorKind.COMPENSATION_FAILED)
        self.assertEqual(ctx.exception.original.message, 'write failed')
        self.assertEqual([name for name, _ in ctx.exception.failures], ['second'])
        self.assertIn('manual reconciliation', ctx.exception.message)


if __name__ == '__main__':
    unittest.main()
