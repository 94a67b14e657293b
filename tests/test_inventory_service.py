from __future__ import annotations

import unittest
from decimal import Decimal

from sqlalchemy import select

from sqlite_support import add_location, add_stock, make_session_factory
from waste_portal.models import InventoryRecord
from waste_portal.services.inventory_service import (
    Direction,
    adjust_inventory,
    apply_inventory_change,
    list_inventory,
    total_quantity_on_hand,
)
from waste_portal.services.stock_errors import ErrorKind, InsufficientStock, InvalidInput
from waste_portal.services.stock_store import StockStore


class InventoryServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, factory = make_session_factory()
        self.db = factory()
        self.store = StockStore(self.db)
        self.godown = add_location(self.db, 'Central Godown')

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _quantity(self, material: str = 'Plastic - PET') -> Decimal | None:
        record = self.store.get_inventory(self.godown.id, material)
        return record.quantity if record else None

    def test_increase_creates_missing_row(self) -> None:
        record = apply_inventory_change(
            self.store, godown_id=self.godown.id, material='Plastic - PET', quantity='12.5', direction=Direction.INCREASE
        )

        self.assertEqual(record.quantity, Decimal('12.5'))
        self.assertEqual(self._quantity(), Decimal('12.5'))

    def test_decrease_of_missing_row_is_insufficient_stock(self) -> None:
        with self.assertRaises(InsufficientStock) as ctx:
            apply_inventory_change(
                self.store, godown_id=self.godown.id, material='E-waste', quantity=1, direction=Direction.DECREASE
            )

        self.assertEqual(ctx.exception.message, 'Cannot subtract from non-existent inventory')
        self.assertIsNone(self._quantity('E-waste'))

    def test_decrease_below_zero_leaves_stock_untouched(self) -> None:
        add_stock(self.db, self.godown, 'Plastic - PET', 50)

        with self.assertRaises(InsufficientStock):
            apply_inventory_change(
                self.store, godown_id=self.godown.id, material='Plastic - PET', quantity=80, direction='decrease'
            )

        self.assertEqual(self._quantity(), Decimal('50'))

    def test_sequential_changes_never_go_negative(self) -> None:
        add_stock(self.db, self.godown, 'Plastic - PET', 50)

        apply_inventory_change(self.store, godown_id=self.godown.id, material='Plastic - PET', quantity=20, direction='increase')
        self.assertEqual(self._quantity(), Decimal('70'))

        apply_inventory_change(self.store, godown_id=self.godown.id, material='Plastic - PET', quantity=70, direction='decrease')
        self.assertEqual(self._quantity(), Decimal('0'))

        with self.assertRaises(InsufficientStock):
            apply_inventory_change(self.store, godown_id=self.godown.id, material='Plastic - PET', quantity=1, direction='decrease')
        self.assertEqual(self._quantity(), Decimal('0'))

    def test_read_after_write_matches_previous_plus_delta(self) -> None:
        add_stock(self.db, self.godown, 'Metal - Copper', '3.250')

        for quantity, direction, expected in [
            ('1.750', 'increase', Decimal('5')),
            ('0.5', 'decrease', Decimal('4.5')),
            ('4.5', 'decrease', Decimal('0')),
        ]:
            apply_inventory_change(
                self.store, godown_id=self.godown.id, material='Metal - Copper', quantity=quantity, direction=direction
            )
            self.assertEqual(self._quantity('Metal - Copper'), expected)

    def test_rejects_non_positive_quantity_and_unknown_direction(self) -> None:
        with self.assertRaises(InvalidInput):
            apply_inventory_change(self.store, godown_id=self.godown.id, material='Paper - White', quantity=0, direction='increase')
        with self.assertRaises(InvalidInput):
            apply_inventory_change(self.store, godown_id=self.godown.id, material='Paper - White', quantity=-3, direction='increase')
        with self.assertRaises(InvalidInput):
            apply_inventory_change(self.store, godown_id=self.godown.id, material='Paper - White', quantity=3, direction='sideways')

        rows = self.db.execute(select(InventoryRecord)).scalars().all()
        self.assertEqual(rows, [])

    def test_adjust_inventory_wraps_failures_in_result(self) -> None:
        result = adjust_inventory(self.store, self.godown.id, 'Glass - Clear', 5, 'decrease')

        self.assertFalse(result.success)
        self.assertEqual(result.error.kind, ErrorKind.INSUFFICIENT_STOCK)
        self.assertEqual(result.to_dict()['error']['kind'], 'INSUFFICIENT_STOCK')

    def test_listing_and_total(self) -> None:
        other = add_location(self.db, 'North Godown')
        add_stock(self.db, self.godown, 'Plastic - PET', 10)
        add_stock(self.db, other, 'Plastic - PET', '2.5')

        rows = list_inventory(self.db)
        self.assertEqual([row['godown_name'] for row in rows], ['Central Godown', 'North Godown'])
        self.assertEqual(len(list_inventory(self.db, godown_id=other.id)), 1)
        self.assertEqual(total_quantity_on_hand(self.db), Decimal('12.5'))

    def test_rejects_quantity_finer_than_stored_scale(self) -> None:
        add_stock(self.db, self.godown, 'Paper - White', 1)

        result = adjust_inventory(self.store, self.godown.id, 'Paper - White', '0.0004', 'increase')

        self.assertFalse(result.success)
        self.assertEqual(result.error.kind, ErrorKind.INVALID_INPUT)
        self.assertEqual(self._quantity('Paper - White'), Decimal('1'))

        self.assertTrue(adjust_inventory(self.store, self.godown.id, 'Paper - White', '0.2500', 'increase').success)
        self.assertTrue(adjust_inventory(self.store, self.godown.id, 'Paper - White', '1.25', 'decrease').success)
        self.assertEqual(self._quantity('Paper - White'), Decimal('0'))


if __name__ == '__main__':
    unittest.main()
