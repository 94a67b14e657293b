from __future__ import annotations

import unittest
from decimal import Decimal

from sqlite_support import add_principal, make_session_factory
from waste_portal.services.rate_service import add_rate, current_rate, deactivate_rate, list_rates


class RateServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, factory = make_session_factory()
        self.db = factory()
        self.admin = add_principal(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def test_new_rate_closes_active_rate_for_same_material(self) -> None:
        first, closed = add_rate(self.db, created_by=self.admin.id, rate_type='material_purchase', rate='12', material_type='Plastic - PET')
        self.assertEqual(closed, 0)
        other, _ = add_rate(self.db, created_by=self.admin.id, rate_type='material_purchase', rate='30', material_type='Metal - Copper')

        second, closed = add_rate(self.db, created_by=self.admin.id, rate_type='material_purchase', rate='14', material_type='Plastic - PET')

        self.assertEqual(closed, 1)
        self.assertIsNotNone(first.effective_to)
        self.assertIsNone(other.effective_to)
        self.assertEqual(current_rate(self.db, rate_type='material_purchase', material_type='Plastic - PET').id, second.id)
        self.assertEqual({row['id'] for row in list_rates(self.db)}, {other.id, second.id})
        self.assertEqual(len(list_rates(self.db, active_only=False)), 3)

    def test_current_rate_falls_back_to_general_rate(self) -> None:
        general, _ = add_rate(self.db, created_by=self.admin.id, rate_type='labor_loading', rate='500')

        found = current_rate(self.db, rate_type='labor_loading', material_type='Glass - Clear')

        self.assertEqual(found.id, general.id)
        self.assertEqual(found.rate, Decimal('500'))

    def test_rejects_bad_input(self) -> None:
        with self.assertRaises(ValueError):
            add_rate(self.db, created_by=self.admin.id, rate_type='bribes', rate='1')
        with self.assertRaises(ValueError):
            add_rate(self.db, created_by=self.admin.id, rate_type='commission', rate='0')
        with self.assertRaises(ValueError):
            add_rate(self.db, created_by=self.admin.id, rate_type='commission', rate='abc')

    def test_deactivate_rate(self) -> None:
        rate, _ = add_rate(self.db, created_by=self.admin.id, rate_type='commission', rate='2.5')

        deactivate_rate(self.db, rate_id=rate.id)

        self.assertEqual(list_rates(self.db), [])
        with self.assertRaises(ValueError):
            deactivate_rate(self.db, rate_id=rate.id)


if __name__ == '__main__':
    unittest.main()
