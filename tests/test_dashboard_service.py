from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlite_support import add_location, add_principal, add_stock, make_session_factory
from waste_portal.models import Collection, Expense, PaymentStatus, Sale
from waste_portal.services.dashboard_service import get_dashboard_stats


class DashboardServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, factory = make_session_factory()
        self.db = factory()
        self.user = add_principal(self.db)
        self.godown = add_location(self.db, 'Central Godown')
        self.today = date(2024, 3, 15)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _at(self, day: date, hour: int = 10) -> datetime:
        return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)

    def _collection(self, day: date, material: str, amount: str) -> None:
        self.db.add(
            Collection(
                location_id=self.godown.id,
                collected_by=self.user.id,
                material=material,
                quantity=Decimal('5'),
                unit='kg',
                amount_paid=Decimal(amount),
                collection_date=self._at(day),
            )
        )

    def test_aggregates(self) -> None:
        self._collection(self.today, 'Plastic - PET', '100')
        self._collection(self.today, 'Plastic - PET', '50')
        self._collection(self.today - timedelta(days=2), 'E-waste', '30')
        self._collection(self.today - timedelta(days=20), 'E-waste', '999')
        for idx in range(7):
            self.db.add(
                Sale(
                    godown_id=self.godown.id,
                    buyer_name=f'Buyer {idx}',
                    material='Plastic - PET',
                    quantity=Decimal('1'),
                    unit='kg',
                    sale_amount=Decimal('10'),
                    payment_status=PaymentStatus.PAID,
                    sale_date=self._at(self.today, hour=idx),
                )
            )
        self.db.add(
            Expense(
                category='Rent',
                amount=Decimal('75.50'),
                paid_by=self.user.id,
                paid_to='Landlord',
                expense_date=self._at(self.today),
            )
        )
        self.db.commit()
        add_stock(self.db, self.godown, 'Plastic - PET', '42.5')

        stats = get_dashboard_stats(self.db, today=self.today)

        self.assertEqual(stats['total_collections'], 4)
        self.assertEqual(stats['today_collections'], 2)
        self.assertEqual(stats['total_sales'], Decimal('70'))
        self.assertEqual(stats['total_expenses'], Decimal('75.5'))
        self.assertEqual(stats['inventory_quantity'], Decimal('42.5'))
        self.assertEqual(len(stats['recent_sales']), 5)
        self.assertEqual(stats['recent_sales'][0]['buyer_name'], 'Buyer 6')

        trend = stats['collection_trend']
        self.assertEqual(len(trend), 7)
        self.assertEqual(trend[-1], {'date': '15/03', 'amount': Decimal('150')})
        self.assertEqual(trend[-3], {'date': '13/03', 'amount': Decimal('30')})
        self.assertEqual(trend[0]['date'], '09/03')
        self.assertEqual(
            stats['material_distribution'],
            [{'material': 'Plastic - PET', 'collections': 2}, {'material': 'E-waste', 'collections': 1}],
        )

    def test_empty_database(self) -> None:
        stats = get_dashboard_stats(self.db, today=self.today)

        self.assertEqual(stats['total_collections'], 0)
        self.assertEqual(stats['total_sales'], Decimal('0'))
        self.assertEqual(stats['recent_sales'], [])
        self.assertTrue(all(point['amount'] == Decimal('0') for point in stats['collection_trend']))


if __name__ == '__main__':
    unittest.main()
