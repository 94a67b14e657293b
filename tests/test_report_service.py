from __future__ import annotations

import csv
import unittest
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

from sqlite_support import add_location, add_principal, make_session_factory
from waste_portal.models import Collection, LocationType, StockTransfer
from waste_portal.services.expense_service import list_expenses, record_expense
from waste_portal.services.location_service import create_location, list_locations
from waste_portal.services.report_service import build_report, date_range, render_csv


class ReportServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, factory = make_session_factory()
        self.db = factory()
        self.user = add_principal(self.db)
        self.godown = add_location(self.db, 'Central Godown')
        self.annex = add_location(self.db, 'Annex Godown')

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def test_date_range_is_inclusive_of_end_day(self) -> None:
        start, end = date_range(date(2024, 5, 1), date(2024, 5, 3))

        self.assertEqual(start, datetime(2024, 5, 1, tzinfo=timezone.utc))
        self.assertEqual(end, datetime(2024, 5, 4, tzinfo=timezone.utc))
        with self.assertRaises(ValueError):
            date_range(date(2024, 5, 3), date(2024, 5, 1))

    def test_collections_report_filters_by_date(self) -> None:
        for day in (1, 2, 9):
            self.db.add(
                Collection(
                    location_id=self.godown.id,
                    collected_by=self.user.id,
                    material='Paper - Mixed',
                    quantity=Decimal('3'),
                    unit='kg',
                    amount_paid=Decimal('45'),
                    collection_date=datetime(2024, 5, day, 9, tzinfo=timezone.utc),
                )
            )
        self.db.commit()

        header, rows = build_report(self.db, kind='collections', start=date(2024, 5, 1), end=date(2024, 5, 2))

        self.assertEqual(header[0], 'Date')
        self.assertEqual([row[0] for row in rows], ['2024-05-01 09:00', '2024-05-02 09:00'])
        self.assertEqual(rows[0][1:3], ['Central Godown', 'Ernakulam'])

    def test_transfers_report_oldest_first(self) -> None:
        for day in (3, 1):
            self.db.add(
                StockTransfer(
                    from_godown_id=self.godown.id,
                    to_godown_id=self.annex.id,
                    material='Glass - Brown',
                    quantity=Decimal(str(day)),
                    transferred_by=self.user.id,
                    transfer_date=datetime(2024, 5, day, tzinfo=timezone.utc),
                )
            )
        self.db.commit()

        header, rows = build_report(self.db, kind='transfers')
        parsed = list(csv.reader(StringIO(render_csv(header, rows))))

        self.assertEqual(parsed[0], ['Date', 'From', 'To', 'Material', 'Quantity', 'Notes'])
        self.assertEqual([row[0][:10] for row in parsed[1:]], ['2024-05-01', '2024-05-03'])
        self.assertEqual(parsed[1][1:3], ['Central Godown', 'Annex Godown'])

    def test_expenses_validate_and_report(self) -> None:
        with self.assertRaises(ValueError):
            record_expense(self.db, paid_by=self.user.id, category='Lottery', amount='10', paid_to='Someone')
        with self.assertRaises(ValueError):
            record_expense(self.db, paid_by=self.user.id, category='Rent', amount='0', paid_to='Landlord')

        record_expense(self.db, paid_by=self.user.id, category='Rent', amount='1500', paid_to=' Landlord ', location_id=self.godown.id)
        self.db.commit()

        expenses = list_expenses(self.db)
        self.assertEqual(expenses[0]['paid_to'], 'Landlord')
        self.assertEqual(expenses[0]['location']['name'], 'Central Godown')
        _, rows = build_report(self.db, kind='expenses')
        self.assertEqual(rows[0][1:4], ['Rent', Decimal('1500'), 'Landlord'])

    def test_unknown_report(self) -> None:
        with self.assertRaises(ValueError):
            build_report(self.db, kind='payroll')


class LocationServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, factory = make_session_factory()
        self.db = factory()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def test_create_and_filter_locations(self) -> None:
        create_location(self.db, name=' Kakkanad Point ', address='Kakkanad', district='Ernakulam', location_type='collection_point')
        create_location(self.db, name='Kakkanad Point', address='Kakkanad', district='Ernakulam', location_type='godown')
        self.db.commit()

        self.assertEqual(len(list_locations(self.db)), 2)
        points = list_locations(self.db, location_type='collection_point')
        self.assertEqual([row['name'] for row in points], ['Kakkanad Point'])

    def test_rejects_duplicates_and_unknown_values(self) -> None:
        create_location(self.db, name='Aluva', address='Aluva', district='Ernakulam', location_type=LocationType.GODOWN)

        with self.assertRaises(ValueError):
            create_location(self.db, name='Aluva', address='Aluva', district='Ernakulam', location_type='godown')
        with self.assertRaises(ValueError):
            create_location(self.db, name='Mysuru', address='x', district='Mysuru', location_type='godown')
        with self.assertRaises(ValueError):
            create_location(self.db, name='Other', address='x', district='Thrissur', location_type='warehouse')


if __name__ == '__main__':
    unittest.main()
