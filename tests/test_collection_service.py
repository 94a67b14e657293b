from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy import func, select

from sqlite_support import actor_for, add_location, add_principal, make_session_factory
from waste_portal.models import Collection, LocationType
from waste_portal.services.collection_service import list_daily_collections, record_collection
from waste_portal.services.stock_errors import ErrorKind, StoreError
from waste_portal.services.stock_store import StockStore

MATERIAL = 'Plastic - HDPE'


class CollectionServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine, factory = make_session_factory()
        self.db = factory()
        self.store = StockStore(self.db)
        self.actor = actor_for(add_principal(self.db, username='manager@example.com'))

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _collect(self, location_id: int, quantity='12', actor='default'):
        return record_collection(
            self.store,
            self.actor if actor == 'default' else actor,
            location_id=location_id,
            material=MATERIAL,
            quantity=quantity,
            unit='kg',
            amount_paid='240',
            commission_agent='Ravi',
            commission_amount='10',
        )

    def _collection_count(self) -> int:
        return self.db.execute(select(func.count(Collection.id))).scalar_one()

    def test_godown_collection_credits_that_godown(self) -> None:
        first = add_location(self.db, 'Central Godown')
        second = add_location(self.db, 'North Godown')

        result = self._collect(second.id)

        self.assertTrue(result.success)
        self.assertTrue(result.data['inventory_updated'])
        self.assertEqual(result.data['credited_godown_id'], second.id)
        self.assertIsNone(self.store.get_inventory(first.id, MATERIAL))
        self.assertEqual(self.store.get_inventory(second.id, MATERIAL).quantity, Decimal('12'))

    def test_collection_point_credits_first_godown(self) -> None:
        point = add_location(self.db, 'Market Road', LocationType.COLLECTION_POINT)
        first = add_location(self.db, 'Central Godown')
        add_location(self.db, 'North Godown')

        result = self._collect(point.id)

        self.assertTrue(result.success)
        self.assertEqual(result.data['location_id'], point.id)
        self.assertEqual(result.data['credited_godown_id'], first.id)
        self.assertEqual(self.store.get_inventory(first.id, MATERIAL).quantity, Decimal('12'))
        self.assertIsNone(self.store.get_inventory(point.id, MATERIAL))

    def test_collection_point_without_godown_skips_inventory(self) -> None:
        point = add_location(self.db, 'Market Road', LocationType.COLLECTION_POINT)

        with self.assertLogs('waste_portal.services.collection_service', level='WARNING'):
            result = self._collect(point.id)

        self.assertTrue(result.success)
        self.assertFalse(result.data['inventory_updated'])
        self.assertIsNone(result.data['credited_godown_id'])
        self.assertEqual(self._collection_count(), 1)

    def test_collection_survives_inventory_failure(self) -> None:
        godown = add_location(self.db, 'Central Godown')

        with patch.object(StockStore, 'insert_inventory', side_effect=StoreError('inventory write failed')):
            result = self._collect(godown.id)

        self.assertTrue(result.success)
        self.assertFalse(result.data['inventory_updated'])
        self.assertEqual(self._collection_count(), 1)
        self.assertIsNone(self.store.get_inventory(godown.id, MATERIAL))

    def test_requires_actor_before_any_write(self) -> None:
        godown = add_location(self.db, 'Central Godown')

        result = self._collect(godown.id, actor=None)

        self.assertFalse(result.success)
        self.assertEqual(result.error.kind, ErrorKind.UNAUTHENTICATED)
        self.assertEqual(self._collection_count(), 0)

    def test_invalid_quantity_is_rejected(self) -> None:
        godown = add_location(self.db, 'Central Godown')

        result = self._collect(godown.id, quantity='0')

        self.assertEqual(result.error.kind, ErrorKind.INVALID_INPUT)
        self.assertEqual(self._collection_count(), 0)

    def test_daily_listing_uses_utc_day(self) -> None:
        godown = add_location(self.db, 'Central Godown')
        self._collect(godown.id)
        today = datetime.now(tz=timezone.utc).date()

        rows = list_daily_collections(self.db, day=today)

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['location']['name'], 'Central Godown')
        self.assertEqual(rows[0]['location']['type'], 'godown')
        self.assertEqual(list_daily_collections(self.db, day=today - timedelta(days=1)), [])

    def test_values_finer_than_stored_scale_are_rejected_without_writes(self) -> None:
        godown = add_location(self.db, 'Central Godown')

        too_fine = self._collect(godown.id, quantity='1.0005')
        bad_amount = record_collection(
            self.store,
            self.actor,
            location_id=godown.id,
            material=MATERIAL,
            quantity='2',
            unit='kg',
            amount_paid='40.125',
        )

        for result in (too_fine, bad_amount):
            self.assertFalse(result.success)
            self.assertEqual(result.error.kind, ErrorKind.INVALID_INPUT)
        self.assertEqual(self._collection_count(), 0)
        self.assertIsNone(self.store.get_inventory(godown.id, MATERIAL))


if __name__ == '__main__':
    unittest.main()
