from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from waste_portal.models import (
    Collection,
    InventoryRecord,
    Location,
    LocationType,
    Sale,
    StockTransfer,
)
from waste_portal.services.stock_errors import StoreError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _describe(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, 'orig', None)
    return str(orig) if orig is not None else str(exc)


class StockStore:
    """Data access for the stock ledger.

    Each method issues one read or one write. Writes are committed
    immediately, so a multi-step operation built on top of this class is
    not atomic and has to undo completed steps itself. Every database
    failure is rolled back and re-raised as ``StoreError``.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _fail(self, exc: SQLAlchemyError, action: str) -> StoreError:
        self.db.rollback()
        logger.error('Store failure while %s: %s', action, _describe(exc))
        return StoreError(_describe(exc))

    def _insert(self, row, action: str):
        try:
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail(exc, action) from exc
        return row

    def get_inventory(self, godown_id: int, material: str) -> InventoryRecord | None:
        try:
            return self.db.execute(
                select(InventoryRecord)
                .where(InventoryRecord.godown_id == godown_id, InventoryRecord.material == material)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'reading inventory') from exc

    def update_inventory_quantity(self, record: InventoryRecord, new_quantity: Decimal) -> InventoryRecord:
        """Write ``new_quantity`` only if the row still holds the quantity that was read."""
        expected = record.quantity
        try:
            result = self.db.execute(
                update(InventoryRecord)
                .where(InventoryRecord.id == record.id, InventoryRecord.quantity == expected)
                .values(quantity=new_quantity, last_updated=_now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise StoreError(
                    f'Inventory for {record.material} at location {record.godown_id} changed concurrently'
                )
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'updating inventory') from exc
        return record

    def insert_inventory(self, godown_id: int, material: str, quantity: Decimal) -> InventoryRecord:
        record = InventoryRecord(godown_id=godown_id, material=material, quantity=quantity, last_updated=_now())
        return self._insert(record, 'creating inventory')

    def get_location(self, location_id: int) -> Location | None:
        try:
            return self.db.execute(select(Location).where(Location.id == location_id)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'reading location') from exc

    def first_godown_id(self) -> int | None:
        try:
            return self.db.execute(
                select(Location.id).where(Location.type == LocationType.GODOWN).order_by(Location.id.asc()).limit(1)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._fail(exc, 'looking up a godown') from exc

    def insert_collection(self, **values) -> Collection:
        return self._insert(Collection(collection_date=_now(), **values), 'recording collection')

    def insert_sale(self, **values) -> Sale:
        return self._insert(Sale(sale_date=_now(), **values), 'recording sale')

    def insert_transfer(self, **values) -> StockTransfer:
        return self._insert(StockTransfer(transfer_date=_now(), **values), 'recording transfer')
