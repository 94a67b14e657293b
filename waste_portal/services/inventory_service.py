from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from waste_portal.models import InventoryRecord, Location
from waste_portal.services.results import OperationResult
from waste_portal.services.stock_errors import InsufficientStock, InvalidInput, StockOperationError
from waste_portal.services.stock_store import StockStore
from waste_portal.services.values import as_quantity, required_text

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    INCREASE = 'increase'
    DECREASE = 'decrease'


def inventory_dict(record: InventoryRecord) -> dict:
    return {
        'id': record.id,
        'godown_id': record.godown_id,
        'material': record.material,
        'quantity': record.quantity,
        'last_updated': record.last_updated,
    }


def apply_inventory_change(
    store: StockStore,
    *,
    godown_id: int,
    material: str,
    quantity,
    direction: Direction | str,
) -> InventoryRecord:
    """Read the (godown, material) row and write the adjusted quantity.

    One read and at most one write. A decrease that would go below zero,
    or that has no row to take from, raises ``InsufficientStock`` before
    anything is written.
    """
    try:
        direction = Direction(direction)
    except ValueError as exc:
        raise InvalidInput(f'Unknown direction: {direction}') from exc
    qty = as_quantity(quantity)
    material = required_text(material, field='material')

    existing = store.get_inventory(godown_id, material)

    if direction == Direction.DECREASE:
        if existing is None:
            raise InsufficientStock('Cannot subtract from non-existent inventory')
        new_quantity = existing.quantity - qty
        if new_quantity < 0:
            raise InsufficientStock('Insufficient inventory for this operation')
        record = store.update_inventory_quantity(existing, new_quantity)
    elif existing is None:
        record = store.insert_inventory(godown_id, material, qty)
    else:
        record = store.update_inventory_quantity(existing, existing.quantity + qty)

    logger.info(
        'Inventory %s: godown=%s material=%s qty=%s now=%s',
        direction.value,
        godown_id,
        material,
        qty,
        record.quantity,
    )
    return record


def adjust_inventory(
    store: StockStore,
    godown_id: int,
    material: str,
    quantity,
    direction: Direction | str,
) -> OperationResult:
    try:
        record = apply_inventory_change(
            store,
            godown_id=godown_id,
            material=material,
            quantity=quantity,
            direction=direction,
        )
    except StockOperationError as exc:
        return OperationResult.fail(exc)
    return OperationResult.ok(inventory_dict(record))


def list_inventory(db: Session, *, godown_id: int | None = None) -> list[dict]:
    query = (
        select(InventoryRecord, Location.name, Location.district)
        .join(Location, Location.id == InventoryRecord.godown_id)
        .order_by(Location.name.asc(), InventoryRecord.material.asc())
    )
    if godown_id is not None:
        query = query.where(InventoryRecord.godown_id == godown_id)

    return [
        {
            **inventory_dict(record),
            'godown_name': name,
            'godown_district': district,
        }
        for record, name, district in db.execute(query).all()
    ]


def total_quantity_on_hand(db: Session) -> Decimal:
    total = db.execute(select(func.coalesce(func.sum(InventoryRecord.quantity), 0))).scalar_one()
    return Decimal(str(total))
