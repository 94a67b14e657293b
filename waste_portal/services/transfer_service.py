from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from waste_portal.auth import Principal
from waste_portal.models import Location, StockTransfer
from waste_portal.services.inventory_service import Direction, apply_inventory_change
from waste_portal.services.results import OperationResult
from waste_portal.services.saga import SagaStep, run_saga
from waste_portal.services.stock_errors import InvalidInput, StockOperationError, Unauthenticated
from waste_portal.services.stock_store import StockStore
from waste_portal.services.values import as_quantity, optional_text, required_text


def transfer_dict(transfer: StockTransfer) -> dict:
    return {
        'id': transfer.id,
        'from_godown_id': transfer.from_godown_id,
        'to_godown_id': transfer.to_godown_id,
        'material': transfer.material,
        'quantity': transfer.quantity,
        'transferred_by': transfer.transferred_by,
        'notes': transfer.notes,
        'transfer_date': transfer.transfer_date,
    }


def transfer_stock(
    store: StockStore,
    actor: Principal | None,
    *,
    from_godown_id: int,
    to_godown_id: int,
    material: str,
    quantity,
    notes: str | None = None,
) -> OperationResult:
    try:
        if actor is None:
            raise Unauthenticated('You must be logged in to transfer stock')
        if from_godown_id == to_godown_id:
            raise InvalidInput('Source and destination must be different locations')
        material = required_text(material, field='material')
        qty = as_quantity(quantity)

        def _move(godown_id: int, direction: Direction):
            return lambda: apply_inventory_change(
                store,
                godown_id=godown_id,
                material=material,
                quantity=qty,
                direction=direction,
            )

        results = run_saga(
            f'transfer {material} {from_godown_id}->{to_godown_id}',
            [
                SagaStep(
                    'decrease source',
                    _move(from_godown_id, Direction.DECREASE),
                    _move(from_godown_id, Direction.INCREASE),
                ),
                SagaStep(
                    'increase destination',
                    _move(to_godown_id, Direction.INCREASE),
                    _move(to_godown_id, Direction.DECREASE),
                ),
                SagaStep(
                    'record transfer',
                    lambda: store.insert_transfer(
                        from_godown_id=from_godown_id,
                        to_godown_id=to_godown_id,
                        material=material,
                        quantity=qty,
                        transferred_by=actor.id,
                        notes=optional_text(notes),
                    ),
                ),
            ],
        )
    except StockOperationError as exc:
        return OperationResult.fail(exc)
    return OperationResult.ok(transfer_dict(results[-1]))


def list_transfers(
    db: Session,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = 100,
) -> list[dict]:
    source = aliased(Location)
    destination = aliased(Location)
    query = (
        select(StockTransfer, source.name, destination.name)
        .join(source, source.id == StockTransfer.from_godown_id)
        .join(destination, destination.id == StockTransfer.to_godown_id)
        .order_by(StockTransfer.transfer_date.desc(), StockTransfer.id.desc())
    )
    if start is not None:
        query = query.where(StockTransfer.transfer_date >= start)
    if end is not None:
        query = query.where(StockTransfer.transfer_date < end)
    if limit is not None:
        query = query.limit(limit)
    rows = db.execute(query).all()
    return [
        {
            **transfer_dict(transfer),
            'from_godown_name': from_name,
            'to_godown_name': to_name,
        }
        for transfer, from_name, to_name in rows
    ]
