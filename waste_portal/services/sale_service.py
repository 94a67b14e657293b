from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from waste_portal.models import Location, PaymentStatus, Sale
from waste_portal.services.inventory_service import Direction, apply_inventory_change
from waste_portal.services.results import OperationResult
from waste_portal.services.saga import SagaStep, run_saga
from waste_portal.services.stock_errors import InvalidInput, StockOperationError
from waste_portal.services.stock_store import StockStore
from waste_portal.services.values import as_amount, as_quantity, optional_text, required_text


def sale_dict(sale: Sale) -> dict:
    return {
        'id': sale.id,
        'godown_id': sale.godown_id,
        'buyer_name': sale.buyer_name,
        'material': sale.material,
        'quantity': sale.quantity,
        'unit': sale.unit,
        'sale_amount': sale.sale_amount,
        'payment_status': sale.payment_status.value,
        'amount_due': sale.amount_due,
        'notes': sale.notes,
        'sale_date': sale.sale_date,
    }


def _payment_status(value: PaymentStatus | str) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError as exc:
        raise InvalidInput(f'Unknown payment status: {value}') from exc


def record_sale(
    store: StockStore,
    *,
    godown_id: int,
    buyer_name: str,
    material: str,
    quantity,
    unit: str,
    sale_amount,
    payment_status: PaymentStatus | str,
    amount_due=Decimal('0'),
    notes: str | None = None,
) -> OperationResult:
    # amount_due is taken as given; its relation to sale_amount and status is not checked here
    try:
        material = required_text(material, field='material')
        qty = as_quantity(quantity)
        values = {
            'godown_id': godown_id,
            'buyer_name': required_text(buyer_name, field='buyer name'),
            'material': material,
            'quantity': qty,
            'unit': required_text(unit, field='unit'),
            'sale_amount': as_amount(sale_amount, field='sale amount'),
            'payment_status': _payment_status(payment_status),
            'amount_due': as_amount(amount_due, field='amount due'),
            'notes': optional_text(notes),
        }

        results = run_saga(
            f'sale {material} from {godown_id}',
            [
                SagaStep(
                    'decrease stock',
                    lambda: apply_inventory_change(
                        store, godown_id=godown_id, material=material, quantity=qty, direction=Direction.DECREASE
                    ),
                    lambda: apply_inventory_change(
                        store, godown_id=godown_id, material=material, quantity=qty, direction=Direction.INCREASE
                    ),
                ),
                SagaStep('record sale', lambda: store.insert_sale(**values)),
            ],
        )
    except StockOperationError as exc:
        return OperationResult.fail(exc)
    return OperationResult.ok(sale_dict(results[-1]))


def list_sales(
    db: Session,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[dict]:
    query = (
        select(Sale, Location.name, Location.district)
        .join(Location, Location.id == Sale.godown_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
    )
    if start is not None:
        query = query.where(Sale.sale_date >= start)
    if end is not None:
        query = query.where(Sale.sale_date < end)
    if limit is not None:
        query = query.limit(limit)

    return [
        {
            **sale_dict(sale),
            'godown': {'name': name, 'district': district},
        }
        for sale, name, district in db.execute(query).all()
    ]
