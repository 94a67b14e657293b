from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from waste_portal.auth import Principal
from waste_portal.models import Collection, Location, LocationType
from waste_portal.services.inventory_service import Direction, apply_inventory_change
from waste_portal.services.results import OperationResult
from waste_portal.services.stock_errors import StockOperationError, Unauthenticated
from waste_portal.services.stock_store import StockStore
from waste_portal.services.values import as_amount, as_quantity, optional_text, required_text

logger = logging.getLogger(__name__)


def collection_dict(collection: Collection) -> dict:
    return {
        'id': collection.id,
        'location_id': collection.location_id,
        'collected_by': collection.collected_by,
        'material': collection.material,
        'quantity': collection.quantity,
        'unit': collection.unit,
        'amount_paid': collection.amount_paid,
        'commission_agent': collection.commission_agent,
        'commission_amount': collection.commission_amount,
        'notes': collection.notes,
        'collection_date': collection.collection_date,
    }


def resolve_credit_godown(store: StockStore, location_id: int) -> int | None:
    """Pick the location whose stock a collection at ``location_id`` increases.

    Collections at a collection point go to the first godown (lowest id);
    None when there is no godown at all. Any other location, including an
    unknown id, is credited directly.
    """
    location = store.get_location(location_id)
    if location is not None and location.type == LocationType.COLLECTION_POINT:
        return store.first_godown_id()
    return location_id


def record_collection(
    store: StockStore,
    actor: Principal | None,
    *,
    location_id: int,
    material: str,
    quantity,
    unit: str,
    amount_paid,
    notes: str | None = None,
    commission_agent: str | None = None,
    commission_amount=None,
) -> OperationResult:
    try:
        if actor is None:
            raise Unauthenticated('You must be logged in to record collections')
        collection = store.insert_collection(
            location_id=location_id,
            collected_by=actor.id,
            material=required_text(material, field='material'),
            quantity=as_quantity(quantity),
            unit=required_text(unit, field='unit'),
            amount_paid=as_amount(amount_paid, field='amount paid'),
            commission_agent=optional_text(commission_agent),
            commission_amount=(
                as_amount(commission_amount, field='commission amount') if commission_amount is not None else None
            ),
            notes=optional_text(notes),
        )
    except StockOperationError as exc:
        return OperationResult.fail(exc)

    data = collection_dict(collection)
    data['credited_godown_id'] = None
    data['inventory_updated'] = False

    # The collection stays recorded even if crediting stock fails.
    try:
        godown_id = resolve_credit_godown(store, location_id)
        if godown_id is None:
            logger.warning('Collection %s: no godown available to credit', collection.id)
        else:
            apply_inventory_change(
                store,
                godown_id=godown_id,
                material=collection.material,
                quantity=collection.quantity,
                direction=Direction.INCREASE,
            )
            data['credited_godown_id'] = godown_id
            data['inventory_updated'] = True
    except StockOperationError as exc:
        logger.warning('Collection %s recorded but inventory update failed: %s', collection.id, exc.message)

    return OperationResult.ok(data)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def list_daily_collections(db: Session, *, day: date) -> list[dict]:
    start, end = _day_bounds(day)
    rows = db.execute(
        select(Collection, Location.name, Location.district, Location.type)
        .join(Location, Location.id == Collection.location_id)
        .where(Collection.collection_date >= start, Collection.collection_date < end)
        .order_by(Collection.collection_date.desc(), Collection.id.desc())
    ).all()
    return [
        {
            **collection_dict(collection),
            'location': {
                'name': name,
                'district': district,
                'type': location_type.value,
            },
        }
        for collection, name, district, location_type in rows
    ]
