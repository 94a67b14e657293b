from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from waste_portal.auth import Principal, Role, get_optional_principal, require_role
from waste_portal.db import get_db
from waste_portal.dependencies import get_client_ip, get_stock_store
from waste_portal.reference_data import catalog
from waste_portal.schemas import (
    CollectionCreate,
    InventoryAdjust,
    LocationCreate,
    SaleCreate,
    TransferCreate,
)
from waste_portal.security.csrf import verify_csrf
from waste_portal.services.audit_service import log_audit
from waste_portal.services.collection_service import list_daily_collections, record_collection
from waste_portal.services.inventory_service import adjust_inventory, list_inventory
from waste_portal.services.location_service import create_location, list_locations, location_dict
from waste_portal.services.report_service import date_range
from waste_portal.services.results import OperationResult
from waste_portal.services.sale_service import list_sales, record_sale
from waste_portal.services.stock_errors import ErrorKind
from waste_portal.services.stock_store import StockStore
from waste_portal.services.transfer_service import list_transfers, transfer_stock

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api', tags=['stock'])
staff_access = require_role(Role.ADMIN, Role.MANAGER)
admin_access = require_role(Role.ADMIN)

FAILURE_STATUS = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INSUFFICIENT_STOCK: 409,
    ErrorKind.COMPENSATION_FAILED: 500,
    ErrorKind.STORE_ERROR: 502,
}


def result_response(
    result: OperationResult,
    *,
    store: StockStore,
    request: Request,
    actor: Principal | None,
    action: str,
    success_status: int = 200,
) -> JSONResponse:
    if result.success:
        # Stock is already committed here; audit failures are only logged.
        try:
            log_audit(
                store.db,
                actor_principal_id=actor.id if actor else None,
                action=action,
                ip=get_client_ip(request),
                metadata=result.data if isinstance(result.data, dict) else {},
            )
            store.db.commit()
        except SQLAlchemyError:
            store.db.rollback()
            logger.exception('Audit write failed for %s', action)
        status_code = success_status
    else:
        status_code = FAILURE_STATUS[result.error.kind]
    return JSONResponse(jsonable_encoder(result.to_dict()), status_code=status_code)


@router.get('/catalog')
def get_catalog(principal: Principal = Depends(staff_access)):
    return catalog()


@router.get('/locations')
def get_locations(
    location_type: str | None = Query(None, alias='type'),
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    try:
        return {'locations': list_locations(db, location_type=location_type)}
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/locations', status_code=201)
def post_location(
    payload: LocationCreate,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        location = create_location(
            db,
            name=payload.name,
            address=payload.address,
            district=payload.district,
            location_type=payload.type,
            contact_phone=payload.contact_phone,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        actor_principal_id=principal.id,
        action='LOCATION_CREATED',
        ip=get_client_ip(request),
        metadata={'location_id': location.id, 'name': location.name, 'type': location.type.value},
    )
    db.commit()
    return {'location': location_dict(location)}


@router.get('/inventory')
def get_inventory(
    godown_id: int | None = None,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    return {'inventory': list_inventory(db, godown_id=godown_id)}


@router.post('/inventory/adjust')
def post_inventory_adjust(
    payload: InventoryAdjust,
    request: Request,
    principal: Principal = Depends(admin_access),
    store: StockStore = Depends(get_stock_store),
    _: None = Depends(verify_csrf),
):
    result = adjust_inventory(
        store,
        payload.godown_id,
        payload.material,
        payload.quantity,
        payload.direction,
    )
    return result_response(result, store=store, request=request, actor=principal, action='INVENTORY_ADJUSTED')


@router.get('/collections')
def get_collections(
    day: date | None = None,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    day = day or datetime.now(tz=timezone.utc).date()
    return {'day': day, 'collections': list_daily_collections(db, day=day)}


@router.post('/collections')
def post_collection(
    payload: CollectionCreate,
    request: Request,
    principal: Principal | None = Depends(get_optional_principal),
    store: StockStore = Depends(get_stock_store),
    _: None = Depends(verify_csrf),
):
    result = record_collection(
        store,
        principal,
        location_id=payload.location_id,
        material=payload.material,
        quantity=payload.quantity,
        unit=payload.unit,
        amount_paid=payload.amount_paid,
        notes=payload.notes,
        commission_agent=payload.commission_agent,
        commission_amount=payload.commission_amount,
    )
    return result_response(
        result, store=store, request=request, actor=principal, action='COLLECTION_RECORDED', success_status=201
    )


@router.get('/transfers')
def get_transfers(
    limit: int = 100,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    return {'transfers': list_transfers(db, limit=limit)}


@router.post('/transfers')
def post_transfer(
    payload: TransferCreate,
    request: Request,
    principal: Principal | None = Depends(get_optional_principal),
    store: StockStore = Depends(get_stock_store),
    _: None = Depends(verify_csrf),
):
    result = transfer_stock(
        store,
        principal,
        from_godown_id=payload.from_godown_id,
        to_godown_id=payload.to_godown_id,
        material=payload.material,
        quantity=payload.quantity,
        notes=payload.notes,
    )
    return result_response(
        result, store=store, request=request, actor=principal, action='STOCK_TRANSFERRED', success_status=201
    )


@router.get('/sales')
def get_sales(
    start: date | None = None,
    end: date | None = None,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    try:
        start_at, end_at = date_range(start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='Invalid date filter') from exc
    return {'sales': list_sales(db, start=start_at, end=end_at)}


@router.post('/sales')
def post_sale(
    payload: SaleCreate,
    request: Request,
    principal: Principal = Depends(staff_access),
    store: StockStore = Depends(get_stock_store),
    _: None = Depends(verify_csrf),
):
    result = record_sale(
        store,
        godown_id=payload.godown_id,
        buyer_name=payload.buyer_name,
        material=payload.material,
        quantity=payload.quantity,
        unit=payload.unit,
        sale_amount=payload.sale_amount,
        payment_status=payload.payment_status,
        amount_due=payload.amount_due,
        notes=payload.notes,
    )
    return result_response(
        result, store=store, request=request, actor=principal, action='SALE_RECORDED', success_status=201
    )
