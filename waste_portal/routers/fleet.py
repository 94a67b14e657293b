from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from waste_portal.auth import Principal, Role, require_role
from waste_portal.db import get_db
from waste_portal.dependencies import get_client_ip
from waste_portal.schemas import DriverActiveUpdate, DriverCreate, TripFields, VehicleCreate, VehicleStatusUpdate
from waste_portal.security.csrf import verify_csrf
from waste_portal.services.audit_service import log_audit
from waste_portal.services.fleet_service import (
    complete_trip,
    create_driver,
    create_trip,
    create_vehicle,
    driver_dict,
    find_trips_by_token,
    list_drivers,
    list_trips,
    list_vehicles,
    set_driver_active,
    trip_dict,
    update_trip,
    update_vehicle_status,
    vehicle_dict,
)

router = APIRouter(prefix='/api', tags=['fleet'])
staff_access = require_role(Role.ADMIN, Role.MANAGER)


def _audit(db: Session, request: Request, principal: Principal, action: str, metadata: dict) -> None:
    log_audit(
        db,
        actor_principal_id=principal.id,
        action=action,
        ip=get_client_ip(request),
        metadata=metadata,
    )
    db.commit()


@router.get('/vehicles')
def get_vehicles(principal: Principal = Depends(staff_access), db: Session = Depends(get_db)):
    return {'vehicles': list_vehicles(db)}


@router.post('/vehicles', status_code=201)
def post_vehicle(
    payload: VehicleCreate,
    request: Request,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        vehicle = create_vehicle(
            db,
            registration_number=payload.registration_number,
            vehicle_type=payload.type,
            capacity=payload.capacity,
            capacity_unit=payload.capacity_unit,
            current_location_id=payload.current_location_id,
            notes=payload.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _audit(db, request, principal, 'VEHICLE_CREATED', {'vehicle_id': vehicle.id, 'registration': vehicle.registration_number})
    return {'vehicle': vehicle_dict(vehicle)}


@router.post('/vehicles/{vehicle_id}/status')
def post_vehicle_status(
    vehicle_id: int,
    payload: VehicleStatusUpdate,
    request: Request,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        vehicle = update_vehicle_status(
            db,
            vehicle_id=vehicle_id,
            status=payload.status,
            current_location_id=payload.current_location_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _audit(db, request, principal, 'VEHICLE_STATUS_CHANGED', {'vehicle_id': vehicle.id, 'status': vehicle.status})
    return {'vehicle': vehicle_dict(vehicle)}


@router.get('/drivers')
def get_drivers(
    active_only: bool = False,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    return {'drivers': list_drivers(db, active_only=active_only)}


@router.post('/drivers', status_code=201)
def post_driver(
    payload: DriverCreate,
    request: Request,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        driver = create_driver(
            db,
            name=payload.name,
            phone=payload.phone,
            license_number=payload.license_number,
            address=payload.address,
            notes=payload.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _audit(db, request, principal, 'DRIVER_CREATED', {'driver_id': driver.id})
    return {'driver': driver_dict(driver)}


@router.post('/drivers/{driver_id}/active')
def post_driver_active(
    driver_id: int,
    payload: DriverActiveUpdate,
    request: Request,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        driver = set_driver_active(db, driver_id=driver_id, active=payload.active)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _audit(db, request, principal, 'DRIVER_ACTIVE_CHANGED', {'driver_id': driver.id, 'active': driver.is_active})
    return {'driver': driver_dict(driver)}


@router.get('/trips')
def get_trips(
    status: str | None = None,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    try:
        return {'trips': list_trips(db, status=status)}
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f'Unknown trip status: {status}') from exc


@router.get('/trips/token/{code}')
def get_trips_by_token(
    code: str,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    try:
        return {'trips': find_trips_by_token(db, token_query=code)}
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post('/trips', status_code=201)
def post_trip(
    payload: TripFields,
    request: Request,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        trip = create_trip(db, created_by=principal.id, **payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _audit(db, request, principal, 'TRIP_STARTED', {'trip_id': trip.id, 'token_code': trip.token_code})
    return {'trip': trip_dict(trip)}


@router.put('/trips/{trip_id}')
def put_trip(
    trip_id: int,
    payload: TripFields,
    request: Request,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        trip = update_trip(db, trip_id=trip_id, **payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _audit(db, request, principal, 'TRIP_UPDATED', {'trip_id': trip.id})
    return {'trip': trip_dict(trip)}


@router.post('/trips/{trip_id}/complete')
def post_trip_complete(
    trip_id: int,
    request: Request,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        trip = complete_trip(db, trip_id=trip_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _audit(db, request, principal, 'TRIP_COMPLETED', {'trip_id': trip.id, 'vehicle_id': trip.vehicle_id})
    return {'trip': trip_dict(trip)}
